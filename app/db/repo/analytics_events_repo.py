from __future__ import annotations

from collections.abc import Collection
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Date, cast, distinct, func, literal_column, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.analytics_events import AnalyticsEvent


class AnalyticsEventsRepo:
    @staticmethod
    async def create(session: AsyncSession, *, event: AnalyticsEvent) -> AnalyticsEvent:
        session.add(event)
        await session.flush()
        return event

    @staticmethod
    async def count_by_type(
        session: AsyncSession,
        *,
        tenant_id: UUID,
        event_types: Collection[str],
    ) -> dict[str, int]:
        if not event_types:
            return {}
        stmt = (
            select(AnalyticsEvent.event_type, func.count(AnalyticsEvent.id))
            .where(
                AnalyticsEvent.tenant_id == tenant_id,
                AnalyticsEvent.event_type.in_(sorted(event_types)),
            )
            .group_by(AnalyticsEvent.event_type)
        )
        result = await session.execute(stmt)
        return {str(event_type): int(total) for event_type, total in result.all()}

    @staticmethod
    async def count_distinct_visitors(
        session: AsyncSession,
        *,
        tenant_id: UUID,
        event_types: Collection[str],
    ) -> int:
        """Visitors are keyed by email, else by session id; rows with neither are skipped."""
        if not event_types:
            return 0
        visitor = func.coalesce(AnalyticsEvent.email, AnalyticsEvent.session_id)
        stmt = select(func.count(distinct(visitor))).where(
            AnalyticsEvent.tenant_id == tenant_id,
            AnalyticsEvent.event_type.in_(sorted(event_types)),
        )
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def count_by_day_and_type(
        session: AsyncSession,
        *,
        tenant_id: UUID,
        from_utc: datetime,
        to_utc: datetime,
    ) -> list[tuple[date, str, int]]:
        # Inlined zone literal keeps the SELECT and GROUP BY expressions identical.
        day = cast(func.timezone(literal_column("'UTC'"), AnalyticsEvent.created_at), Date)
        stmt = (
            select(day, AnalyticsEvent.event_type, func.count(AnalyticsEvent.id))
            .where(
                AnalyticsEvent.tenant_id == tenant_id,
                AnalyticsEvent.created_at >= from_utc,
                AnalyticsEvent.created_at <= to_utc,
            )
            .group_by(day, AnalyticsEvent.event_type)
            .order_by(day.asc())
        )
        result = await session.execute(stmt)
        return [(row[0], str(row[1]), int(row[2])) for row in result.all()]
