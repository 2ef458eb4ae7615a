from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.analytics.errors import AnalyticsEventInvalidError
from app.analytics.types import CLIENT_EVENT_TYPES, EventType, TrackedEvent
from app.core.emails import normalize_email
from app.core.rate_limits import GENERAL
from app.core.results import Result, capture
from app.db.models.analytics_events import AnalyticsEvent
from app.db.repo.analytics_events_repo import AnalyticsEventsRepo
from app.db.tenant_scope import tenant_session
from app.services.rate_limit import get_rate_limiter
from app.tenancy.resolver import require_active_tenant_id

logger = structlog.get_logger(__name__)


def _build_event(
    *,
    tenant_id: UUID,
    event_type: EventType,
    happened_at: datetime,
    session_id: str | None,
    email: str | None,
    payload: dict[str, object] | None,
) -> AnalyticsEvent:
    return AnalyticsEvent(
        id=uuid4(),
        tenant_id=tenant_id,
        event_type=event_type.value,
        session_id=session_id or None,
        email=email or None,
        payload=payload or {},
        created_at=happened_at,
    )


async def emit_analytics_event(
    session: AsyncSession,
    *,
    tenant_id: UUID,
    event_type: EventType,
    happened_at: datetime,
    session_id: str | None = None,
    email: str | None = None,
    payload: dict[str, object] | None = None,
) -> bool:
    """Records an event inside the caller's transaction; a failed insert never fails the caller."""
    try:
        async with session.begin_nested():
            await AnalyticsEventsRepo.create(
                session,
                event=_build_event(
                    tenant_id=tenant_id,
                    event_type=event_type,
                    happened_at=happened_at,
                    session_id=session_id,
                    email=email,
                    payload=payload,
                ),
            )
    except SQLAlchemyError as exc:
        logger.warning(
            "analytics_event_dropped",
            event_type=event_type.value,
            error_type=type(exc).__name__,
        )
        return False
    return True


class TrackingService:
    @staticmethod
    async def _track(
        *,
        tenant_slug: str,
        event_type: str,
        client_id: str,
        session_id: str | None,
        email: str | None,
        payload: dict[str, object],
        now_utc: datetime,
    ) -> TrackedEvent:
        if event_type not in CLIENT_EVENT_TYPES:
            raise AnalyticsEventInvalidError(f"Unsupported event type: {event_type}")
        try:
            normalized_email = normalize_email(email)
        except ValueError as exc:
            raise AnalyticsEventInvalidError("Invalid email address") from exc

        await get_rate_limiter().enforce(client_id, GENERAL)
        tenant_id = await require_active_tenant_id(tenant_slug)

        async with tenant_session(tenant_id) as session:
            event = await AnalyticsEventsRepo.create(
                session,
                event=_build_event(
                    tenant_id=tenant_id,
                    event_type=EventType(event_type),
                    happened_at=now_utc,
                    session_id=session_id,
                    email=normalized_email,
                    payload=payload,
                ),
            )
            tracked = TrackedEvent(
                id=event.id, event_type=event.event_type, created_at=event.created_at
            )

        logger.info("analytics_event_tracked", event_type=event_type)
        return tracked

    @staticmethod
    async def track_event(
        tenant_slug: str,
        event_type: str,
        *,
        client_id: str,
        session_id: str | None = None,
        email: str | None = None,
        payload: dict[str, object] | None = None,
        now_utc: datetime | None = None,
    ) -> Result[TrackedEvent]:
        return await capture(
            "track_event",
            TrackingService._track(
                tenant_slug=tenant_slug,
                event_type=event_type,
                client_id=client_id,
                session_id=session_id,
                email=email,
                payload=payload or {},
                now_utc=now_utc or datetime.now(timezone.utc),
            ),
        )
