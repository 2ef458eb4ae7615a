from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.coupons.types import REUSABLE_GRANT_STATUSES
from app.db.models.grants import Grant
from app.db.models.offers import Offer


class GrantsRepo:
    @staticmethod
    async def get_latest_for_recipient(
        session: AsyncSession,
        *,
        tenant_id: UUID,
        offer_id: UUID,
        recipient: str,
    ) -> Grant | None:
        stmt = (
            select(Grant)
            .where(
                Grant.tenant_id == tenant_id,
                Grant.offer_id == offer_id,
                Grant.recipient == recipient,
            )
            .order_by(Grant.issued_at.desc(), Grant.id.desc())
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_open_for_recipient(
        session: AsyncSession,
        *,
        tenant_id: UUID,
        offer_id: UUID,
        recipient: str,
    ) -> Grant | None:
        stmt = select(Grant).where(
            Grant.tenant_id == tenant_id,
            Grant.offer_id == offer_id,
            Grant.recipient == recipient,
            Grant.status == "issued",
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_code_for_update(
        session: AsyncSession, *, tenant_id: UUID, code: str
    ) -> Grant | None:
        stmt = (
            select(Grant)
            .where(Grant.tenant_id == tenant_id, Grant.code == code)
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_id_for_update(
        session: AsyncSession, *, tenant_id: UUID, grant_id: UUID
    ) -> Grant | None:
        stmt = (
            select(Grant)
            .where(Grant.tenant_id == tenant_id, Grant.id == grant_id)
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, grant: Grant) -> Grant:
        session.add(grant)
        await session.flush()
        return grant

    @staticmethod
    async def exists_for_recipient(
        session: AsyncSession, *, tenant_id: UUID, recipient: str
    ) -> bool:
        stmt = (
            select(Grant.id)
            .where(Grant.tenant_id == tenant_id, Grant.recipient == recipient)
            .limit(1)
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none() is not None

    @staticmethod
    async def count_for_tenant(session: AsyncSession, *, tenant_id: UUID) -> int:
        stmt = select(func.count(Grant.id)).where(Grant.tenant_id == tenant_id)
        result = await session.execute(stmt)
        return int(result.scalar_one() or 0)

    @staticmethod
    async def top_offer_for_tenant(
        session: AsyncSession, *, tenant_id: UUID
    ) -> tuple[str, int] | None:
        """Offer with the most grants, as (title, grant count)."""
        grants_total = func.count(Grant.id)
        stmt = (
            select(Offer.title, grants_total)
            .join(Offer, Offer.id == Grant.offer_id)
            .where(Grant.tenant_id == tenant_id)
            .group_by(Offer.id, Offer.title)
            .order_by(grants_total.desc(), Offer.title.asc())
            .limit(1)
        )
        result = await session.execute(stmt)
        row = result.first()
        if row is None:
            return None
        return str(row[0]), int(row[1])

    @staticmethod
    async def list_page_for_tenant(
        session: AsyncSession,
        *,
        tenant_id: UUID,
        offset: int,
        limit: int,
    ) -> list[tuple[Grant, str | None]]:
        stmt = (
            select(Grant, Offer.title)
            .outerjoin(Offer, Offer.id == Grant.offer_id)
            .where(Grant.tenant_id == tenant_id)
            .order_by(Grant.issued_at.desc(), Grant.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    @staticmethod
    async def expire_overdue(
        session: AsyncSession,
        *,
        tenant_id: UUID,
        now_utc: datetime,
    ) -> int:
        stmt = (
            update(Grant)
            .where(
                Grant.tenant_id == tenant_id,
                Grant.status.in_(sorted(REUSABLE_GRANT_STATUSES)),
                Grant.expires_at.is_not(None),
                Grant.expires_at <= now_utc,
            )
            .values(status="expired")
        )
        result = await session.execute(stmt)
        return int(result.rowcount or 0)
