from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.offers import Offer


class OffersRepo:
    @staticmethod
    async def get_by_id(session: AsyncSession, *, tenant_id: UUID, offer_id: UUID) -> Offer | None:
        stmt = select(Offer).where(Offer.id == offer_id, Offer.tenant_id == tenant_id)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_id_for_update(
        session: AsyncSession, *, tenant_id: UUID, offer_id: UUID
    ) -> Offer | None:
        stmt = (
            select(Offer)
            .where(Offer.id == offer_id, Offer.tenant_id == tenant_id)
            .with_for_update()
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_for_tenant(
        session: AsyncSession,
        *,
        tenant_id: UUID,
        available_at: datetime | None = None,
    ) -> list[Offer]:
        stmt = (
            select(Offer)
            .where(Offer.tenant_id == tenant_id)
            .order_by(Offer.created_at.desc(), Offer.id.desc())
        )
        if available_at is not None:
            stmt = stmt.where(
                Offer.active.is_(True),
                or_(Offer.expires_at.is_(None), Offer.expires_at > available_at),
            )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def create(session: AsyncSession, *, offer: Offer) -> Offer:
        session.add(offer)
        await session.flush()
        return offer

    @staticmethod
    async def delete(session: AsyncSession, *, tenant_id: UUID, offer_id: UUID) -> int:
        stmt = delete(Offer).where(Offer.id == offer_id, Offer.tenant_id == tenant_id)
        result = await session.execute(stmt)
        return int(result.rowcount or 0)
