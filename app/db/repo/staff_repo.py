from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.staff import StaffMember


class StaffRepo:
    @staticmethod
    async def list_for_tenant(session: AsyncSession, *, tenant_id: UUID) -> list[StaffMember]:
        stmt = (
            select(StaffMember)
            .where(StaffMember.tenant_id == tenant_id)
            .order_by(StaffMember.created_at.asc(), StaffMember.id.asc())
        )
        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_by_email(
        session: AsyncSession, *, tenant_id: UUID, email: str
    ) -> StaffMember | None:
        stmt = select(StaffMember).where(
            StaffMember.tenant_id == tenant_id,
            StaffMember.email == email,
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, member: StaffMember) -> StaffMember:
        session.add(member)
        await session.flush()
        return member
