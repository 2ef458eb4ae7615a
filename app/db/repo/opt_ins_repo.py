from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.opt_ins import OptIn


class OptInsRepo:
    @staticmethod
    async def get(session: AsyncSession, *, tenant_id: UUID, email: str) -> OptIn | None:
        stmt = select(OptIn).where(OptIn.tenant_id == tenant_id, OptIn.email == email)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(session: AsyncSession, *, opt_in: OptIn) -> OptIn:
        session.add(opt_in)
        await session.flush()
        return opt_in
