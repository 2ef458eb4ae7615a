from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.models.tenants import Tenant


class TenantsRepo:
    @staticmethod
    async def resolve_active_id_by_slug(session: AsyncSession, slug: str) -> UUID | None:
        stmt = select(func.resolve_tenant(slug))
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def resolve_active_id_by_subdomain(
        session: AsyncSession, subdomain: str
    ) -> UUID | None:
        stmt = select(func.resolve_tenant_by_subdomain(subdomain))
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_id_by_slug(session: AsyncSession, slug: str) -> UUID | None:
        stmt = select(Tenant.id).where(Tenant.slug == slug)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_id_by_subdomain(session: AsyncSession, subdomain: str) -> UUID | None:
        stmt = select(Tenant.id).where(Tenant.subdomain == subdomain)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_id(session: AsyncSession, tenant_id: UUID) -> Tenant | None:
        return await session.get(Tenant, tenant_id)

    @staticmethod
    async def get_by_id_for_update(session: AsyncSession, tenant_id: UUID) -> Tenant | None:
        stmt = select(Tenant).where(Tenant.id == tenant_id).with_for_update()
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def list_ids(session: AsyncSession, *, active_only: bool = False) -> list[UUID]:
        stmt = select(Tenant.id).order_by(Tenant.created_at.asc())
        if active_only:
            stmt = stmt.where(Tenant.active.is_(True))
        result = await session.execute(stmt)
        return list(result.scalars().all())
