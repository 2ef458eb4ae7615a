from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.logging import bound_log_context
from app.db.session import SessionLocal

TENANT_SETTING = "app.tenant_id"


async def apply_tenant_scope(session: AsyncSession, tenant_id: UUID) -> None:
    """Sets the tenant for row-level security; local to the current transaction."""
    await session.execute(
        sa.text("SELECT set_config(:setting, :tenant_id, true)"),
        {"setting": TENANT_SETTING, "tenant_id": str(tenant_id)},
    )


async def current_tenant_scope(session: AsyncSession) -> str | None:
    result = await session.execute(
        sa.text("SELECT current_setting(:setting, true)"),
        {"setting": TENANT_SETTING},
    )
    value = result.scalar_one_or_none()
    return value or None


@asynccontextmanager
async def tenant_session(
    tenant_id: UUID,
    *,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> AsyncIterator[AsyncSession]:
    """Opens a fresh session and transaction whose queries are confined to one tenant.

    Every call builds its own session; nothing tenant-specific is cached between
    calls, so two requests for different tenants never share a handle. The
    transaction commits when the block exits cleanly and rolls back otherwise.
    """
    factory = session_factory or SessionLocal
    with bound_log_context(tenant_id=str(tenant_id)):
        async with factory.begin() as session:
            await apply_tenant_scope(session, tenant_id)
            yield session
