from __future__ import annotations

from collections.abc import Awaitable, Callable
from uuid import UUID

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.results import Result, capture
from app.db.repo.tenants_repo import TenantsRepo
from app.db.session import SessionLocal
from app.tenancy.errors import TenantNotFoundError
from app.tenancy.types import IdentifierKind

logger = structlog.get_logger(__name__)

_Lookup = Callable[[AsyncSession, str], Awaitable[UUID | None]]


def _normalize_identifier(identifier: str) -> str:
    return identifier.strip().lower()


async def _run_lookup(lookup: _Lookup, identifier: str) -> UUID | None:
    # Each lookup gets its own session so a failed primary call cannot poison the fallback.
    async with SessionLocal() as session:
        return await lookup(session, identifier)


async def _lookup_active(identifier: str, kind: IdentifierKind) -> UUID | None:
    if kind is IdentifierKind.SUBDOMAIN:
        return await _run_lookup(TenantsRepo.resolve_active_id_by_subdomain, identifier)
    return await _run_lookup(TenantsRepo.resolve_active_id_by_slug, identifier)


async def _lookup_direct(identifier: str, kind: IdentifierKind) -> UUID | None:
    if kind is IdentifierKind.SUBDOMAIN:
        return await _run_lookup(TenantsRepo.get_id_by_subdomain, identifier)
    return await _run_lookup(TenantsRepo.get_id_by_slug, identifier)


async def require_active_tenant_id(
    identifier: str,
    *,
    kind: IdentifierKind = IdentifierKind.SLUG,
) -> UUID:
    """Public-flow resolution: only active tenants are visible."""
    normalized = _normalize_identifier(identifier)
    if not normalized:
        raise TenantNotFoundError(f"Tenant not found: {identifier}")
    tenant_id = await _lookup_active(normalized, kind)
    if tenant_id is None:
        raise TenantNotFoundError(f"Tenant not found: {identifier}")
    return tenant_id


async def require_tenant_id(
    identifier: str,
    *,
    kind: IdentifierKind = IdentifierKind.SLUG,
) -> UUID:
    """Staff-flow resolution: falls back to a direct lookup so inactive tenants resolve too."""
    normalized = _normalize_identifier(identifier)
    if not normalized:
        raise TenantNotFoundError(f"Tenant not found: {identifier}")

    tenant_id: UUID | None = None
    try:
        tenant_id = await _lookup_active(normalized, kind)
    except SQLAlchemyError as exc:
        logger.warning(
            "tenant_resolve_primary_failed",
            identifier=normalized,
            kind=kind.value,
            error_type=type(exc).__name__,
        )

    if tenant_id is not None:
        return tenant_id

    tenant_id = await _lookup_direct(normalized, kind)
    if tenant_id is None:
        raise TenantNotFoundError(f"Tenant not found: {identifier}")

    logger.info("tenant_resolve_fallback", identifier=normalized, kind=kind.value)
    return tenant_id


async def resolve_tenant_id(
    identifier: str,
    *,
    kind: IdentifierKind = IdentifierKind.SLUG,
) -> Result[UUID]:
    return await capture("resolve_tenant", require_tenant_id(identifier, kind=kind))


async def resolve_active_tenant_id(
    identifier: str,
    *,
    kind: IdentifierKind = IdentifierKind.SLUG,
) -> Result[UUID]:
    return await capture("resolve_active_tenant", require_active_tenant_id(identifier, kind=kind))
