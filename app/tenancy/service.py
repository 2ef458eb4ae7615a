from __future__ import annotations

from uuid import UUID

import structlog

from app.core.results import Result, capture
from app.db.models.tenants import Tenant
from app.db.repo.tenants_repo import TenantsRepo
from app.db.tenant_scope import tenant_session
from app.tenancy.errors import (
    TenantNotFoundError,
    TenantSettingsInvalidError,
    TenantSubdomainTakenError,
)
from app.tenancy.resolver import require_active_tenant_id, require_tenant_id
from app.tenancy.subdomains import SUBDOMAIN_PATTERN, is_reserved_subdomain
from app.tenancy.types import IdentifierKind, TenantSettingsUpdate, TenantView

TENANT_NAME_MAX_LENGTH = 128
TENANT_URL_MAX_LENGTH = 512

logger = structlog.get_logger(__name__)


def to_tenant_view(tenant: Tenant) -> TenantView:
    return TenantView(
        id=tenant.id,
        slug=tenant.slug,
        subdomain=tenant.subdomain,
        name=tenant.name,
        logo_url=tenant.logo_url,
        website_url=tenant.website_url,
        theme=tenant.theme,
        active=tenant.active,
        created_at=tenant.created_at,
    )


def _clean_optional_url(value: str, *, field: str) -> str | None:
    cleaned = value.strip()
    if not cleaned:
        return None
    if len(cleaned) > TENANT_URL_MAX_LENGTH:
        raise TenantSettingsInvalidError(f"{field} is too long")
    return cleaned


class TenantService:
    @staticmethod
    async def _load_tenant(tenant_id: UUID) -> TenantView:
        async with tenant_session(tenant_id) as session:
            tenant = await TenantsRepo.get_by_id(session, tenant_id)
            if tenant is None:
                raise TenantNotFoundError
            return to_tenant_view(tenant)

    @staticmethod
    async def _get_tenant(identifier: str, kind: IdentifierKind) -> TenantView:
        tenant_id = await require_tenant_id(identifier, kind=kind)
        return await TenantService._load_tenant(tenant_id)

    @staticmethod
    async def _get_public_tenant(identifier: str, kind: IdentifierKind) -> TenantView:
        tenant_id = await require_active_tenant_id(identifier, kind=kind)
        tenant = await TenantService._load_tenant(tenant_id)
        if not tenant.active:
            # Deactivated between the lookup and the load.
            raise TenantNotFoundError(f"Tenant not found: {identifier}")
        return tenant

    @staticmethod
    async def _update_settings(tenant_id: UUID, update: TenantSettingsUpdate) -> TenantView:
        async with tenant_session(tenant_id) as session:
            tenant = await TenantsRepo.get_by_id_for_update(session, tenant_id)
            if tenant is None:
                raise TenantNotFoundError

            if update.name is not None:
                name = update.name.strip()
                if not name or len(name) > TENANT_NAME_MAX_LENGTH:
                    raise TenantSettingsInvalidError(
                        f"Name must be between 1 and {TENANT_NAME_MAX_LENGTH} characters"
                    )
                tenant.name = name

            if update.logo_url is not None:
                tenant.logo_url = _clean_optional_url(update.logo_url, field="Logo URL")
            if update.website_url is not None:
                tenant.website_url = _clean_optional_url(update.website_url, field="Website URL")
            if update.active is not None:
                tenant.active = update.active

            if update.clear_subdomain:
                tenant.subdomain = None
            elif update.subdomain is not None:
                subdomain = update.subdomain.strip().lower()
                if SUBDOMAIN_PATTERN.match(subdomain) is None:
                    raise TenantSettingsInvalidError(
                        "Subdomain may only contain lowercase letters, digits and inner hyphens"
                    )
                if is_reserved_subdomain(subdomain):
                    raise TenantSettingsInvalidError(f"Subdomain '{subdomain}' is reserved")
                owner_id = await TenantsRepo.get_id_by_subdomain(session, subdomain)
                if owner_id is not None and owner_id != tenant_id:
                    raise TenantSubdomainTakenError
                tenant.subdomain = subdomain

            await session.flush()
            logger.info(
                "tenant_settings_updated",
                tenant_id=str(tenant_id),
                active=tenant.active,
                subdomain=tenant.subdomain,
            )
            return to_tenant_view(tenant)

    @staticmethod
    async def get_tenant(
        identifier: str,
        *,
        kind: IdentifierKind = IdentifierKind.SLUG,
    ) -> Result[TenantView]:
        """Loads a tenant for staff flows; inactive tenants are returned as well."""
        return await capture("get_tenant", TenantService._get_tenant(identifier, kind))

    @staticmethod
    async def get_public_tenant(
        identifier: str,
        *,
        kind: IdentifierKind = IdentifierKind.SLUG,
    ) -> Result[TenantView]:
        return await capture(
            "get_public_tenant", TenantService._get_public_tenant(identifier, kind)
        )

    @staticmethod
    async def get_tenant_by_id(tenant_id: UUID) -> Result[TenantView]:
        return await capture("get_tenant_by_id", TenantService._load_tenant(tenant_id))

    @staticmethod
    async def update_tenant_settings(
        tenant_id: UUID,
        update: TenantSettingsUpdate,
    ) -> Result[TenantView]:
        return await capture(
            "update_tenant_settings", TenantService._update_settings(tenant_id, update)
        )
