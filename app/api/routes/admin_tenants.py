from __future__ import annotations

import asyncio
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from app.api.dependencies import require_admin
from app.api.errors import raise_for_error, unwrap_or_raise
from app.api.routes.admin_models import AdminSessionRequest, TenantSettingsRequest
from app.api.routes.public_models import TenantResponse, tenant_as_response
from app.core.config import get_settings
from app.core.errors import RateLimitedError
from app.core.rate_limits import GENERAL
from app.services.admin_auth import (
    ADMIN_SESSION_COOKIE,
    build_admin_session_value,
    is_valid_admin_token,
)
from app.services.client_ip import extract_client_ip
from app.services.rate_limit import get_rate_limiter
from app.tenancy.service import TenantService
from app.tenancy.types import IdentifierKind, TenantSettingsUpdate

router = APIRouter(tags=["admin"])
logger = structlog.get_logger(__name__)

ADMIN_SESSION_MAX_AGE_SECONDS = 8 * 60 * 60
ADMIN_LOGIN_FAILURE_DELAY_SECONDS = 0.4


@router.post("/admin/session")
async def create_admin_session(payload: AdminSessionRequest, request: Request) -> JSONResponse:
    settings = get_settings()
    client_ip = extract_client_ip(request, trusted_proxies=settings.trusted_proxies)

    quota = await get_rate_limiter().check(f"admin-login:{client_ip or 'unknown'}", GENERAL)
    if not quota.allowed:
        logger.warning("admin_auth_failed", reason="login_rate_limited", client_ip=client_ip)
        raise_for_error(RateLimitedError(retry_after_seconds=quota.retry_after_seconds))

    if not is_valid_admin_token(
        expected_token=settings.admin_api_token, received_token=payload.token.strip()
    ):
        await asyncio.sleep(ADMIN_LOGIN_FAILURE_DELAY_SECONDS)
        logger.warning("admin_auth_failed", reason="invalid_token", client_ip=client_ip)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "E_UNAUTHORIZED", "message": "Not authenticated"},
        )

    response = JSONResponse(content={"status": "ok"})
    response.set_cookie(
        key=ADMIN_SESSION_COOKIE,
        value=build_admin_session_value(token=settings.admin_api_token),
        max_age=ADMIN_SESSION_MAX_AGE_SECONDS,
        httponly=True,
        samesite="strict",
        secure=settings.app_env != "dev",
        path="/admin",
    )
    return response


@router.delete("/admin/session")
async def delete_admin_session() -> JSONResponse:
    response = JSONResponse(content={"status": "ok"})
    response.delete_cookie(key=ADMIN_SESSION_COOKIE, path="/admin")
    return response


@router.get(
    "/admin/tenants",
    response_model=TenantResponse,
    dependencies=[Depends(require_admin)],
)
async def find_tenant(
    slug: str | None = Query(default=None, min_length=1, max_length=64),
    subdomain: str | None = Query(default=None, min_length=1, max_length=63),
) -> TenantResponse:
    """Looks a tenant up by slug or subdomain, deactivated tenants included."""
    if (slug is None) == (subdomain is None):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"code": "E_VALIDATION", "message": "Pass exactly one of slug or subdomain"},
        )
    if slug is not None:
        result = await TenantService.get_tenant(slug, kind=IdentifierKind.SLUG)
    else:
        result = await TenantService.get_tenant(subdomain or "", kind=IdentifierKind.SUBDOMAIN)
    return tenant_as_response(unwrap_or_raise(result))


@router.get(
    "/admin/tenants/{tenant_id}",
    response_model=TenantResponse,
    dependencies=[Depends(require_admin)],
)
async def get_tenant_settings(tenant_id: UUID) -> TenantResponse:
    tenant = unwrap_or_raise(await TenantService.get_tenant_by_id(tenant_id))
    return tenant_as_response(tenant)


@router.patch(
    "/admin/tenants/{tenant_id}",
    response_model=TenantResponse,
    dependencies=[Depends(require_admin)],
)
async def update_tenant_settings(
    tenant_id: UUID,
    payload: TenantSettingsRequest,
) -> TenantResponse:
    tenant = unwrap_or_raise(
        await TenantService.update_tenant_settings(
            tenant_id,
            TenantSettingsUpdate(
                name=payload.name,
                logo_url=payload.logo_url,
                website_url=payload.website_url,
                active=payload.active,
                subdomain=payload.subdomain,
                clear_subdomain=payload.clear_subdomain,
            ),
        )
    )
    return tenant_as_response(tenant)
