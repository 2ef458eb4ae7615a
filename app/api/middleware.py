from __future__ import annotations

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.core.config import get_settings
from app.tenancy.service import TenantService
from app.tenancy.subdomains import canonical_tenant_path, extract_subdomain
from app.tenancy.types import IdentifierKind

logger = structlog.get_logger(__name__)

# Served identically on every host.
UNSCOPED_PATH_PREFIXES = ("/admin", "/health", "/live", "/ready", "/docs", "/redoc", "/openapi.json")


def _is_unscoped_path(path: str) -> bool:
    return any(
        path == prefix or path.startswith(f"{prefix}/") for prefix in UNSCOPED_PATH_PREFIXES
    )


class TenantSubdomainMiddleware(BaseHTTPMiddleware):
    """Rewrites requests made on a tenant subdomain onto the slug-based routes.

    ``acme.example.com/coupons`` is served as ``/{slug}/coupons``. Unknown
    subdomains fall through to normal routing untouched.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.scope["path"]
        subdomain = extract_subdomain(
            request.headers.get("host"), root_domain=get_settings().root_domain
        )
        if subdomain is None or _is_unscoped_path(path):
            return await call_next(request)

        result = await TenantService.get_tenant(subdomain, kind=IdentifierKind.SUBDOMAIN)
        if not result.ok or result.data is None:
            logger.info("tenant_subdomain_unresolved", subdomain=subdomain)
            return await call_next(request)

        rewritten = canonical_tenant_path(result.data.slug, path)
        if rewritten != path:
            request.scope["path"] = rewritten
            request.scope["raw_path"] = rewritten.encode("utf-8")
        return await call_next(request)
