from __future__ import annotations

import structlog
from fastapi import HTTPException, Request, status

from app.core.config import get_settings
from app.services.admin_auth import is_admin_request_authenticated
from app.services.client_ip import client_identifier, extract_client_ip

logger = structlog.get_logger(__name__)


def require_admin(request: Request) -> None:
    settings = get_settings()
    if is_admin_request_authenticated(request, expected_token=settings.admin_api_token):
        return

    logger.warning(
        "admin_auth_failed",
        path=request.url.path,
        client_ip=extract_client_ip(request, trusted_proxies=settings.trusted_proxies),
    )
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "E_UNAUTHORIZED", "message": "Not authenticated"},
    )


def request_client_id(request: Request, *, email: str | None = None) -> str:
    return client_identifier(
        request,
        email=email,
        trusted_proxies=get_settings().trusted_proxies,
    )
