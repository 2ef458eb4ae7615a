from __future__ import annotations

import hashlib
import secrets

from fastapi import Request

ADMIN_SESSION_COOKIE = "coupons_admin_session"
ADMIN_TOKEN_HEADER = "X-Admin-Token"


def is_valid_admin_token(*, expected_token: str, received_token: str | None) -> bool:
    if not expected_token or not received_token:
        return False
    return secrets.compare_digest(expected_token, received_token)


def build_admin_session_value(*, token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def is_valid_admin_session(*, expected_token: str, received_session: str | None) -> bool:
    if not expected_token or not received_session:
        return False
    expected_session = build_admin_session_value(token=expected_token)
    return secrets.compare_digest(expected_session, received_session)


def is_admin_request_authenticated(
    request: Request,
    *,
    expected_token: str,
) -> bool:
    header_token = request.headers.get(ADMIN_TOKEN_HEADER)
    if is_valid_admin_token(expected_token=expected_token, received_token=header_token):
        return True

    return is_valid_admin_session(
        expected_token=expected_token,
        received_session=request.cookies.get(ADMIN_SESSION_COOKIE),
    )
