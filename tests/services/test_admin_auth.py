from __future__ import annotations

from types import SimpleNamespace

from app.services.admin_auth import (
    ADMIN_SESSION_COOKIE,
    ADMIN_TOKEN_HEADER,
    build_admin_session_value,
    is_admin_request_authenticated,
    is_valid_admin_session,
    is_valid_admin_token,
)


def test_is_valid_admin_token_requires_exact_match() -> None:
    assert is_valid_admin_token(expected_token="secret", received_token="secret") is True
    assert is_valid_admin_token(expected_token="secret", received_token="wrong") is False
    assert is_valid_admin_token(expected_token="secret", received_token=None) is False
    assert is_valid_admin_token(expected_token="", received_token="") is False


def test_is_valid_admin_session_requires_matching_hashed_value() -> None:
    session_value = build_admin_session_value(token="secret")
    assert session_value != "secret"
    assert is_valid_admin_session(expected_token="secret", received_session=session_value) is True
    assert is_valid_admin_session(expected_token="secret", received_session="wrong") is False
    assert is_valid_admin_session(expected_token="secret", received_session=None) is False


def test_is_admin_request_authenticated_accepts_token_or_session() -> None:
    request_with_token = SimpleNamespace(headers={ADMIN_TOKEN_HEADER: "secret"}, cookies={})
    assert is_admin_request_authenticated(request_with_token, expected_token="secret") is True

    request_with_session = SimpleNamespace(
        headers={},
        cookies={ADMIN_SESSION_COOKIE: build_admin_session_value(token="secret")},
    )
    assert is_admin_request_authenticated(request_with_session, expected_token="secret") is True

    request_without_credentials = SimpleNamespace(headers={}, cookies={})
    assert (
        is_admin_request_authenticated(request_without_credentials, expected_token="secret")
        is False
    )
