from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from app.coupons import redemption
from app.coupons import service as coupon_service
from app.coupons.errors import (
    GrantExhaustedError,
    GrantExpiredError,
    GrantNotFoundError,
    RecipientInvalidError,
)
from app.coupons.grant_state import ALREADY_USED_MESSAGE
from app.coupons.service import CouponService
from app.db.models.grants import Grant

NOW_UTC = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
TENANT_ID = uuid4()
OFFER_ID = uuid4()


class _FakeSession:
    def __init__(self) -> None:
        self.committed = False

    async def flush(self) -> None:
        return None


def _install_tenant_session(monkeypatch) -> list[_FakeSession]:
    sessions: list[_FakeSession] = []

    @asynccontextmanager
    async def _fake_tenant_session(tenant_id):
        assert tenant_id == TENANT_ID
        session = _FakeSession()
        sessions.append(session)
        yield session
        session.committed = True

    monkeypatch.setattr(coupon_service, "tenant_session", _fake_tenant_session)
    return sessions


def _grant(**overrides: object) -> Grant:
    values: dict[str, object] = {
        "id": uuid4(),
        "tenant_id": TENANT_ID,
        "offer_id": OFFER_ID,
        "code": "CPN-ABC-XYZ234",
        "status": "issued",
        "max_redemptions": 1,
        "redemptions_count": 0,
        "recipient": "shopper@example.com",
        "expires_at": None,
        "issued_at": NOW_UTC - timedelta(days=1),
        "redeemed_at": None,
        "revoked_at": None,
        "metadata_": {},
    }
    values.update(overrides)
    return Grant(**values)


def _patch_lookup(monkeypatch, grant: Grant | None) -> list[str]:
    seen_codes: list[str] = []

    async def _fake_get_by_code(session, *, tenant_id, code):
        del session, tenant_id
        seen_codes.append(code)
        return grant

    monkeypatch.setattr(redemption.GrantsRepo, "get_by_code_for_update", _fake_get_by_code)
    return seen_codes


class _RecordingLimiter:
    def __init__(self) -> None:
        self.hits: list[str] = []

    async def hit(self, identifier, policy, *, now_utc=None):
        del now_utc
        self.hits.append(f"{policy.name}:{identifier}")


@pytest.mark.asyncio
async def test_redeem_single_use_grant_then_second_attempt_is_rejected(monkeypatch) -> None:
    _install_tenant_session(monkeypatch)
    grant = _grant()
    seen_codes = _patch_lookup(monkeypatch, grant)

    first = await CouponService.redeem_grant(TENANT_ID, " cpn-abc-xyz234 ", now_utc=NOW_UTC)
    second = await CouponService.redeem_grant(TENANT_ID, "CPN-ABC-XYZ234", now_utc=NOW_UTC)

    assert first.ok is True
    assert first.data is not None
    assert first.data.grant.status == "redeemed"
    assert first.data.remaining_redemptions == 0
    assert seen_codes == ["CPN-ABC-XYZ234", "CPN-ABC-XYZ234"]

    assert second.ok is False
    assert isinstance(second.error, GrantExhaustedError)
    assert second.error.message == ALREADY_USED_MESSAGE


@pytest.mark.asyncio
async def test_redeem_multi_use_grant_reports_remaining(monkeypatch) -> None:
    _install_tenant_session(monkeypatch)
    _patch_lookup(monkeypatch, _grant(max_redemptions=3))

    result = await CouponService.redeem_grant(TENANT_ID, "CPN-ABC-XYZ234", now_utc=NOW_UTC)

    assert result.data is not None
    assert result.data.grant.status == "issued"
    assert result.data.remaining_redemptions == 2


@pytest.mark.asyncio
async def test_redeem_commits_lazy_expiry_before_reporting_expired(monkeypatch) -> None:
    sessions = _install_tenant_session(monkeypatch)
    grant = _grant(expires_at=NOW_UTC - timedelta(seconds=1))
    _patch_lookup(monkeypatch, grant)

    result = await CouponService.redeem_grant(TENANT_ID, "CPN-ABC-XYZ234", now_utc=NOW_UTC)

    assert isinstance(result.error, GrantExpiredError)
    assert grant.status == "expired"
    assert grant.redemptions_count == 0
    assert sessions[0].committed is True


@pytest.mark.asyncio
async def test_validate_does_not_spend_redemptions(monkeypatch) -> None:
    _install_tenant_session(monkeypatch)
    grant = _grant()
    _patch_lookup(monkeypatch, grant)

    result = await CouponService.validate_grant(TENANT_ID, "CPN-ABC-XYZ234", now_utc=NOW_UTC)

    assert result.ok is True
    assert grant.redemptions_count == 0
    assert grant.status == "issued"


@pytest.mark.asyncio
async def test_validate_unknown_or_blank_code_is_not_found(monkeypatch) -> None:
    _install_tenant_session(monkeypatch)
    _patch_lookup(monkeypatch, None)

    unknown = await CouponService.validate_grant(TENANT_ID, "CPN-NOPE", now_utc=NOW_UTC)
    blank = await CouponService.validate_grant(TENANT_ID, "   ", now_utc=NOW_UTC)

    assert isinstance(unknown.error, GrantNotFoundError)
    assert isinstance(blank.error, GrantNotFoundError)


@pytest.mark.asyncio
async def test_issue_spends_quota_only_for_new_grants(monkeypatch) -> None:
    _install_tenant_session(monkeypatch)
    limiter = _RecordingLimiter()
    outcomes = iter([(_grant(), False), (_grant(), True)])

    async def _fake_require_active(slug):
        assert slug == "acme"
        return TENANT_ID

    async def _fake_issue_in_session(session, **kwargs):
        del session
        assert kwargs["recipient"] == "shopper@example.com"
        return next(outcomes)

    monkeypatch.setattr(coupon_service, "require_active_tenant_id", _fake_require_active)
    monkeypatch.setattr(coupon_service, "get_rate_limiter", lambda: limiter)
    monkeypatch.setattr(coupon_service, "issue_grant_in_session", _fake_issue_in_session)

    created = await CouponService.issue_grant(
        "acme", OFFER_ID, " Shopper@Example.com ", client_id="email:shopper@example.com"
    )
    replayed = await CouponService.issue_grant(
        "acme", OFFER_ID, "shopper@example.com", client_id="email:shopper@example.com"
    )

    assert created.data is not None and created.data.idempotent_replay is False
    assert replayed.data is not None and replayed.data.idempotent_replay is True
    assert limiter.hits == ["coupon_issue:email:shopper@example.com"]


@pytest.mark.asyncio
async def test_issue_rejects_malformed_recipient(monkeypatch) -> None:
    async def _fake_require_active(slug):
        del slug
        return TENANT_ID

    monkeypatch.setattr(coupon_service, "require_active_tenant_id", _fake_require_active)

    result = await CouponService.issue_grant(
        "acme", OFFER_ID, "not-an-email", client_id="ip:203.0.113.7"
    )

    assert isinstance(result.error, RecipientInvalidError)
