from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from app.core.errors import RateLimitedError
from app.coupons import issuance
from app.coupons.errors import GrantCodeExhaustedError, OfferNotFoundError, OfferUnavailableError
from app.db.models.grants import GRANT_CODE_CONSTRAINT, GRANT_OPEN_RECIPIENT_INDEX, Grant
from app.services.rate_limit import RateLimiter

NOW_UTC = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
TENANT_ID = uuid4()
OFFER_ID = uuid4()


class _FakeSession:
    def __init__(self) -> None:
        self.savepoints = 0
        self.flushes = 0

    @asynccontextmanager
    async def begin_nested(self):
        self.savepoints += 1
        yield

    async def flush(self) -> None:
        self.flushes += 1


class _FakeRedis:
    def __init__(self, counters: dict[str, int] | None = None) -> None:
        self.counters = counters or {}

    async def get(self, key: str) -> bytes | None:
        value = self.counters.get(key)
        return None if value is None else str(value).encode()

    async def pttl(self, key: str) -> int:
        return 4_000


def _violation(constraint: str) -> IntegrityError:
    orig = Exception(f'duplicate key value violates unique constraint "{constraint}"')
    orig.constraint_name = constraint  # type: ignore[attr-defined]
    return IntegrityError("INSERT INTO grants ...", {}, orig)


def _offer(**overrides: object) -> SimpleNamespace:
    values: dict[str, object] = {"id": OFFER_ID, "active": True, "expires_at": None}
    values.update(overrides)
    return SimpleNamespace(**values)


def _existing_grant(**overrides: object) -> Grant:
    values: dict[str, object] = {
        "id": uuid4(),
        "tenant_id": TENANT_ID,
        "offer_id": OFFER_ID,
        "code": "CPN-OLD-AAAAAA",
        "status": "issued",
        "max_redemptions": 1,
        "redemptions_count": 0,
        "recipient": "shopper@example.com",
        "expires_at": None,
        "issued_at": NOW_UTC - timedelta(hours=1),
        "metadata_": {},
    }
    values.update(overrides)
    return Grant(**values)


def _patch_offer(monkeypatch, offer: SimpleNamespace | None) -> None:
    async def _fake_get_offer(session, *, tenant_id, offer_id):
        del session, tenant_id, offer_id
        return offer

    monkeypatch.setattr(issuance.OffersRepo, "get_by_id", _fake_get_offer)


def _patch_latest(monkeypatch, grant: Grant | None) -> None:
    async def _fake_latest(session, *, tenant_id, offer_id, recipient):
        del session, tenant_id, offer_id, recipient
        return grant

    monkeypatch.setattr(issuance.GrantsRepo, "get_latest_for_recipient", _fake_latest)


async def _issue(session: _FakeSession, limiter: RateLimiter, **overrides: object):
    kwargs: dict[str, object] = {
        "tenant_id": TENANT_ID,
        "offer_id": OFFER_ID,
        "recipient": "shopper@example.com",
        "rate_limit_identifier": "email:shopper@example.com",
        "limiter": limiter,
        "expires_at": None,
        "max_redemptions": 1,
        "metadata": {},
        "code_prefix": "CPN",
        "now_utc": NOW_UTC,
    }
    kwargs.update(overrides)
    return await issuance.issue_grant_in_session(session, **kwargs)


@pytest.mark.asyncio
async def test_issue_replays_existing_open_grant(monkeypatch) -> None:
    existing = _existing_grant()
    _patch_offer(monkeypatch, _offer())
    _patch_latest(monkeypatch, existing)

    async def _unexpected_create(session, *, grant):
        raise AssertionError("replay must not insert")

    monkeypatch.setattr(issuance.GrantsRepo, "create", _unexpected_create)

    grant, replay = await _issue(_FakeSession(), RateLimiter(None))

    assert grant is existing
    assert replay is True


@pytest.mark.asyncio
async def test_issue_replay_is_not_blocked_by_exhausted_quota(monkeypatch) -> None:
    existing = _existing_grant()
    _patch_offer(monkeypatch, _offer())
    _patch_latest(monkeypatch, existing)
    limiter = RateLimiter(_FakeRedis({"rl:coupon_issue:email:shopper@example.com": 99}))

    grant, replay = await _issue(_FakeSession(), limiter)

    assert grant is existing
    assert replay is True


@pytest.mark.asyncio
async def test_issue_inserts_new_grant_with_offer_expiry(monkeypatch) -> None:
    offer_expiry = NOW_UTC + timedelta(days=7)
    _patch_offer(monkeypatch, _offer(expires_at=offer_expiry))
    _patch_latest(monkeypatch, None)
    created: list[Grant] = []

    async def _fake_create(session, *, grant):
        del session
        created.append(grant)
        return grant

    monkeypatch.setattr(issuance.GrantsRepo, "create", _fake_create)
    session = _FakeSession()

    grant, replay = await _issue(session, RateLimiter(None), metadata={"channel": "qr"})

    assert replay is False
    assert created == [grant]
    assert grant.status == "issued"
    assert grant.code.startswith("CPN-")
    assert grant.expires_at == offer_expiry
    assert grant.metadata_ == {"channel": "qr"}
    assert session.savepoints == 1


@pytest.mark.asyncio
async def test_issue_after_full_redemption_creates_new_grant(monkeypatch) -> None:
    _patch_offer(monkeypatch, _offer())
    _patch_latest(monkeypatch, _existing_grant(status="redeemed", redemptions_count=1))

    async def _fake_create(session, *, grant):
        del session
        return grant

    monkeypatch.setattr(issuance.GrantsRepo, "create", _fake_create)

    grant, replay = await _issue(_FakeSession(), RateLimiter(None))

    assert replay is False
    assert grant.code != "CPN-OLD-AAAAAA"


@pytest.mark.asyncio
async def test_issue_marks_overdue_grant_expired_and_issues_new_one(monkeypatch) -> None:
    overdue = _existing_grant(expires_at=NOW_UTC - timedelta(minutes=1))
    _patch_offer(monkeypatch, _offer())
    _patch_latest(monkeypatch, overdue)

    async def _fake_create(session, *, grant):
        del session
        return grant

    monkeypatch.setattr(issuance.GrantsRepo, "create", _fake_create)
    session = _FakeSession()

    grant, replay = await _issue(session, RateLimiter(None))

    assert overdue.status == "expired"
    assert session.flushes == 1
    assert replay is False
    assert grant is not overdue


@pytest.mark.asyncio
async def test_issue_denied_when_quota_spent(monkeypatch) -> None:
    _patch_offer(monkeypatch, _offer())
    _patch_latest(monkeypatch, None)
    limiter = RateLimiter(_FakeRedis({"rl:coupon_issue:email:shopper@example.com": 3}))

    with pytest.raises(RateLimitedError) as exc_info:
        await _issue(_FakeSession(), limiter)

    assert exc_info.value.retry_after_seconds == 4


@pytest.mark.asyncio
async def test_issue_retries_code_collisions_then_gives_up(monkeypatch) -> None:
    _patch_offer(monkeypatch, _offer())
    _patch_latest(monkeypatch, None)
    attempts: list[str] = []

    async def _colliding_create(session, *, grant):
        del session
        attempts.append(grant.code)
        raise _violation(GRANT_CODE_CONSTRAINT)

    monkeypatch.setattr(issuance.GrantsRepo, "create", _colliding_create)

    with pytest.raises(GrantCodeExhaustedError):
        await _issue(_FakeSession(), RateLimiter(None))

    assert len(attempts) == issuance.MAX_CODE_ATTEMPTS


@pytest.mark.asyncio
async def test_issue_recovers_from_single_code_collision(monkeypatch) -> None:
    _patch_offer(monkeypatch, _offer())
    _patch_latest(monkeypatch, None)
    calls = {"count": 0}

    async def _flaky_create(session, *, grant):
        del session
        calls["count"] += 1
        if calls["count"] == 1:
            raise _violation(GRANT_CODE_CONSTRAINT)
        return grant

    monkeypatch.setattr(issuance.GrantsRepo, "create", _flaky_create)

    grant, replay = await _issue(_FakeSession(), RateLimiter(None))

    assert calls["count"] == 2
    assert replay is False
    assert grant.status == "issued"


@pytest.mark.asyncio
async def test_issue_returns_concurrent_winner_as_replay(monkeypatch) -> None:
    winner = _existing_grant(code="CPN-WIN-BBBBBB")
    _patch_offer(monkeypatch, _offer())
    _patch_latest(monkeypatch, None)

    async def _racing_create(session, *, grant):
        del session, grant
        raise _violation(GRANT_OPEN_RECIPIENT_INDEX)

    async def _fake_open(session, *, tenant_id, offer_id, recipient):
        del session, tenant_id, offer_id
        assert recipient == "shopper@example.com"
        return winner

    monkeypatch.setattr(issuance.GrantsRepo, "create", _racing_create)
    monkeypatch.setattr(issuance.GrantsRepo, "get_open_for_recipient", _fake_open)

    grant, replay = await _issue(_FakeSession(), RateLimiter(None))

    assert grant is winner
    assert replay is True


@pytest.mark.asyncio
async def test_issue_propagates_unrelated_integrity_errors(monkeypatch) -> None:
    _patch_offer(monkeypatch, _offer())
    _patch_latest(monkeypatch, None)

    async def _broken_create(session, *, grant):
        del session, grant
        raise _violation("grants_offer_id_fkey")

    monkeypatch.setattr(issuance.GrantsRepo, "create", _broken_create)

    with pytest.raises(IntegrityError):
        await _issue(_FakeSession(), RateLimiter(None))


@pytest.mark.asyncio
async def test_issue_rejects_missing_or_unavailable_offer(monkeypatch) -> None:
    _patch_offer(monkeypatch, None)
    with pytest.raises(OfferNotFoundError):
        await _issue(_FakeSession(), RateLimiter(None))

    _patch_offer(monkeypatch, _offer(active=False))
    with pytest.raises(OfferUnavailableError):
        await _issue(_FakeSession(), RateLimiter(None))

    _patch_offer(monkeypatch, _offer(expires_at=NOW_UTC))
    with pytest.raises(OfferUnavailableError):
        await _issue(_FakeSession(), RateLimiter(None))


@pytest.mark.asyncio
async def test_anonymous_issue_never_replays(monkeypatch) -> None:
    _patch_offer(monkeypatch, _offer())

    async def _unexpected_latest(session, *, tenant_id, offer_id, recipient):
        raise AssertionError("anonymous issuance has no recipient to look up")

    async def _fake_create(session, *, grant):
        del session
        return grant

    monkeypatch.setattr(issuance.GrantsRepo, "get_latest_for_recipient", _unexpected_latest)
    monkeypatch.setattr(issuance.GrantsRepo, "create", _fake_create)

    grant, replay = await _issue(_FakeSession(), RateLimiter(None), recipient=None)

    assert replay is False
    assert grant.recipient is None

