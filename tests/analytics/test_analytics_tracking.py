from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from app.analytics import events
from app.analytics.errors import AnalyticsEventInvalidError
from app.analytics.events import TrackingService, emit_analytics_event
from app.analytics.types import EventType
from app.core.errors import RateLimitedError

NOW_UTC = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
TENANT_ID = uuid4()


class _FakeSession:
    @asynccontextmanager
    async def begin_nested(self):
        yield


@asynccontextmanager
async def _fake_tenant_session(tenant_id):
    assert tenant_id == TENANT_ID
    yield _FakeSession()


async def _fake_require_active(slug):
    assert slug == "acme"
    return TENANT_ID


class _RecordingLimiter:
    def __init__(self) -> None:
        self.enforced: list[str] = []

    async def enforce(self, identifier, policy):
        self.enforced.append(f"{policy.name}:{identifier}")


def _install_scope(monkeypatch, limiter) -> None:
    monkeypatch.setattr(events, "tenant_session", _fake_tenant_session)
    monkeypatch.setattr(events, "require_active_tenant_id", _fake_require_active)
    monkeypatch.setattr(events, "get_rate_limiter", lambda: limiter)


@pytest.mark.asyncio
async def test_emit_analytics_event_stores_row(monkeypatch) -> None:
    stored: list[object] = []

    async def _fake_create(session, *, event):
        del session
        stored.append(event)
        return event

    monkeypatch.setattr(events.AnalyticsEventsRepo, "create", _fake_create)

    recorded = await emit_analytics_event(
        _FakeSession(),
        tenant_id=TENANT_ID,
        event_type=EventType.SURVEY_COMPLETION,
        happened_at=NOW_UTC,
        session_id="session-1-abc",
        email=None,
    )

    assert recorded is True
    assert len(stored) == 1
    event = stored[0]
    assert event.tenant_id == TENANT_ID
    assert event.event_type == "survey_completion"
    assert event.session_id == "session-1-abc"
    assert event.email is None
    assert event.payload == {}
    assert event.created_at == NOW_UTC


@pytest.mark.asyncio
async def test_emit_analytics_event_failure_does_not_propagate(monkeypatch) -> None:
    async def _failing_create(session, *, event):
        del session, event
        raise OperationalError("INSERT INTO analytics_events ...", {}, Exception("down"))

    monkeypatch.setattr(events.AnalyticsEventsRepo, "create", _failing_create)

    recorded = await emit_analytics_event(
        _FakeSession(),
        tenant_id=TENANT_ID,
        event_type=EventType.SURVEY_COMPLETION,
        happened_at=NOW_UTC,
    )

    assert recorded is False


@pytest.mark.asyncio
async def test_track_event_records_client_event(monkeypatch) -> None:
    limiter = _RecordingLimiter()
    _install_scope(monkeypatch, limiter)
    stored: list[object] = []

    async def _fake_create(session, *, event):
        del session
        stored.append(event)
        return event

    monkeypatch.setattr(events.AnalyticsEventsRepo, "create", _fake_create)
    offer_id = str(uuid4())

    result = await TrackingService.track_event(
        "acme",
        "code_copy",
        client_id="email:fan@example.com",
        session_id="session-9-xyz",
        email=" Fan@Example.com ",
        payload={"offer_id": offer_id},
        now_utc=NOW_UTC,
    )

    assert result.ok is True
    assert result.data is not None
    assert result.data.event_type == "code_copy"
    assert result.data.created_at == NOW_UTC
    assert stored[0].email == "fan@example.com"
    assert stored[0].payload == {"offer_id": offer_id}
    assert limiter.enforced == ["general:email:fan@example.com"]


@pytest.mark.asyncio
@pytest.mark.parametrize("event_type", ["survey_completion", "coupon_issued", ""])
async def test_track_event_rejects_types_clients_may_not_report(monkeypatch, event_type) -> None:
    limiter = _RecordingLimiter()
    _install_scope(monkeypatch, limiter)

    result = await TrackingService.track_event("acme", event_type, client_id="ip:1.1.1.1")

    assert isinstance(result.error, AnalyticsEventInvalidError)
    assert limiter.enforced == []


@pytest.mark.asyncio
async def test_track_event_rejects_malformed_email_before_quota(monkeypatch) -> None:
    limiter = _RecordingLimiter()
    _install_scope(monkeypatch, limiter)

    result = await TrackingService.track_event(
        "acme", "page_visit", client_id="ip:1.1.1.1", email="not-an-email"
    )

    assert isinstance(result.error, AnalyticsEventInvalidError)
    assert limiter.enforced == []


@pytest.mark.asyncio
async def test_track_event_is_rate_limited(monkeypatch) -> None:
    class _DenyingLimiter:
        async def enforce(self, identifier, policy):
            del identifier, policy
            raise RateLimitedError(retry_after_seconds=12)

    _install_scope(monkeypatch, _DenyingLimiter())

    result = await TrackingService.track_event("acme", "page_visit", client_id="ip:1.1.1.1")

    assert isinstance(result.error, RateLimitedError)
    assert result.error.retry_after_seconds == 12
