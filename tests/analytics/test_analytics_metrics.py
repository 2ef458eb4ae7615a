from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from uuid import uuid4

import pytest

from app.analytics import metrics
from app.analytics.errors import AnalyticsRangeInvalidError
from app.analytics.metrics import (
    AnalyticsService,
    build_time_series,
    classify_ratings,
    percentage,
)

NOW_UTC = datetime(2026, 3, 10, 15, 30, tzinfo=timezone.utc)
TENANT_ID = uuid4()


@asynccontextmanager
async def _fake_tenant_session(tenant_id):
    assert tenant_id == TENANT_ID
    yield object()


def test_classify_ratings_buckets_by_threshold() -> None:
    sentiment = classify_ratings([5, 4, 4.5, 3, 3.5, 2, 1])

    assert (sentiment.happy, sentiment.neutral, sentiment.concerned) == (3, 2, 2)
    assert sentiment.total == 7


def test_percentage_handles_empty_denominator() -> None:
    assert percentage(3, 0) == 0.0
    assert percentage(1, 3) == 33.3
    assert percentage(2, 2) == 100.0


def test_build_time_series_zero_fills_and_ignores_out_of_range_rows() -> None:
    points = build_time_series(
        [
            (date(2026, 3, 9), "page_visit", 4),
            (date(2026, 3, 9), "code_copy", 1),
            (date(2026, 3, 10), "survey_completion", 2),
            (date(2026, 3, 1), "page_visit", 99),
            (date(2026, 3, 10), "unknown_type", 7),
        ],
        first_day=date(2026, 3, 8),
        days=3,
    )

    assert [point.day for point in points] == [
        date(2026, 3, 8),
        date(2026, 3, 9),
        date(2026, 3, 10),
    ]
    assert points[0].page_visits == 0
    assert (points[1].page_visits, points[1].code_copies) == (4, 1)
    assert points[2].survey_completions == 2
    assert sum(point.page_visits for point in points) == 4


@pytest.mark.asyncio
async def test_time_series_covers_last_days_including_today(monkeypatch) -> None:
    monkeypatch.setattr(metrics, "tenant_session", _fake_tenant_session)
    captured: dict[str, datetime] = {}

    async def _fake_rows(session, *, tenant_id, from_utc, to_utc):
        del session, tenant_id
        captured["from_utc"] = from_utc
        captured["to_utc"] = to_utc
        return [(date(2026, 3, 10), "wallet_add", 3)]

    monkeypatch.setattr(metrics.AnalyticsEventsRepo, "count_by_day_and_type", _fake_rows)

    result = await AnalyticsService.get_time_series(TENANT_ID, days=7, now_utc=NOW_UTC)

    assert result.data is not None
    assert len(result.data) == 7
    assert result.data[0].day == date(2026, 3, 4)
    assert result.data[-1].day == date(2026, 3, 10)
    assert result.data[-1].wallet_adds == 3
    assert captured["from_utc"] == datetime(2026, 3, 4, tzinfo=timezone.utc)
    assert captured["to_utc"] == NOW_UTC


@pytest.mark.asyncio
@pytest.mark.parametrize("days", [0, 91])
async def test_time_series_rejects_out_of_range_days(days: int) -> None:
    result = await AnalyticsService.get_time_series(TENANT_ID, days=days, now_utc=NOW_UTC)

    assert isinstance(result.error, AnalyticsRangeInvalidError)


@pytest.mark.asyncio
async def test_summary_counts_unique_visitors_and_raw_actions(monkeypatch) -> None:
    monkeypatch.setattr(metrics, "tenant_session", _fake_tenant_session)
    distinct_calls: list[tuple[str, ...]] = []

    async def _fake_distinct(session, *, tenant_id, event_types):
        del session, tenant_id
        key = tuple(sorted(event_types))
        distinct_calls.append(key)
        return {
            ("page_visit",): 40,
            ("survey_completion",): 12,
            ("code_copy", "coupon_download", "wallet_add"): 9,
        }[key]

    async def _fake_counts(session, *, tenant_id, event_types):
        del session, tenant_id
        assert set(event_types) == {"code_copy", "coupon_download", "wallet_add"}
        return {"code_copy": 7, "wallet_add": 2}

    monkeypatch.setattr(metrics.AnalyticsEventsRepo, "count_distinct_visitors", _fake_distinct)
    monkeypatch.setattr(metrics.AnalyticsEventsRepo, "count_by_type", _fake_counts)

    result = await AnalyticsService.get_summary(TENANT_ID)

    assert result.data is not None
    assert result.data.page_visits == 40
    assert result.data.survey_completions == 12
    assert (result.data.code_copies, result.data.coupon_downloads, result.data.wallet_adds) == (
        7,
        0,
        2,
    )
    assert result.data.unique_action_takers == 9
    assert len(distinct_calls) == 3


@pytest.mark.asyncio
async def test_dashboard_combines_responses_events_and_grants(monkeypatch) -> None:
    monkeypatch.setattr(metrics, "tenant_session", _fake_tenant_session)

    async def _fake_responses(session, *, tenant_id):
        del session, tenant_id
        return 30, 10

    async def _fake_ratings(session, *, tenant_id, question_type):
        del session, tenant_id
        assert question_type == "rating"
        return [5, 5, 4, 3, 1]

    async def _fake_distinct(session, *, tenant_id, event_types):
        del session, tenant_id
        return {"page_visit": 8, "survey_completion": 3}[next(iter(event_types))]

    async def _fake_counts(session, *, tenant_id, event_types):
        del session, tenant_id, event_types
        return {"code_copy": 4, "coupon_download": 2, "wallet_add": 1}

    async def _fake_top_offer(session, *, tenant_id):
        del session, tenant_id
        return "Free Coffee", 6

    monkeypatch.setattr(
        metrics.SurveyResponsesRepo, "count_responses_and_sessions", _fake_responses
    )
    monkeypatch.setattr(metrics.SurveyResponsesRepo, "list_numeric_answers", _fake_ratings)
    monkeypatch.setattr(metrics.AnalyticsEventsRepo, "count_distinct_visitors", _fake_distinct)
    monkeypatch.setattr(metrics.AnalyticsEventsRepo, "count_by_type", _fake_counts)
    monkeypatch.setattr(metrics.GrantsRepo, "top_offer_for_tenant", _fake_top_offer)

    result = await AnalyticsService.get_dashboard_metrics(TENANT_ID)

    assert result.ok is True
    dashboard = result.data
    assert dashboard is not None
    assert (dashboard.total_responses, dashboard.unique_sessions) == (30, 10)
    assert dashboard.happiness_score == 60.0
    assert (dashboard.sentiment.happy, dashboard.sentiment.neutral) == (3, 1)
    assert dashboard.sentiment.concerned == 1
    assert dashboard.page_visits == 8
    assert dashboard.conversion_rate == 37.5
    assert dashboard.engagement == 7
    assert dashboard.top_offer is not None
    assert (dashboard.top_offer.title, dashboard.top_offer.grants) == ("Free Coffee", 6)
    assert dashboard.funnel.downloads_and_wallet_adds == 3


@pytest.mark.asyncio
async def test_dashboard_for_tenant_without_activity(monkeypatch) -> None:
    monkeypatch.setattr(metrics, "tenant_session", _fake_tenant_session)

    async def _zero_pair(session, *, tenant_id):
        del session, tenant_id
        return 0, 0

    async def _no_ratings(session, *, tenant_id, question_type):
        del session, tenant_id, question_type
        return []

    async def _zero_distinct(session, *, tenant_id, event_types):
        del session, tenant_id, event_types
        return 0

    async def _no_counts(session, *, tenant_id, event_types):
        del session, tenant_id, event_types
        return {}

    async def _no_top_offer(session, *, tenant_id):
        del session, tenant_id
        return None

    monkeypatch.setattr(metrics.SurveyResponsesRepo, "count_responses_and_sessions", _zero_pair)
    monkeypatch.setattr(metrics.SurveyResponsesRepo, "list_numeric_answers", _no_ratings)
    monkeypatch.setattr(metrics.AnalyticsEventsRepo, "count_distinct_visitors", _zero_distinct)
    monkeypatch.setattr(metrics.AnalyticsEventsRepo, "count_by_type", _no_counts)
    monkeypatch.setattr(metrics.GrantsRepo, "top_offer_for_tenant", _no_top_offer)

    result = await AnalyticsService.get_dashboard_metrics(TENANT_ID)

    assert result.data is not None
    assert result.data.happiness_score == 0.0
    assert result.data.conversion_rate == 0.0
    assert result.data.top_offer is None
