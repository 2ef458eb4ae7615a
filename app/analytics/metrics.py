from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, timezone
from uuid import UUID

import structlog

from app.analytics.errors import AnalyticsRangeInvalidError
from app.analytics.types import (
    ACTION_EVENT_TYPES,
    AnalyticsSummary,
    DashboardMetrics,
    EngagementFunnel,
    EventType,
    SentimentDistribution,
    TimeSeriesPoint,
    TopOffer,
)
from app.core.results import Result, capture
from app.db.repo.analytics_events_repo import AnalyticsEventsRepo
from app.db.repo.grants_repo import GrantsRepo
from app.db.repo.survey_responses_repo import SurveyResponsesRepo
from app.db.tenant_scope import tenant_session

TIME_SERIES_DEFAULT_DAYS = 30
TIME_SERIES_MAX_DAYS = 90
SENTIMENT_QUESTION_TYPE = "rating"
HAPPY_RATING_MIN = 4
NEUTRAL_RATING_MIN = 3

_SERIES_FIELDS = {
    EventType.PAGE_VISIT.value: "page_visits",
    EventType.SURVEY_COMPLETION.value: "survey_completions",
    EventType.CODE_COPY.value: "code_copies",
    EventType.COUPON_DOWNLOAD.value: "coupon_downloads",
    EventType.WALLET_ADD.value: "wallet_adds",
}

logger = structlog.get_logger(__name__)


def percentage(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part * 100 / whole, 1)


def classify_ratings(ratings: Iterable[float]) -> SentimentDistribution:
    """Buckets 1-5 ratings: 4 and up is happy, 3 neutral, anything lower concerned."""
    happy = neutral = concerned = 0
    for rating in ratings:
        if rating >= HAPPY_RATING_MIN:
            happy += 1
        elif rating >= NEUTRAL_RATING_MIN:
            neutral += 1
        else:
            concerned += 1
    return SentimentDistribution(happy=happy, neutral=neutral, concerned=concerned)


def build_time_series(
    rows: Iterable[tuple[date, str, int]],
    *,
    first_day: date,
    days: int,
) -> list[TimeSeriesPoint]:
    """Zero-filled daily buckets from first_day; rows outside the range are ignored."""
    points = {
        first_day + timedelta(days=offset): TimeSeriesPoint(day=first_day + timedelta(days=offset))
        for offset in range(days)
    }
    for day, event_type, total in rows:
        point = points.get(day)
        field = _SERIES_FIELDS.get(event_type)
        if point is None or field is None:
            continue
        setattr(point, field, getattr(point, field) + total)
    return [points[day] for day in sorted(points)]


class AnalyticsService:
    @staticmethod
    async def _summary(tenant_id: UUID) -> AnalyticsSummary:
        async with tenant_session(tenant_id) as session:
            page_visits = await AnalyticsEventsRepo.count_distinct_visitors(
                session, tenant_id=tenant_id, event_types=[EventType.PAGE_VISIT.value]
            )
            completions = await AnalyticsEventsRepo.count_distinct_visitors(
                session, tenant_id=tenant_id, event_types=[EventType.SURVEY_COMPLETION.value]
            )
            action_counts = await AnalyticsEventsRepo.count_by_type(
                session, tenant_id=tenant_id, event_types=ACTION_EVENT_TYPES
            )
            action_takers = await AnalyticsEventsRepo.count_distinct_visitors(
                session, tenant_id=tenant_id, event_types=ACTION_EVENT_TYPES
            )

        return AnalyticsSummary(
            page_visits=page_visits,
            survey_completions=completions,
            code_copies=action_counts.get(EventType.CODE_COPY.value, 0),
            coupon_downloads=action_counts.get(EventType.COUPON_DOWNLOAD.value, 0),
            wallet_adds=action_counts.get(EventType.WALLET_ADD.value, 0),
            unique_action_takers=action_takers,
        )

    @staticmethod
    async def _time_series(
        tenant_id: UUID,
        *,
        days: int,
        now_utc: datetime,
    ) -> list[TimeSeriesPoint]:
        if days < 1 or days > TIME_SERIES_MAX_DAYS:
            raise AnalyticsRangeInvalidError(
                f"Days must be between 1 and {TIME_SERIES_MAX_DAYS}"
            )
        today = now_utc.astimezone(timezone.utc).date()
        first_day = today - timedelta(days=days - 1)
        from_utc = datetime.combine(first_day, time.min, tzinfo=timezone.utc)

        async with tenant_session(tenant_id) as session:
            rows = await AnalyticsEventsRepo.count_by_day_and_type(
                session, tenant_id=tenant_id, from_utc=from_utc, to_utc=now_utc
            )
        return build_time_series(rows, first_day=first_day, days=days)

    @staticmethod
    async def _dashboard(tenant_id: UUID) -> DashboardMetrics:
        async with tenant_session(tenant_id) as session:
            total_responses, unique_sessions = (
                await SurveyResponsesRepo.count_responses_and_sessions(
                    session, tenant_id=tenant_id
                )
            )
            ratings = await SurveyResponsesRepo.list_numeric_answers(
                session, tenant_id=tenant_id, question_type=SENTIMENT_QUESTION_TYPE
            )
            page_visits = await AnalyticsEventsRepo.count_distinct_visitors(
                session, tenant_id=tenant_id, event_types=[EventType.PAGE_VISIT.value]
            )
            completions = await AnalyticsEventsRepo.count_distinct_visitors(
                session, tenant_id=tenant_id, event_types=[EventType.SURVEY_COMPLETION.value]
            )
            action_counts = await AnalyticsEventsRepo.count_by_type(
                session, tenant_id=tenant_id, event_types=ACTION_EVENT_TYPES
            )
            top_offer = await GrantsRepo.top_offer_for_tenant(session, tenant_id=tenant_id)

        sentiment = classify_ratings(ratings)
        code_copies = action_counts.get(EventType.CODE_COPY.value, 0)
        downloads_and_wallet_adds = action_counts.get(
            EventType.COUPON_DOWNLOAD.value, 0
        ) + action_counts.get(EventType.WALLET_ADD.value, 0)

        logger.info(
            "dashboard_metrics_computed",
            responses=total_responses,
            page_visits=page_visits,
        )
        return DashboardMetrics(
            total_responses=total_responses,
            unique_sessions=unique_sessions,
            happiness_score=percentage(sentiment.happy, sentiment.total),
            page_visits=page_visits,
            conversion_rate=percentage(completions, page_visits),
            engagement=code_copies + downloads_and_wallet_adds,
            top_offer=TopOffer(title=top_offer[0], grants=top_offer[1]) if top_offer else None,
            sentiment=sentiment,
            funnel=EngagementFunnel(
                page_visits=page_visits,
                survey_completions=completions,
                code_copies=code_copies,
                downloads_and_wallet_adds=downloads_and_wallet_adds,
            ),
        )

    @staticmethod
    async def get_summary(tenant_id: UUID) -> Result[AnalyticsSummary]:
        return await capture("get_analytics_summary", AnalyticsService._summary(tenant_id))

    @staticmethod
    async def get_time_series(
        tenant_id: UUID,
        *,
        days: int = TIME_SERIES_DEFAULT_DAYS,
        now_utc: datetime | None = None,
    ) -> Result[list[TimeSeriesPoint]]:
        """Daily event counts for the last `days` UTC days, today included."""
        return await capture(
            "get_analytics_time_series",
            AnalyticsService._time_series(
                tenant_id, days=days, now_utc=now_utc or datetime.now(timezone.utc)
            ),
        )

    @staticmethod
    async def get_dashboard_metrics(tenant_id: UUID) -> Result[DashboardMetrics]:
        return await capture("get_dashboard_metrics", AnalyticsService._dashboard(tenant_id))
