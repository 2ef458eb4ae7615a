from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.analytics.metrics import TIME_SERIES_DEFAULT_DAYS, TIME_SERIES_MAX_DAYS, AnalyticsService
from app.analytics.types import DashboardMetrics
from app.api.dependencies import require_admin
from app.api.errors import unwrap_or_raise
from app.api.routes.admin_models import (
    AnalyticsSummaryResponse,
    AnalyticsTimeSeriesResponse,
    DashboardMetricsResponse,
    EngagementFunnelResponse,
    SentimentResponse,
    TimeSeriesPointResponse,
    TopOfferResponse,
)

router = APIRouter(tags=["admin", "analytics"], dependencies=[Depends(require_admin)])


def _dashboard_as_response(metrics: DashboardMetrics) -> DashboardMetricsResponse:
    top_offer = None
    if metrics.top_offer is not None:
        top_offer = TopOfferResponse(
            title=metrics.top_offer.title, grants=metrics.top_offer.grants
        )
    return DashboardMetricsResponse(
        total_responses=metrics.total_responses,
        unique_sessions=metrics.unique_sessions,
        happiness_score=metrics.happiness_score,
        page_visits=metrics.page_visits,
        conversion_rate=metrics.conversion_rate,
        engagement=metrics.engagement,
        top_offer=top_offer,
        sentiment=SentimentResponse(
            happy=metrics.sentiment.happy,
            neutral=metrics.sentiment.neutral,
            concerned=metrics.sentiment.concerned,
        ),
        funnel=EngagementFunnelResponse(
            page_visits=metrics.funnel.page_visits,
            survey_completions=metrics.funnel.survey_completions,
            code_copies=metrics.funnel.code_copies,
            downloads_and_wallet_adds=metrics.funnel.downloads_and_wallet_adds,
        ),
    )


@router.get("/admin/tenants/{tenant_id}/dashboard", response_model=DashboardMetricsResponse)
async def get_dashboard(tenant_id: UUID) -> DashboardMetricsResponse:
    metrics = unwrap_or_raise(await AnalyticsService.get_dashboard_metrics(tenant_id))
    return _dashboard_as_response(metrics)


@router.get(
    "/admin/tenants/{tenant_id}/analytics/summary",
    response_model=AnalyticsSummaryResponse,
)
async def get_analytics_summary(tenant_id: UUID) -> AnalyticsSummaryResponse:
    summary = unwrap_or_raise(await AnalyticsService.get_summary(tenant_id))
    return AnalyticsSummaryResponse(
        page_visits=summary.page_visits,
        survey_completions=summary.survey_completions,
        code_copies=summary.code_copies,
        coupon_downloads=summary.coupon_downloads,
        wallet_adds=summary.wallet_adds,
        unique_action_takers=summary.unique_action_takers,
    )


@router.get(
    "/admin/tenants/{tenant_id}/analytics/timeseries",
    response_model=AnalyticsTimeSeriesResponse,
)
async def get_analytics_time_series(
    tenant_id: UUID,
    days: int = Query(default=TIME_SERIES_DEFAULT_DAYS, ge=1, le=TIME_SERIES_MAX_DAYS),
) -> AnalyticsTimeSeriesResponse:
    points = unwrap_or_raise(await AnalyticsService.get_time_series(tenant_id, days=days))
    return AnalyticsTimeSeriesResponse(
        days=days,
        points=[
            TimeSeriesPointResponse(
                day=point.day,
                page_visits=point.page_visits,
                survey_completions=point.survey_completions,
                code_copies=point.code_copies,
                coupon_downloads=point.coupon_downloads,
                wallet_adds=point.wallet_adds,
            )
            for point in points
        ],
    )
