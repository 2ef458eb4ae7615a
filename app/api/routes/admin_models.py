from __future__ import annotations

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from app.api.routes.public_models import GrantResponse, QuestionResponse


class AdminSessionRequest(BaseModel):
    token: str = Field(min_length=1, max_length=256)


class TenantSettingsRequest(BaseModel):
    name: str | None = Field(default=None, max_length=128)
    logo_url: str | None = Field(default=None, max_length=512)
    website_url: str | None = Field(default=None, max_length=512)
    active: bool | None = None
    subdomain: str | None = Field(default=None, max_length=63)
    clear_subdomain: bool = False


class OfferCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=128)
    description: str | None = Field(default=None, max_length=4000)
    discount: str | None = Field(default=None, max_length=64)
    image_url: str | None = Field(default=None, max_length=512)
    expires_at: datetime | None = None
    active: bool = True


class OfferUpdateRequest(BaseModel):
    title: str | None = Field(default=None, max_length=128)
    description: str | None = Field(default=None, max_length=4000)
    discount: str | None = Field(default=None, max_length=64)
    image_url: str | None = Field(default=None, max_length=512)
    expires_at: datetime | None = None
    clear_expires_at: bool = False
    active: bool | None = None


class AdminOfferResponse(BaseModel):
    id: UUID
    title: str
    description: str | None = None
    discount: str | None = None
    image_url: str | None = None
    expires_at: datetime | None = None
    active: bool
    created_at: datetime
    updated_at: datetime


class GrantListResponse(BaseModel):
    items: list[GrantResponse]
    page: int = Field(ge=1)
    per_page: int = Field(ge=1)
    total_count: int = Field(ge=0)
    total_pages: int = Field(ge=0)


class GrantUpdateRequest(BaseModel):
    status: Literal["issued", "redeemed", "revoked", "expired"] | None = None
    redemptions_count: int | None = Field(default=None, ge=0)
    metadata: dict[str, object] | None = None


class GrantCodeRequest(BaseModel):
    code: str = Field(min_length=1, max_length=64)


class GrantRedeemResponse(BaseModel):
    grant: GrantResponse
    remaining_redemptions: int = Field(ge=0)
    message: str


class QuestionCreateRequest(BaseModel):
    question: str = Field(min_length=1, max_length=500)
    type: str = Field(min_length=1, max_length=32)
    options: list[object] = Field(default_factory=list)
    is_active: bool = True


class QuestionUpdateRequest(BaseModel):
    question: str | None = Field(default=None, max_length=500)
    type: str | None = Field(default=None, max_length=32)
    options: list[object] | None = None
    is_active: bool | None = None


class QuestionReorderRequest(BaseModel):
    direction: Literal["up", "down"]


class QuestionListResponse(BaseModel):
    questions: list[QuestionResponse]


class AnalyticsSummaryResponse(BaseModel):
    page_visits: int = Field(ge=0)
    survey_completions: int = Field(ge=0)
    code_copies: int = Field(ge=0)
    coupon_downloads: int = Field(ge=0)
    wallet_adds: int = Field(ge=0)
    unique_action_takers: int = Field(ge=0)


class TimeSeriesPointResponse(BaseModel):
    day: date
    page_visits: int = Field(ge=0)
    survey_completions: int = Field(ge=0)
    code_copies: int = Field(ge=0)
    coupon_downloads: int = Field(ge=0)
    wallet_adds: int = Field(ge=0)


class AnalyticsTimeSeriesResponse(BaseModel):
    days: int = Field(ge=1, le=90)
    points: list[TimeSeriesPointResponse]


class TopOfferResponse(BaseModel):
    title: str
    grants: int = Field(ge=0)


class SentimentResponse(BaseModel):
    happy: int = Field(ge=0)
    neutral: int = Field(ge=0)
    concerned: int = Field(ge=0)


class EngagementFunnelResponse(BaseModel):
    page_visits: int = Field(ge=0)
    survey_completions: int = Field(ge=0)
    code_copies: int = Field(ge=0)
    downloads_and_wallet_adds: int = Field(ge=0)


class DashboardMetricsResponse(BaseModel):
    total_responses: int = Field(ge=0)
    unique_sessions: int = Field(ge=0)
    happiness_score: float = Field(ge=0.0, le=100.0)
    page_visits: int = Field(ge=0)
    conversion_rate: float = Field(ge=0.0)
    engagement: int = Field(ge=0)
    top_offer: TopOfferResponse | None = None
    sentiment: SentimentResponse
    funnel: EngagementFunnelResponse


class StaffCreateRequest(BaseModel):
    email: str = Field(min_length=1, max_length=320)
    role: Literal["owner", "staff"] = "staff"


class StaffResponse(BaseModel):
    id: UUID
    email: str
    role: str
    created_at: datetime
    updated_at: datetime


class StaffListResponse(BaseModel):
    staff: list[StaffResponse]
