from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from app.coupons.types import GrantView, OfferView
from app.surveys.types import QuestionView
from app.tenancy.types import TenantView


class TenantResponse(BaseModel):
    id: UUID
    slug: str
    subdomain: str | None = None
    name: str
    logo_url: str | None = None
    website_url: str | None = None
    theme: dict[str, object] | None = None
    active: bool


class OfferResponse(BaseModel):
    id: UUID
    title: str
    description: str | None = None
    discount: str | None = None
    image_url: str | None = None
    expires_at: datetime | None = None
    active: bool


class GrantResponse(BaseModel):
    id: UUID
    offer_id: UUID
    offer_title: str | None = None
    code: str
    status: str
    max_redemptions: int = Field(ge=1)
    redemptions_count: int = Field(ge=0)
    recipient: str | None = None
    expires_at: datetime | None = None
    issued_at: datetime
    redeemed_at: datetime | None = None
    revoked_at: datetime | None = None
    metadata: dict[str, object] = Field(default_factory=dict)


class IssueGrantRequest(BaseModel):
    email: str | None = Field(default=None, max_length=320)


class IssueGrantResponse(BaseModel):
    grant: GrantResponse
    idempotent_replay: bool


class GrantLookupResponse(BaseModel):
    grant: GrantResponse | None = None
    status: str | None = None


class OptInRequest(BaseModel):
    email: str = Field(min_length=1, max_length=320)
    source: Literal["form", "social"] = "form"


class OptInResponse(BaseModel):
    email: str
    already_registered: bool
    message: str


class OptInVerifyResponse(BaseModel):
    valid: bool


class QuestionResponse(BaseModel):
    id: UUID
    question: str
    type: str
    options: list[object] = Field(default_factory=list)
    order_index: int
    is_active: bool


class SurveyResponseModel(BaseModel):
    tenant_id: UUID
    offer_id: UUID | None = None
    questions: list[QuestionResponse]


class SurveyAnswerModel(BaseModel):
    question_id: UUID
    answer_text: str | None = Field(default=None, max_length=5000)
    answer_number: float | None = None
    answer_boolean: bool | None = None


class SurveySubmitRequest(BaseModel):
    answers: list[SurveyAnswerModel] = Field(min_length=1, max_length=200)
    email: str | None = Field(default=None, max_length=320)
    offer_id: UUID | None = None


class SurveySubmitResponse(BaseModel):
    session_id: str
    responses_saved: int = Field(ge=0)
    opted_in: bool


def tenant_as_response(tenant: TenantView) -> TenantResponse:
    return TenantResponse(
        id=tenant.id,
        slug=tenant.slug,
        subdomain=tenant.subdomain,
        name=tenant.name,
        logo_url=tenant.logo_url,
        website_url=tenant.website_url,
        theme=tenant.theme,
        active=tenant.active,
    )


def offer_as_response(offer: OfferView) -> OfferResponse:
    return OfferResponse(
        id=offer.id,
        title=offer.title,
        description=offer.description,
        discount=offer.discount,
        image_url=offer.image_url,
        expires_at=offer.expires_at,
        active=offer.active,
    )


def grant_as_response(grant: GrantView) -> GrantResponse:
    return GrantResponse(
        id=grant.id,
        offer_id=grant.offer_id,
        offer_title=grant.offer_title,
        code=grant.code,
        status=grant.status,
        max_redemptions=grant.max_redemptions,
        redemptions_count=grant.redemptions_count,
        recipient=grant.recipient,
        expires_at=grant.expires_at,
        issued_at=grant.issued_at,
        redeemed_at=grant.redeemed_at,
        revoked_at=grant.revoked_at,
        metadata=grant.metadata,
    )


def question_as_response(question: QuestionView) -> QuestionResponse:
    return QuestionResponse(
        id=question.id,
        question=question.question,
        type=question.type,
        options=question.options,
        order_index=question.order_index,
        is_active=question.is_active,
    )


class TrackEventRequest(BaseModel):
    event_type: Literal["page_visit", "code_copy", "coupon_download", "wallet_add"]
    session_id: str | None = Field(default=None, max_length=512)
    email: str | None = Field(default=None, max_length=320)
    offer_id: UUID | None = None
    grant_id: UUID | None = None


class TrackEventResponse(BaseModel):
    id: UUID
    event_type: str
    created_at: datetime
