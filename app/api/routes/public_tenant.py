from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, Request, status

from app.analytics.events import TrackingService
from app.api.dependencies import request_client_id
from app.api.errors import unwrap_or_raise
from app.api.routes.public_models import (
    OptInRequest,
    OptInResponse,
    OptInVerifyResponse,
    SurveyResponseModel,
    SurveySubmitRequest,
    SurveySubmitResponse,
    TenantResponse,
    TrackEventRequest,
    TrackEventResponse,
    question_as_response,
    tenant_as_response,
)
from app.core.rate_limits import EMAIL_OPT_IN, EMAIL_SUBMIT
from app.surveys.opt_ins import OptInService
from app.surveys.survey import SurveyService
from app.surveys.types import SurveyAnswerInput, SurveySubmission
from app.tenancy.service import TenantService

router = APIRouter(tags=["public"])


@router.get("/{slug}", response_model=TenantResponse)
async def get_tenant(slug: str) -> TenantResponse:
    tenant = unwrap_or_raise(await TenantService.get_public_tenant(slug))
    return tenant_as_response(tenant)


@router.post("/{slug}/opt-in", response_model=OptInResponse)
async def submit_opt_in(slug: str, payload: OptInRequest, request: Request) -> OptInResponse:
    outcome = unwrap_or_raise(
        await OptInService.submit_opt_in(
            slug,
            payload.email,
            client_id=request_client_id(request, email=payload.email),
            policy=EMAIL_OPT_IN if payload.source == "social" else EMAIL_SUBMIT,
        )
    )
    return OptInResponse(
        email=outcome.email,
        already_registered=outcome.already_registered,
        message="Email already registered" if outcome.already_registered else "Email registered",
    )


@router.get("/{slug}/opt-in", response_model=OptInVerifyResponse)
async def verify_opt_in(
    slug: str,
    email: str = Query(min_length=1, max_length=320),
) -> OptInVerifyResponse:
    valid = unwrap_or_raise(await OptInService.verify_opt_in(slug, email))
    return OptInVerifyResponse(valid=bool(valid))


@router.get("/{slug}/survey", response_model=SurveyResponseModel)
async def get_survey(slug: str, offer_id: UUID | None = None) -> SurveyResponseModel:
    survey = unwrap_or_raise(await SurveyService.get_survey(slug, offer_id=offer_id))
    return SurveyResponseModel(
        tenant_id=survey.tenant_id,
        offer_id=survey.offer_id,
        questions=[question_as_response(question) for question in survey.questions],
    )


@router.post("/{slug}/survey", response_model=SurveySubmitResponse)
async def submit_survey(
    slug: str,
    payload: SurveySubmitRequest,
    request: Request,
) -> SurveySubmitResponse:
    submission = SurveySubmission(
        answers=[
            SurveyAnswerInput(
                question_id=answer.question_id,
                answer_text=answer.answer_text,
                answer_number=answer.answer_number,
                answer_boolean=answer.answer_boolean,
            )
            for answer in payload.answers
        ],
        email=payload.email,
        offer_id=payload.offer_id,
    )
    outcome = unwrap_or_raise(
        await SurveyService.submit_survey(
            slug,
            submission,
            client_id=request_client_id(request, email=payload.email),
        )
    )
    return SurveySubmitResponse(
        session_id=outcome.session_id,
        responses_saved=outcome.responses_saved,
        opted_in=outcome.opted_in,
    )


@router.post(
    "/{slug}/events",
    response_model=TrackEventResponse,
    status_code=status.HTTP_201_CREATED,
)
async def track_event(
    slug: str,
    payload: TrackEventRequest,
    request: Request,
) -> TrackEventResponse:
    event_payload: dict[str, object] = {}
    if payload.offer_id is not None:
        event_payload["offer_id"] = str(payload.offer_id)
    if payload.grant_id is not None:
        event_payload["grant_id"] = str(payload.grant_id)

    event = unwrap_or_raise(
        await TrackingService.track_event(
            slug,
            payload.event_type,
            client_id=request_client_id(request, email=payload.email),
            session_id=payload.session_id,
            email=payload.email,
            payload=event_payload,
        )
    )
    return TrackEventResponse(id=event.id, event_type=event.event_type, created_at=event.created_at)
