from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query, Request

from app.api.dependencies import request_client_id
from app.api.errors import unwrap_or_raise
from app.api.routes.public_models import (
    GrantLookupResponse,
    IssueGrantRequest,
    IssueGrantResponse,
    OfferResponse,
    grant_as_response,
    offer_as_response,
)
from app.coupons.service import CouponService

router = APIRouter(tags=["public", "coupons"])


@router.get("/{slug}/coupons", response_model=list[OfferResponse])
async def list_coupons(slug: str) -> list[OfferResponse]:
    offers = unwrap_or_raise(await CouponService.list_available_offers(slug))
    return [offer_as_response(offer) for offer in offers]


@router.post("/{slug}/coupons/{offer_id}/issue", response_model=IssueGrantResponse)
async def issue_coupon(
    slug: str,
    offer_id: UUID,
    payload: IssueGrantRequest,
    request: Request,
) -> IssueGrantResponse:
    outcome = unwrap_or_raise(
        await CouponService.issue_grant(
            slug,
            offer_id,
            payload.email,
            client_id=request_client_id(request, email=payload.email),
        )
    )
    return IssueGrantResponse(
        grant=grant_as_response(outcome.grant),
        idempotent_replay=outcome.idempotent_replay,
    )


@router.get("/{slug}/coupons/{offer_id}/grant", response_model=GrantLookupResponse)
async def get_coupon_grant(
    slug: str,
    offer_id: UUID,
    request: Request,
    email: str = Query(min_length=1, max_length=320),
) -> GrantLookupResponse:
    grant = unwrap_or_raise(
        await CouponService.find_existing_grant(
            slug,
            offer_id,
            email,
            client_id=request_client_id(request, email=email),
        )
    )
    if grant is None:
        return GrantLookupResponse(grant=None, status=None)

    status = unwrap_or_raise(await CouponService.grant_status_for_recipient(slug, offer_id, email))
    return GrantLookupResponse(grant=grant_as_response(grant), status=status)
