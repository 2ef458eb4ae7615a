from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from app.api.dependencies import require_admin
from app.api.errors import unwrap_or_raise
from app.api.routes.admin_models import (
    AdminOfferResponse,
    GrantCodeRequest,
    GrantListResponse,
    GrantRedeemResponse,
    GrantUpdateRequest,
    OfferCreateRequest,
    OfferUpdateRequest,
)
from app.api.routes.public_models import GrantResponse, grant_as_response
from app.coupons.admin import DEFAULT_PER_PAGE, MAX_PER_PAGE
from app.coupons.offers import OffersService
from app.coupons.service import CouponService
from app.coupons.types import GrantPatch, GrantStatus, OfferDraft, OfferPatch, OfferView

router = APIRouter(tags=["admin", "coupons"], dependencies=[Depends(require_admin)])


def _offer_as_admin_response(offer: OfferView) -> AdminOfferResponse:
    return AdminOfferResponse(
        id=offer.id,
        title=offer.title,
        description=offer.description,
        discount=offer.discount,
        image_url=offer.image_url,
        expires_at=offer.expires_at,
        active=offer.active,
        created_at=offer.created_at,
        updated_at=offer.updated_at,
    )


@router.get("/admin/tenants/{tenant_id}/offers", response_model=list[AdminOfferResponse])
async def list_offers(tenant_id: UUID, active_only: bool = False) -> list[AdminOfferResponse]:
    offers = unwrap_or_raise(await OffersService.list_offers(tenant_id, active_only=active_only))
    return [_offer_as_admin_response(offer) for offer in offers]


@router.post(
    "/admin/tenants/{tenant_id}/offers",
    response_model=AdminOfferResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_offer(tenant_id: UUID, payload: OfferCreateRequest) -> AdminOfferResponse:
    offer = unwrap_or_raise(
        await OffersService.create_offer(
            tenant_id,
            OfferDraft(
                title=payload.title,
                description=payload.description,
                discount=payload.discount,
                image_url=payload.image_url,
                expires_at=payload.expires_at,
                active=payload.active,
            ),
        )
    )
    return _offer_as_admin_response(offer)


@router.get("/admin/tenants/{tenant_id}/offers/{offer_id}", response_model=AdminOfferResponse)
async def get_offer(tenant_id: UUID, offer_id: UUID) -> AdminOfferResponse:
    offer = unwrap_or_raise(await OffersService.get_offer(tenant_id, offer_id))
    return _offer_as_admin_response(offer)


@router.patch("/admin/tenants/{tenant_id}/offers/{offer_id}", response_model=AdminOfferResponse)
async def update_offer(
    tenant_id: UUID,
    offer_id: UUID,
    payload: OfferUpdateRequest,
) -> AdminOfferResponse:
    offer = unwrap_or_raise(
        await OffersService.update_offer(
            tenant_id,
            offer_id,
            OfferPatch(
                title=payload.title,
                description=payload.description,
                discount=payload.discount,
                image_url=payload.image_url,
                expires_at=payload.expires_at,
                clear_expires_at=payload.clear_expires_at,
                active=payload.active,
            ),
        )
    )
    return _offer_as_admin_response(offer)


@router.delete(
    "/admin/tenants/{tenant_id}/offers/{offer_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_offer(tenant_id: UUID, offer_id: UUID) -> Response:
    unwrap_or_raise(await OffersService.delete_offer(tenant_id, offer_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/admin/tenants/{tenant_id}/grants", response_model=GrantListResponse)
async def list_grants(
    tenant_id: UUID,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE),
) -> GrantListResponse:
    grant_page = unwrap_or_raise(
        await CouponService.list_grants(tenant_id, page=page, per_page=per_page)
    )
    return GrantListResponse(
        items=[grant_as_response(grant) for grant in grant_page.items],
        page=grant_page.page,
        per_page=grant_page.per_page,
        total_count=grant_page.total_count,
        total_pages=grant_page.total_pages,
    )


@router.patch("/admin/tenants/{tenant_id}/grants/{grant_id}", response_model=GrantResponse)
async def update_grant(
    tenant_id: UUID,
    grant_id: UUID,
    payload: GrantUpdateRequest,
) -> GrantResponse:
    grant = unwrap_or_raise(
        await CouponService.update_grant(
            tenant_id,
            grant_id,
            GrantPatch(
                status=payload.status,
                redemptions_count=payload.redemptions_count,
                metadata=payload.metadata,
            ),
        )
    )
    return grant_as_response(grant)


@router.post("/admin/tenants/{tenant_id}/grants/validate", response_model=GrantResponse)
async def validate_grant(tenant_id: UUID, payload: GrantCodeRequest) -> GrantResponse:
    grant = unwrap_or_raise(await CouponService.validate_grant(tenant_id, payload.code))
    return grant_as_response(grant)


@router.post("/admin/tenants/{tenant_id}/grants/redeem", response_model=GrantRedeemResponse)
async def redeem_grant(tenant_id: UUID, payload: GrantCodeRequest) -> GrantRedeemResponse:
    outcome = unwrap_or_raise(await CouponService.redeem_grant(tenant_id, payload.code))
    fully_redeemed = outcome.grant.status == GrantStatus.REDEEMED.value
    return GrantRedeemResponse(
        grant=grant_as_response(outcome.grant),
        remaining_redemptions=outcome.remaining_redemptions,
        message="Coupon fully redeemed" if fully_redeemed else "Coupon redeemed successfully",
    )


@router.post("/admin/tenants/{tenant_id}/grants/{grant_id}/revoke", response_model=GrantResponse)
async def revoke_grant(tenant_id: UUID, grant_id: UUID) -> GrantResponse:
    grant = unwrap_or_raise(await CouponService.revoke_grant(tenant_id, grant_id))
    return grant_as_response(grant)
