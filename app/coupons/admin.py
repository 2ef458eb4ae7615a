from __future__ import annotations

import math
from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.coupons.errors import GrantNotFoundError, GrantUpdateInvalidError
from app.coupons.grant_state import to_grant_view
from app.coupons.types import GrantPage, GrantPatch, GrantStatus, GrantView
from app.db.repo.grants_repo import GrantsRepo

DEFAULT_PER_PAGE = 10
MAX_PER_PAGE = 100

ALLOWED_STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    GrantStatus.ISSUED.value: frozenset(
        {GrantStatus.REDEEMED.value, GrantStatus.REVOKED.value, GrantStatus.EXPIRED.value}
    ),
    GrantStatus.REDEEMED.value: frozenset({GrantStatus.EXPIRED.value}),
    GrantStatus.REVOKED.value: frozenset(),
    GrantStatus.EXPIRED.value: frozenset(),
}

logger = structlog.get_logger(__name__)


async def list_grants_page(
    session: AsyncSession,
    *,
    tenant_id: UUID,
    page: int,
    per_page: int,
) -> GrantPage:
    if page < 1:
        raise GrantUpdateInvalidError("Page must be 1 or greater")
    if per_page < 1 or per_page > MAX_PER_PAGE:
        raise GrantUpdateInvalidError(f"Page size must be between 1 and {MAX_PER_PAGE}")

    total_count = await GrantsRepo.count_for_tenant(session, tenant_id=tenant_id)
    rows = await GrantsRepo.list_page_for_tenant(
        session,
        tenant_id=tenant_id,
        offset=(page - 1) * per_page,
        limit=per_page,
    )
    return GrantPage(
        items=[to_grant_view(grant, offer_title=title) for grant, title in rows],
        page=page,
        per_page=per_page,
        total_count=total_count,
        total_pages=math.ceil(total_count / per_page),
    )


async def update_grant_in_session(
    session: AsyncSession,
    *,
    tenant_id: UUID,
    grant_id: UUID,
    patch: GrantPatch,
    now_utc: datetime,
) -> GrantView:
    grant = await GrantsRepo.get_by_id_for_update(session, tenant_id=tenant_id, grant_id=grant_id)
    if grant is None:
        raise GrantNotFoundError

    previous_status = grant.status
    target_status = patch.status if patch.status is not None else grant.status
    if target_status not in ALLOWED_STATUS_TRANSITIONS:
        raise GrantUpdateInvalidError(f"Unknown status: {target_status}")
    if (
        target_status != previous_status
        and target_status not in ALLOWED_STATUS_TRANSITIONS[previous_status]
    ):
        raise GrantUpdateInvalidError(
            f"Cannot change status from {previous_status} to {target_status}"
        )

    if patch.redemptions_count is not None:
        if patch.redemptions_count < 0 or patch.redemptions_count > grant.max_redemptions:
            raise GrantUpdateInvalidError(
                f"Redemptions must be between 0 and {grant.max_redemptions}"
            )
        if target_status in (GrantStatus.REVOKED.value, GrantStatus.EXPIRED.value):
            raise GrantUpdateInvalidError("Cannot adjust redemptions of a closed coupon")
        grant.redemptions_count = patch.redemptions_count
        if (
            target_status == GrantStatus.ISSUED.value
            and grant.redemptions_count >= grant.max_redemptions
        ):
            target_status = GrantStatus.REDEEMED.value

    if target_status == GrantStatus.REDEEMED.value:
        # A redeemed grant is always spent in full.
        grant.redemptions_count = grant.max_redemptions

    grant.status = target_status
    if target_status == GrantStatus.REVOKED.value and grant.revoked_at is None:
        grant.revoked_at = now_utc
    if target_status == GrantStatus.REDEEMED.value and grant.redeemed_at is None:
        grant.redeemed_at = now_utc

    if patch.metadata is not None:
        grant.metadata_ = dict(patch.metadata)

    await session.flush()
    logger.info(
        "grant_updated",
        grant_id=str(grant.id),
        previous_status=previous_status,
        status=grant.status,
        redemptions_count=grant.redemptions_count,
    )
    return to_grant_view(grant)
