from __future__ import annotations

from datetime import datetime
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.coupon_codes import normalize_coupon_code
from app.coupons.errors import GrantNotFoundError
from app.coupons.grant_state import apply_redemption, ensure_redeemable, expire_if_overdue
from app.db.models.grants import Grant
from app.db.repo.grants_repo import GrantsRepo

logger = structlog.get_logger(__name__)


async def lock_grant_by_code(
    session: AsyncSession,
    *,
    tenant_id: UUID,
    raw_code: str,
    now_utc: datetime,
) -> tuple[Grant, bool]:
    """Locks the grant row and applies lazy expiry.

    Returns ``(grant, expired_now)``. When ``expired_now`` is True the caller must
    let the transaction commit before reporting the grant as expired.
    """
    code = normalize_coupon_code(raw_code)
    if not code:
        raise GrantNotFoundError

    grant = await GrantsRepo.get_by_code_for_update(session, tenant_id=tenant_id, code=code)
    if grant is None:
        raise GrantNotFoundError

    if expire_if_overdue(grant, now_utc=now_utc):
        await session.flush()
        logger.info("grant_expired_lazily", grant_id=str(grant.id))
        return grant, True
    return grant, False


async def redeem_locked_grant(
    session: AsyncSession,
    *,
    grant: Grant,
    now_utc: datetime,
) -> Grant:
    ensure_redeemable(grant)
    apply_redemption(grant, now_utc=now_utc)
    await session.flush()
    logger.info(
        "grant_redeemed",
        grant_id=str(grant.id),
        redemptions_count=grant.redemptions_count,
        status=grant.status,
    )
    return grant
