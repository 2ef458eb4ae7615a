from __future__ import annotations

from datetime import datetime

from app.coupons.errors import (
    GrantExhaustedError,
    GrantExpiredError,
    GrantRevokedError,
)
from app.coupons.types import REUSABLE_GRANT_STATUSES, GrantStatus, GrantView
from app.db.models.grants import Grant

ALREADY_USED_MESSAGE = "This coupon has already been used: maximum redemptions reached"


def to_grant_view(grant: Grant, *, offer_title: str | None = None) -> GrantView:
    return GrantView(
        id=grant.id,
        tenant_id=grant.tenant_id,
        offer_id=grant.offer_id,
        code=grant.code,
        status=grant.status,
        max_redemptions=grant.max_redemptions,
        redemptions_count=grant.redemptions_count,
        recipient=grant.recipient,
        expires_at=grant.expires_at,
        issued_at=grant.issued_at,
        redeemed_at=grant.redeemed_at,
        revoked_at=grant.revoked_at,
        metadata=dict(grant.metadata_ or {}),
        offer_title=offer_title,
    )


def is_past_expiry(grant: Grant, *, now_utc: datetime) -> bool:
    return grant.expires_at is not None and grant.expires_at <= now_utc


def expire_if_overdue(grant: Grant, *, now_utc: datetime) -> bool:
    """Lazily applies time-based expiry; returns True when the status changed."""
    if grant.status not in REUSABLE_GRANT_STATUSES:
        return False
    if not is_past_expiry(grant, now_utc=now_utc):
        return False
    grant.status = GrantStatus.EXPIRED.value
    return True


def is_reusable(grant: Grant, *, now_utc: datetime) -> bool:
    return (
        grant.status in REUSABLE_GRANT_STATUSES
        and not is_past_expiry(grant, now_utc=now_utc)
        and grant.redemptions_count < grant.max_redemptions
    )


def ensure_redeemable(grant: Grant) -> None:
    """Raises the error a holder of this grant should see; expiry must be applied first."""
    if grant.status == GrantStatus.REVOKED.value:
        raise GrantRevokedError
    if grant.status == GrantStatus.EXPIRED.value:
        raise GrantExpiredError
    if grant.status == GrantStatus.REDEEMED.value:
        raise GrantExhaustedError(ALREADY_USED_MESSAGE)
    if grant.redemptions_count >= grant.max_redemptions:
        raise GrantExhaustedError


def apply_redemption(grant: Grant, *, now_utc: datetime) -> None:
    grant.redemptions_count += 1
    if grant.redemptions_count >= grant.max_redemptions:
        grant.status = GrantStatus.REDEEMED.value
        grant.redeemed_at = now_utc


def summarize_status(grant: Grant | None) -> str | None:
    """Status shown to a recipient: revoked, then expired, then fully redeemed, else None."""
    if grant is None:
        return None
    if grant.status == GrantStatus.REVOKED.value:
        return GrantStatus.REVOKED.value
    if grant.status == GrantStatus.EXPIRED.value:
        return GrantStatus.EXPIRED.value
    if (
        grant.status == GrantStatus.REDEEMED.value
        or grant.redemptions_count >= grant.max_redemptions
    ):
        return GrantStatus.REDEEMED.value
    return None
