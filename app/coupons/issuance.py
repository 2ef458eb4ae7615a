from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.coupon_codes import generate_coupon_code
from app.core.errors import RateLimitedError
from app.core.rate_limits import COUPON_ISSUE
from app.coupons.errors import GrantCodeExhaustedError, OfferNotFoundError, OfferUnavailableError
from app.coupons.grant_state import expire_if_overdue, is_reusable
from app.coupons.types import GrantStatus
from app.db.integrity import is_violation_of
from app.db.models.grants import GRANT_CODE_CONSTRAINT, GRANT_OPEN_RECIPIENT_INDEX, Grant
from app.db.models.offers import Offer
from app.db.repo.grants_repo import GrantsRepo
from app.db.repo.offers_repo import OffersRepo
from app.services.rate_limit import RateLimiter

MAX_CODE_ATTEMPTS = 10

logger = structlog.get_logger(__name__)


def is_offer_available(offer: Offer, *, now_utc: datetime) -> bool:
    return offer.active and (offer.expires_at is None or offer.expires_at > now_utc)


async def load_available_offer(
    session: AsyncSession,
    *,
    tenant_id: UUID,
    offer_id: UUID,
    now_utc: datetime,
) -> Offer:
    offer = await OffersRepo.get_by_id(session, tenant_id=tenant_id, offer_id=offer_id)
    if offer is None:
        raise OfferNotFoundError
    if not is_offer_available(offer, now_utc=now_utc):
        raise OfferUnavailableError
    return offer


async def find_reusable_grant(
    session: AsyncSession,
    *,
    tenant_id: UUID,
    offer_id: UUID,
    recipient: str,
    now_utc: datetime,
) -> Grant | None:
    """Newest grant for the recipient if it can be handed out again.

    A newest grant found past its expiry is marked expired on the way.
    """
    latest = await GrantsRepo.get_latest_for_recipient(
        session,
        tenant_id=tenant_id,
        offer_id=offer_id,
        recipient=recipient,
    )
    if latest is None:
        return None

    if expire_if_overdue(latest, now_utc=now_utc):
        await session.flush()
        logger.info("grant_expired_lazily", grant_id=str(latest.id))
        return None

    if is_reusable(latest, now_utc=now_utc):
        return latest
    return None


async def insert_grant(
    session: AsyncSession,
    *,
    tenant_id: UUID,
    offer_id: UUID,
    recipient: str | None,
    expires_at: datetime | None,
    max_redemptions: int,
    metadata: dict[str, object],
    code_prefix: str,
    now_utc: datetime,
) -> tuple[Grant, bool]:
    """Inserts a grant under a fresh unique code.

    Returns ``(grant, created)``. ``created`` is False when a concurrent request
    inserted the open grant for the same recipient first; that grant is returned.
    """
    for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
        grant = Grant(
            id=uuid4(),
            tenant_id=tenant_id,
            offer_id=offer_id,
            code=generate_coupon_code(code_prefix),
            status=GrantStatus.ISSUED.value,
            max_redemptions=max_redemptions,
            redemptions_count=0,
            recipient=recipient,
            expires_at=expires_at,
            issued_at=now_utc,
            metadata_=metadata,
        )
        try:
            async with session.begin_nested():
                await GrantsRepo.create(session, grant=grant)
        except IntegrityError as exc:
            if is_violation_of(exc, GRANT_CODE_CONSTRAINT):
                logger.info("grant_code_collision", attempt=attempt)
                continue
            if recipient is not None and is_violation_of(exc, GRANT_OPEN_RECIPIENT_INDEX):
                winner = await GrantsRepo.get_open_for_recipient(
                    session,
                    tenant_id=tenant_id,
                    offer_id=offer_id,
                    recipient=recipient,
                )
                if winner is None:
                    raise
                logger.info("grant_issue_race_lost", grant_id=str(winner.id))
                return winner, False
            raise
        return grant, True

    logger.warning("grant_code_attempts_exhausted", attempts=MAX_CODE_ATTEMPTS)
    raise GrantCodeExhaustedError


async def issue_grant_in_session(
    session: AsyncSession,
    *,
    tenant_id: UUID,
    offer_id: UUID,
    recipient: str | None,
    rate_limit_identifier: str,
    limiter: RateLimiter,
    expires_at: datetime | None,
    max_redemptions: int,
    metadata: dict[str, object],
    code_prefix: str,
    now_utc: datetime,
) -> tuple[Grant, bool]:
    """Check-then-insert issuance inside one tenant-scoped transaction.

    Returns ``(grant, idempotent_replay)``. Quota is only peeked here; the
    caller spends it once the new grant is committed.
    """
    offer = await load_available_offer(
        session, tenant_id=tenant_id, offer_id=offer_id, now_utc=now_utc
    )

    if recipient is not None:
        existing = await find_reusable_grant(
            session,
            tenant_id=tenant_id,
            offer_id=offer_id,
            recipient=recipient,
            now_utc=now_utc,
        )
        if existing is not None:
            logger.info("grant_issue_replayed", grant_id=str(existing.id))
            return existing, True

    quota = await limiter.peek(rate_limit_identifier, COUPON_ISSUE, now_utc=now_utc)
    if not quota.allowed:
        raise RateLimitedError(retry_after_seconds=quota.retry_after_seconds)

    grant, created = await insert_grant(
        session,
        tenant_id=tenant_id,
        offer_id=offer_id,
        recipient=recipient,
        expires_at=expires_at if expires_at is not None else offer.expires_at,
        max_redemptions=max_redemptions,
        metadata=metadata,
        code_prefix=code_prefix,
        now_utc=now_utc,
    )
    if created:
        logger.info(
            "grant_issued",
            grant_id=str(grant.id),
            offer_id=str(offer_id),
            has_recipient=recipient is not None,
        )
    return grant, not created
