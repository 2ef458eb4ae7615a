from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from app.core.config import get_settings
from app.core.emails import normalize_email
from app.core.rate_limits import COUPON_CHECK, COUPON_ISSUE
from app.core.results import Result, capture
from app.coupons.admin import DEFAULT_PER_PAGE, list_grants_page, update_grant_in_session
from app.coupons.errors import GrantExpiredError, RecipientInvalidError
from app.coupons.grant_state import ensure_redeemable, summarize_status, to_grant_view
from app.coupons.issuance import issue_grant_in_session
from app.coupons.offers import to_offer_view
from app.coupons.redemption import lock_grant_by_code, redeem_locked_grant
from app.coupons.types import (
    GrantPage,
    GrantPatch,
    GrantStatus,
    GrantView,
    IssueOutcome,
    OfferView,
    RedeemOutcome,
)
from app.db.repo.grants_repo import GrantsRepo
from app.db.repo.offers_repo import OffersRepo
from app.db.tenant_scope import tenant_session
from app.services.rate_limit import get_rate_limiter
from app.tenancy.resolver import require_active_tenant_id


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_recipient(raw: str | None) -> str | None:
    try:
        return normalize_email(raw)
    except ValueError as exc:
        raise RecipientInvalidError from exc


class CouponService:
    @staticmethod
    async def _issue(
        *,
        tenant_slug: str,
        offer_id: UUID,
        recipient: str | None,
        client_id: str,
        expires_at: datetime | None,
        max_redemptions: int,
        metadata: dict[str, object] | None,
        now_utc: datetime,
    ) -> IssueOutcome:
        tenant_id = await require_active_tenant_id(tenant_slug)
        normalized_recipient = normalize_recipient(recipient)
        limiter = get_rate_limiter()

        async with tenant_session(tenant_id) as session:
            grant, idempotent_replay = await issue_grant_in_session(
                session,
                tenant_id=tenant_id,
                offer_id=offer_id,
                recipient=normalized_recipient,
                rate_limit_identifier=client_id,
                limiter=limiter,
                expires_at=expires_at,
                max_redemptions=max_redemptions,
                metadata=metadata or {},
                code_prefix=get_settings().grant_code_prefix,
                now_utc=now_utc,
            )
            view = to_grant_view(grant)

        if not idempotent_replay:
            await limiter.hit(client_id, COUPON_ISSUE, now_utc=now_utc)
        return IssueOutcome(grant=view, idempotent_replay=idempotent_replay)

    @staticmethod
    async def _validate(*, tenant_id: UUID, code: str, now_utc: datetime) -> GrantView:
        async with tenant_session(tenant_id) as session:
            grant, expired_now = await lock_grant_by_code(
                session, tenant_id=tenant_id, raw_code=code, now_utc=now_utc
            )
            if not expired_now:
                ensure_redeemable(grant)
            view = to_grant_view(grant)
        if expired_now:
            raise GrantExpiredError
        return view

    @staticmethod
    async def _redeem(*, tenant_id: UUID, code: str, now_utc: datetime) -> RedeemOutcome:
        async with tenant_session(tenant_id) as session:
            grant, expired_now = await lock_grant_by_code(
                session, tenant_id=tenant_id, raw_code=code, now_utc=now_utc
            )
            if not expired_now:
                grant = await redeem_locked_grant(session, grant=grant, now_utc=now_utc)
            view = to_grant_view(grant)
        if expired_now:
            raise GrantExpiredError
        return RedeemOutcome(
            grant=view,
            remaining_redemptions=max(0, view.max_redemptions - view.redemptions_count),
        )

    @staticmethod
    async def _find_existing(
        *, tenant_slug: str, offer_id: UUID, recipient: str, client_id: str
    ) -> GrantView | None:
        await get_rate_limiter().enforce(client_id, COUPON_CHECK)
        tenant_id = await require_active_tenant_id(tenant_slug)
        normalized_recipient = normalize_recipient(recipient)
        if normalized_recipient is None:
            return None
        async with tenant_session(tenant_id) as session:
            grant = await GrantsRepo.get_latest_for_recipient(
                session,
                tenant_id=tenant_id,
                offer_id=offer_id,
                recipient=normalized_recipient,
            )
            return to_grant_view(grant) if grant is not None else None

    @staticmethod
    async def _status_for_recipient(
        *, tenant_slug: str, offer_id: UUID, recipient: str
    ) -> str | None:
        tenant_id = await require_active_tenant_id(tenant_slug)
        normalized_recipient = normalize_recipient(recipient)
        if normalized_recipient is None:
            return None
        async with tenant_session(tenant_id) as session:
            grant = await GrantsRepo.get_latest_for_recipient(
                session,
                tenant_id=tenant_id,
                offer_id=offer_id,
                recipient=normalized_recipient,
            )
            return summarize_status(grant)

    @staticmethod
    async def _has_completed_survey(*, tenant_slug: str, email: str) -> bool:
        tenant_id = await require_active_tenant_id(tenant_slug)
        normalized_email = normalize_recipient(email)
        if normalized_email is None:
            return False
        async with tenant_session(tenant_id) as session:
            return await GrantsRepo.exists_for_recipient(
                session, tenant_id=tenant_id, recipient=normalized_email
            )

    @staticmethod
    async def _list_available_offers(*, tenant_slug: str, now_utc: datetime) -> list[OfferView]:
        tenant_id = await require_active_tenant_id(tenant_slug)
        async with tenant_session(tenant_id) as session:
            offers = await OffersRepo.list_for_tenant(
                session, tenant_id=tenant_id, available_at=now_utc
            )
            return [to_offer_view(offer) for offer in offers]

    @staticmethod
    async def _list_grants(*, tenant_id: UUID, page: int, per_page: int) -> GrantPage:
        async with tenant_session(tenant_id) as session:
            return await list_grants_page(
                session, tenant_id=tenant_id, page=page, per_page=per_page
            )

    @staticmethod
    async def _update_grant(
        *, tenant_id: UUID, grant_id: UUID, patch: GrantPatch, now_utc: datetime
    ) -> GrantView:
        async with tenant_session(tenant_id) as session:
            return await update_grant_in_session(
                session,
                tenant_id=tenant_id,
                grant_id=grant_id,
                patch=patch,
                now_utc=now_utc,
            )

    @staticmethod
    async def issue_grant(
        tenant_slug: str,
        offer_id: UUID,
        recipient: str | None,
        *,
        client_id: str,
        expires_at: datetime | None = None,
        max_redemptions: int = 1,
        metadata: dict[str, object] | None = None,
        now_utc: datetime | None = None,
    ) -> Result[IssueOutcome]:
        """Issues a coupon code, or hands back the recipient's still-valid one."""
        return await capture(
            "issue_grant",
            CouponService._issue(
                tenant_slug=tenant_slug,
                offer_id=offer_id,
                recipient=recipient,
                client_id=client_id,
                expires_at=expires_at,
                max_redemptions=max_redemptions,
                metadata=metadata,
                now_utc=now_utc or _utc_now(),
            ),
        )

    @staticmethod
    async def validate_grant(
        tenant_id: UUID,
        code: str,
        *,
        now_utc: datetime | None = None,
    ) -> Result[GrantView]:
        return await capture(
            "validate_grant",
            CouponService._validate(tenant_id=tenant_id, code=code, now_utc=now_utc or _utc_now()),
        )

    @staticmethod
    async def redeem_grant(
        tenant_id: UUID,
        code: str,
        *,
        now_utc: datetime | None = None,
    ) -> Result[RedeemOutcome]:
        return await capture(
            "redeem_grant",
            CouponService._redeem(tenant_id=tenant_id, code=code, now_utc=now_utc or _utc_now()),
        )

    @staticmethod
    async def find_existing_grant(
        tenant_slug: str,
        offer_id: UUID,
        recipient: str,
        *,
        client_id: str,
    ) -> Result[GrantView | None]:
        """Newest grant of the recipient regardless of status, for display."""
        return await capture(
            "find_existing_grant",
            CouponService._find_existing(
                tenant_slug=tenant_slug,
                offer_id=offer_id,
                recipient=recipient,
                client_id=client_id,
            ),
        )

    @staticmethod
    async def grant_status_for_recipient(
        tenant_slug: str,
        offer_id: UUID,
        recipient: str,
    ) -> Result[str | None]:
        return await capture(
            "grant_status_for_recipient",
            CouponService._status_for_recipient(
                tenant_slug=tenant_slug, offer_id=offer_id, recipient=recipient
            ),
        )

    @staticmethod
    async def has_completed_survey(tenant_slug: str, email: str) -> Result[bool]:
        return await capture(
            "has_completed_survey",
            CouponService._has_completed_survey(tenant_slug=tenant_slug, email=email),
        )

    @staticmethod
    async def list_available_offers(
        tenant_slug: str,
        *,
        now_utc: datetime | None = None,
    ) -> Result[list[OfferView]]:
        return await capture(
            "list_available_offers",
            CouponService._list_available_offers(
                tenant_slug=tenant_slug, now_utc=now_utc or _utc_now()
            ),
        )

    @staticmethod
    async def list_grants(
        tenant_id: UUID,
        *,
        page: int = 1,
        per_page: int = DEFAULT_PER_PAGE,
    ) -> Result[GrantPage]:
        return await capture(
            "list_grants",
            CouponService._list_grants(tenant_id=tenant_id, page=page, per_page=per_page),
        )

    @staticmethod
    async def update_grant(
        tenant_id: UUID,
        grant_id: UUID,
        patch: GrantPatch,
        *,
        now_utc: datetime | None = None,
    ) -> Result[GrantView]:
        return await capture(
            "update_grant",
            CouponService._update_grant(
                tenant_id=tenant_id,
                grant_id=grant_id,
                patch=patch,
                now_utc=now_utc or _utc_now(),
            ),
        )

    @staticmethod
    async def revoke_grant(
        tenant_id: UUID,
        grant_id: UUID,
        *,
        now_utc: datetime | None = None,
    ) -> Result[GrantView]:
        return await CouponService.update_grant(
            tenant_id,
            grant_id,
            GrantPatch(status=GrantStatus.REVOKED.value),
            now_utc=now_utc,
        )


