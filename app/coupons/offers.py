from __future__ import annotations

import re
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from uuid import UUID, uuid4

import structlog

from app.core.results import Result, capture
from app.coupons.errors import OfferInvalidError, OfferNotFoundError
from app.coupons.types import OfferDraft, OfferPatch, OfferView
from app.db.models.offers import Offer
from app.db.repo.offers_repo import OffersRepo
from app.db.tenant_scope import tenant_session

OFFER_TITLE_MAX_LENGTH = 128
OFFER_DISCOUNT_MAX_LENGTH = 64
OFFER_URL_MAX_LENGTH = 512

_PERCENT_PATTERN = re.compile(r"(-?\d+(?:\.\d+)?)\s*%")
_AMOUNT_PATTERN = re.compile(r"\$\s*(-?\d+(?:\.\d+)?)")

logger = structlog.get_logger(__name__)


def to_offer_view(offer: Offer) -> OfferView:
    return OfferView(
        id=offer.id,
        tenant_id=offer.tenant_id,
        title=offer.title,
        description=offer.description,
        discount=offer.discount,
        image_url=offer.image_url,
        expires_at=offer.expires_at,
        active=offer.active,
        created_at=offer.created_at,
        updated_at=offer.updated_at,
    )


def _parse_number(raw: str) -> Decimal:
    try:
        return Decimal(raw)
    except InvalidOperation as exc:
        raise OfferInvalidError("Invalid discount value") from exc


def validate_discount(raw: str | None) -> str | None:
    """Accepts free-form discount text such as ``15% Off``, ``$5 Off`` or ``Free``.

    A percentage must lie within 1..100 and a currency amount must be positive.
    """
    if raw is None:
        return None
    discount = raw.strip()
    if not discount:
        return None
    if len(discount) > OFFER_DISCOUNT_MAX_LENGTH:
        raise OfferInvalidError("Invalid discount value")

    percent_match = _PERCENT_PATTERN.search(discount)
    if percent_match is not None:
        percent = _parse_number(percent_match.group(1))
        if percent < 1 or percent > 100:
            raise OfferInvalidError("Invalid discount value")
    elif "%" in discount:
        raise OfferInvalidError("Invalid discount value")

    amount_match = _AMOUNT_PATTERN.search(discount)
    if amount_match is not None:
        if _parse_number(amount_match.group(1)) <= 0:
            raise OfferInvalidError("Invalid discount value")
    elif "$" in discount:
        raise OfferInvalidError("Invalid discount value")

    return discount


def validate_title(raw: str) -> str:
    title = raw.strip()
    if not title or len(title) > OFFER_TITLE_MAX_LENGTH:
        raise OfferInvalidError(
            f"Title must be between 1 and {OFFER_TITLE_MAX_LENGTH} characters"
        )
    return title


def validate_expiry(expires_at: datetime | None) -> datetime | None:
    if expires_at is None:
        return None
    if expires_at.tzinfo is None or expires_at.utcoffset() is None:
        raise OfferInvalidError("Expiry must include a timezone")
    return expires_at.astimezone(timezone.utc)


def _clean_text(raw: str | None, *, max_length: int | None = None) -> str | None:
    if raw is None:
        return None
    cleaned = raw.strip()
    if not cleaned:
        return None
    if max_length is not None and len(cleaned) > max_length:
        raise OfferInvalidError("Value is too long")
    return cleaned


class OffersService:
    @staticmethod
    async def _create(tenant_id: UUID, draft: OfferDraft, now_utc: datetime) -> OfferView:
        offer = Offer(
            id=uuid4(),
            tenant_id=tenant_id,
            title=validate_title(draft.title),
            description=_clean_text(draft.description),
            discount=validate_discount(draft.discount),
            image_url=_clean_text(draft.image_url, max_length=OFFER_URL_MAX_LENGTH),
            expires_at=validate_expiry(draft.expires_at),
            active=draft.active,
            created_at=now_utc,
            updated_at=now_utc,
        )
        async with tenant_session(tenant_id) as session:
            created = await OffersRepo.create(session, offer=offer)
            logger.info("offer_created", offer_id=str(created.id))
            return to_offer_view(created)

    @staticmethod
    async def _update(
        tenant_id: UUID, offer_id: UUID, patch: OfferPatch, now_utc: datetime
    ) -> OfferView:
        async with tenant_session(tenant_id) as session:
            offer = await OffersRepo.get_by_id_for_update(
                session, tenant_id=tenant_id, offer_id=offer_id
            )
            if offer is None:
                raise OfferNotFoundError

            if patch.title is not None:
                offer.title = validate_title(patch.title)
            if patch.description is not None:
                offer.description = _clean_text(patch.description)
            if patch.discount is not None:
                offer.discount = validate_discount(patch.discount)
            if patch.image_url is not None:
                offer.image_url = _clean_text(patch.image_url, max_length=OFFER_URL_MAX_LENGTH)
            if patch.clear_expires_at:
                offer.expires_at = None
            elif patch.expires_at is not None:
                offer.expires_at = validate_expiry(patch.expires_at)
            if patch.active is not None:
                offer.active = patch.active
            offer.updated_at = now_utc

            await session.flush()
            logger.info("offer_updated", offer_id=str(offer.id), active=offer.active)
            return to_offer_view(offer)

    @staticmethod
    async def _delete(tenant_id: UUID, offer_id: UUID) -> bool:
        async with tenant_session(tenant_id) as session:
            deleted = await OffersRepo.delete(session, tenant_id=tenant_id, offer_id=offer_id)
        if deleted == 0:
            raise OfferNotFoundError
        logger.info("offer_deleted", offer_id=str(offer_id))
        return True

    @staticmethod
    async def _get(tenant_id: UUID, offer_id: UUID) -> OfferView:
        async with tenant_session(tenant_id) as session:
            offer = await OffersRepo.get_by_id(session, tenant_id=tenant_id, offer_id=offer_id)
            if offer is None:
                raise OfferNotFoundError
            return to_offer_view(offer)

    @staticmethod
    async def _list(tenant_id: UUID, available_at: datetime | None) -> list[OfferView]:
        async with tenant_session(tenant_id) as session:
            offers = await OffersRepo.list_for_tenant(
                session, tenant_id=tenant_id, available_at=available_at
            )
            return [to_offer_view(offer) for offer in offers]

    @staticmethod
    async def create_offer(
        tenant_id: UUID,
        draft: OfferDraft,
        *,
        now_utc: datetime | None = None,
    ) -> Result[OfferView]:
        now = now_utc or datetime.now(timezone.utc)
        return await capture("create_offer", OffersService._create(tenant_id, draft, now))

    @staticmethod
    async def update_offer(
        tenant_id: UUID,
        offer_id: UUID,
        patch: OfferPatch,
        *,
        now_utc: datetime | None = None,
    ) -> Result[OfferView]:
        now = now_utc or datetime.now(timezone.utc)
        return await capture(
            "update_offer", OffersService._update(tenant_id, offer_id, patch, now)
        )

    @staticmethod
    async def delete_offer(tenant_id: UUID, offer_id: UUID) -> Result[bool]:
        return await capture("delete_offer", OffersService._delete(tenant_id, offer_id))

    @staticmethod
    async def get_offer(tenant_id: UUID, offer_id: UUID) -> Result[OfferView]:
        return await capture("get_offer", OffersService._get(tenant_id, offer_id))

    @staticmethod
    async def list_offers(
        tenant_id: UUID,
        *,
        active_only: bool = False,
        now_utc: datetime | None = None,
    ) -> Result[list[OfferView]]:
        available_at = (now_utc or datetime.now(timezone.utc)) if active_only else None
        return await capture("list_offers", OffersService._list(tenant_id, available_at))
