from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from uuid import UUID


class GrantStatus(str, Enum):
    ISSUED = "issued"
    REDEEMED = "redeemed"
    REVOKED = "revoked"
    EXPIRED = "expired"


TERMINAL_GRANT_STATUSES = frozenset(
    {GrantStatus.REDEEMED.value, GrantStatus.REVOKED.value, GrantStatus.EXPIRED.value}
)
REUSABLE_GRANT_STATUSES = frozenset({GrantStatus.ISSUED.value, GrantStatus.REDEEMED.value})


@dataclass(frozen=True, slots=True)
class OfferView:
    id: UUID
    tenant_id: UUID
    title: str
    description: str | None
    discount: str | None
    image_url: str | None
    expires_at: datetime | None
    active: bool
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class OfferDraft:
    title: str
    description: str | None = None
    discount: str | None = None
    image_url: str | None = None
    expires_at: datetime | None = None
    active: bool = True


@dataclass(frozen=True, slots=True)
class OfferPatch:
    title: str | None = None
    description: str | None = None
    discount: str | None = None
    image_url: str | None = None
    expires_at: datetime | None = None
    clear_expires_at: bool = False
    active: bool | None = None


@dataclass(frozen=True, slots=True)
class GrantView:
    id: UUID
    tenant_id: UUID
    offer_id: UUID
    code: str
    status: str
    max_redemptions: int
    redemptions_count: int
    recipient: str | None
    expires_at: datetime | None
    issued_at: datetime
    redeemed_at: datetime | None
    revoked_at: datetime | None
    metadata: dict[str, object] = field(default_factory=dict)
    offer_title: str | None = None


@dataclass(slots=True)
class IssueOutcome:
    grant: GrantView
    idempotent_replay: bool


@dataclass(slots=True)
class RedeemOutcome:
    grant: GrantView
    remaining_redemptions: int


@dataclass(frozen=True, slots=True)
class GrantPage:
    items: list[GrantView]
    page: int
    per_page: int
    total_count: int
    total_pages: int


@dataclass(frozen=True, slots=True)
class GrantPatch:
    status: str | None = None
    redemptions_count: int | None = None
    metadata: dict[str, object] | None = None
