from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


class IdentifierKind(str, Enum):
    SLUG = "slug"
    SUBDOMAIN = "subdomain"


@dataclass(frozen=True, slots=True)
class TenantView:
    id: UUID
    slug: str
    subdomain: str | None
    name: str
    logo_url: str | None
    website_url: str | None
    theme: dict[str, object] | None
    active: bool
    created_at: datetime


@dataclass(frozen=True, slots=True)
class TenantSettingsUpdate:
    name: str | None = None
    logo_url: str | None = None
    website_url: str | None = None
    active: bool | None = None
    subdomain: str | None = None
    clear_subdomain: bool = False


class StaffRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    STAFF = "staff"


# Admin membership is provisioned by the platform, not through the tenant staff page.
ASSIGNABLE_STAFF_ROLES = frozenset({StaffRole.OWNER.value, StaffRole.STAFF.value})


@dataclass(frozen=True, slots=True)
class StaffView:
    id: UUID
    tenant_id: UUID
    email: str
    role: str
    created_at: datetime
    updated_at: datetime
