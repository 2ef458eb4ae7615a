from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

import structlog
from sqlalchemy.exc import IntegrityError

from app.core.emails import normalize_email
from app.core.results import Result, capture
from app.db.integrity import is_violation_of
from app.db.models.staff import STAFF_EMAIL_CONSTRAINT, StaffMember
from app.db.repo.staff_repo import StaffRepo
from app.db.repo.tenants_repo import TenantsRepo
from app.db.tenant_scope import tenant_session
from app.tenancy.errors import StaffAlreadyExistsError, StaffInvalidError, TenantNotFoundError
from app.tenancy.types import ASSIGNABLE_STAFF_ROLES, StaffView

logger = structlog.get_logger(__name__)


def to_staff_view(member: StaffMember) -> StaffView:
    return StaffView(
        id=member.id,
        tenant_id=member.tenant_id,
        email=member.email,
        role=member.role,
        created_at=member.created_at,
        updated_at=member.updated_at,
    )


class StaffService:
    @staticmethod
    async def _list(tenant_id: UUID) -> list[StaffView]:
        async with tenant_session(tenant_id) as session:
            if await TenantsRepo.get_by_id(session, tenant_id) is None:
                raise TenantNotFoundError
            members = await StaffRepo.list_for_tenant(session, tenant_id=tenant_id)
            return [to_staff_view(member) for member in members]

    @staticmethod
    async def _add(
        tenant_id: UUID,
        *,
        email: str,
        role: str,
        now_utc: datetime,
    ) -> StaffView:
        try:
            normalized_email = normalize_email(email)
        except ValueError as exc:
            raise StaffInvalidError("Invalid email address") from exc
        if normalized_email is None:
            raise StaffInvalidError("Email is required")
        if role not in ASSIGNABLE_STAFF_ROLES:
            allowed = ", ".join(sorted(ASSIGNABLE_STAFF_ROLES))
            raise StaffInvalidError(f"Role must be one of: {allowed}")

        async with tenant_session(tenant_id) as session:
            if await TenantsRepo.get_by_id(session, tenant_id) is None:
                raise TenantNotFoundError
            existing = await StaffRepo.get_by_email(
                session, tenant_id=tenant_id, email=normalized_email
            )
            if existing is not None:
                raise StaffAlreadyExistsError
            try:
                async with session.begin_nested():
                    member = await StaffRepo.create(
                        session,
                        member=StaffMember(
                            id=uuid4(),
                            tenant_id=tenant_id,
                            email=normalized_email,
                            role=role,
                            created_at=now_utc,
                            updated_at=now_utc,
                        ),
                    )
            except IntegrityError as exc:
                if is_violation_of(exc, STAFF_EMAIL_CONSTRAINT):
                    raise StaffAlreadyExistsError from exc
                raise

        logger.info("staff_member_added", role=role)
        return to_staff_view(member)

    @staticmethod
    async def list_staff(tenant_id: UUID) -> Result[list[StaffView]]:
        """Staff of a tenant in the order they were added; works for deactivated tenants."""
        return await capture("list_staff", StaffService._list(tenant_id))

    @staticmethod
    async def add_staff(
        tenant_id: UUID,
        email: str,
        role: str,
        *,
        now_utc: datetime | None = None,
    ) -> Result[StaffView]:
        return await capture(
            "add_staff",
            StaffService._add(
                tenant_id,
                email=email,
                role=role,
                now_utc=now_utc or datetime.now(timezone.utc),
            ),
        )
