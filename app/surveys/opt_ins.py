from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.emails import normalize_email
from app.core.rate_limits import EMAIL_SUBMIT, RateLimitPolicy
from app.core.results import Result, capture
from app.db.integrity import is_violation_of
from app.db.models.opt_ins import OPT_IN_EMAIL_CONSTRAINT, OptIn
from app.db.repo.opt_ins_repo import OptInsRepo
from app.db.tenant_scope import tenant_session
from app.services.rate_limit import get_rate_limiter
from app.surveys.errors import EmailInvalidError
from app.surveys.types import OptInOutcome
from app.tenancy.resolver import require_active_tenant_id

logger = structlog.get_logger(__name__)


def require_email(raw: str | None) -> str:
    try:
        email = normalize_email(raw)
    except ValueError as exc:
        raise EmailInvalidError from exc
    if email is None:
        raise EmailInvalidError
    return email


async def record_opt_in(
    session: AsyncSession,
    *,
    tenant_id: UUID,
    email: str,
    now_utc: datetime,
) -> bool:
    """Stores consent for an email; returns False when it was already on file."""
    existing = await OptInsRepo.get(session, tenant_id=tenant_id, email=email)
    if existing is not None:
        return False

    try:
        async with session.begin_nested():
            await OptInsRepo.create(
                session,
                opt_in=OptIn(tenant_id=tenant_id, email=email, consent_at=now_utc),
            )
    except IntegrityError as exc:
        if is_violation_of(exc, OPT_IN_EMAIL_CONSTRAINT):
            return False
        raise
    return True


class OptInService:
    @staticmethod
    async def _submit(
        *,
        tenant_slug: str,
        email: str,
        client_id: str,
        policy: RateLimitPolicy,
        now_utc: datetime,
    ) -> OptInOutcome:
        normalized_email = require_email(email)
        await get_rate_limiter().enforce(client_id, policy)
        tenant_id = await require_active_tenant_id(tenant_slug)

        async with tenant_session(tenant_id) as session:
            created = await record_opt_in(
                session, tenant_id=tenant_id, email=normalized_email, now_utc=now_utc
            )

        logger.info("opt_in_recorded", created=created, policy=policy.name)
        return OptInOutcome(email=normalized_email, already_registered=not created)

    @staticmethod
    async def _verify(*, tenant_slug: str, email: str) -> bool:
        tenant_id = await require_active_tenant_id(tenant_slug)
        try:
            normalized_email = normalize_email(email)
        except ValueError:
            return False
        if normalized_email is None:
            return False
        async with tenant_session(tenant_id) as session:
            opt_in = await OptInsRepo.get(session, tenant_id=tenant_id, email=normalized_email)
            return opt_in is not None

    @staticmethod
    async def submit_opt_in(
        tenant_slug: str,
        email: str,
        *,
        client_id: str,
        policy: RateLimitPolicy = EMAIL_SUBMIT,
        now_utc: datetime | None = None,
    ) -> Result[OptInOutcome]:
        """Records email consent; a repeat submission succeeds as already registered."""
        return await capture(
            "submit_opt_in",
            OptInService._submit(
                tenant_slug=tenant_slug,
                email=email,
                client_id=client_id,
                policy=policy,
                now_utc=now_utc or datetime.now(timezone.utc),
            ),
        )

    @staticmethod
    async def verify_opt_in(tenant_slug: str, email: str) -> Result[bool]:
        return await capture(
            "verify_opt_in", OptInService._verify(tenant_slug=tenant_slug, email=email)
        )
