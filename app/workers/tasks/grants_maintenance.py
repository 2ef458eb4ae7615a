from __future__ import annotations

from datetime import datetime, timezone

import structlog
from sqlalchemy.exc import SQLAlchemyError

from app.db.repo.grants_repo import GrantsRepo
from app.db.repo.tenants_repo import TenantsRepo
from app.db.session import SessionLocal
from app.db.tenant_scope import tenant_session
from app.workers.asyncio_runner import run_async_job
from app.workers.celery_app import MAINTENANCE_QUEUE, celery_app

logger = structlog.get_logger(__name__)
GRANT_EXPIRY_SWEEP_INTERVAL_SECONDS = 600.0


async def run_grant_expiry_sweep_async(*, now_utc: datetime | None = None) -> dict[str, int]:
    """Marks issued grants past their expiry as expired, one tenant transaction at a time.

    Reads also expire grants lazily, so the sweep only keeps listings and
    exports accurate for grants nobody has looked at. A failing tenant is
    logged and skipped; the remaining tenants are still swept.
    """
    now_utc = now_utc or datetime.now(timezone.utc)
    async with SessionLocal() as session:
        tenant_ids = await TenantsRepo.list_ids(session)

    expired_grants = 0
    failed_tenants = 0
    for tenant_id in tenant_ids:
        try:
            async with tenant_session(tenant_id) as session:
                expired_grants += await GrantsRepo.expire_overdue(
                    session,
                    tenant_id=tenant_id,
                    now_utc=now_utc,
                )
        except SQLAlchemyError as exc:
            failed_tenants += 1
            logger.warning(
                "grant_expiry_sweep_tenant_failed",
                tenant_id=str(tenant_id),
                error_type=type(exc).__name__,
            )

    result = {
        "tenants": len(tenant_ids),
        "expired_grants": expired_grants,
        "failed_tenants": failed_tenants,
    }
    logger.info("grant_expiry_sweep_finished", **result)
    return result


@celery_app.task(name="app.workers.tasks.grants_maintenance.expire_stale_grants")
def expire_stale_grants() -> dict[str, int]:
    return run_async_job(run_grant_expiry_sweep_async, job_name="expire_stale_grants")


celery_app.conf.beat_schedule = celery_app.conf.beat_schedule or {}
celery_app.conf.beat_schedule.update(
    {
        "grants-expiry-sweep-every-10-minutes": {
            "task": "app.workers.tasks.grants_maintenance.expire_stale_grants",
            "schedule": GRANT_EXPIRY_SWEEP_INTERVAL_SECONDS,
            "options": {"queue": MAINTENANCE_QUEUE},
        },
    }
)
