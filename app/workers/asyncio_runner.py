from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from app.core.logging import bound_log_context
from app.db.session import dispose_engine

T = TypeVar("T")


async def _run_with_fresh_db_pool(job: Callable[[], Awaitable[T]], job_name: str) -> T:
    # asyncpg connections are bound to the loop that opened them.
    await dispose_engine()
    try:
        with bound_log_context(job=job_name):
            return await job()
    finally:
        await dispose_engine()


def run_async_job(job: Callable[[], Awaitable[T]], *, job_name: str) -> T:
    """Runs an async maintenance job from a sync Celery task on a fresh event loop."""
    return asyncio.run(_run_with_fresh_db_pool(job, job_name))
