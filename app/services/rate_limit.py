from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from functools import lru_cache

import structlog
from redis.asyncio import Redis
from redis.exceptions import RedisError

from app.core.config import get_settings
from app.core.errors import RateLimitedError
from app.core.rate_limits import RateLimitPolicy

logger = structlog.get_logger(__name__)

RATE_LIMIT_KEY_PREFIX = "rl"


class RateLimitDecision(str, Enum):
    ALLOWED = "allowed"
    DENIED = "denied"
    # Counter store unconfigured or unreachable.
    INDETERMINATE = "indeterminate"


@dataclass(frozen=True, slots=True)
class RateLimitResult:
    decision: RateLimitDecision
    limit: int
    remaining: int
    reset_at: datetime
    retry_after_seconds: int = 0

    @property
    def allowed(self) -> bool:
        return self.decision is not RateLimitDecision.DENIED


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_rate_limit_key(policy: RateLimitPolicy, identifier: str) -> str:
    return f"{RATE_LIMIT_KEY_PREFIX}:{policy.name}:{identifier}"


class RateLimiter:
    """Fixed-window counters in Redis, one key per (policy, identifier).

    ``check`` increments and decides, ``peek`` only reads, ``hit`` only
    increments. The two-phase ``peek`` then ``hit`` pair lets a caller spend
    quota only once the guarded operation has succeeded.
    """

    def __init__(self, redis: Redis | None) -> None:
        self._redis = redis

    @property
    def configured(self) -> bool:
        return self._redis is not None

    def _indeterminate(self, policy: RateLimitPolicy, *, now_utc: datetime) -> RateLimitResult:
        return RateLimitResult(
            decision=RateLimitDecision.INDETERMINATE,
            limit=policy.max_requests,
            remaining=policy.max_requests,
            reset_at=now_utc + timedelta(milliseconds=policy.window_ms),
        )

    def _decide(
        self,
        policy: RateLimitPolicy,
        *,
        count: int,
        ttl_ms: int,
        denied: bool,
        now_utc: datetime,
    ) -> RateLimitResult:
        if ttl_ms < 0:
            ttl_ms = policy.window_ms
        return RateLimitResult(
            decision=RateLimitDecision.DENIED if denied else RateLimitDecision.ALLOWED,
            limit=policy.max_requests,
            remaining=max(0, policy.max_requests - count),
            reset_at=now_utc + timedelta(milliseconds=ttl_ms),
            retry_after_seconds=math.ceil(ttl_ms / 1000) if denied else 0,
        )

    async def _increment(self, key: str, policy: RateLimitPolicy) -> tuple[int, int]:
        assert self._redis is not None
        count = int(await self._redis.incr(key))
        if count == 1:
            await self._redis.pexpire(key, policy.window_ms)
            return count, policy.window_ms

        ttl_ms = int(await self._redis.pttl(key))
        if ttl_ms < 0:
            # A previous PEXPIRE never landed; the window restarts now.
            await self._redis.pexpire(key, policy.window_ms)
            ttl_ms = policy.window_ms
        return count, ttl_ms

    def _log_store_unavailable(
        self, exc: RedisError, *, policy: RateLimitPolicy, operation: str
    ) -> None:
        logger.warning(
            "rate_limit_store_unavailable",
            policy=policy.name,
            operation=operation,
            error_type=type(exc).__name__,
        )

    async def check(
        self,
        identifier: str,
        policy: RateLimitPolicy,
        *,
        now_utc: datetime | None = None,
    ) -> RateLimitResult:
        now = now_utc or _utc_now()
        if self._redis is None:
            return self._indeterminate(policy, now_utc=now)

        key = build_rate_limit_key(policy, identifier)
        try:
            count, ttl_ms = await self._increment(key, policy)
        except RedisError as exc:
            self._log_store_unavailable(exc, policy=policy, operation="check")
            return self._indeterminate(policy, now_utc=now)

        result = self._decide(
            policy,
            count=count,
            ttl_ms=ttl_ms,
            denied=count > policy.max_requests,
            now_utc=now,
        )
        if not result.allowed:
            logger.info(
                "rate_limit_denied",
                policy=policy.name,
                identifier=identifier,
                retry_after_seconds=result.retry_after_seconds,
            )
        return result

    async def peek(
        self,
        identifier: str,
        policy: RateLimitPolicy,
        *,
        now_utc: datetime | None = None,
    ) -> RateLimitResult:
        now = now_utc or _utc_now()
        if self._redis is None:
            return self._indeterminate(policy, now_utc=now)

        key = build_rate_limit_key(policy, identifier)
        try:
            raw_count = await self._redis.get(key)
            ttl_ms = int(await self._redis.pttl(key)) if raw_count is not None else -1
        except RedisError as exc:
            self._log_store_unavailable(exc, policy=policy, operation="peek")
            return self._indeterminate(policy, now_utc=now)

        count = int(raw_count) if raw_count is not None else 0
        return self._decide(
            policy,
            count=count,
            ttl_ms=ttl_ms,
            denied=count >= policy.max_requests,
            now_utc=now,
        )

    async def hit(
        self,
        identifier: str,
        policy: RateLimitPolicy,
        *,
        now_utc: datetime | None = None,
    ) -> RateLimitResult:
        """Spends one unit of quota without gating anything."""
        now = now_utc or _utc_now()
        if self._redis is None:
            return self._indeterminate(policy, now_utc=now)

        key = build_rate_limit_key(policy, identifier)
        try:
            count, ttl_ms = await self._increment(key, policy)
        except RedisError as exc:
            self._log_store_unavailable(exc, policy=policy, operation="hit")
            return self._indeterminate(policy, now_utc=now)

        return self._decide(
            policy,
            count=count,
            ttl_ms=ttl_ms,
            denied=False,
            now_utc=now,
        )

    async def enforce(self, identifier: str, policy: RateLimitPolicy) -> RateLimitResult:
        result = await self.check(identifier, policy)
        if not result.allowed:
            raise RateLimitedError(retry_after_seconds=result.retry_after_seconds)
        return result


@lru_cache(maxsize=1)
def get_rate_limiter() -> RateLimiter:
    redis_url = get_settings().redis_url
    if not redis_url:
        logger.warning("rate_limit_store_not_configured")
        return RateLimiter(None)
    return RateLimiter(Redis.from_url(redis_url))
