from __future__ import annotations

from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from app.core.errors import ConflictError, ServiceError, UpstreamUnavailableError
from app.db.integrity import integrity_constraint_name

T = TypeVar("T")

logger = structlog.get_logger(__name__)


@dataclass(slots=True)
class Result(Generic[T]):
    """Outcome of a public service operation: exactly one of data/error is meaningful."""

    data: T | None = None
    error: ServiceError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T) -> Result[T]:
        return cls(data=data, error=None)

    @classmethod
    def fail(cls, error: ServiceError) -> Result[T]:
        return cls(data=None, error=error)

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.data  # type: ignore[return-value]


async def capture(operation: str, awaitable: Awaitable[T]) -> Result[T]:
    """Runs a service coroutine and folds raised service errors into a Result."""
    try:
        return Result.success(await awaitable)
    except ServiceError as exc:
        logger.info("service_operation_failed", operation=operation, code=exc.code)
        return Result.fail(exc)
    except IntegrityError as exc:
        logger.warning(
            "service_operation_integrity_conflict",
            operation=operation,
            constraint=integrity_constraint_name(exc),
        )
        return Result.fail(ConflictError())
    except (OperationalError, DBAPIError) as exc:
        logger.warning(
            "service_operation_store_unavailable",
            operation=operation,
            error_type=type(exc).__name__,
        )
        return Result.fail(UpstreamUnavailableError())
