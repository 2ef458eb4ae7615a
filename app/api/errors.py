from __future__ import annotations

from typing import NoReturn, TypeVar

from fastapi import HTTPException, status

from app.core.errors import (
    ConflictError,
    NotFoundError,
    RateLimitedError,
    ServiceError,
    UnauthorizedError,
    UpstreamUnavailableError,
    ValidationError,
)
from app.core.results import Result

T = TypeVar("T")

_STATUS_BY_ERROR: tuple[tuple[type[ServiceError], int], ...] = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (UnauthorizedError, status.HTTP_401_UNAUTHORIZED),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (RateLimitedError, status.HTTP_429_TOO_MANY_REQUESTS),
    (ConflictError, status.HTTP_409_CONFLICT),
    (UpstreamUnavailableError, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def status_for_error(error: ServiceError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def raise_for_error(error: ServiceError) -> NoReturn:
    headers: dict[str, str] | None = None
    if isinstance(error, RateLimitedError):
        headers = {"Retry-After": str(error.retry_after_seconds)}
    raise HTTPException(
        status_code=status_for_error(error),
        detail={"code": error.code, "message": error.message},
        headers=headers,
    )


def unwrap_or_raise(result: Result[T]) -> T:
    if result.error is not None:
        raise_for_error(result.error)
    return result.data  # type: ignore[return-value]
