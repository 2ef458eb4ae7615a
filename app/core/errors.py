from __future__ import annotations


class ServiceError(Exception):
    """Base of every error a service operation can report to its caller."""

    code = "E_SERVICE"
    default_message = "An error occurred"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFoundError(ServiceError):
    code = "E_NOT_FOUND"
    default_message = "Not found"


class UnauthorizedError(ServiceError):
    code = "E_UNAUTHORIZED"
    default_message = "Not authenticated"


class ValidationError(ServiceError):
    code = "E_VALIDATION"
    default_message = "Invalid input"


class RateLimitedError(ServiceError):
    code = "E_RATE_LIMITED"
    default_message = "Too many requests"

    def __init__(self, message: str | None = None, *, retry_after_seconds: int = 0) -> None:
        self.retry_after_seconds = max(0, retry_after_seconds)
        super().__init__(
            message
            or f"Too many requests. Please try again in {self.retry_after_seconds} seconds."
        )


class ConflictError(ServiceError):
    code = "E_CONFLICT"
    default_message = "Conflicting state"


class UpstreamUnavailableError(ServiceError):
    code = "E_UPSTREAM_UNAVAILABLE"
    default_message = "A backing service is unavailable"
