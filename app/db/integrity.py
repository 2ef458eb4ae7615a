from __future__ import annotations

from sqlalchemy.exc import IntegrityError


def integrity_constraint_name(exc: IntegrityError) -> str | None:
    """Name of the violated constraint or index, as reported by the driver."""
    orig = exc.orig
    candidates = (
        orig,
        getattr(orig, "__cause__", None),
        getattr(orig, "diag", None),
    )
    for candidate in candidates:
        name = getattr(candidate, "constraint_name", None)
        if isinstance(name, str) and name:
            return name
    return None


def is_violation_of(exc: IntegrityError, constraint: str) -> bool:
    name = integrity_constraint_name(exc)
    if name is not None:
        return name == constraint
    return constraint in str(exc.orig)
