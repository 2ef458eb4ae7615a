from __future__ import annotations

import re

EMAIL_MAX_LENGTH = 320
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(raw: str | None) -> str | None:
    """Trims and lowercases an email; blank input yields None.

    Raises ValueError when a non-blank value is not shaped like an address.
    """
    if raw is None:
        return None
    candidate = raw.strip().lower()
    if not candidate:
        return None
    if len(candidate) > EMAIL_MAX_LENGTH or _EMAIL_PATTERN.match(candidate) is None:
        raise ValueError(f"invalid email: {raw!r}")
    return candidate
