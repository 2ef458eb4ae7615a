from __future__ import annotations

import re
import secrets
import time

ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
_BASE36_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_CODE_NORMALIZE_PATTERN = re.compile(r"\s+")


def _to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_coupon_code(
    prefix: str = "CPN",
    *,
    random_length: int = 6,
    now_ms: int | None = None,
) -> str:
    """Generates `{prefix}-{base36 millis}-{random}`; uniqueness is enforced by the store."""
    if random_length <= 0:
        raise ValueError("random_length must be positive")
    prefix = normalize_coupon_code(prefix)
    if not prefix:
        raise ValueError("prefix must not be blank")
    timestamp_ms = now_ms if now_ms is not None else time.time_ns() // 1_000_000
    random_part = "".join(secrets.choice(ALPHABET) for _ in range(random_length))
    return f"{prefix}-{_to_base36(timestamp_ms)}-{random_part}"


def normalize_coupon_code(raw_code: str) -> str:
    return _CODE_NORMALIZE_PATTERN.sub("", raw_code).upper()
