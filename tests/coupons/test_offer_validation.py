from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.coupons.errors import OfferInvalidError
from app.coupons.offers import validate_discount, validate_expiry, validate_title


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("15% Off", "15% Off"),
        ("  100%  ", "100%"),
        ("$5 Off", "$5 Off"),
        ("$ 2.50 discount", "$ 2.50 discount"),
        ("Free shipping", "Free shipping"),
        ("   ", None),
        (None, None),
    ],
)
def test_validate_discount_accepts_valid_values(raw: str | None, expected: str | None) -> None:
    assert validate_discount(raw) == expected


@pytest.mark.parametrize(
    "raw",
    ["0% Off", "150%", "-5%", "$0", "$-3", "% off", "$ off", "x" * 65],
)
def test_validate_discount_rejects_invalid_values(raw: str) -> None:
    with pytest.raises(OfferInvalidError, match="Invalid discount value"):
        validate_discount(raw)


def test_validate_title_trims_and_bounds_length() -> None:
    assert validate_title("  Spring sale ") == "Spring sale"
    with pytest.raises(OfferInvalidError):
        validate_title("   ")
    with pytest.raises(OfferInvalidError):
        validate_title("t" * 129)


def test_validate_expiry_requires_timezone_and_normalizes_to_utc() -> None:
    berlin = timezone(timedelta(hours=1))
    assert validate_expiry(datetime(2026, 3, 1, 13, 0, tzinfo=berlin)) == datetime(
        2026, 3, 1, 12, 0, tzinfo=timezone.utc
    )
    assert validate_expiry(None) is None
    with pytest.raises(OfferInvalidError):
        validate_expiry(datetime(2026, 3, 1, 12, 0))
