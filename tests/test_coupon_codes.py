from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.core.config import Settings
from app.core.coupon_codes import ALPHABET, generate_coupon_code, normalize_coupon_code


def test_generate_coupon_code_format_and_charset() -> None:
    code = generate_coupon_code("CPN", now_ms=36**3)

    prefix, timestamp, random_part = code.split("-")
    assert prefix == "CPN"
    assert timestamp == "1000"
    assert len(random_part) == 6
    assert set(random_part).issubset(set(ALPHABET))


def test_generate_coupon_code_uses_custom_prefix() -> None:
    assert generate_coupon_code("ACME", now_ms=0).startswith("ACME-0-")


def test_generate_coupon_code_rejects_non_positive_length() -> None:
    with pytest.raises(ValueError):
        generate_coupon_code(random_length=0)


def test_normalize_coupon_code_strips_whitespace_and_uppercases() -> None:
    assert normalize_coupon_code("  cpn-ab12 -xyz ") == "CPN-AB12-XYZ"


def test_lowercase_prefix_yields_a_redeemable_code() -> None:
    code = generate_coupon_code(" acme ", now_ms=0)

    assert code.startswith("ACME-0-")
    assert normalize_coupon_code(code) == code


def test_generate_coupon_code_rejects_blank_prefix() -> None:
    with pytest.raises(ValueError):
        generate_coupon_code("  ")


def test_settings_upper_cases_grant_code_prefix() -> None:
    assert Settings(GRANT_CODE_PREFIX=" shop ").grant_code_prefix == "SHOP"


@pytest.mark.parametrize("prefix", ["", "cpn-x", "TOOLONGPREFIX1"])
def test_settings_rejects_unusable_grant_code_prefix(prefix: str) -> None:
    with pytest.raises(ValidationError):
        Settings(GRANT_CODE_PREFIX=prefix)
