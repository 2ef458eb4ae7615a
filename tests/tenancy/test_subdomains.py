from __future__ import annotations

import pytest

from app.tenancy.subdomains import canonical_tenant_path, extract_subdomain, is_valid_subdomain


@pytest.mark.parametrize(
    ("host", "expected"),
    [
        ("acme.example.com", "acme"),
        ("ACME.Example.com:443", "acme"),
        ("acme.localhost:3000", "acme"),
        ("www.example.com", None),
        ("admin.example.com", None),
        ("example.com", None),
        ("localhost:3000", None),
        ("127.0.0.1:8000", None),
        ("192.168.1.20", None),
        ("[::1]:8000", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_subdomain(host: str | None, expected: str | None) -> None:
    assert extract_subdomain(host) == expected


def test_extract_subdomain_uses_root_domain_label() -> None:
    assert extract_subdomain("shop.acme.coupons.io", root_domain="coupons.io") == "acme"
    assert extract_subdomain("www.coupons.io", root_domain="coupons.io") is None
    assert extract_subdomain("coupons.io", root_domain="coupons.io") is None


def test_is_valid_subdomain() -> None:
    assert is_valid_subdomain("acme-shop") is True
    assert is_valid_subdomain("-acme") is False
    assert is_valid_subdomain("acme-") is False
    assert is_valid_subdomain("www") is False


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/", "/acme"),
        ("/coupons", "/acme/coupons"),
        ("/acme/coupons", "/acme/coupons"),
        ("/acme", "/acme"),
        ("/acmeplus", "/acme/acmeplus"),
        ("survey", "/acme/survey"),
    ],
)
def test_canonical_tenant_path(path: str, expected: str) -> None:
    assert canonical_tenant_path("acme", path) == expected
