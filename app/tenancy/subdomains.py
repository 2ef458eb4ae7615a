from __future__ import annotations

import re

RESERVED_SUBDOMAINS = frozenset(
    {
        "www",
        "admin",
        "api",
        "app",
        "mail",
        "ftp",
        "localhost",
        "test",
        "dev",
        "staging",
        "prod",
        "www1",
        "www2",
    }
)
SUBDOMAIN_PATTERN = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")
_IPV4_PATTERN = re.compile(r"^\d+\.\d+\.\d+\.\d+$")
_LOCAL_NETWORK_PREFIXES = ("127.0.0.1", "192.168.", "10.")


def is_reserved_subdomain(subdomain: str) -> bool:
    return subdomain.lower() in RESERVED_SUBDOMAINS


def is_valid_subdomain(subdomain: str) -> bool:
    return SUBDOMAIN_PATTERN.match(subdomain) is not None and not is_reserved_subdomain(subdomain)


def _strip_port(host: str) -> str:
    host = host.strip().lower()
    if host.startswith("["):
        # IPv6 literal, never a tenant host
        return host
    return host.split(":", maxsplit=1)[0]


def extract_subdomain(host: str | None, *, root_domain: str | None = None) -> str | None:
    """Returns the tenant subdomain carried by a Host header, if any.

    ``acme.example.com`` yields ``acme``; ``acme.localhost:3000`` yields ``acme``
    for local development. Bare apex domains, plain ``localhost``, IP literals and
    reserved labels such as ``www`` or ``admin`` yield ``None``. When ``root_domain``
    is given, the label directly left of it is taken, so ``shop.acme.example.com``
    under ``example.com`` yields ``acme``.
    """
    if not host:
        return None
    hostname = _strip_port(host).rstrip(".")
    if not hostname or hostname.startswith("["):
        return None

    apex = (root_domain or "").strip().lower().rstrip(".")
    if apex and apex != "localhost" and hostname.endswith(f".{apex}"):
        candidate = hostname[: -len(apex) - 1].split(".")[-1]
        if not candidate or is_reserved_subdomain(candidate):
            return None
        return candidate

    if hostname != "localhost" and hostname.endswith(".localhost"):
        candidate = hostname.split(".")[0]
        if not candidate or is_reserved_subdomain(candidate):
            return None
        return candidate

    if (
        hostname == "localhost"
        or hostname.startswith(_LOCAL_NETWORK_PREFIXES)
        or _IPV4_PATTERN.match(hostname)
    ):
        return None

    labels = hostname.split(".")
    if len(labels) < 3:
        return None

    candidate = labels[0]
    if not candidate or is_reserved_subdomain(candidate):
        return None
    return candidate


def canonical_tenant_path(slug: str, path: str) -> str:
    """Maps a path requested on a tenant subdomain onto the slug-based route."""
    normalized = path if path.startswith("/") else f"/{path}"
    prefix = f"/{slug}"
    if normalized == "/":
        return prefix
    if normalized == prefix or normalized.startswith(f"{prefix}/"):
        return normalized
    return f"{prefix}{normalized}"
