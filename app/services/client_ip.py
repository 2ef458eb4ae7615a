from __future__ import annotations

import ipaddress
from functools import lru_cache

from fastapi import Request


@lru_cache(maxsize=32)
def _parse_networks(
    networks_csv: str,
) -> tuple[ipaddress.IPv4Network | ipaddress.IPv6Network, ...]:
    networks: list[ipaddress.IPv4Network | ipaddress.IPv6Network] = []
    for raw_entry in networks_csv.split(","):
        entry = raw_entry.strip()
        if not entry:
            continue

        try:
            if "/" in entry:
                networks.append(ipaddress.ip_network(entry, strict=False))
            else:
                host = ipaddress.ip_address(entry)
                suffix = 32 if host.version == 4 else 128
                networks.append(ipaddress.ip_network(f"{entry}/{suffix}", strict=False))
        except ValueError:
            continue

    return tuple(networks)


def _parse_ip(value: str | None) -> str | None:
    if value is None:
        return None
    candidate = value.strip()
    if not candidate:
        return None
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        return None


def is_ip_in_networks(*, ip: str | None, networks_csv: str) -> bool:
    if ip is None:
        return False

    try:
        parsed_ip = ipaddress.ip_address(ip)
    except ValueError:
        return False

    networks = _parse_networks(networks_csv)
    if not networks:
        return False

    return any(parsed_ip in network for network in networks)


def extract_client_ip(
    request: Request,
    *,
    trusted_proxies: str = "",
) -> str | None:
    """Peer address, or the forwarded client address when the peer is a trusted proxy.

    Only the first ``X-Forwarded-For`` hop is honoured; ``X-Real-IP`` is consulted
    when no forwarded chain is present.
    """
    peer_ip = _parse_ip(request.client.host if request.client is not None else None)
    if not is_ip_in_networks(ip=peer_ip, networks_csv=trusted_proxies):
        return peer_ip

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return _parse_ip(forwarded_for.split(",", maxsplit=1)[0])

    real_ip = _parse_ip(request.headers.get("X-Real-IP"))
    if real_ip is not None:
        return real_ip

    return peer_ip


def client_identifier(
    request: Request | None,
    *,
    email: str | None = None,
    trusted_proxies: str = "",
) -> str:
    """Rate-limit identity: the email when known, else the client address."""
    if email:
        normalized = email.strip().lower()
        if normalized:
            return f"email:{normalized}"

    if request is not None:
        client_ip = extract_client_ip(request, trusted_proxies=trusted_proxies)
        if client_ip is not None:
            return f"ip:{client_ip}"

    return "unknown"
