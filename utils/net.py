"""
Client address resolution: X-Forwarded-For (first hop), then X-Real-IP,
then the socket address. Only strict IP literals are accepted.
"""
from __future__ import annotations

import ipaddress


def _parse_ip(value: str | None) -> str | None:
    if not value:
        return None
    try:
        ip = ipaddress.ip_address(value.strip())
    except ValueError:
        return None
    # zoned IPv6 literals (fe80::1%eth0) are not plain addresses
    if getattr(ip, "scope_id", None):
        return None
    return str(ip)


def client_ip(request) -> str | None:
    forwarded = request.headers.get("X-Forwarded-For", "")
    if forwarded:
        ip = _parse_ip(forwarded.split(",")[0])
        if ip:
            return ip
    ip = _parse_ip(request.headers.get("X-Real-IP"))
    if ip:
        return ip
    return _parse_ip(request.remote_addr)


def user_agent(request) -> str:
    return request.headers.get("User-Agent", "")
