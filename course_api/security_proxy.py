from __future__ import annotations

from ipaddress import ip_address

from fastapi import Request


def remote_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _forwarded_hops(header_value: str | None) -> list[str]:
    if not header_value:
        return []
    return [hop.strip() for hop in header_value.split(",") if hop.strip()]


def _is_ip(value: str) -> bool:
    try:
        ip_address(value)
    except ValueError:
        return False
    return True


def client_ip(request: Request, *, trusted_hops: int) -> str:
    """Resolve the client address, trusting the nearest ``trusted_hops`` proxies.

    Each trusted proxy appends the address it received the request from, so the
    client is the entry ``trusted_hops`` positions from the right of
    ``X-Forwarded-For``. Falls back to the socket peer when the header is too
    short or the entry is not an IP address.
    """
    peer = remote_ip(request)
    if trusted_hops <= 0:
        return peer

    hops = _forwarded_hops(request.headers.get("X-Forwarded-For"))
    if len(hops) < trusted_hops:
        return peer
    candidate = hops[-trusted_hops]
    if not _is_ip(candidate):
        return peer
    return candidate


def client_scheme(request: Request, *, trusted_hops: int) -> str:
    if trusted_hops <= 0:
        return request.url.scheme
    forwarded_proto = _forwarded_hops(request.headers.get("X-Forwarded-Proto"))
    if not forwarded_proto:
        return request.url.scheme
    scheme = forwarded_proto[-1].lower()
    if scheme in {"http", "https"}:
        return scheme
    return request.url.scheme
