from __future__ import annotations

import ipaddress
from typing import Callable

from django.conf import settings
from django.http import HttpRequest, HttpResponse


def _parse_ip(value: str | None):
    try:
        return ipaddress.ip_address((value or "").strip())
    except ValueError:
        return None


def is_trusted_proxy(address) -> bool:
    for entry in getattr(settings, "TRUSTED_PROXIES", []):
        try:
            if address in ipaddress.ip_network(entry, strict=False):
                return True
        except ValueError:
            continue
    return False


def resolve_client_ip(request: HttpRequest) -> str | None:
    """
    Client address for the request. Forwarding headers are only honoured
    when REMOTE_ADDR is a trusted proxy; then the rightmost X-Forwarded-For
    hop that is not itself a trusted proxy wins, falling back to X-Real-IP.
    Returns None when nothing parses as an IP.
    """
    remote = _parse_ip(request.META.get("REMOTE_ADDR"))
    if remote is None or not is_trusted_proxy(remote):
        return str(remote) if remote is not None else None

    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    for hop in reversed([part for part in forwarded.split(",") if part.strip()]):
        address = _parse_ip(hop)
        if address is None:
            break
        if not is_trusted_proxy(address):
            return str(address)

    real_ip = _parse_ip(request.META.get("HTTP_X_REAL_IP"))
    if real_ip is not None:
        return str(real_ip)
    return str(remote)


class ClientMetadataMiddleware:
    """
    Attach ``client_ip`` and ``client_user_agent`` to every request so the
    payment audit trail records the same values the views validate against.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        request.client_ip = resolve_client_ip(request)
        request.client_user_agent = request.META.get("HTTP_USER_AGENT", "")[:500]
        return self.get_response(request)
