from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .models import PaymentLog


@dataclass(frozen=True)
class ClientContext:
    """Who is talking to us: recorded on every audit row."""

    ip_address: Optional[str] = None
    user_agent: str = ""

    @classmethod
    def from_request(cls, request) -> "ClientContext":
        return cls(
            ip_address=getattr(request, "client_ip", None),
            user_agent=getattr(request, "client_user_agent", "") or "",
        )


def record_event(
    payment_id: str | None,
    event_type: str,
    data: dict[str, Any] | None = None,
    client: ClientContext | None = None,
) -> PaymentLog:
    client = client or ClientContext()
    return PaymentLog.objects.create(
        payment_id=(payment_id or "")[:100],
        event_type=event_type,
        event_data=data or {},
        ip_address=client.ip_address,
        user_agent=client.user_agent,
    )
