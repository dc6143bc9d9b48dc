"""
PayFast ITN (instant transaction notification) handling.

A notification goes through, in order: origin allow-list, parsing into a
closed set of fields, signature check (plus optional confirmation with
PayFast), session lookup, then a single locked update of the session and its
entries. Every step that rejects a notification leaves an audit row.
"""
from __future__ import annotations

import ipaddress
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Optional
from urllib.parse import parse_qsl

import requests
from django.conf import settings
from django.db import DatabaseError, transaction
from django.db.models import Q
from django.utils import timezone

from apps.events.models import EventEntry

from .audit import ClientContext, record_event
from .exceptions import BadRequest, ForbiddenOrigin, InvalidSignature, NotFound, PersistenceError
from .models import PaymentSession
from .signature import build_parameter_string, verify_signature
from .tasks import send_payment_confirmation_email

logger = logging.getLogger(__name__)


class ProviderStatus(str, Enum):
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


SESSION_STATUS_FOR_PROVIDER = {
    ProviderStatus.COMPLETE: PaymentSession.STATUS_COMPLETED,
    ProviderStatus.FAILED: PaymentSession.STATUS_FAILED,
    ProviderStatus.CANCELLED: PaymentSession.STATUS_CANCELLED,
}

ENTRY_STATUS_FOR_SESSION = {
    PaymentSession.STATUS_PENDING: "pending",
    PaymentSession.STATUS_PROCESSING: "pending",
    PaymentSession.STATUS_COMPLETED: "paid",
    PaymentSession.STATUS_FAILED: "failed",
    PaymentSession.STATUS_CANCELLED: "cancelled",
}

RECOGNIZED_FIELDS = (
    "m_payment_id",
    "pf_payment_id",
    "payment_status",
    "item_name",
    "item_description",
    "amount_gross",
    "amount_fee",
    "amount_net",
    "custom_str1",
    "custom_str2",
    "custom_str3",
    "custom_int1",
    "name_first",
    "name_last",
    "email_address",
    "merchant_id",
    "signature",
)

Pairs = list[tuple[str, str]]


def _decimal_or_none(value: str) -> Optional[Decimal]:
    if not value:
        return None
    try:
        amount = Decimal(value)
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


@dataclass(frozen=True)
class ProviderNotification:
    m_payment_id: str
    payment_status: ProviderStatus
    signature: str
    pf_payment_id: str = ""
    item_name: str = ""
    item_description: str = ""
    amount_gross: Optional[Decimal] = None
    amount_fee: Optional[Decimal] = None
    amount_net: Optional[Decimal] = None
    custom_str1: str = ""
    custom_str2: str = ""
    custom_str3: str = ""
    custom_int1: str = ""
    name_first: str = ""
    name_last: str = ""
    email_address: str = ""
    merchant_id: str = ""
    fields: tuple[tuple[str, str], ...] = field(default=(), repr=False)

    def as_dict(self) -> dict[str, object]:
        data = {name: getattr(self, name) for name in RECOGNIZED_FIELDS}
        data["payment_status"] = self.payment_status.value
        return {key: (str(value) if isinstance(value, Decimal) else value) for key, value in data.items()}


@dataclass(frozen=True)
class NotificationResult:
    payment_id: str
    status: str
    changed: bool


def parse_form_body(body: bytes) -> Pairs:
    """Decode a form-encoded body, keeping field order and blank values."""
    return parse_qsl(body.decode("utf-8", errors="replace"), keep_blank_values=True)


def parse_notification(pairs: Pairs) -> ProviderNotification:
    values: dict[str, str] = {}
    for key, value in pairs:
        if key in RECOGNIZED_FIELDS:
            values[key] = value

    try:
        status = ProviderStatus(values.get("payment_status", ""))
    except ValueError:
        status = None

    if not values.get("m_payment_id") or status is None or not values.get("signature"):
        raise BadRequest("Missing required fields")

    return ProviderNotification(
        m_payment_id=values["m_payment_id"],
        payment_status=status,
        signature=values["signature"],
        pf_payment_id=values.get("pf_payment_id", ""),
        item_name=values.get("item_name", ""),
        item_description=values.get("item_description", ""),
        amount_gross=_decimal_or_none(values.get("amount_gross", "")),
        amount_fee=_decimal_or_none(values.get("amount_fee", "")),
        amount_net=_decimal_or_none(values.get("amount_net", "")),
        custom_str1=values.get("custom_str1", ""),
        custom_str2=values.get("custom_str2", ""),
        custom_str3=values.get("custom_str3", ""),
        custom_int1=values.get("custom_int1", ""),
        name_first=values.get("name_first", ""),
        name_last=values.get("name_last", ""),
        email_address=values.get("email_address", ""),
        merchant_id=values.get("merchant_id", ""),
        fields=tuple(pairs),
    )


def is_allowed_origin(ip_address: Optional[str]) -> bool:
    if settings.PAYFAST_SANDBOX:
        return True
    if not ip_address:
        return False
    try:
        address = ipaddress.ip_address(ip_address)
    except ValueError:
        return False
    for host in settings.PAYFAST_VALID_HOSTS:
        try:
            if address in ipaddress.ip_network(host, strict=False):
                return True
        except ValueError:
            logger.warning("Ignoring malformed PayFast host entry %r", host)
    return False


def confirm_with_provider(pairs: Pairs) -> bool:
    """Ask PayFast whether it really sent this notification."""
    try:
        resp = requests.post(
            settings.PAYFAST_VALIDATE_URL,
            data=build_parameter_string(pairs),
            headers={"Content-Type": "application/x-www-form-urlencoded"},
            timeout=settings.PAYFAST_HTTP_TIMEOUT,
        )
        resp.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("PayFast validation request failed: %s", exc)
        return False
    return resp.text.strip() == "VALID"


def _verification_error(notification: ProviderNotification) -> Optional[str]:
    if not verify_signature(notification.fields, settings.PAYFAST_PASSPHRASE):
        return "Invalid signature"
    if notification.merchant_id and notification.merchant_id != settings.PAYFAST_MERCHANT_ID:
        return "Merchant mismatch"
    if settings.PAYFAST_VALIDATE_WITH_SERVER and not confirm_with_provider(list(notification.fields)):
        return "Provider validation failed"
    return None


def process_notification(pairs: Pairs, client: ClientContext | None = None) -> NotificationResult:
    client = client or ClientContext()

    if not is_allowed_origin(client.ip_address):
        payment_id = next((value for key, value in pairs if key == "m_payment_id"), "")
        logger.warning("Rejected PayFast notification from %s", client.ip_address)
        record_event(payment_id, "forbidden_origin", {"error": "Invalid host"}, client)
        raise ForbiddenOrigin()

    notification = parse_notification(pairs)
    payment_id = notification.m_payment_id

    error = _verification_error(notification)
    if error:
        logger.warning("PayFast notification for %s failed verification: %s", payment_id, error)
        record_event(
            payment_id,
            "verification_failed",
            {"error": error, "notification": notification.as_dict()},
            client,
        )
        raise InvalidSignature(error)

    if not PaymentSession.objects.filter(payment_id=payment_id).exists():
        logger.error("PayFast notification for unknown payment %s", payment_id)
        record_event(payment_id, "webhook_error", {"error": "Payment not found"}, client)
        raise NotFound("Payment not found")

    record_event(payment_id, "webhook_received", notification.as_dict(), client)

    try:
        with transaction.atomic():
            return _apply_notification(notification, client)
    except DatabaseError as exc:
        logger.exception("Failed to apply PayFast notification for %s", payment_id)
        try:
            record_event(payment_id, "webhook_error", {"error": str(exc)}, client)
        except DatabaseError:
            logger.exception("Failed to record webhook error for %s", payment_id)
        raise PersistenceError() from exc


def _apply_notification(notification: ProviderNotification, client: ClientContext) -> NotificationResult:
    session = PaymentSession.objects.locked(notification.m_payment_id)
    if session is None:
        raise NotFound("Payment not found")
    new_status = SESSION_STATUS_FOR_PROVIDER.get(notification.payment_status, PaymentSession.STATUS_PROCESSING)

    if not session.can_transition_to(new_status):
        # Redelivery, or a late notification for a session that already settled.
        record_event(
            session.payment_id,
            "notification_ignored",
            {"current_status": session.status, "notified_status": new_status},
            client,
        )
        return NotificationResult(payment_id=session.payment_id, status=session.status, changed=False)

    if notification.amount_gross is not None and notification.amount_gross != session.amount:
        logger.warning(
            "PayFast gross amount %s differs from expected %s for %s",
            notification.amount_gross,
            session.amount,
            session.payment_id,
        )
        record_event(
            session.payment_id,
            "amount_mismatch",
            {"expected": str(session.amount), "amount_gross": str(notification.amount_gross)},
            client,
        )

    now = timezone.now()
    old_status = session.status
    session.status = new_status
    session.provider_status = notification.payment_status.value
    session.provider_payment_id = notification.pf_payment_id or session.provider_payment_id
    session.amount_gross = notification.amount_gross
    session.amount_fee = notification.amount_fee
    session.amount_net = notification.amount_net
    session.signature = notification.signature
    session.raw_notification = [list(pair) for pair in notification.fields]
    session.paid_at = now if new_status == PaymentSession.STATUS_COMPLETED else None
    session.save(
        update_fields=[
            "status",
            "provider_status",
            "provider_payment_id",
            "amount_gross",
            "amount_fee",
            "amount_net",
            "signature",
            "raw_notification",
            "paid_at",
            "updated_at",
        ]
    )

    entry_status = ENTRY_STATUS_FOR_SESSION[new_status]
    entries = EventEntry.objects.filter(payment_id=session.payment_id)
    if new_status == PaymentSession.STATUS_COMPLETED:
        # The entry may have been re-initiated since; a completed payment still settles it.
        if session.entry_id:
            entries = EventEntry.objects.filter(
                Q(payment_id=session.payment_id) | (Q(pk=session.entry_id) & ~Q(payment_status="paid"))
            )
        updated = entries.update(
            payment_id=session.payment_id,
            payment_status=entry_status,
            payment_method="payfast",
            payment_date=now,
            approved=True,
            approved_at=now,
            updated_at=now,
        )
    else:
        updated = entries.update(payment_status=entry_status, updated_at=now)

    record_event(
        session.payment_id,
        "status_updated",
        {
            "old_status": old_status,
            "new_status": new_status,
            "payment_status": notification.payment_status.value,
            "entry_status": entry_status,
            "entries_updated": updated,
        },
        client,
    )

    entry_id = str(session.entry_id) if session.entry_id else None
    if new_status == PaymentSession.STATUS_COMPLETED:
        logger.info("Payment completed: %s", session.payment_id)
        record_event(
            session.payment_id,
            "completed",
            {
                "amount_paid": str(notification.amount_net) if notification.amount_net is not None else None,
                "entry_id": entry_id,
                "event_id": str(session.event_id),
            },
            client,
        )
        payment_id = session.payment_id
        transaction.on_commit(lambda: send_payment_confirmation_email.delay(payment_id), robust=True)
    elif new_status in (PaymentSession.STATUS_FAILED, PaymentSession.STATUS_CANCELLED):
        logger.info("Payment %s: %s", new_status, session.payment_id)
        record_event(
            session.payment_id,
            new_status,
            {
                "reason": notification.payment_status.value,
                "entry_id": entry_id,
                "event_id": str(session.event_id),
            },
            client,
        )

    return NotificationResult(payment_id=session.payment_id, status=new_status, changed=True)
