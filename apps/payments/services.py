"""
Payment initiation, batch entry reconciliation and status lookups.

Webhook handling lives in :mod:`apps.payments.webhooks`; everything here is
called from the views with already validated input.
"""
from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from django.conf import settings
from django.db import DatabaseError, transaction
from django.utils import timezone

from apps.events.models import Event, EventEntry

from .audit import ClientContext, record_event
from .calculator import FeeBreakdown, calculate_entry_fee, calculate_processing_fees, format_cents, to_cents
from .exceptions import (
    AlreadyPaid,
    AlreadyProcessed,
    InvalidInput,
    NotFound,
    PaymentNotCompleted,
    PaymentNotRequired,
    PersistenceError,
)
from .models import PaymentLog, PaymentSession
from .serializers import EntrySpecSerializer, PaymentLogSerializer, PaymentSessionSerializer, ReconciledEntrySerializer
from .signature import SIGNATURE_FIELD, generate_signature
from .tasks import send_entries_created_email

logger = logging.getLogger(__name__)

ITEM_NAME_MAX_LENGTH = 100
ITEM_DESCRIPTION_MAX_LENGTH = 255


@dataclass(frozen=True)
class PaymentRedirect:
    session: PaymentSession
    action_url: str
    fields: list[tuple[str, str]]
    breakdown: FeeBreakdown

    def as_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "payment_id": self.session.payment_id,
            "action_url": self.action_url,
            "fields": dict(self.fields),
            **self.breakdown.as_dict(),
        }


@dataclass(frozen=True)
class ReconciliationResult:
    payment_id: str
    entries: list[dict[str, Any]]
    errors: list[dict[str, Any]]
    total: int

    @property
    def success(self) -> bool:
        return bool(self.entries)

    @property
    def complete(self) -> bool:
        return not self.errors

    def as_dict(self) -> dict[str, Any]:
        if not self.entries:
            return {"success": False, "error": "No entries could be created", "errors": self.errors}
        if self.errors:
            failed_names = ", ".join(error["item_name"] for error in self.errors)
            return {
                "success": True,
                "warning": (
                    f"Created {len(self.entries)} of {self.total} entries, "
                    f"contact support for the rest: {failed_names}"
                ),
                "entries": self.entries,
                "errors": self.errors,
                "payment_id": self.payment_id,
            }
        return {
            "success": True,
            "message": f"Created {len(self.entries)} entries",
            "entries": self.entries,
            "payment_id": self.payment_id,
        }


def _parse_uuid(value: Any) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def _new_payment_id(prefix: str, reference: str) -> str:
    return f"{prefix}_{reference}_{secrets.token_hex(6)}"


def requested_base_amount(
    amount: Optional[Decimal] = None,
    mastery_level: str = "",
    performance_type: str = "",
    participant_count: int = 1,
    solo_count: int = 1,
    include_registration: bool = True,
) -> Optional[int]:
    """
    Base amount in cents from the request alone: the explicit amount, else the
    fee table. None means the event's entry fee applies. Touches no storage.
    """
    if amount is not None:
        base_amount = to_cents(amount)
        if base_amount <= 0:
            raise InvalidInput("Amount must be greater than zero")
        return base_amount
    if mastery_level and performance_type:
        fee = calculate_entry_fee(
            mastery_level,
            performance_type,
            participant_count,
            solo_count=solo_count,
            include_registration=include_registration,
        )
        return fee.total_fee
    return None


def event_base_amount(event: Event) -> int:
    base_amount = to_cents(event.entry_fee)
    if base_amount <= 0:
        raise InvalidInput("Event has no entry fee configured; send an amount or fee parameters")
    return base_amount


def initiate_payment(
    *,
    entry_id: str,
    event_id: uuid.UUID | str,
    user_id: str,
    first_name: str,
    email: str,
    last_name: str = "",
    amount: Optional[Decimal] = None,
    item_name: str = "",
    item_description: str = "",
    is_batch: bool = False,
    mastery_level: str = "",
    performance_type: str = "",
    participant_count: int = 1,
    solo_count: int = 1,
    include_registration: bool = True,
    entries: Optional[list] = None,
    client: ClientContext | None = None,
) -> PaymentRedirect:
    client = client or ClientContext()

    base_amount = requested_base_amount(
        amount=amount,
        mastery_level=mastery_level,
        performance_type=performance_type,
        participant_count=participant_count,
        solo_count=solo_count,
        include_registration=include_registration,
    )

    event = Event.objects.filter(pk=event_id).first()
    if event is None:
        raise NotFound("Event not found")
    if not event.payment_required:
        raise PaymentNotRequired()

    entry = None
    if not is_batch:
        entry_uuid = _parse_uuid(entry_id)
        if entry_uuid is None:
            raise NotFound("Entry not found")
        entry = EventEntry.objects.filter(pk=entry_uuid, event=event).first()
        if entry is None:
            raise NotFound("Entry not found")
        if entry.payment_status == "paid":
            raise AlreadyPaid()

    if base_amount is None:
        base_amount = event_base_amount(event)
    breakdown = calculate_processing_fees(base_amount)

    if is_batch:
        payment_id = _new_payment_id("BATCH", str(event.pk))
        default_name = f"{event.name} entries"
    else:
        payment_id = _new_payment_id("ENTRY", str(entry.pk))
        default_name = f"{event.name}: {entry.item_name}"
    item_name = (item_name or default_name)[:ITEM_NAME_MAX_LENGTH]
    item_description = (item_description or f"Competition entry payment for {event.name}")[
        :ITEM_DESCRIPTION_MAX_LENGTH
    ]

    try:
        with transaction.atomic():
            session = PaymentSession.objects.create(
                payment_id=payment_id,
                entry=entry,
                event=event,
                user_id=user_id,
                is_batch=is_batch,
                base_amount=Decimal(format_cents(breakdown.base_amount)),
                processing_fee=Decimal(format_cents(breakdown.processing_fee)),
                amount=Decimal(format_cents(breakdown.total_amount)),
                currency=settings.PAYMENT_CURRENCY,
                description=item_description,
                item_name=item_name,
                item_description=item_description,
                pending_entries=list(entries) if is_batch and entries else None,
                ip_address=client.ip_address,
                user_agent=client.user_agent,
            )

            fields = [
                ("merchant_id", settings.PAYFAST_MERCHANT_ID),
                ("merchant_key", settings.PAYFAST_MERCHANT_KEY),
                ("return_url", settings.PAYFAST_RETURN_URL.format(payment_id=payment_id)),
                ("cancel_url", settings.PAYFAST_CANCEL_URL.format(payment_id=payment_id)),
                ("notify_url", settings.PAYFAST_NOTIFY_URL.format(payment_id=payment_id)),
                ("name_first", first_name),
                ("name_last", last_name),
                ("email_address", email),
                ("m_payment_id", payment_id),
                ("amount", format_cents(breakdown.total_amount)),
                ("item_name", item_name),
                ("item_description", item_description),
                ("custom_str1", entry_id),
                ("custom_str2", str(event.pk)),
                ("custom_str3", user_id),
            ]
            fields = [(key, value) for key, value in fields if value]
            fields.append((SIGNATURE_FIELD, generate_signature(fields, settings.PAYFAST_PASSPHRASE)))

            record_event(
                payment_id,
                "initiated",
                {
                    "entry_id": str(entry.pk) if entry else None,
                    "event_id": str(event.pk),
                    "user_id": user_id,
                    "is_batch": is_batch,
                    "pending_entries": len(entries or []),
                    **breakdown.as_dict(),
                },
                client,
            )
            record_event(payment_id, "redirect_sent", {"action_url": settings.PAYFAST_PROCESS_URL}, client)

            if entry is not None:
                entry.payment_id = payment_id
                entry.payment_status = "pending"
                entry.save(update_fields=["payment_id", "payment_status", "updated_at"])
    except DatabaseError as exc:
        logger.exception("Failed to initiate payment for event %s", event.pk)
        raise PersistenceError("Payment initiation failed") from exc

    logger.info("Payment initiated: %s (%s)", payment_id, format_cents(breakdown.total_amount))
    return PaymentRedirect(
        session=session,
        action_url=settings.PAYFAST_PROCESS_URL,
        fields=fields,
        breakdown=breakdown,
    )


def _existing_entries(payment_id: str) -> list[dict[str, Any]]:
    entries = EventEntry.objects.filter(payment_id=payment_id).order_by("created_at", "id")
    return ReconciledEntrySerializer(entries, many=True).data


def list_payment_entries(payment_id: str) -> list[dict[str, Any]]:
    if not PaymentSession.objects.filter(payment_id=payment_id).exists():
        raise NotFound("Payment not found")
    return _existing_entries(payment_id)


def _item_label(spec: Any, index: int) -> str:
    if isinstance(spec, dict) and spec.get("itemName"):
        return str(spec["itemName"])
    return f"Entry {index + 1}"


def _create_entry(data: dict[str, Any], payment_id: str, now) -> EventEntry:
    event = Event.objects.filter(pk=data.pop("event_id")).first()
    if event is None:
        raise NotFound("Event not found")
    return EventEntry.objects.create(
        event=event,
        payment_id=payment_id,
        payment_status="paid",
        payment_method="payfast",
        payment_date=now,
        approved=True,
        approved_at=now,
        **data,
    )


def reconcile_entries(
    payment_id: str,
    entries: Optional[list] = None,
    client: ClientContext | None = None,
) -> ReconciliationResult:
    """
    Create the competition entries paid for by a completed batch payment.

    Runs under a lock on the payment row, so two concurrent calls for the same
    payment cannot both get past the existing-entries check. Each entry is
    created in its own savepoint; a bad entry is reported in ``errors`` and
    the rest still go through.
    """
    client = client or ClientContext()
    created: list[EventEntry] = []
    errors: list[dict[str, Any]] = []

    try:
        with transaction.atomic():
            session = PaymentSession.objects.locked(payment_id)
            if session is None:
                raise NotFound("Payment not found")
            if session.status != PaymentSession.STATUS_COMPLETED:
                raise PaymentNotCompleted()

            existing = _existing_entries(payment_id)
            if existing:
                raise AlreadyProcessed(existing)

            specs = list(entries or session.pending_entries or [])
            if not specs:
                raise InvalidInput("No entries to create")

            now = timezone.now()
            for index, spec in enumerate(specs):
                label = _item_label(spec, index)
                serializer = EntrySpecSerializer(data=spec)
                if not serializer.is_valid():
                    errors.append({"index": index, "item_name": label, "error": serializer.errors})
                    continue
                try:
                    with transaction.atomic():
                        created.append(_create_entry(dict(serializer.validated_data), payment_id, now))
                except NotFound as exc:
                    errors.append({"index": index, "item_name": label, "error": exc.message})
                except DatabaseError as exc:
                    logger.warning("Failed to create entry %r for %s: %s", label, payment_id, exc)
                    errors.append({"index": index, "item_name": label, "error": "Entry could not be saved"})

            record_event(
                payment_id,
                "entries_created",
                {
                    "created_count": len(created),
                    "failed_count": len(errors),
                    "total_count": len(specs),
                    "entry_ids": [str(entry.pk) for entry in created],
                    "errors": errors,
                },
                client,
            )
            if created:
                failed_names = [error["item_name"] for error in errors]
                created_count = len(created)
                transaction.on_commit(
                    lambda: send_entries_created_email.delay(payment_id, created_count, failed_names),
                    robust=True,
                )
    except DatabaseError as exc:
        logger.exception("Entry reconciliation failed for %s", payment_id)
        raise PersistenceError() from exc

    if errors:
        logger.warning("Created %s of %s entries for %s", len(created), len(specs), payment_id)
    else:
        logger.info("Created %s entries for %s", len(created), payment_id)
    return ReconciliationResult(
        payment_id=payment_id,
        entries=ReconciledEntrySerializer(created, many=True).data,
        errors=errors,
        total=len(specs),
    )


def _status_payload(session: PaymentSession) -> dict[str, Any]:
    payload = dict(PaymentSessionSerializer(session).data)
    if session.is_batch:
        payload["entries"] = _existing_entries(session.payment_id)
    elif session.entry is not None:
        payload["entry"] = {
            "entry_id": str(session.entry.pk),
            "item_name": session.entry.item_name,
            "performance_type": session.entry.performance_type,
            "payment_status": session.entry.payment_status,
            "approved": session.entry.approved,
        }
    else:
        payload["entry"] = None

    logs = PaymentLog.objects.filter(payment_id=session.payment_id)[: settings.PAYMENT_TIMELINE_LENGTH]
    payload["timeline"] = PaymentLogSerializer(logs, many=True).data
    return payload


def get_payment_status(payment_id: str) -> dict[str, Any]:
    session = PaymentSession.objects.for_payment_id(payment_id)
    if session is None:
        raise NotFound("Payment not found")
    return _status_payload(session)


def get_payment_statuses(payment_ids: list[str]) -> dict[str, dict[str, Any]]:
    """Status for several payments at once; unknown ids are left out."""
    sessions = PaymentSession.objects.select_related("event", "entry").filter(payment_id__in=set(payment_ids))
    return {session.payment_id: _status_payload(session) for session in sessions}
