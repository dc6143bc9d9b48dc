import logging

from django.db import transaction
from django.utils import timezone

from apps.payments.audit import ClientContext, record_event

from .models import EventEntry

logger = logging.getLogger(__name__)


def update_entry_payment(entry: EventEntry, changes: dict, admin_id=None, client: ClientContext | None = None) -> EventEntry:
    """
    Apply a manual payment change made by an administrator, e.g. for an EFT
    payment PayFast never saw. Marking an entry paid stamps the payment date.
    """
    previous = {name: getattr(entry, name) for name in changes}
    update_fields = ["updated_at"]
    for name, value in changes.items():
        setattr(entry, name, value)
        update_fields.append(name)
    if changes.get("payment_status") == "paid":
        entry.payment_date = timezone.now()
        update_fields.append("payment_date")

    with transaction.atomic():
        entry.save(update_fields=update_fields)
        if entry.payment_id:
            record_event(
                entry.payment_id,
                "manual_update",
                {
                    "entry_id": str(entry.pk),
                    "admin_id": admin_id,
                    "previous": previous,
                    "changes": changes,
                },
                client,
            )

    logger.info("Entry %s payment updated by admin %s: %s", entry.pk, admin_id, changes)
    return entry
