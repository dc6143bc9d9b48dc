from __future__ import annotations

from django.core.serializers.json import DjangoJSONEncoder
from django.db import models


class PaymentSessionQuerySet(models.QuerySet):
    def for_payment_id(self, payment_id: str) -> "PaymentSession | None":
        return self.select_related("event", "entry").filter(payment_id=payment_id).first()

    def locked(self, payment_id: str) -> "PaymentSession | None":
        """Fetch a session holding a row lock; call inside transaction.atomic()."""
        return self.select_for_update().filter(payment_id=payment_id).first()


class PaymentSession(models.Model):
    """
    One payment attempt. ``payment_id`` is ours (sent to PayFast as
    ``m_payment_id``); ``provider_payment_id`` is PayFast's own reference.
    """

    STATUS_PENDING = "pending"
    STATUS_PROCESSING = "processing"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"
    STATUS_CANCELLED = "cancelled"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_FAILED, "Failed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]
    TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_FAILED, STATUS_CANCELLED})
    ALLOWED_TRANSITIONS = {
        STATUS_PENDING: frozenset({STATUS_PROCESSING, STATUS_COMPLETED, STATUS_FAILED, STATUS_CANCELLED}),
        STATUS_PROCESSING: frozenset({STATUS_COMPLETED, STATUS_FAILED, STATUS_CANCELLED}),
    }

    payment_id = models.CharField(max_length=100, unique=True)
    provider_payment_id = models.CharField(max_length=100, blank=True, null=True)
    entry = models.ForeignKey(
        "events.EventEntry",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="payment_sessions",
    )
    event = models.ForeignKey(
        "events.Event",
        on_delete=models.CASCADE,
        related_name="payment_sessions",
    )
    user_id = models.CharField(max_length=100)
    is_batch = models.BooleanField(default=False)
    base_amount = models.DecimalField(max_digits=10, decimal_places=2)
    processing_fee = models.DecimalField(max_digits=10, decimal_places=2)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    currency = models.CharField(max_length=3, default="ZAR")
    description = models.TextField(blank=True)
    item_name = models.CharField(max_length=100, blank=True)
    item_description = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    provider_status = models.CharField(max_length=20, blank=True, null=True)
    amount_gross = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    amount_fee = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    amount_net = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    signature = models.CharField(max_length=64, blank=True, null=True)
    raw_notification = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    pending_entries = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    paid_at = models.DateTimeField(blank=True, null=True)

    objects = PaymentSessionQuerySet.as_manager()

    class Meta:
        db_table = "payments"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="payments_status_7d4e2b_idx"),
            models.Index(fields=["event", "status"], name="payments_event_i_3c91a0_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.payment_id} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in self.TERMINAL_STATUSES

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in self.ALLOWED_TRANSITIONS.get(self.status, frozenset())


class PaymentLogQuerySet(models.QuerySet):
    def update(self, **kwargs):
        raise ValueError("Payment log entries are append-only")

    def delete(self):
        raise ValueError("Payment log entries are append-only")


class PaymentLog(models.Model):
    """Append-only audit row; one per observable payment event."""

    EVENT_TYPE_CHOICES = [
        ("initiated", "Initiated"),
        ("redirect_sent", "Redirect sent"),
        ("webhook_received", "Webhook received"),
        ("verification_failed", "Verification failed"),
        ("forbidden_origin", "Forbidden origin"),
        ("amount_mismatch", "Amount mismatch"),
        ("notification_ignored", "Notification ignored"),
        ("status_updated", "Status updated"),
        ("completed", "Completed"),
        ("failed", "Failed"),
        ("cancelled", "Cancelled"),
        ("entries_created", "Entries created"),
        ("webhook_error", "Webhook error"),
        ("manual_update", "Manual update"),
    ]

    payment_id = models.CharField(max_length=100, db_index=True, blank=True)
    event_type = models.CharField(max_length=30, choices=EVENT_TYPE_CHOICES, db_index=True)
    event_data = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    objects = PaymentLogQuerySet.as_manager()

    class Meta:
        db_table = "payment_logs"
        ordering = ["-created_at", "-id"]

    def __str__(self) -> str:
        return f"{self.payment_id} {self.event_type}"

    def save(self, *args, **kwargs):
        if self.pk is not None:
            raise ValueError("Payment log entries are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Payment log entries are append-only")
