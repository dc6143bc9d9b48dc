import uuid

from django.db import models


class Event(models.Model):
    """
    A competition event. Only the columns the payment flow reads are modelled;
    scheduling, judging and the rest live with the registration platform.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    event_date = models.DateField(blank=True, null=True)
    venue = models.CharField(max_length=255, blank=True)
    entry_fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    payment_required = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "events"
        ordering = ["-event_date", "name"]

    def __str__(self) -> str:
        return self.name


class EventEntry(models.Model):
    PAYMENT_STATUS_CHOICES = [
        ("unpaid", "Unpaid"),
        ("pending", "Pending"),
        ("paid", "Paid"),
        ("failed", "Failed"),
        ("cancelled", "Cancelled"),
    ]

    ENTRY_TYPE_CHOICES = [
        ("live", "Live"),
        ("virtual", "Virtual"),
    ]

    VIDEO_TYPE_CHOICES = [
        ("youtube", "YouTube"),
        ("vimeo", "Vimeo"),
        ("other", "Other"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    event = models.ForeignKey(
        Event,
        on_delete=models.CASCADE,
        related_name="entries",
    )
    contestant_id = models.CharField(max_length=100)
    participant_ids = models.JSONField(default=list, blank=True)
    calculated_fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    item_name = models.CharField(max_length=255)
    choreographer = models.CharField(max_length=255, blank=True)
    mastery = models.CharField(max_length=100, blank=True)
    item_style = models.CharField(max_length=100, blank=True)
    performance_type = models.CharField(max_length=20, blank=True)
    estimated_duration = models.FloatField(null=True, blank=True)
    entry_type = models.CharField(max_length=10, choices=ENTRY_TYPE_CHOICES, default="live")
    music_file_url = models.TextField(blank=True, null=True)
    music_file_name = models.CharField(max_length=255, blank=True, null=True)
    video_external_url = models.TextField(blank=True, null=True)
    video_external_type = models.CharField(max_length=10, choices=VIDEO_TYPE_CHOICES, blank=True, null=True)

    # Payment surface written by apps.payments
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default="unpaid")
    payment_id = models.CharField(max_length=100, blank=True, null=True, db_index=True)
    payment_method = models.CharField(max_length=50, blank=True, null=True)
    payment_reference = models.CharField(max_length=100, blank=True, null=True)
    payment_date = models.DateTimeField(blank=True, null=True)
    approved = models.BooleanField(default=False)
    approved_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "event_entries"
        ordering = ["created_at"]
        verbose_name_plural = "event entries"

    def __str__(self) -> str:
        return f"{self.item_name} ({self.get_payment_status_display()})"
