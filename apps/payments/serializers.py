from decimal import Decimal

from rest_framework import serializers

from apps.events.models import EventEntry

from .calculator import PERFORMANCE_TYPES
from .models import PaymentLog, PaymentSession


class InitiatePaymentSerializer(serializers.Serializer):
    entryId = serializers.CharField(source="entry_id", max_length=80)
    eventId = serializers.UUIDField(source="event_id")
    userId = serializers.CharField(source="user_id", max_length=100)
    userFirstName = serializers.CharField(source="first_name", max_length=100)
    userLastName = serializers.CharField(source="last_name", max_length=100, allow_blank=True, default="")
    userEmail = serializers.EmailField(source="email")
    amount = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal("0.01"),
        required=False,
        allow_null=True,
    )
    itemName = serializers.CharField(source="item_name", required=False, allow_blank=True, default="")
    itemDescription = serializers.CharField(
        source="item_description", required=False, allow_blank=True, default=""
    )
    isBatchPayment = serializers.BooleanField(source="is_batch", required=False, default=False)

    # Fee parameters, used when no explicit amount is given
    masteryLevel = serializers.CharField(source="mastery_level", required=False, allow_blank=True, default="")
    performanceType = serializers.ChoiceField(
        source="performance_type", choices=PERFORMANCE_TYPES, required=False, allow_blank=True, default=""
    )
    participantCount = serializers.IntegerField(source="participant_count", min_value=1, required=False, default=1)
    soloCount = serializers.IntegerField(source="solo_count", min_value=1, required=False, default=1)
    includeRegistration = serializers.BooleanField(source="include_registration", required=False, default=True)

    entries = serializers.ListField(child=serializers.JSONField(), required=False, allow_empty=True)

    def validate(self, attrs):
        if attrs.get("entries") and not attrs.get("is_batch"):
            raise serializers.ValidationError({"entries": "Entries can only be sent with a batch payment."})
        if bool(attrs.get("mastery_level")) != bool(attrs.get("performance_type")):
            raise serializers.ValidationError("masteryLevel and performanceType must be sent together.")
        return attrs


class EntrySpecSerializer(serializers.Serializer):
    """One entry to create once a batch payment has completed."""

    eventId = serializers.UUIDField(source="event_id")
    contestantId = serializers.CharField(source="contestant_id", max_length=100)
    participantIds = serializers.ListField(
        source="participant_ids", child=serializers.CharField(), required=False, default=list
    )
    calculatedFee = serializers.DecimalField(
        source="calculated_fee", max_digits=10, decimal_places=2, min_value=Decimal("0")
    )
    itemName = serializers.CharField(source="item_name", max_length=255)
    choreographer = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    mastery = serializers.CharField(max_length=100, required=False, allow_blank=True, default="")
    itemStyle = serializers.CharField(source="item_style", max_length=100, required=False, allow_blank=True, default="")
    estimatedDuration = serializers.FloatField(
        source="estimated_duration", min_value=0, required=False, allow_null=True, default=None
    )
    entryType = serializers.ChoiceField(
        source="entry_type", choices=EventEntry.ENTRY_TYPE_CHOICES, required=False, default="live"
    )
    musicFileUrl = serializers.CharField(source="music_file_url", required=False, allow_blank=True, allow_null=True)
    musicFileName = serializers.CharField(
        source="music_file_name", max_length=255, required=False, allow_blank=True, allow_null=True
    )
    videoExternalUrl = serializers.CharField(
        source="video_external_url", required=False, allow_blank=True, allow_null=True
    )
    videoExternalType = serializers.CharField(
        source="video_external_type", required=False, allow_blank=True, allow_null=True
    )
    performanceType = serializers.ChoiceField(source="performance_type", choices=PERFORMANCE_TYPES)

    def validate_videoExternalType(self, value):
        valid = {choice for choice, _ in EventEntry.VIDEO_TYPE_CHOICES}
        return value if value in valid else None


class ProcessEntriesSerializer(serializers.Serializer):
    payment_id = serializers.CharField(max_length=100)
    entries = serializers.ListField(child=serializers.JSONField(), required=False, allow_empty=True, default=list)


class PaymentStatusQuerySerializer(serializers.Serializer):
    payment_ids = serializers.ListField(
        child=serializers.CharField(max_length=100), allow_empty=False, max_length=100
    )


class FeeQuoteSerializer(serializers.Serializer):
    masteryLevel = serializers.CharField(source="mastery_level")
    performanceType = serializers.CharField(source="performance_type")
    numberOfParticipants = serializers.IntegerField(source="participant_count", required=False, default=1)
    soloCount = serializers.IntegerField(source="solo_count", required=False, default=1)
    includeRegistration = serializers.BooleanField(source="include_registration", required=False, default=True)


class ReconciledEntrySerializer(serializers.ModelSerializer):
    entry_id = serializers.CharField(source="id", read_only=True)
    fee = serializers.DecimalField(source="calculated_fee", max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = EventEntry
        fields = ["entry_id", "item_name", "performance_type", "fee", "payment_status", "approved"]
        read_only_fields = fields


class PaymentLogSerializer(serializers.ModelSerializer):
    event = serializers.CharField(source="event_type", read_only=True)
    timestamp = serializers.DateTimeField(source="created_at", read_only=True)
    data = serializers.JSONField(source="event_data", read_only=True)
    description = serializers.SerializerMethodField()

    DESCRIPTIONS = {
        "initiated": "Payment initiated",
        "redirect_sent": "Payer redirected to PayFast",
        "webhook_received": "Notification received from PayFast",
        "verification_failed": "Notification rejected: verification failed",
        "forbidden_origin": "Notification rejected: unknown origin",
        "amount_mismatch": "Notified amount differs from the amount charged",
        "notification_ignored": "Repeated notification ignored",
        "completed": "Payment completed",
        "failed": "Payment failed",
        "cancelled": "Payment cancelled",
        "webhook_error": "Notification could not be processed",
        "manual_update": "Payment updated by an administrator",
    }

    class Meta:
        model = PaymentLog
        fields = ["event", "description", "timestamp", "data"]

    def get_description(self, obj: PaymentLog) -> str:
        data = obj.event_data or {}
        if obj.event_type == "status_updated":
            return f"Status changed from {data.get('old_status')} to {data.get('new_status')}"
        if obj.event_type == "entries_created":
            return f"Created {data.get('created_count', 0)} of {data.get('total_count', 0)} entries"
        return self.DESCRIPTIONS.get(obj.event_type, obj.get_event_type_display())


class PaymentSessionSerializer(serializers.ModelSerializer):
    event_name = serializers.CharField(source="event.name", read_only=True)
    event_date = serializers.DateField(source="event.event_date", read_only=True)
    venue = serializers.CharField(source="event.venue", read_only=True)
    entry_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = PaymentSession
        fields = [
            "payment_id",
            "provider_payment_id",
            "status",
            "provider_status",
            "is_batch",
            "currency",
            "base_amount",
            "processing_fee",
            "amount",
            "amount_gross",
            "amount_fee",
            "amount_net",
            "item_name",
            "item_description",
            "user_id",
            "entry_id",
            "event_id",
            "event_name",
            "event_date",
            "venue",
            "created_at",
            "updated_at",
            "paid_at",
        ]
        read_only_fields = fields
