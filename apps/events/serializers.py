from rest_framework import serializers

from .models import Event, EventEntry


class EventSerializer(serializers.ModelSerializer):
    class Meta:
        model = Event
        fields = ["id", "name", "event_date", "venue", "entry_fee", "payment_required"]
        read_only_fields = fields


class EventEntrySerializer(serializers.ModelSerializer):
    event_name = serializers.CharField(source="event.name", read_only=True)
    outstanding_balance = serializers.SerializerMethodField()

    class Meta:
        model = EventEntry
        fields = "__all__"
        read_only_fields = [field.name for field in EventEntry._meta.fields]

    def get_outstanding_balance(self, obj: EventEntry) -> str:
        if obj.payment_status == "paid":
            return "0.00"
        return f"{obj.calculated_fee:.2f}"


class EntryPaymentUpdateSerializer(serializers.Serializer):
    payment_status = serializers.ChoiceField(choices=EventEntry.PAYMENT_STATUS_CHOICES, required=False)
    payment_reference = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    payment_method = serializers.CharField(max_length=50, required=False, allow_blank=True, allow_null=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Nothing to update.")
        return attrs
