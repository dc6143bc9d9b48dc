from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.payments.audit import ClientContext

from .models import EventEntry
from .permissions import IsStaff
from .serializers import EntryPaymentUpdateSerializer, EventEntrySerializer
from .services import update_entry_payment


class EventEntryViewSet(viewsets.ReadOnlyModelViewSet):
    """Staff view of competition entries and their payment state."""

    queryset = EventEntry.objects.select_related("event").all()
    serializer_class = EventEntrySerializer
    permission_classes = [IsStaff]
    filterset_fields = ["event", "payment_status", "approved", "payment_id"]
    search_fields = ["item_name", "contestant_id", "payment_id"]
    ordering_fields = ["created_at", "calculated_fee", "payment_date"]

    @action(detail=True, methods=["get", "put"], url_path="payment")
    def payment(self, request, pk=None):
        entry = self.get_object()
        if request.method == "PUT":
            serializer = EntryPaymentUpdateSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            entry = update_entry_payment(
                entry,
                dict(serializer.validated_data),
                admin_id=request.user.pk,
                client=ClientContext.from_request(request),
            )

        data = EventEntrySerializer(entry).data
        return Response(
            {
                "success": True,
                "entry": data,
                "payment_info": {
                    "status": entry.payment_status,
                    "reference": entry.payment_reference,
                    "method": entry.payment_method,
                    "date": data["payment_date"],
                    "payment_id": entry.payment_id,
                },
                "outstanding_balance": data["outstanding_balance"],
            },
            status=status.HTTP_200_OK,
        )
