import logging

from django.http import HttpResponse
from django.template.loader import render_to_string
from rest_framework import permissions, status, views
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle

from .audit import ClientContext
from .calculator import calculate_entry_fee, calculate_processing_fees
from .exceptions import AlreadyProcessed, PaymentError
from .serializers import (
    FeeQuoteSerializer,
    InitiatePaymentSerializer,
    PaymentStatusQuerySerializer,
    ProcessEntriesSerializer,
)
from .services import (
    get_payment_status,
    get_payment_statuses,
    initiate_payment,
    list_payment_entries,
    reconcile_entries,
)
from .webhooks import parse_form_body, process_notification

# Use the Django logger so messages go to the existing console handler.
logger = logging.getLogger("django")


def error_response(exc: PaymentError) -> Response:
    return Response({"success": False, "error": exc.message}, status=exc.status_code)


def wants_json(request) -> bool:
    return "application/json" in request.META.get("HTTP_ACCEPT", "")


class InitiatePaymentView(views.APIView):
    """
    Start a PayFast payment for one entry or a batch of entries.

    Answers with a self-submitting HTML form that takes the payer to PayFast.
    Clients asking for JSON get the signed fields instead.
    """

    permission_classes = [permissions.AllowAny]
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "payment_initiation"

    def post(self, request, *args, **kwargs):
        serializer = InitiatePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            redirect = initiate_payment(client=ClientContext.from_request(request), **data)
        except PaymentError as exc:
            logger.warning("Payment initiation rejected: %s", exc.message)
            return error_response(exc)

        if wants_json(request):
            return Response(redirect.as_dict(), status=status.HTTP_200_OK)

        html = render_to_string(
            "payments/redirect.html",
            {
                "action_url": redirect.action_url,
                "fields": redirect.fields,
                "payment_id": redirect.session.payment_id,
                "item_name": redirect.session.item_name,
                "currency": redirect.session.currency,
                "breakdown": redirect.breakdown.as_dict(),
            },
        )
        return HttpResponse(html, content_type="text/html; charset=utf-8")


class PayFastWebhookView(views.APIView):
    """PayFast ITN endpoint. The body is read raw so field order survives for the signature check."""

    authentication_classes = []
    permission_classes = [permissions.AllowAny]
    throttle_classes = []

    def get(self, request, *args, **kwargs):
        return Response({"status": "ok", "message": "PayFast notification endpoint"}, status=status.HTTP_200_OK)

    def post(self, request, *args, **kwargs):
        pairs = parse_form_body(request.body)
        try:
            result = process_notification(pairs, ClientContext.from_request(request))
        except PaymentError as exc:
            return Response({"error": exc.message}, status=exc.status_code)

        return Response(
            {"success": True, "payment_id": result.payment_id, "status": result.status},
            status=status.HTTP_200_OK,
        )


class ProcessEntriesView(views.APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request, *args, **kwargs):
        payment_id = request.query_params.get("payment_id")
        if not payment_id:
            return Response({"success": False, "error": "payment_id is required"}, status=status.HTTP_400_BAD_REQUEST)
        try:
            entries = list_payment_entries(payment_id)
        except PaymentError as exc:
            return error_response(exc)
        return Response(
            {"success": True, "payment_id": payment_id, "entries": entries, "count": len(entries)},
            status=status.HTTP_200_OK,
        )

    def post(self, request, *args, **kwargs):
        serializer = ProcessEntriesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment_id = serializer.validated_data["payment_id"]

        try:
            result = reconcile_entries(
                payment_id,
                serializer.validated_data["entries"],
                ClientContext.from_request(request),
            )
        except AlreadyProcessed as exc:
            return Response(
                {
                    "success": True,
                    "already_processed": True,
                    "message": exc.message,
                    "entries": exc.entries,
                    "payment_id": payment_id,
                },
                status=status.HTTP_200_OK,
            )
        except PaymentError as exc:
            logger.warning("Entry processing for %s rejected: %s", payment_id, exc.message)
            return error_response(exc)

        response_status = status.HTTP_200_OK if result.success else status.HTTP_422_UNPROCESSABLE_ENTITY
        return Response(result.as_dict(), status=response_status)


class PaymentStatusView(views.APIView):
    permission_classes = [permissions.AllowAny]

    def get(self, request, *args, **kwargs):
        payment_id = request.query_params.get("payment_id")
        if not payment_id:
            return Response({"success": False, "error": "payment_id is required"}, status=status.HTTP_400_BAD_REQUEST)
        try:
            payment = get_payment_status(payment_id)
        except PaymentError as exc:
            return error_response(exc)
        return Response({"success": True, "payment": payment}, status=status.HTTP_200_OK)

    def post(self, request, *args, **kwargs):
        serializer = PaymentStatusQuerySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payments = get_payment_statuses(serializer.validated_data["payment_ids"])
        return Response({"success": True, "payments": payments}, status=status.HTTP_200_OK)


class FeeQuoteView(views.APIView):
    """Quote the entry fee and the amount the payer will be charged."""

    permission_classes = [permissions.AllowAny]

    def get(self, request, *args, **kwargs):
        return self._quote(request.query_params)

    def post(self, request, *args, **kwargs):
        return self._quote(request.data)

    def _quote(self, params):
        serializer = FeeQuoteSerializer(data=params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            entry_fee = calculate_entry_fee(
                data["mastery_level"],
                data["performance_type"],
                data["participant_count"],
                solo_count=data["solo_count"],
                include_registration=data["include_registration"],
            )
            charge = calculate_processing_fees(entry_fee.total_fee)
        except PaymentError as exc:
            return error_response(exc)
        return Response(
            {
                "success": True,
                "mastery_level": data["mastery_level"],
                "performance_type": data["performance_type"],
                "fees": entry_fee.as_dict(),
                "payment": charge.as_dict(),
            },
            status=status.HTTP_200_OK,
        )
