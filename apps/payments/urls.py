from django.urls import path

from .views import FeeQuoteView, InitiatePaymentView, PayFastWebhookView, PaymentStatusView, ProcessEntriesView

urlpatterns = [
    path("initiate/", InitiatePaymentView.as_view(), name="payment-initiate"),
    path("webhook/", PayFastWebhookView.as_view(), name="payfast-webhook"),
    path("process-entries/", ProcessEntriesView.as_view(), name="payment-process-entries"),
    path("status/", PaymentStatusView.as_view(), name="payment-status"),
    path("fees/", FeeQuoteView.as_view(), name="payment-fees"),
]
