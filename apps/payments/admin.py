from django.contrib import admin

from .models import PaymentLog, PaymentSession


@admin.register(PaymentSession)
class PaymentSessionAdmin(admin.ModelAdmin):
    list_display = ("payment_id", "event", "status", "amount", "is_batch", "created_at", "paid_at")
    list_filter = ("status", "is_batch", "event")
    search_fields = ("payment_id", "provider_payment_id", "user_id")
    readonly_fields = ("raw_notification", "pending_entries", "signature", "created_at", "updated_at", "paid_at")


@admin.register(PaymentLog)
class PaymentLogAdmin(admin.ModelAdmin):
    list_display = ("payment_id", "event_type", "ip_address", "created_at")
    list_filter = ("event_type",)
    search_fields = ("payment_id",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
