from django.contrib import admin

from .models import Event, EventEntry


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ("name", "event_date", "venue", "entry_fee", "payment_required")
    search_fields = ("name", "venue")


@admin.register(EventEntry)
class EventEntryAdmin(admin.ModelAdmin):
    list_display = ("item_name", "event", "performance_type", "calculated_fee", "payment_status", "approved")
    search_fields = ("item_name", "contestant_id", "payment_id")
    list_filter = ("payment_status", "approved", "entry_type")
