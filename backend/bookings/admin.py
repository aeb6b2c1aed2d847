from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = ("unique_request_id", "place", "client", "status", "final_total", "currency", "check_in")
    list_filter = ("status", "currency", "payment_provider")
    search_fields = ("unique_request_id", "place__title", "client__email", "guest_phone")
    readonly_fields = [field for field in Booking.FROZEN_FIELDS + Booking.GUARDED_FIELDS if not field.endswith("_id")] + [
        "place",
        "client",
        "created_at",
        "updated_at",
    ]
