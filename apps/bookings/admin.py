"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_number",
        "hotel",
        "room_type",
        "booking_type",
        "status",
        "payment_status",
        "check_in_date",
        "check_out_date",
        "total_amount",
        "created_at",
    )
    list_filter = ("status", "payment_status", "booking_type", "source", "check_in_date")
    search_fields = ("booking_number", "guest_email", "guest_name", "hotel__name")
    readonly_fields = (
        "booking_number",
        "idempotency_key",
        "status",
        "payment_status",
        "room_total",
        "extra_guest_total",
        "taxes",
        "total_amount",
        "commission_rate",
        "commission_amount",
        "hotel_payout",
        "inventory_released",
        "created_at",
        "updated_at",
    )

    def has_add_permission(self, request):  # type: ignore
        # bookings are created only through the reservation API
        return False
