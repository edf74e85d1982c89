"""Admin registrations for inventory counters."""

from __future__ import annotations

from django.contrib import admin

from .models import HourlySlot, RoomInventory


@admin.register(RoomInventory)
class RoomInventoryAdmin(admin.ModelAdmin):
    list_display = ("room_type", "date", "available_count", "price_override", "is_closed", "min_stay_nights")
    list_filter = ("is_closed", "room_type__hotel")
    search_fields = ("room_type__name", "room_type__hotel__name")
    date_hierarchy = "date"

    def get_readonly_fields(self, request, obj=None):  # type: ignore
        # counts move only through reservation and release once a row exists
        if obj is None:
            return ("updated_at",)
        return ("available_count", "updated_at")


@admin.register(HourlySlot)
class HourlySlotAdmin(admin.ModelAdmin):
    list_display = ("room_type", "date", "slot_start", "slot_end", "available_count", "price_override", "is_closed")
    list_filter = ("is_closed", "room_type__hotel")
    search_fields = ("room_type__name",)
    date_hierarchy = "date"

    def get_readonly_fields(self, request, obj=None):  # type: ignore
        # counts move only through reservation and release once a row exists
        if obj is None:
            return ("updated_at",)
        return ("available_count", "updated_at")
