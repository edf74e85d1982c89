"""Admin registrations for hotels."""

from __future__ import annotations

from django.contrib import admin

from .models import Hotel, RoomType


class RoomTypeInline(admin.TabularInline):
    model = RoomType
    extra = 0
    fields = ("name", "base_price_daily", "base_price_hourly", "total_rooms", "is_active", "sort_order")


@admin.register(Hotel)
class HotelAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "currency", "commission_rate", "is_active")
    list_filter = ("is_active", "currency")
    search_fields = ("name", "slug")
    prepopulated_fields = {"slug": ("name",)}
    inlines = (RoomTypeInline,)
    readonly_fields = ("created_at", "updated_at")


@admin.register(RoomType)
class RoomTypeAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "hotel",
        "base_price_daily",
        "base_price_hourly",
        "total_rooms",
        "max_guests",
        "is_active",
    )
    list_filter = ("is_active", "hotel")
    search_fields = ("name", "hotel__name")
    readonly_fields = ("created_at", "updated_at")
