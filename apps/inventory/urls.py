"""URL routing for availability and inventory."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import (
    AvailabilityCalendarView,
    DailyAvailabilityView,
    HourlyAvailabilityView,
    InventoryOverrideView,
)

urlpatterns = [
    path("daily/", DailyAvailabilityView.as_view(), name="availability-daily"),
    path("hourly/", HourlyAvailabilityView.as_view(), name="availability-hourly"),
    path(
        "calendar/<int:room_type_id>/",
        AvailabilityCalendarView.as_view(),
        name="availability-calendar",
    ),
    path(
        "inventory/<int:room_type_id>/overrides/",
        InventoryOverrideView.as_view(),
        name="inventory-overrides",
    ),
]
