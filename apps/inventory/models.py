"""Inventory counters for room types.

Rows are created lazily: a missing row means the whole room type is free
at its base price. Only the reservation and release paths in
``apps.inventory.store`` change ``available_count``.
"""

from __future__ import annotations

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class InventoryCounter(models.Model):
    """Common shape of daily and hourly counters."""

    date = models.DateField()
    available_count = models.PositiveIntegerField()
    price_override = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    is_closed = models.BooleanField(default=False)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class RoomInventory(InventoryCounter):
    """Остаток номеров определённого типа на дату."""

    room_type = models.ForeignKey(
        "hotels.RoomType",
        on_delete=models.CASCADE,
        related_name="inventory",
    )
    min_stay_nights = models.PositiveSmallIntegerField(default=1)

    class Meta:
        verbose_name = _("Остаток на дату")
        verbose_name_plural = _("Остатки по датам")
        ordering = ["room_type", "date"]
        constraints = [
            models.UniqueConstraint(fields=["room_type", "date"], name="inventory_unique_day"),
            models.CheckConstraint(
                condition=models.Q(available_count__gte=0),
                name="inventory_available_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.room_type_id} @ {self.date}: {self.available_count}"


class HourlySlot(InventoryCounter):
    """Остаток номеров на почасовое окно (slot_start..slot_end)."""

    room_type = models.ForeignKey(
        "hotels.RoomType",
        on_delete=models.CASCADE,
        related_name="hourly_slots",
    )
    slot_start = models.CharField(max_length=5, help_text=_("HH:MM"))
    slot_end = models.CharField(max_length=5, help_text=_("HH:MM"))

    class Meta:
        verbose_name = _("Почасовой слот")
        verbose_name_plural = _("Почасовые слоты")
        ordering = ["room_type", "date", "slot_start"]
        constraints = [
            models.UniqueConstraint(
                fields=["room_type", "date", "slot_start", "slot_end"],
                name="hourly_slot_unique_window",
            ),
            models.CheckConstraint(
                condition=models.Q(available_count__gte=0),
                name="hourly_slot_available_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.room_type_id} @ {self.date} {self.slot_start}-{self.slot_end}: {self.available_count}"
