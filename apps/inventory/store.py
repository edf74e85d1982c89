"""Capacity counters with conditional decrement and clamped release.

Each (room type, date) and (room type, date, slot) row behaves as a
compare-and-swap counter: reservation is a single
``UPDATE ... SET available_count = available_count - n WHERE available_count >= n``
and zero affected rows means somebody else got there first. All write
methods must run inside the caller's ``transaction.atomic()`` block so a
failure on any night rolls back the nights already taken.

Hourly capacity is counted per exact window: 10:00-13:00 and 11:00-14:00
are separate counters, and hourly slots never touch the nightly rows. A
slot count is not an exclusive hold on a physical room.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

import structlog
from django.db import transaction  # type: ignore
from django.db.models import F, IntegerField, Value  # type: ignore
from django.db.models.functions import Least  # type: ignore

from apps.hotels.models import RoomType
from shared.domain.errors import ConflictError
from shared.domain.value_objects import DateRange, TimeSlot

from .models import HourlySlot, RoomInventory

logger = structlog.get_logger(__name__)

_UNSET = object()


@dataclass(frozen=True)
class DayState:
    """Resolved counter for one night (row or room type defaults)."""
    date: date
    available: int
    price: Decimal
    is_closed: bool
    min_stay_nights: int
    has_row: bool = False
    has_custom_price: bool = False


@dataclass(frozen=True)
class SlotState:
    date: date
    slot_start: str
    slot_end: str
    available: int
    price: Decimal
    is_closed: bool


def _require_atomic() -> None:
    if not transaction.get_connection().in_atomic_block:
        raise RuntimeError("Inventory writes must run inside transaction.atomic()")


def _restocked(room_type: RoomType, num_rooms: int) -> Least:
    return Least(
        F("available_count") + num_rooms,
        Value(room_type.total_rooms),
        output_field=IntegerField(),
    )


class InventoryStore:
    """Read and write access to RoomInventory / HourlySlot rows."""

    # -- reads ---------------------------------------------------------------

    def day_states(self, room_type: RoomType, days: Iterable[date]) -> list[DayState]:
        """Per-night state in the given order, falling back to room type defaults."""
        days = list(days)
        rows = {
            row.date: row
            for row in RoomInventory.objects.filter(room_type=room_type, date__in=days)
        }
        states = []
        for day in days:
            row = rows.get(day)
            if row is None:
                states.append(
                    DayState(
                        date=day,
                        available=room_type.total_rooms,
                        price=room_type.base_price_daily,
                        is_closed=False,
                        min_stay_nights=1,
                    )
                )
                continue
            states.append(
                DayState(
                    date=day,
                    available=row.available_count,
                    price=row.price_override if row.price_override is not None else room_type.base_price_daily,
                    is_closed=row.is_closed,
                    min_stay_nights=row.min_stay_nights,
                    has_row=True,
                    has_custom_price=row.price_override is not None,
                )
            )
        return states

    def slot_states(self, room_type: RoomType, day: date, slots: Iterable[TimeSlot]) -> list[SlotState]:
        """Per-slot state; an override is a per-hour rate multiplied by the slot length."""
        slots = list(slots)
        rows = {
            (row.slot_start, row.slot_end): row
            for row in HourlySlot.objects.filter(room_type=room_type, date=day)
        }
        hourly_rate = room_type.base_price_hourly or Decimal("0")
        states = []
        for slot in slots:
            row = rows.get((slot.start, slot.end))
            rate = row.price_override if row is not None and row.price_override is not None else hourly_rate
            states.append(
                SlotState(
                    date=day,
                    slot_start=slot.start,
                    slot_end=slot.end,
                    available=row.available_count if row is not None else room_type.total_rooms,
                    price=rate * slot.num_hours,
                    is_closed=row.is_closed if row is not None else False,
                )
            )
        return states

    # -- reservation -----------------------------------------------------------

    def _ensure_day(self, room_type: RoomType, day: date) -> RoomInventory:
        row, created = RoomInventory.objects.get_or_create(
            room_type=room_type,
            date=day,
            defaults={"available_count": room_type.total_rooms},
        )
        if created:
            logger.debug("inventory.row_created", room_type=room_type.pk, date=day.isoformat())
        return row

    def _ensure_slot(self, room_type: RoomType, day: date, slot: TimeSlot) -> HourlySlot:
        row, _ = HourlySlot.objects.get_or_create(
            room_type=room_type,
            date=day,
            slot_start=slot.start,
            slot_end=slot.end,
            defaults={"available_count": room_type.total_rooms},
        )
        return row

    @staticmethod
    def _conflict(row, day: date, slot: Optional[TimeSlot] = None) -> ConflictError:
        row.refresh_from_db(fields=["available_count", "is_closed"])
        code = ConflictError.CLOSED if row.is_closed else ConflictError.SOLD_OUT
        return ConflictError.for_date(code, day, str(slot) if slot else None)

    def reserve_nights(self, room_type: RoomType, stay: DateRange, num_rooms: int) -> list[RoomInventory]:
        """
        Take ``num_rooms`` from every night of ``stay``.

        Nights are touched in ascending date order so that two overlapping
        reservations always lock rows in the same order. Raises
        ConflictError(SOLD_OUT | CLOSED) on the first night that cannot be
        taken; the surrounding transaction must then roll back.
        """
        _require_atomic()
        rows = []
        for day in stay.days():
            row = self._ensure_day(room_type, day)
            updated = RoomInventory.objects.filter(
                pk=row.pk,
                available_count__gte=num_rooms,
                is_closed=False,
            ).update(available_count=F("available_count") - num_rooms)
            if not updated:
                raise self._conflict(row, day)
            rows.append(row)
        return rows

    def release_nights(self, room_type: RoomType, days: Iterable[date], num_rooms: int) -> int:
        """Give ``num_rooms`` back to each night, never above total_rooms."""
        _require_atomic()
        released = 0
        for day in sorted(days):
            released += RoomInventory.objects.filter(room_type=room_type, date=day).update(
                available_count=_restocked(room_type, num_rooms)
            )
        return released

    def reserve_slot(self, room_type: RoomType, day: date, slot: TimeSlot, num_rooms: int) -> HourlySlot:
        """Take ``num_rooms`` from the counter of this exact window only."""
        _require_atomic()
        row = self._ensure_slot(room_type, day, slot)
        updated = HourlySlot.objects.filter(
            pk=row.pk,
            available_count__gte=num_rooms,
            is_closed=False,
        ).update(available_count=F("available_count") - num_rooms)
        if not updated:
            raise self._conflict(row, day, slot)
        return row

    def release_slot(self, room_type: RoomType, day: date, slot_start: str, slot_end: str, num_rooms: int) -> int:
        _require_atomic()
        return HourlySlot.objects.filter(
            room_type=room_type,
            date=day,
            slot_start=slot_start,
            slot_end=slot_end,
        ).update(available_count=_restocked(room_type, num_rooms))

    # -- operator overrides ----------------------------------------------------

    @transaction.atomic
    def apply_overrides(
        self,
        room_type: RoomType,
        dates: DateRange,
        *,
        price_override=_UNSET,
        is_closed: Optional[bool] = None,
        min_stay_nights: Optional[int] = None,
    ) -> int:
        """
        Bulk-set price, closure and minimum stay for a date range.

        ``price_override=None`` clears a custom price. Counts are left alone;
        they only move through reservation and release.
        """
        changes: dict = {}
        if price_override is not _UNSET:
            changes["price_override"] = price_override
        if is_closed is not None:
            changes["is_closed"] = is_closed
        if min_stay_nights is not None:
            changes["min_stay_nights"] = min_stay_nights
        if not changes:
            return 0

        for day in dates.days():
            self._ensure_day(room_type, day)
        updated = RoomInventory.objects.filter(
            room_type=room_type,
            date__gte=dates.start_date,
            date__lt=dates.end_date,
        ).update(**changes)
        logger.info(
            "inventory.overrides_applied",
            room_type=room_type.pk,
            start=dates.start_date.isoformat(),
            end=dates.end_date.isoformat(),
            fields=sorted(changes),
        )
        return updated
