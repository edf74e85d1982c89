"""Read-side availability and pricing views.

Nothing here takes locks or writes rows. Counts may be slightly stale;
the reservation transaction re-checks every night before committing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from apps.hotels.models import Hotel, RoomType
from shared.domain.errors import NotFoundError, ValidationError
from shared.domain.value_objects import DateRange, TimeSlot, quantize_amount

from .cache import get_cached_calendar
from .store import DayState, InventoryStore, SlotState

MAX_CALENDAR_DAYS = 366


class UnavailableReason:
    CLOSED = "closed"
    SOLD_OUT = "sold_out"
    MIN_STAY = "min_stay"
    HOURS_OUT_OF_BOUNDS = "hours_out_of_bounds"


@dataclass
class DailyRoomTypeAvailability:
    room_type_id: int
    name: str
    base_price_daily: Decimal
    max_guests: int
    nights: int
    dates: list[DayState]
    min_available: int
    is_available: bool
    total_price: Decimal
    price_per_night: Decimal
    min_stay_nights: int = 1
    reason: Optional[str] = None


@dataclass
class DailyAvailability:
    hotel_id: int
    check_in: date
    check_out: date
    nights: int
    num_rooms: int
    num_guests: int
    available: list[DailyRoomTypeAvailability] = field(default_factory=list)
    unavailable: list[DailyRoomTypeAvailability] = field(default_factory=list)


@dataclass
class HourlyRoomTypeAvailability:
    room_type_id: int
    name: str
    base_price_hourly: Optional[Decimal]
    min_hours: int
    max_hours: int
    slots: list[SlotState]
    is_available: bool
    reason: Optional[str] = None
    message: str = ""


@dataclass
class HourlyAvailability:
    hotel_id: int
    date: date
    num_hours: int
    num_rooms: int
    available: list[HourlyRoomTypeAvailability] = field(default_factory=list)
    unavailable: list[HourlyRoomTypeAvailability] = field(default_factory=list)


@dataclass
class AvailabilityCalendar:
    room_type_id: int
    room_type_name: str
    base_price_daily: Decimal
    total_rooms: int
    days: list[DayState]


def stay_range(check_in: date, check_out: Optional[date] = None) -> DateRange:
    """Stay from check_in to check_out (default: one night)."""
    check_out = check_out or check_in + timedelta(days=1)
    if check_out <= check_in:
        raise ValidationError(
            "Check-out date must be after check-in date",
            details={"check_in": check_in.isoformat(), "check_out": check_out.isoformat()},
        )
    return DateRange(check_in, check_out)


def hour_bounds_message(min_hours: int, max_hours: int) -> str:
    return f"Booking must be between {min_hours} and {max_hours} hours"


def operating_slots(hotel: Hotel, num_hours: int) -> list[TimeSlot]:
    """Whole-hour starts from opening time until closing minus the duration."""
    last_start = hotel.hourly_close_hour - num_hours
    return [TimeSlot(hour, num_hours) for hour in range(hotel.hourly_open_hour, last_start + 1)]


def _require_positive(**values: int) -> None:
    for name, value in values.items():
        if value is None or value < 1:
            raise ValidationError(f"{name} must be at least 1", details={name: value})


class AvailabilityCalculator:
    """Daily, hourly and calendar views over InventoryStore."""

    def __init__(self, store: Optional[InventoryStore] = None) -> None:
        self.store = store or InventoryStore()

    def _hotel(self, hotel_id: int) -> Hotel:
        try:
            return Hotel.objects.get(pk=hotel_id, is_active=True)
        except Hotel.DoesNotExist:
            raise NotFoundError(f"Hotel {hotel_id} not found", details={"hotel_id": hotel_id}) from None

    def _room_types(self, hotel: Hotel, room_type_id: Optional[int]):
        queryset = hotel.room_types.filter(is_active=True).select_related("hotel")
        if room_type_id is not None:
            queryset = queryset.filter(pk=room_type_id)
            if not queryset.exists():
                raise NotFoundError(
                    f"Room type {room_type_id} not found",
                    details={"room_type_id": room_type_id},
                )
        return queryset.order_by("sort_order", "id")

    # -- daily -------------------------------------------------------------------

    def evaluate_stay(self, room_type: RoomType, stay: DateRange, num_rooms: int) -> DailyRoomTypeAvailability:
        states = self.store.day_states(room_type, stay.days())
        nights = stay.nights
        min_available = min(state.available for state in states)
        required_min_stay = max([1] + [state.min_stay_nights for state in states])
        nightly_sum = sum((state.price for state in states), Decimal("0"))
        total_price = quantize_amount(nightly_sum * num_rooms)

        reason = None
        if any(state.is_closed for state in states):
            reason = UnavailableReason.CLOSED
        elif min_available < num_rooms:
            reason = UnavailableReason.SOLD_OUT
        elif nights < required_min_stay:
            reason = UnavailableReason.MIN_STAY

        return DailyRoomTypeAvailability(
            room_type_id=room_type.pk,
            name=room_type.name,
            base_price_daily=room_type.base_price_daily,
            max_guests=room_type.max_guests,
            nights=nights,
            dates=states,
            min_available=min_available,
            is_available=reason is None,
            total_price=total_price,
            price_per_night=quantize_amount(total_price / nights),
            min_stay_nights=required_min_stay,
            reason=reason,
        )

    def check_daily(
        self,
        hotel_id: int,
        check_in: date,
        check_out: Optional[date] = None,
        *,
        room_type_id: Optional[int] = None,
        num_rooms: int = 1,
        num_guests: int = 1,
    ) -> DailyAvailability:
        stay = stay_range(check_in, check_out)
        _require_positive(num_rooms=num_rooms, num_guests=num_guests)
        hotel = self._hotel(hotel_id)

        result = DailyAvailability(
            hotel_id=hotel.pk,
            check_in=stay.start_date,
            check_out=stay.end_date,
            nights=stay.nights,
            num_rooms=num_rooms,
            num_guests=num_guests,
        )
        for room_type in self._room_types(hotel, room_type_id):
            entry = self.evaluate_stay(room_type, stay, num_rooms)
            (result.available if entry.is_available else result.unavailable).append(entry)
        return result

    # -- hourly ------------------------------------------------------------------

    def check_hourly(
        self,
        hotel_id: int,
        day: date,
        *,
        num_hours: int,
        room_type_id: Optional[int] = None,
        start_time: Optional[str] = None,
        num_rooms: int = 1,
    ) -> HourlyAvailability:
        _require_positive(num_hours=num_hours, num_rooms=num_rooms)
        requested: Optional[TimeSlot] = None
        if start_time:
            try:
                requested = TimeSlot.parse(start_time, num_hours)
            except ValueError as exc:
                raise ValidationError(str(exc), details={"start_time": start_time}) from None

        hotel = self._hotel(hotel_id)
        result = HourlyAvailability(hotel_id=hotel.pk, date=day, num_hours=num_hours, num_rooms=num_rooms)
        room_types = self._room_types(hotel, room_type_id).filter(base_price_hourly__isnull=False)

        for room_type in room_types:
            min_hours = room_type.effective_min_hours
            max_hours = room_type.effective_max_hours
            if not min_hours <= num_hours <= max_hours:
                result.unavailable.append(
                    HourlyRoomTypeAvailability(
                        room_type_id=room_type.pk,
                        name=room_type.name,
                        base_price_hourly=room_type.base_price_hourly,
                        min_hours=min_hours,
                        max_hours=max_hours,
                        slots=[],
                        is_available=False,
                        reason=UnavailableReason.HOURS_OUT_OF_BOUNDS,
                        message=hour_bounds_message(min_hours, max_hours),
                    )
                )
                continue

            states = self.store.slot_states(room_type, day, operating_slots(hotel, num_hours))
            slots = [state for state in states if state.available >= num_rooms and not state.is_closed]
            if requested is not None:
                slots = [state for state in slots if state.slot_start == requested.start]

            entry = HourlyRoomTypeAvailability(
                room_type_id=room_type.pk,
                name=room_type.name,
                base_price_hourly=room_type.base_price_hourly,
                min_hours=min_hours,
                max_hours=max_hours,
                slots=slots,
                is_available=bool(slots),
            )
            if not entry.is_available:
                entry.reason = UnavailableReason.SOLD_OUT
            (result.available if entry.is_available else result.unavailable).append(entry)
        return result

    # -- calendar ----------------------------------------------------------------

    def calendar(self, room_type_id: int, start: date, end: date) -> AvailabilityCalendar:
        """Per-day counts and prices for ``start..end`` inclusive."""
        if end < start:
            raise ValidationError("End date must not be before start date")
        span = (end - start).days + 1
        if span > MAX_CALENDAR_DAYS:
            raise ValidationError(f"Calendar range is limited to {MAX_CALENDAR_DAYS} days")
        try:
            room_type = RoomType.objects.select_related("hotel").get(pk=room_type_id)
        except RoomType.DoesNotExist:
            raise NotFoundError(
                f"Room type {room_type_id} not found",
                details={"room_type_id": room_type_id},
            ) from None

        def build() -> AvailabilityCalendar:
            days = DateRange(start, end + timedelta(days=1)).days()
            return AvailabilityCalendar(
                room_type_id=room_type.pk,
                room_type_name=room_type.name,
                base_price_daily=room_type.base_price_daily,
                total_rooms=room_type.total_rooms,
                days=self.store.day_states(room_type, days),
            )

        return get_cached_calendar(room_type.pk, start.isoformat(), end.isoformat(), build)
