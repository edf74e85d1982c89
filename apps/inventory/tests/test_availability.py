"""Tests for daily, hourly and calendar availability."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import TestCase

from apps.hotels.models import Hotel, RoomType
from apps.inventory.availability import AvailabilityCalculator, UnavailableReason, operating_slots
from apps.inventory.cache import invalidate_room_type
from apps.inventory.models import HourlySlot, RoomInventory
from shared.domain.errors import NotFoundError, ValidationError


class DailyAvailabilityTests(TestCase):
    def setUp(self) -> None:
        self.hotel = Hotel.objects.create(name="Sea View", slug="sea-view")
        self.room_type = RoomType.objects.create(
            hotel=self.hotel,
            name="Deluxe",
            base_price_daily=Decimal("2000.00"),
            base_price_hourly=Decimal("500.00"),
            total_rooms=10,
        )
        self.calculator = AvailabilityCalculator()

    def test_fresh_room_type_is_fully_available(self) -> None:
        result = self.calculator.check_daily(self.hotel.pk, date(2026, 3, 5), date(2026, 3, 8))

        self.assertEqual(result.nights, 3)
        self.assertEqual(len(result.available), 1)
        entry = result.available[0]
        self.assertEqual(entry.min_available, 10)
        self.assertEqual([state.available for state in entry.dates], [10, 10, 10])
        self.assertEqual(entry.total_price, Decimal("6000.00"))
        self.assertEqual(entry.price_per_night, Decimal("2000.00"))

    def test_sold_out_night_makes_room_type_unavailable(self) -> None:
        RoomInventory.objects.create(room_type=self.room_type, date=date(2026, 3, 6), available_count=0)

        result = self.calculator.check_daily(self.hotel.pk, date(2026, 3, 5), date(2026, 3, 8))

        self.assertEqual(result.available, [])
        entry = result.unavailable[0]
        self.assertEqual(entry.min_available, 0)
        self.assertEqual(entry.reason, UnavailableReason.SOLD_OUT)

    def test_not_enough_rooms_for_request(self) -> None:
        RoomInventory.objects.create(room_type=self.room_type, date=date(2026, 3, 6), available_count=1)

        result = self.calculator.check_daily(self.hotel.pk, date(2026, 3, 5), date(2026, 3, 8), num_rooms=2)

        self.assertEqual(result.unavailable[0].reason, UnavailableReason.SOLD_OUT)

    def test_closed_night_reports_closed(self) -> None:
        RoomInventory.objects.create(
            room_type=self.room_type,
            date=date(2026, 3, 7),
            available_count=10,
            is_closed=True,
        )

        result = self.calculator.check_daily(self.hotel.pk, date(2026, 3, 5), date(2026, 3, 8))

        self.assertEqual(result.unavailable[0].reason, UnavailableReason.CLOSED)

    def test_minimum_stay_is_enforced(self) -> None:
        RoomInventory.objects.create(
            room_type=self.room_type,
            date=date(2026, 3, 5),
            available_count=10,
            min_stay_nights=3,
        )

        result = self.calculator.check_daily(self.hotel.pk, date(2026, 3, 5), date(2026, 3, 7))

        entry = result.unavailable[0]
        self.assertEqual(entry.reason, UnavailableReason.MIN_STAY)
        self.assertEqual(entry.min_stay_nights, 3)

    def test_price_override_is_used_per_night(self) -> None:
        RoomInventory.objects.create(
            room_type=self.room_type,
            date=date(2026, 3, 6),
            available_count=10,
            price_override=Decimal("3500.00"),
        )

        result = self.calculator.check_daily(self.hotel.pk, date(2026, 3, 5), date(2026, 3, 8), num_rooms=2)

        entry = result.available[0]
        self.assertEqual(entry.total_price, Decimal("15000.00"))
        self.assertEqual(entry.price_per_night, Decimal("5000.00"))

    def test_check_out_defaults_to_one_night(self) -> None:
        result = self.calculator.check_daily(self.hotel.pk, date(2026, 3, 5))

        self.assertEqual(result.check_out, date(2026, 3, 6))
        self.assertEqual(result.nights, 1)

    def test_check_out_must_follow_check_in(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.calculator.check_daily(self.hotel.pk, date(2026, 3, 5), date(2026, 3, 5))
        self.assertEqual(ctx.exception.message, "Check-out date must be after check-in date")

    def test_inactive_room_types_are_hidden(self) -> None:
        RoomType.objects.create(
            hotel=self.hotel,
            name="Closed wing",
            base_price_daily=Decimal("1000.00"),
            total_rooms=5,
            is_active=False,
        )

        result = self.calculator.check_daily(self.hotel.pk, date(2026, 3, 5), date(2026, 3, 8))

        self.assertEqual([entry.room_type_id for entry in result.available], [self.room_type.pk])

    def test_unknown_hotel_or_room_type(self) -> None:
        with self.assertRaises(NotFoundError):
            self.calculator.check_daily(self.hotel.pk + 100, date(2026, 3, 5))
        with self.assertRaises(NotFoundError):
            self.calculator.check_daily(self.hotel.pk, date(2026, 3, 5), room_type_id=self.room_type.pk + 100)


class HourlyAvailabilityTests(TestCase):
    def setUp(self) -> None:
        self.hotel = Hotel.objects.create(name="Sea View", slug="sea-view")
        self.room_type = RoomType.objects.create(
            hotel=self.hotel,
            name="Deluxe",
            base_price_daily=Decimal("2000.00"),
            base_price_hourly=Decimal("500.00"),
            total_rooms=10,
        )
        self.daily_only = RoomType.objects.create(
            hotel=self.hotel,
            name="Suite",
            base_price_daily=Decimal("6000.00"),
            total_rooms=2,
        )
        self.calculator = AvailabilityCalculator()

    def test_operating_slots_cover_the_window(self) -> None:
        slots = operating_slots(self.hotel, 3)

        self.assertEqual(slots[0].start, "06:00")
        self.assertEqual(slots[-1].end, "22:00")
        self.assertEqual(len(slots), 14)

    def test_lists_priced_slots_for_hourly_room_types(self) -> None:
        result = self.calculator.check_hourly(self.hotel.pk, date(2026, 3, 5), num_hours=3)

        self.assertEqual([entry.room_type_id for entry in result.available], [self.room_type.pk])
        slots = result.available[0].slots
        self.assertEqual(len(slots), 14)
        self.assertEqual(slots[0].price, Decimal("1500.00"))

    def test_duration_outside_bounds_returns_message(self) -> None:
        result = self.calculator.check_hourly(self.hotel.pk, date(2026, 3, 5), num_hours=2)

        self.assertEqual(result.available, [])
        entry = result.unavailable[0]
        self.assertEqual(entry.reason, UnavailableReason.HOURS_OUT_OF_BOUNDS)
        self.assertEqual(entry.message, "Booking must be between 3 and 12 hours")

    def test_requested_start_time_narrows_slots(self) -> None:
        result = self.calculator.check_hourly(self.hotel.pk, date(2026, 3, 5), num_hours=3, start_time="14:00")

        slots = result.available[0].slots
        self.assertEqual([(slot.slot_start, slot.slot_end) for slot in slots], [("14:00", "17:00")])

    def test_sold_out_slot_is_excluded(self) -> None:
        HourlySlot.objects.create(
            room_type=self.room_type,
            date=date(2026, 3, 5),
            slot_start="14:00",
            slot_end="17:00",
            available_count=0,
        )

        result = self.calculator.check_hourly(self.hotel.pk, date(2026, 3, 5), num_hours=3, start_time="14:00")

        self.assertEqual(result.available, [])
        self.assertEqual(result.unavailable[0].reason, UnavailableReason.SOLD_OUT)

    def test_start_time_must_be_on_the_hour(self) -> None:
        with self.assertRaises(ValidationError):
            self.calculator.check_hourly(self.hotel.pk, date(2026, 3, 5), num_hours=3, start_time="14:30")


class AvailabilityCalendarTests(TestCase):
    def setUp(self) -> None:
        self.hotel = Hotel.objects.create(name="Sea View", slug="sea-view")
        self.room_type = RoomType.objects.create(
            hotel=self.hotel,
            name="Deluxe",
            base_price_daily=Decimal("2000.00"),
            total_rooms=10,
        )
        self.calculator = AvailabilityCalculator()

    def test_calendar_bounds_are_inclusive(self) -> None:
        RoomInventory.objects.create(
            room_type=self.room_type,
            date=date(2026, 3, 2),
            available_count=4,
            price_override=Decimal("2400.00"),
        )

        calendar = self.calculator.calendar(self.room_type.pk, date(2026, 3, 1), date(2026, 3, 3))

        self.assertEqual([day.date for day in calendar.days], [date(2026, 3, 1), date(2026, 3, 2), date(2026, 3, 3)])
        self.assertEqual([day.available for day in calendar.days], [10, 4, 10])
        self.assertTrue(calendar.days[1].has_custom_price)
        self.assertEqual(calendar.total_rooms, 10)

    def test_calendar_is_cached_until_invalidated(self) -> None:
        self.calculator.calendar(self.room_type.pk, date(2026, 3, 1), date(2026, 3, 3))
        RoomInventory.objects.create(room_type=self.room_type, date=date(2026, 3, 1), available_count=3)

        cached = self.calculator.calendar(self.room_type.pk, date(2026, 3, 1), date(2026, 3, 3))
        self.assertEqual(cached.days[0].available, 10)

        invalidate_room_type(self.room_type.pk)
        fresh = self.calculator.calendar(self.room_type.pk, date(2026, 3, 1), date(2026, 3, 3))
        self.assertEqual(fresh.days[0].available, 3)

    def test_calendar_range_is_validated(self) -> None:
        with self.assertRaises(ValidationError):
            self.calculator.calendar(self.room_type.pk, date(2026, 3, 3), date(2026, 3, 1))
        with self.assertRaises(ValidationError):
            self.calculator.calendar(self.room_type.pk, date(2026, 1, 1), date(2027, 1, 2))
        with self.assertRaises(NotFoundError):
            self.calculator.calendar(self.room_type.pk + 100, date(2026, 3, 1), date(2026, 3, 3))
