"""Tests for atomic, idempotent reservation of inventory."""

from __future__ import annotations

import threading
import unittest
from datetime import date, datetime, timedelta
from decimal import Decimal
from unittest import mock
from zoneinfo import ZoneInfo

from django.db import connection
from django.test import TestCase, TransactionTestCase

from apps.bookings.models import Booking
from apps.bookings.services import ReservationCoordinator, ReservationRequest
from apps.finances.models import Commission
from apps.hotels.models import Hotel, RoomType
from apps.inventory.models import HourlySlot, RoomInventory
from shared.domain.errors import ConflictError, NotFoundError, ValidationError

FIXED_NOW = datetime(2026, 3, 1, 10, 0, tzinfo=ZoneInfo("Asia/Kolkata"))


def fixed_clock() -> datetime:
    return FIXED_NOW


class ReservationCoordinatorTests(TestCase):
    def setUp(self) -> None:
        self.hotel = Hotel.objects.create(name="Sea View", slug="sea-view")
        self.room_type = RoomType.objects.create(
            hotel=self.hotel,
            name="Deluxe",
            base_price_daily=Decimal("2000.00"),
            base_price_hourly=Decimal("500.00"),
            max_guests=2,
            max_extra_guests=1,
            extra_guest_charge=Decimal("500.00"),
            total_rooms=10,
        )
        self.coordinator = ReservationCoordinator(tax_rate=Decimal("0.18"), hold_minutes=15, clock=fixed_clock)

    def _request(self, **overrides) -> ReservationRequest:
        values = dict(
            hotel_id=self.hotel.pk,
            room_type_id=self.room_type.pk,
            guest_name="Asha Rao",
            guest_email="asha@example.com",
            check_in_date=date(2026, 3, 5),
            check_out_date=date(2026, 3, 8),
        )
        values.update(overrides)
        return ReservationRequest(**values)

    def _counts(self, *days: date) -> list[int]:
        rows = {row.date: row.available_count for row in RoomInventory.objects.filter(room_type=self.room_type)}
        return [rows.get(day, self.room_type.total_rooms) for day in days]

    def test_daily_booking_prices_and_holds_rooms(self) -> None:
        result = self.coordinator.create_booking(self._request())

        booking = result.booking
        self.assertTrue(result.created)
        self.assertEqual(booking.status, Booking.Status.PENDING)
        self.assertEqual(booking.payment_status, Booking.PaymentStatus.PENDING)
        self.assertEqual(booking.room_total, Decimal("6000.00"))
        self.assertEqual(booking.taxes, Decimal("1080.00"))
        self.assertEqual(booking.total_amount, Decimal("7080.00"))
        self.assertEqual(booking.commission_amount, Decimal("708.00"))
        self.assertEqual(booking.hotel_payout, Decimal("6372.00"))
        self.assertEqual(booking.hold_expires_at, FIXED_NOW + timedelta(minutes=15))
        self.assertTrue(booking.booking_number.startswith("BK-20260301-"))
        self.assertEqual(self._counts(date(2026, 3, 5), date(2026, 3, 6), date(2026, 3, 7)), [9, 9, 9])
        self.assertEqual(self._counts(date(2026, 3, 8)), [10])

        commission = Commission.objects.get(booking=booking)
        self.assertEqual(commission.status, Commission.Status.PENDING)
        self.assertEqual(commission.commission_amount, Decimal("708.00"))

    def test_direct_bookings_carry_no_commission(self) -> None:
        booking = self.coordinator.create_booking(self._request(source=Booking.Source.DIRECT)).booking

        self.assertEqual(booking.commission_amount, Decimal("0.00"))
        self.assertEqual(booking.hotel_payout, booking.total_amount)
        self.assertFalse(Commission.objects.exists())

    def test_extra_guests_are_charged_per_night(self) -> None:
        booking = self.coordinator.create_booking(
            self._request(check_out_date=date(2026, 3, 7), num_guests=2, num_extra_guests=1)
        ).booking

        self.assertEqual(booking.extra_guest_total, Decimal("1000.00"))
        self.assertEqual(booking.taxes, Decimal("900.00"))
        self.assertEqual(booking.total_amount, Decimal("5900.00"))

    def test_price_overrides_are_charged(self) -> None:
        RoomInventory.objects.create(
            room_type=self.room_type,
            date=date(2026, 3, 6),
            available_count=10,
            price_override=Decimal("3000.00"),
        )

        booking = self.coordinator.create_booking(self._request(num_rooms=2, num_guests=2)).booking

        self.assertEqual(booking.room_total, Decimal("14000.00"))

    def test_same_key_replays_the_booking(self) -> None:
        first = self.coordinator.create_booking(self._request(), idempotency_key="key-1")
        second = self.coordinator.create_booking(self._request(), idempotency_key="key-1")

        self.assertFalse(second.created)
        self.assertEqual(first.booking.pk, second.booking.pk)
        self.assertEqual(Booking.objects.count(), 1)
        self.assertEqual(self._counts(date(2026, 3, 5)), [9])

    def test_retry_racing_the_first_call_gets_the_booking(self) -> None:
        self.room_type.total_rooms = 1
        self.room_type.save()
        first = self.coordinator.create_booking(self._request(), idempotency_key="key-1")

        original_replay = ReservationCoordinator._replay
        calls = []

        def replay_after_first_lookup(coordinator, key, request_fingerprint):
            calls.append(key)
            if len(calls) == 1:
                # first call had not committed yet when the retry looked
                return None
            return original_replay(coordinator, key, request_fingerprint)

        with mock.patch.object(ReservationCoordinator, "_replay", autospec=True, side_effect=replay_after_first_lookup):
            second = self.coordinator.create_booking(self._request(), idempotency_key="key-1")

        self.assertFalse(second.created)
        self.assertEqual(second.booking.pk, first.booking.pk)
        self.assertEqual(len(calls), 2)
        self.assertEqual(Booking.objects.count(), 1)
        self.assertEqual(self._counts(date(2026, 3, 5)), [0])

    def test_sold_out_without_matching_key_is_raised(self) -> None:
        self.room_type.total_rooms = 1
        self.room_type.save()
        self.coordinator.create_booking(self._request(), idempotency_key="key-1")

        with self.assertRaises(ConflictError) as ctx:
            self.coordinator.create_booking(self._request(), idempotency_key="key-2")

        self.assertEqual(ctx.exception.code, ConflictError.SOLD_OUT)

    def test_commission_is_a_snapshot(self) -> None:
        booking = self.coordinator.create_booking(self._request()).booking

        self.hotel.commission_rate = Decimal("0.2500")
        self.hotel.save()

        booking.refresh_from_db()
        commission = Commission.objects.get(booking=booking)
        self.assertEqual(booking.commission_rate, Decimal("0.1000"))
        self.assertEqual(booking.commission_amount, Decimal("708.00"))
        self.assertEqual(booking.hotel_payout, Decimal("6372.00"))
        self.assertEqual(commission.commission_rate, Decimal("0.1000"))
        self.assertEqual(commission.commission_amount, Decimal("708.00"))

    def test_key_reused_with_different_request(self) -> None:
        self.coordinator.create_booking(self._request(), idempotency_key="key-1")

        with self.assertRaises(ConflictError) as ctx:
            self.coordinator.create_booking(self._request(num_rooms=2, num_guests=2), idempotency_key="key-1")

        self.assertEqual(ctx.exception.code, ConflictError.IDEMPOTENCY_KEY_REUSED)
        self.assertFalse(ctx.exception.retryable)
        self.assertEqual(self._counts(date(2026, 3, 5)), [9])

    def test_missing_key_is_generated(self) -> None:
        result = self.coordinator.create_booking(self._request())

        self.assertEqual(len(result.idempotency_key), 32)
        self.assertEqual(result.booking.idempotency_key, result.idempotency_key)

    def test_sold_out_night_rolls_back_everything(self) -> None:
        RoomInventory.objects.create(room_type=self.room_type, date=date(2026, 3, 6), available_count=0)

        with self.assertRaises(ConflictError) as ctx:
            self.coordinator.create_booking(self._request())

        self.assertEqual(ctx.exception.code, ConflictError.SOLD_OUT)
        self.assertEqual(ctx.exception.details["date"], "2026-03-06")
        self.assertFalse(Booking.objects.exists())
        self.assertEqual(self._counts(date(2026, 3, 5), date(2026, 3, 6), date(2026, 3, 7)), [10, 0, 10])

    def test_closed_night_is_rejected(self) -> None:
        RoomInventory.objects.create(
            room_type=self.room_type,
            date=date(2026, 3, 7),
            available_count=10,
            is_closed=True,
        )

        with self.assertRaises(ConflictError) as ctx:
            self.coordinator.create_booking(self._request())

        self.assertEqual(ctx.exception.code, ConflictError.CLOSED)

    def test_more_requests_than_rooms(self) -> None:
        small = RoomType.objects.create(
            hotel=self.hotel,
            name="Attic",
            base_price_daily=Decimal("1500.00"),
            total_rooms=2,
        )
        outcomes = []
        for index in range(3):
            try:
                self.coordinator.create_booking(
                    self._request(
                        room_type_id=small.pk,
                        check_out_date=date(2026, 3, 6),
                        guest_email=f"guest{index}@example.com",
                    )
                )
                outcomes.append("ok")
            except ConflictError as exc:
                outcomes.append(exc.code)

        self.assertEqual(outcomes, ["ok", "ok", ConflictError.SOLD_OUT])
        self.assertEqual(RoomInventory.objects.get(room_type=small, date=date(2026, 3, 5)).available_count, 0)

    def test_minimum_stay_rolls_back(self) -> None:
        RoomInventory.objects.create(
            room_type=self.room_type,
            date=date(2026, 3, 5),
            available_count=10,
            min_stay_nights=3,
        )

        with self.assertRaises(ValidationError) as ctx:
            self.coordinator.create_booking(self._request(check_out_date=date(2026, 3, 7)))

        self.assertEqual(ctx.exception.code, "MIN_STAY")
        self.assertEqual(self._counts(date(2026, 3, 5), date(2026, 3, 6)), [10, 10])

    def test_guest_capacity(self) -> None:
        with self.assertRaises(ValidationError):
            self.coordinator.create_booking(self._request(num_guests=3, num_extra_guests=1))

        booking = self.coordinator.create_booking(self._request(num_guests=3)).booking
        self.assertEqual(booking.num_guests, 3)

    def test_past_check_in_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            self.coordinator.create_booking(
                self._request(check_in_date=date(2026, 2, 28), check_out_date=date(2026, 3, 2))
            )

    def test_reversed_dates_are_rejected(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.coordinator.create_booking(self._request(check_out_date=date(2026, 3, 5)))
        self.assertEqual(ctx.exception.message, "Check-out date must be after check-in date")

    def test_room_type_must_belong_to_hotel(self) -> None:
        other = Hotel.objects.create(name="Hill Top", slug="hill-top")

        with self.assertRaises(NotFoundError):
            self.coordinator.create_booking(self._request(hotel_id=other.pk))

    def test_hourly_booking_holds_the_slot(self) -> None:
        booking = self.coordinator.create_booking(
            self._request(
                booking_type=Booking.BookingType.HOURLY,
                check_in_date=date(2026, 3, 2),
                check_out_date=None,
                check_in_time="14:00",
                num_hours=3,
            )
        ).booking

        self.assertEqual((booking.check_in_time, booking.check_out_time), ("14:00", "17:00"))
        self.assertIsNone(booking.check_out_date)
        self.assertEqual(booking.room_total, Decimal("1500.00"))
        self.assertEqual(booking.total_amount, Decimal("1770.00"))
        slot = HourlySlot.objects.get(room_type=self.room_type, date=date(2026, 3, 2))
        self.assertEqual((slot.slot_start, slot.slot_end, slot.available_count), ("14:00", "17:00", 9))

    def test_hourly_duration_bounds(self) -> None:
        with self.assertRaises(ValidationError) as ctx:
            self.coordinator.create_booking(
                self._request(
                    booking_type=Booking.BookingType.HOURLY,
                    check_out_date=None,
                    check_in_time="14:00",
                    num_hours=2,
                )
            )
        self.assertEqual(ctx.exception.message, "Booking must be between 3 and 12 hours")

    def test_hourly_slot_must_fit_operating_hours(self) -> None:
        with self.assertRaises(ValidationError):
            self.coordinator.create_booking(
                self._request(
                    booking_type=Booking.BookingType.HOURLY,
                    check_out_date=None,
                    check_in_time="21:00",
                    num_hours=3,
                )
            )

    def test_hourly_slot_already_started_today(self) -> None:
        with self.assertRaises(ValidationError):
            self.coordinator.create_booking(
                self._request(
                    booking_type=Booking.BookingType.HOURLY,
                    check_in_date=date(2026, 3, 1),
                    check_out_date=None,
                    check_in_time="09:00",
                    num_hours=3,
                )
            )


@unittest.skipUnless(connection.vendor == "postgresql", "row locks need PostgreSQL")
class ConcurrentReservationTests(TransactionTestCase):
    """N concurrent requests for K remaining rooms: exactly K succeed."""

    def setUp(self) -> None:
        self.hotel = Hotel.objects.create(name="Sea View", slug="sea-view")
        self.room_type = RoomType.objects.create(
            hotel=self.hotel,
            name="Deluxe",
            base_price_daily=Decimal("2000.00"),
            total_rooms=3,
        )

    def test_no_overbooking_under_contention(self) -> None:
        attempts = 8
        barrier = threading.Barrier(attempts)
        outcomes: list[str] = []
        lock = threading.Lock()

        def attempt(index: int) -> None:
            coordinator = ReservationCoordinator(clock=fixed_clock)
            request = ReservationRequest(
                hotel_id=self.hotel.pk,
                room_type_id=self.room_type.pk,
                guest_name=f"Guest {index}",
                guest_email=f"guest{index}@example.com",
                check_in_date=date(2026, 3, 5),
                check_out_date=date(2026, 3, 8),
            )
            barrier.wait()
            try:
                coordinator.create_booking(request)
                outcome = "ok"
            except ConflictError as exc:
                outcome = exc.code
            finally:
                connection.close()
            with lock:
                outcomes.append(outcome)

        threads = [threading.Thread(target=attempt, args=(index,)) for index in range(attempts)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(outcomes.count("ok"), 3)
        self.assertEqual(outcomes.count(ConflictError.SOLD_OUT), attempts - 3)
        self.assertEqual(Booking.objects.count(), 3)
        counts = RoomInventory.objects.filter(room_type=self.room_type).values_list("available_count", flat=True)
        self.assertEqual(sorted(counts), [0, 0, 0])
