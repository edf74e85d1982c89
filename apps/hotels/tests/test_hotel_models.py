"""Tests for hotel and room type pricing templates."""

from __future__ import annotations

from decimal import Decimal

from django.db import IntegrityError, transaction
from django.test import TestCase

from apps.hotels.models import Hotel, RoomType


class RoomTypeTests(TestCase):
    def setUp(self) -> None:
        self.hotel = Hotel.objects.create(name="Sea View", slug="sea-view")
        self.room_type = RoomType.objects.create(
            hotel=self.hotel,
            name="Deluxe",
            base_price_daily=Decimal("2000.00"),
            total_rooms=10,
        )

    def test_hotel_defaults(self) -> None:
        self.assertEqual(self.hotel.currency, "INR")
        self.assertEqual(self.hotel.commission_rate, Decimal("0.1000"))
        self.assertEqual((self.hotel.hourly_open_hour, self.hotel.hourly_close_hour), (6, 22))

    def test_hourly_support_follows_hourly_price(self) -> None:
        self.assertFalse(self.room_type.supports_hourly)
        self.room_type.base_price_hourly = Decimal("500.00")
        self.assertTrue(self.room_type.supports_hourly)

    def test_hour_bounds_fall_back_to_hotel(self) -> None:
        self.assertEqual(self.room_type.effective_min_hours, 3)
        self.assertEqual(self.room_type.effective_max_hours, 12)

        self.room_type.min_hours = 4
        self.room_type.max_hours = 8
        self.assertEqual(self.room_type.effective_min_hours, 4)
        self.assertEqual(self.room_type.effective_max_hours, 8)

    def test_guest_capacity_includes_extra_beds(self) -> None:
        self.room_type.max_guests = 2
        self.room_type.max_extra_guests = 1
        self.assertEqual(self.room_type.guest_capacity, 3)

    def test_hourly_window_must_be_positive(self) -> None:
        with self.assertRaises(IntegrityError), transaction.atomic():
            Hotel.objects.create(name="Broken", slug="broken", hourly_open_hour=20, hourly_close_hour=10)
