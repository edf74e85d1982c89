"""Tests for shared value objects and the error envelope."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase
from rest_framework.exceptions import NotFound, ValidationError as DRFValidationError

from shared.domain.errors import ConflictError, GatewayError, StateError
from shared.domain.value_objects import DateRange, TimeSlot, fingerprint, quantize_amount
from shared.infrastructure.exception_handler import engine_exception_handler


class ValueObjectTests(SimpleTestCase):
    def test_date_range_nights(self) -> None:
        stay = DateRange(date(2026, 3, 5), date(2026, 3, 8))

        self.assertEqual(stay.nights, 3)
        self.assertEqual(list(stay.days())[-1], date(2026, 3, 7))
        self.assertTrue(stay.contains(date(2026, 3, 5)))
        self.assertFalse(stay.contains(date(2026, 3, 8)))

    def test_adjacent_stays_do_not_overlap(self) -> None:
        first = DateRange(date(2026, 3, 5), date(2026, 3, 8))

        self.assertFalse(first.overlaps_with(DateRange(date(2026, 3, 8), date(2026, 3, 10))))
        self.assertTrue(first.overlaps_with(DateRange(date(2026, 3, 7), date(2026, 3, 10))))

    def test_empty_range_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            DateRange(date(2026, 3, 5), date(2026, 3, 5))

    def test_time_slot(self) -> None:
        slot = TimeSlot.parse("14:00", 3)

        self.assertEqual((slot.start, slot.end), ("14:00", "17:00"))
        self.assertEqual(str(slot), "14:00-17:00")
        with self.assertRaises(ValueError):
            TimeSlot.parse("14:30", 3)
        with self.assertRaises(ValueError):
            TimeSlot.parse("noon", 3)
        with self.assertRaises(ValueError):
            TimeSlot(22, 3)

    def test_quantize_rounds_half_up(self) -> None:
        self.assertEqual(quantize_amount(Decimal("10.005")), Decimal("10.01"))
        self.assertEqual(quantize_amount("7080"), Decimal("7080.00"))

    def test_fingerprint_ignores_key_order(self) -> None:
        self.assertEqual(fingerprint({"a": 1, "b": date(2026, 3, 5)}), fingerprint({"b": date(2026, 3, 5), "a": 1}))
        self.assertNotEqual(fingerprint({"a": 1}), fingerprint({"a": 2}))


class ErrorEnvelopeTests(SimpleTestCase):
    def test_engine_errors_keep_code_and_status(self) -> None:
        error = ConflictError.for_date(ConflictError.SOLD_OUT, date(2026, 3, 6))

        response = engine_exception_handler(error, {})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(
            response.data,
            {
                "error": {
                    "code": "SOLD_OUT",
                    "message": "Room type is sold out on 2026-03-06",
                    "details": {"date": "2026-03-06"},
                    "retryable": True,
                }
            },
        )

    def test_status_codes(self) -> None:
        self.assertEqual(engine_exception_handler(StateError("nope"), {}).status_code, 409)
        self.assertEqual(engine_exception_handler(GatewayError("down"), {}).status_code, 502)

    def test_drf_errors_use_the_same_envelope(self) -> None:
        response = engine_exception_handler(DRFValidationError({"hotel": ["required"]}), {})
        self.assertEqual(response.data["error"]["code"], "VALIDATION_ERROR")
        self.assertEqual(response.data["error"]["details"], {"fields": {"hotel": ["required"]}})

        response = engine_exception_handler(NotFound(), {})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data["error"]["code"], "NOT_FOUND")
