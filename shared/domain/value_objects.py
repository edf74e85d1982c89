"""
Common Value Objects

Value objects used across the engine:
- DateRange: a stay from check-in (inclusive) to check-out (exclusive)
- TimeSlot: an hourly window on a single day ("HH:MM" bounds)
- money helpers: half-up rounding to two places
- request fingerprinting for idempotency keys
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterator

TWO_PLACES = Decimal("0.01")


def quantize_amount(value: Decimal | int | float | str) -> Decimal:
    """Round a monetary amount half-up to two decimal places."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def canonical_json(obj: Any) -> str:
    """Stable JSON string for hashing (sorted keys, compact separators)."""
    return json.dumps(obj, separators=(",", ":"), sort_keys=True, ensure_ascii=False, default=str)


def fingerprint(payload: dict[str, Any]) -> str:
    return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class DateRange:
    """
    Date range value object

    Represents a range from start_date (inclusive) to end_date (exclusive).
    Used for stays and availability checks.
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.start_date >= self.end_date:
            raise ValueError(f"Start date ({self.start_date}) must be before end date ({self.end_date})")

    @property
    def nights(self) -> int:
        return (self.end_date - self.start_date).days

    def days(self) -> Iterator[date]:
        """Yield every night of the stay in ascending order."""
        current = self.start_date
        while current < self.end_date:
            yield current
            current += timedelta(days=1)

    def overlaps_with(self, other: "DateRange") -> bool:
        """
        Two ranges overlap if they share any night.
        end_date is exclusive, so adjacent ranges don't overlap.
        """
        if not isinstance(other, DateRange):
            raise TypeError("Can only check overlap with another DateRange")
        return self.start_date < other.end_date and self.end_date > other.start_date

    def contains(self, check_date: date) -> bool:
        return self.start_date <= check_date < self.end_date

    def __len__(self) -> int:
        return self.nights

    def __str__(self):
        return f"{self.start_date.isoformat()} - {self.end_date.isoformat()}"


@dataclass(frozen=True)
class TimeSlot:
    """Whole-hour window on one day, e.g. TimeSlot(14, 3) is 14:00-17:00."""
    start_hour: int
    num_hours: int

    def __post_init__(self):
        if self.num_hours < 1:
            raise ValueError("Slot must last at least one hour")
        if not 0 <= self.start_hour <= 23 or self.end_hour > 24:
            raise ValueError("Slot must fit inside a single day")

    @property
    def end_hour(self) -> int:
        return self.start_hour + self.num_hours

    @property
    def start(self) -> str:
        return f"{self.start_hour:02d}:00"

    @property
    def end(self) -> str:
        return f"{self.end_hour:02d}:00"

    @classmethod
    def parse(cls, value: str, num_hours: int) -> "TimeSlot":
        """Parse a "HH:MM" start; only whole hours are bookable."""
        try:
            hours, minutes = value.split(":")
            hour, minute = int(hours), int(minutes)
        except (AttributeError, ValueError):
            raise ValueError(f"Invalid time: {value!r}") from None
        if minute != 0:
            raise ValueError("Slots start on the hour")
        return cls(hour, num_hours)

    def __str__(self):
        return f"{self.start}-{self.end}"
