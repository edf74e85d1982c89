"""Reservation of room capacity.

``ReservationCoordinator.create_booking`` takes every night (or the single
hourly slot) of a request and inserts the PENDING booking in one
transaction. Either all of it commits or none of it does.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional

import structlog
from django.conf import settings  # type: ignore
from django.db import IntegrityError, transaction  # type: ignore
from django.utils import timezone  # type: ignore

from apps.finances.services import record_commission, snapshot_commission
from apps.hotels.models import RoomType
from apps.inventory.availability import hour_bounds_message, stay_range
from apps.inventory.cache import invalidate_room_type
from apps.inventory.store import InventoryStore
from shared.domain.errors import ConflictError, NotFoundError, ValidationError
from shared.domain.value_objects import DateRange, TimeSlot, fingerprint, quantize_amount

from .models import Booking

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ReservationRequest:
    """Everything needed to reserve a stay or an hourly slot."""

    hotel_id: int
    room_type_id: int
    guest_name: str
    guest_email: str
    check_in_date: date
    check_out_date: Optional[date] = None
    booking_type: str = Booking.BookingType.DAILY
    check_in_time: Optional[str] = None
    num_hours: Optional[int] = None
    num_rooms: int = 1
    num_guests: int = 1
    num_extra_guests: int = 0
    guest_phone: str = ""
    source: str = Booking.Source.PLATFORM
    special_requests: str = ""
    guest_id: Optional[int] = None

    @property
    def is_hourly(self) -> bool:
        return self.booking_type == Booking.BookingType.HOURLY

    def fingerprint(self) -> str:
        return fingerprint(asdict(self))


@dataclass(frozen=True)
class ReservationResult:
    booking: Booking
    idempotency_key: str
    created: bool


@dataclass(frozen=True)
class _Quote:
    room_total: Decimal
    extra_guest_total: Decimal
    taxes: Decimal

    @property
    def total_amount(self) -> Decimal:
        return self.room_total + self.extra_guest_total + self.taxes


class ReservationCoordinator:
    """Atomic, idempotent reservation of inventory for a new booking."""

    def __init__(
        self,
        store: Optional[InventoryStore] = None,
        *,
        tax_rate: Optional[Decimal] = None,
        hold_minutes: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store or InventoryStore()
        self.tax_rate = Decimal(str(tax_rate if tax_rate is not None else settings.BOOKING_TAX_RATE))
        self.hold_minutes = hold_minutes if hold_minutes is not None else settings.BOOKING_HOLD_MINUTES
        self.clock = clock or timezone.now

    # -- public API ------------------------------------------------------------------

    def create_booking(self, request: ReservationRequest, idempotency_key: Optional[str] = None) -> ReservationResult:
        key = idempotency_key or uuid.uuid4().hex
        request_fingerprint = request.fingerprint()

        existing = self._replay(key, request_fingerprint)
        if existing is not None:
            return ReservationResult(existing, key, created=False)

        room_type = self._validate(request)
        try:
            with transaction.atomic():
                booking = self._reserve(request, room_type, key, request_fingerprint)
        except (IntegrityError, ConflictError):
            # a concurrent call with the same key committed first and may
            # have taken the last rooms
            existing = self._replay(key, request_fingerprint)
            if existing is None:
                raise
            return ReservationResult(existing, key, created=False)

        invalidate_room_type(room_type.pk)
        logger.info(
            "booking.reserved",
            booking=booking.booking_number,
            room_type=room_type.pk,
            booking_type=booking.booking_type,
            num_rooms=booking.num_rooms,
            total=str(booking.total_amount),
        )
        return ReservationResult(booking, key, created=True)

    # -- idempotency -----------------------------------------------------------------

    def _replay(self, key: str, request_fingerprint: str) -> Optional[Booking]:
        booking = Booking.objects.filter(idempotency_key=key).first()
        if booking is None:
            return None
        if booking.request_fingerprint != request_fingerprint:
            raise ConflictError(
                "Idempotency key was already used with a different request",
                code=ConflictError.IDEMPOTENCY_KEY_REUSED,
                details={"idempotency_key": key},
                retryable=False,
            )
        logger.info("booking.replayed", booking=booking.booking_number)
        return booking

    # -- validation ------------------------------------------------------------------

    def _validate(self, request: ReservationRequest) -> RoomType:
        if request.num_rooms < 1 or request.num_guests < 1 or request.num_extra_guests < 0:
            raise ValidationError(
                "num_rooms and num_guests must be at least 1",
                details={"num_rooms": request.num_rooms, "num_guests": request.num_guests},
            )
        try:
            room_type = RoomType.objects.select_related("hotel").get(
                pk=request.room_type_id,
                hotel_id=request.hotel_id,
            )
        except RoomType.DoesNotExist:
            raise NotFoundError(
                f"Room type {request.room_type_id} not found in hotel {request.hotel_id}",
                details={"hotel_id": request.hotel_id, "room_type_id": request.room_type_id},
            ) from None
        if not room_type.is_active or not room_type.hotel.is_active:
            raise ValidationError("Room type is not open for booking", details={"room_type_id": room_type.pk})

        now = self.clock()
        if request.check_in_date < timezone.localdate(now):
            raise ValidationError(
                "Check-in date is in the past",
                details={"check_in_date": request.check_in_date.isoformat()},
            )

        guests = request.num_guests + request.num_extra_guests
        capacity = room_type.guest_capacity * request.num_rooms
        if guests > capacity:
            raise ValidationError(
                f"{guests} guests exceed capacity of {capacity} for {request.num_rooms} room(s)",
                details={"guests": guests, "capacity": capacity},
            )

        if request.is_hourly:
            self._slot(request, room_type)
        else:
            stay_range(request.check_in_date, request.check_out_date)
        return room_type

    def _slot(self, request: ReservationRequest, room_type: RoomType) -> TimeSlot:
        if not room_type.supports_hourly:
            raise ValidationError("Room type is not bookable by the hour", details={"room_type_id": room_type.pk})
        min_hours, max_hours = room_type.effective_min_hours, room_type.effective_max_hours
        if request.num_hours is None or not min_hours <= request.num_hours <= max_hours:
            raise ValidationError(
                hour_bounds_message(min_hours, max_hours),
                details={"num_hours": request.num_hours, "min_hours": min_hours, "max_hours": max_hours},
            )
        if not request.check_in_time:
            raise ValidationError("check_in_time is required for hourly bookings")
        try:
            slot = TimeSlot.parse(request.check_in_time, request.num_hours)
        except ValueError as exc:
            raise ValidationError(str(exc), details={"check_in_time": request.check_in_time}) from None

        hotel = room_type.hotel
        if slot.start_hour < hotel.hourly_open_hour or slot.end_hour > hotel.hourly_close_hour:
            raise ValidationError(
                f"Slot {slot} is outside operating hours "
                f"{hotel.hourly_open_hour:02d}:00-{hotel.hourly_close_hour:02d}:00",
                details={"slot": str(slot)},
            )
        now = timezone.localtime(self.clock())
        if request.check_in_date == now.date() and slot.start_hour <= now.hour:
            raise ValidationError("Slot has already started", details={"slot": str(slot)})
        return slot

    # -- reservation -----------------------------------------------------------------

    def _quote(self, room_total: Decimal, request: ReservationRequest, room_type: RoomType, nights: int) -> _Quote:
        room_total = quantize_amount(room_total)
        extra_guest_total = quantize_amount(request.num_extra_guests * room_type.extra_guest_charge * max(nights, 1))
        taxes = quantize_amount((room_total + extra_guest_total) * self.tax_rate)
        return _Quote(room_total=room_total, extra_guest_total=extra_guest_total, taxes=taxes)

    def _reserve(self, request: ReservationRequest, room_type: RoomType, key: str, request_fingerprint: str) -> Booking:
        """Decrement inventory and insert the booking; caller owns the transaction."""
        extra_fields: dict = {}
        if request.is_hourly:
            slot = self._slot(request, room_type)
            row = self.store.reserve_slot(room_type, request.check_in_date, slot, request.num_rooms)
            rate = row.price_override if row.price_override is not None else room_type.base_price_hourly
            quote = self._quote(rate * slot.num_hours * request.num_rooms, request, room_type, nights=1)
            extra_fields.update(
                check_in_time=slot.start,
                check_out_time=slot.end,
                num_hours=slot.num_hours,
            )
        else:
            stay: DateRange = stay_range(request.check_in_date, request.check_out_date)
            rows = self.store.reserve_nights(room_type, stay, request.num_rooms)
            min_stay = max(row.min_stay_nights for row in rows)
            if stay.nights < min_stay:
                raise ValidationError(
                    f"Minimum stay for these dates is {min_stay} nights",
                    code="MIN_STAY",
                    details={"nights": stay.nights, "min_stay_nights": min_stay},
                )
            nightly = sum(
                (row.price_override if row.price_override is not None else room_type.base_price_daily for row in rows),
                Decimal("0"),
            )
            quote = self._quote(nightly * request.num_rooms, request, room_type, nights=stay.nights)
            extra_fields["check_out_date"] = stay.end_date

        now = self.clock()
        commission = snapshot_commission(room_type.hotel, request.source, quote.total_amount)
        booking = Booking.objects.create(
            booking_number=Booking.generate_booking_number(timezone.localdate(now)),
            idempotency_key=key,
            request_fingerprint=request_fingerprint,
            guest_id=request.guest_id,
            guest_name=request.guest_name,
            guest_email=request.guest_email,
            guest_phone=request.guest_phone,
            hotel=room_type.hotel,
            room_type=room_type,
            booking_type=request.booking_type,
            source=request.source,
            check_in_date=request.check_in_date,
            num_rooms=request.num_rooms,
            num_guests=request.num_guests,
            num_extra_guests=request.num_extra_guests,
            room_total=quote.room_total,
            extra_guest_total=quote.extra_guest_total,
            taxes=quote.taxes,
            total_amount=quote.total_amount,
            commission_rate=commission.rate,
            commission_amount=commission.amount,
            hotel_payout=commission.payout,
            currency=room_type.hotel.currency,
            hold_expires_at=now + timedelta(minutes=self.hold_minutes),
            special_requests=request.special_requests,
            **extra_fields,
        )
        record_commission(booking)
        return booking
