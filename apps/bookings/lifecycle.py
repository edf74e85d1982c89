"""Booking state machine.

    PENDING -> CONFIRMED -> CHECKED_IN -> CHECKED_OUT
    PENDING | CONFIRMED -> CANCELLED
    CONFIRMED -> NO_SHOW

Cancellation, no-show and hold expiry give the held rooms back through a
single release path that runs at most once per booking.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog
from django.db import transaction  # type: ignore
from django.utils import timezone  # type: ignore

from apps.inventory.cache import invalidate_room_type
from apps.inventory.store import InventoryStore
from shared.domain.errors import NotFoundError, StateError

from .models import Booking

logger = structlog.get_logger(__name__)

Status = Booking.Status

TRANSITIONS: dict[str, frozenset[str]] = {
    Status.PENDING: frozenset({Status.CONFIRMED, Status.CANCELLED}),
    Status.CONFIRMED: frozenset({Status.CHECKED_IN, Status.CANCELLED, Status.NO_SHOW}),
    Status.CHECKED_IN: frozenset({Status.CHECKED_OUT}),
}

TERMINAL_STATES = frozenset({Status.CHECKED_OUT, Status.CANCELLED, Status.NO_SHOW})


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def ensure_transition(booking: Booking, target: str) -> None:
    if not can_transition(booking.status, target):
        raise StateError(
            f"Cannot move booking {booking.booking_number} from {booking.status} to {target}",
            details={"booking_id": booking.pk, "status": booking.status, "target": target},
        )


def slot_start(booking: Booking) -> datetime:
    """Aware datetime at which an hourly booking starts."""
    hour, minute = (int(part) for part in booking.check_in_time.split(":"))
    naive = datetime.combine(booking.check_in_date, datetime.min.time()).replace(hour=hour, minute=minute)
    return timezone.make_aware(naive)


class BookingLifecycle:
    """Applies lifecycle events to bookings under a row lock."""

    def __init__(
        self,
        store: Optional[InventoryStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store or InventoryStore()
        self.clock = clock or timezone.now

    # -- helpers -----------------------------------------------------------------

    def lock(self, booking_id: int) -> Booking:
        """Fetch a booking with SELECT ... FOR UPDATE; call inside transaction.atomic()."""
        try:
            return (
                Booking.objects.select_for_update(of=("self",))
                .select_related("room_type", "hotel")
                .get(pk=booking_id)
            )
        except Booking.DoesNotExist:
            raise NotFoundError(f"Booking {booking_id} not found", details={"booking_id": booking_id}) from None

    def release_inventory(self, booking: Booking, *, from_date=None) -> bool:
        """
        Return the booking's rooms to inventory once.

        ``from_date`` skips nights before it (used by no-show, where past
        nights were never sellable again). Returns False when the booking
        had already released its rooms.
        """
        if booking.inventory_released:
            return False

        if booking.is_hourly:
            self.store.release_slot(
                booking.room_type,
                booking.check_in_date,
                booking.check_in_time,
                booking.check_out_time,
                booking.num_rooms,
            )
        else:
            days = []
            day = booking.check_in_date
            while day < booking.check_out_date:
                if from_date is None or day >= from_date:
                    days.append(day)
                day += timedelta(days=1)
            self.store.release_nights(booking.room_type, days, booking.num_rooms)

        booking.inventory_released = True
        room_type_id = booking.room_type_id
        transaction.on_commit(lambda: invalidate_room_type(room_type_id))
        return True

    def _void_commission(self, booking: Booking) -> None:
        from apps.finances.models import Commission  # local import to avoid circular

        Commission.objects.filter(booking=booking, status=Commission.Status.PENDING).update(
            status=Commission.Status.VOID
        )

    # -- events --------------------------------------------------------------------

    def confirm(self, booking: Booking) -> Booking:
        """PENDING -> CONFIRMED. Caller holds the booking lock and owns the transaction."""
        ensure_transition(booking, Status.CONFIRMED)
        booking.status = Status.CONFIRMED
        booking.confirmed_at = self.clock()
        booking.save(update_fields=["status", "confirmed_at", "updated_at"])
        logger.info("booking.confirmed", booking=booking.booking_number)
        return booking

    def _cancel_locked(self, booking: Booking, *, reason: str, source: str) -> Booking:
        ensure_transition(booking, Status.CANCELLED)
        booking.status = Status.CANCELLED
        booking.cancelled_at = self.clock()
        booking.cancellation_source = source
        booking.cancellation_reason = reason[:255]
        self.release_inventory(booking)
        booking.save(
            update_fields=[
                "status",
                "payment_status",
                "cancelled_at",
                "cancellation_source",
                "cancellation_reason",
                "inventory_released",
                "updated_at",
            ]
        )
        self._void_commission(booking)
        logger.info(
            "booking.cancelled",
            booking=booking.booking_number,
            source=source,
            reason=reason,
        )
        return booking

    def cancel(
        self,
        booking_id: int,
        *,
        reason: str = "",
        source: str = Booking.CancellationSource.GUEST,
    ) -> Booking:
        """Cancel and release inventory. Cancelling a cancelled booking is a no-op."""
        with transaction.atomic():
            booking = self.lock(booking_id)
            if booking.status == Status.CANCELLED:
                return booking
            return self._cancel_locked(booking, reason=reason, source=source)

    def expire_hold(self, booking_id: int) -> bool:
        """Cancel a PENDING booking whose payment hold has elapsed."""
        with transaction.atomic():
            booking = self.lock(booking_id)
            now = self.clock()
            if booking.status != Status.PENDING:
                return False
            if booking.hold_expires_at is None or booking.hold_expires_at > now:
                return False
            if booking.payment_status != Booking.PaymentStatus.PAID:
                booking.payment_status = Booking.PaymentStatus.FAILED
            self._cancel_locked(
                booking,
                reason="Payment hold expired",
                source=Booking.CancellationSource.SYSTEM,
            )
            return True

    def check_in(self, booking_id: int) -> Booking:
        with transaction.atomic():
            booking = self.lock(booking_id)
            ensure_transition(booking, Status.CHECKED_IN)
            booking.status = Status.CHECKED_IN
            booking.checked_in_at = self.clock()
            booking.save(update_fields=["status", "checked_in_at", "updated_at"])
        logger.info("booking.checked_in", booking=booking.booking_number)
        return booking

    def check_out(self, booking_id: int) -> Booking:
        with transaction.atomic():
            booking = self.lock(booking_id)
            ensure_transition(booking, Status.CHECKED_OUT)
            booking.status = Status.CHECKED_OUT
            booking.checked_out_at = self.clock()
            booking.save(update_fields=["status", "checked_out_at", "updated_at"])
        logger.info("booking.checked_out", booking=booking.booking_number)
        return booking

    def mark_no_show(self, booking_id: int) -> Booking:
        """
        CONFIRMED -> NO_SHOW once the check-in moment has passed.

        Nights from today onwards go back on sale; an hourly slot is released
        whole.
        """
        with transaction.atomic():
            booking = self.lock(booking_id)
            ensure_transition(booking, Status.NO_SHOW)
            now = self.clock()
            starts_at = (
                slot_start(booking)
                if booking.is_hourly
                else timezone.make_aware(datetime.combine(booking.check_in_date, datetime.min.time()))
            )
            if now < starts_at:
                raise StateError(
                    "Check-in window has not started yet",
                    details={"booking_id": booking.pk, "check_in_date": booking.check_in_date.isoformat()},
                )
            booking.status = Status.NO_SHOW
            self.release_inventory(booking, from_date=timezone.localdate(now))
            booking.save(update_fields=["status", "inventory_released", "updated_at"])
        logger.info("booking.no_show", booking=booking.booking_number)
        return booking
