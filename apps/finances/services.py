"""Settlement: commission snapshots, payment confirmation and refunds.

Gateway calls never run inside a database transaction. Confirmation and
refund finalisation each lock the payment row first and the booking row
second, so the two paths cannot deadlock against each other.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, Optional

import structlog
from django.db import transaction  # type: ignore
from django.db.models import F, Sum  # type: ignore
from django.utils import timezone  # type: ignore

from shared.domain.errors import GatewayError, NotFoundError, StateError, ValidationError
from shared.domain.value_objects import quantize_amount

from .gateways import PaymentGateway, get_payment_gateway
from .models import Commission, Payment, PaymentRefund

logger = structlog.get_logger(__name__)

ZERO = Decimal("0.00")
CAPTURED_STATES = (
    Payment.Status.CAPTURED,
    Payment.Status.PARTIALLY_REFUNDED,
    Payment.Status.REFUNDED,
)

CONFIRMED_MESSAGE = "Payment confirmed. Booking is now confirmed."
REFUND_REQUIRED_MESSAGE = "Payment captured but booking is no longer active; refund required"


@dataclass(frozen=True)
class CommissionSnapshot:
    rate: Decimal
    amount: Decimal
    payout: Decimal


def snapshot_commission(hotel, source: str, total_amount: Decimal) -> CommissionSnapshot:
    """Platform commission frozen at booking time; only platform bookings pay it."""
    from apps.bookings.models import Booking  # local import to avoid circular

    rate = hotel.commission_rate if source == Booking.Source.PLATFORM else Decimal("0")
    amount = quantize_amount(total_amount * rate)
    return CommissionSnapshot(rate=rate, amount=amount, payout=total_amount - amount)


def record_commission(booking) -> Optional[Commission]:
    if booking.commission_amount <= ZERO:
        return None
    return Commission.objects.create(
        booking=booking,
        hotel_id=booking.hotel_id,
        booking_amount=booking.total_amount,
        commission_rate=booking.commission_rate,
        commission_amount=booking.commission_amount,
    )


@dataclass
class InitiatedPayment:
    payment: Payment
    order_id: str
    amount: Decimal
    currency: str
    gateway: str
    gateway_data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ConfirmationResult:
    success: bool
    message: str
    payment: Payment
    booking: Any
    refund_required: bool = False


@dataclass
class RefundResult:
    refund: PaymentRefund
    payment: Payment
    booking: Any


class SettlementEngine:
    """Moves money-related state of a booking forward."""

    def __init__(
        self,
        gateway: Optional[PaymentGateway] = None,
        *,
        lifecycle=None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        from apps.bookings.lifecycle import BookingLifecycle  # local import to avoid circular

        self.gateway = gateway or get_payment_gateway()
        self.clock = clock or timezone.now
        self.lifecycle = lifecycle or BookingLifecycle(clock=self.clock)

    # -- helpers -------------------------------------------------------------------

    @staticmethod
    def _get_booking(booking_id: int):
        from apps.bookings.models import Booking  # local import to avoid circular

        try:
            return Booking.objects.select_related("hotel", "room_type").get(pk=booking_id)
        except Booking.DoesNotExist:
            raise NotFoundError(f"Booking {booking_id} not found", details={"booking_id": booking_id}) from None

    @staticmethod
    def _lock_payment(payment_id: int) -> Payment:
        try:
            return Payment.objects.select_for_update().get(pk=payment_id)
        except Payment.DoesNotExist:
            raise NotFoundError(f"Payment {payment_id} not found", details={"payment_id": payment_id}) from None

    # -- payments --------------------------------------------------------------------

    def initiate_payment(self, booking_id: int, method: str = Payment.Method.CARD) -> InitiatedPayment:
        booking = self._get_booking(booking_id)
        if booking.payment_status == booking.PaymentStatus.PAID:
            raise StateError("This booking has already been paid", details={"booking_id": booking.pk})
        if booking.status != booking.Status.PENDING:
            raise StateError(
                f"Cannot take payment for a {booking.status} booking",
                details={"booking_id": booking.pk, "status": booking.status},
            )
        if booking.hold_expires_at is not None and booking.hold_expires_at <= self.clock():
            raise StateError("Payment hold has expired", details={"booking_id": booking.pk})

        order = self.gateway.create_order(
            booking.total_amount,
            booking.currency,
            {
                "booking_id": booking.pk,
                "booking_number": booking.booking_number,
                "hotel_name": booking.hotel.name,
                "room_type": booking.room_type.name,
                "prefill": {
                    "name": booking.guest_name,
                    "email": booking.guest_email,
                    "contact": booking.guest_phone,
                },
            },
        )

        with transaction.atomic():
            payment = Payment.objects.create(
                booking=booking,
                gateway=self.gateway.name,
                method=method,
                amount=booking.total_amount,
                currency=booking.currency,
                gateway_order_id=order.order_id,
                metadata=order.gateway_data,
            )
            if booking.payment_status == booking.PaymentStatus.FAILED:
                type(booking).objects.filter(pk=booking.pk).update(payment_status=booking.PaymentStatus.PENDING)

        logger.info(
            "payment.initiated",
            booking=booking.booking_number,
            payment=payment.pk,
            gateway=self.gateway.name,
            amount=str(payment.amount),
        )
        return InitiatedPayment(
            payment=payment,
            order_id=order.order_id,
            amount=booking.total_amount,
            currency=booking.currency,
            gateway=self.gateway.name,
            gateway_data=order.gateway_data,
        )

    def confirm_payment(
        self,
        payment_id: int,
        gateway_payment_id: Optional[str] = None,
        signature: Optional[str] = None,
    ) -> ConfirmationResult:
        """
        Verify a payment with the gateway and confirm its booking.

        Repeating the call for a captured payment returns the same result
        without touching anything. A failed verification marks the payment
        and the booking's payment status FAILED and leaves the booking
        PENDING so the guest can start a new attempt.
        """
        try:
            payment = Payment.objects.select_related("booking").get(pk=payment_id)
        except Payment.DoesNotExist:
            raise NotFoundError(f"Payment {payment_id} not found", details={"payment_id": payment_id}) from None

        if payment.status in CAPTURED_STATES:
            return self._already_confirmed(payment)
        if payment.status == Payment.Status.FAILED:
            raise StateError(
                "Payment attempt has failed; start a new payment",
                details={"payment_id": payment.pk},
            )
        latest = payment.booking.payments.order_by("-created_at", "-id").first()
        if latest is not None and latest.pk != payment.pk:
            raise StateError(
                "Only the latest payment attempt can be confirmed",
                details={"payment_id": payment.pk, "latest_payment_id": latest.pk},
            )

        verification = self.gateway.verify_payment(gateway_payment_id or "", payment.gateway_order_id, signature)

        if not verification.verified:
            return self._fail_payment(payment.pk, verification.gateway_payment_id)

        with transaction.atomic():
            payment = self._lock_payment(payment.pk)
            if payment.status in CAPTURED_STATES:
                return self._already_confirmed(payment)
            booking = self.lifecycle.lock(payment.booking_id)

            now = self.clock()
            payment.status = Payment.Status.CAPTURED
            payment.gateway_payment_id = verification.gateway_payment_id
            payment.captured_at = now
            payment.metadata = {**(payment.metadata or {}), "verified_at": now.isoformat()}
            payment.save(update_fields=["status", "gateway_payment_id", "captured_at", "metadata", "updated_at"])

            booking.payment_status = booking.PaymentStatus.PAID
            booking.save(update_fields=["payment_status", "updated_at"])

            refund_required = False
            if booking.status == booking.Status.PENDING:
                self.lifecycle.confirm(booking)
            else:
                # the hold was reaped while the guest was paying
                refund_required = True

        if refund_required:
            logger.warning(
                "payment.captured_for_inactive_booking",
                booking=booking.booking_number,
                status=booking.status,
                payment=payment.pk,
            )
            return ConfirmationResult(
                success=False,
                message=REFUND_REQUIRED_MESSAGE,
                payment=payment,
                booking=booking,
                refund_required=True,
            )

        logger.info("payment.confirmed", booking=booking.booking_number, payment=payment.pk)
        return ConfirmationResult(
            success=True,
            message=CONFIRMED_MESSAGE,
            payment=payment,
            booking=booking,
        )

    def _already_confirmed(self, payment: Payment) -> ConfirmationResult:
        booking = self._get_booking(payment.booking_id)
        active = booking.status not in (booking.Status.CANCELLED, booking.Status.NO_SHOW)
        return ConfirmationResult(
            success=active,
            message=CONFIRMED_MESSAGE if active else REFUND_REQUIRED_MESSAGE,
            payment=payment,
            booking=booking,
            refund_required=not active and payment.status != Payment.Status.REFUNDED,
        )

    def _fail_payment(self, payment_id: int, gateway_payment_id: str) -> ConfirmationResult:
        with transaction.atomic():
            payment = self._lock_payment(payment_id)
            booking = self.lifecycle.lock(payment.booking_id)
            if payment.status == Payment.Status.CREATED:
                payment.status = Payment.Status.FAILED
                payment.gateway_payment_id = gateway_payment_id or ""
                payment.metadata = {**(payment.metadata or {}), "failure_reason": "verification_failed"}
                payment.save(update_fields=["status", "gateway_payment_id", "metadata", "updated_at"])
            if booking.payment_status == booking.PaymentStatus.PENDING:
                booking.payment_status = booking.PaymentStatus.FAILED
                booking.save(update_fields=["payment_status", "updated_at"])

        logger.warning("payment.verification_failed", booking=booking.booking_number, payment=payment.pk)
        return ConfirmationResult(
            success=False,
            message="Payment verification failed",
            payment=payment,
            booking=booking,
        )

    # -- refunds ----------------------------------------------------------------------

    def process_refund(self, booking_id: int, amount: Optional[Decimal] = None) -> RefundResult:
        """
        Refund part or all of the booking's captured payment.

        The requested amount is reserved by a PENDING refund row before the
        gateway is called, so concurrent refunds can never add up to more
        than was captured. Booking.status is not changed here.
        """
        booking = self._get_booking(booking_id)

        with transaction.atomic():
            payment = (
                Payment.objects.select_for_update()
                .filter(
                    booking=booking,
                    status__in=(Payment.Status.CAPTURED, Payment.Status.PARTIALLY_REFUNDED),
                )
                .order_by("-created_at", "-id")
                .first()
            )
            if payment is None:
                raise StateError("No captured payment found for this booking", details={"booking_id": booking.pk})

            in_flight = payment.refunds.filter(status=PaymentRefund.Status.PENDING).aggregate(total=Sum("amount"))
            remaining = payment.amount - payment.refund_amount - (in_flight["total"] or ZERO)
            refund_amount = quantize_amount(amount) if amount is not None else remaining
            if refund_amount <= ZERO:
                raise ValidationError(
                    "Refund amount must be positive",
                    details={"amount": str(refund_amount), "remaining": str(remaining)},
                )
            if refund_amount > remaining:
                raise ValidationError(
                    "Refund exceeds the refundable amount",
                    details={"amount": str(refund_amount), "remaining": str(remaining)},
                )
            refund = PaymentRefund.objects.create(payment=payment, amount=refund_amount)

        try:
            outcome = self.gateway.process_refund(payment.gateway_payment_id, refund_amount)
        except Exception:
            PaymentRefund.objects.filter(pk=refund.pk).update(status=PaymentRefund.Status.FAILED)
            logger.error("refund.failed", booking=booking.booking_number, payment=payment.pk, amount=str(refund_amount))
            raise

        with transaction.atomic():
            payment = self._lock_payment(payment.pk)
            locked_booking = self.lifecycle.lock(booking.pk)

            refund.status = PaymentRefund.Status.SUCCEEDED
            refund.gateway_refund_id = outcome.refund_id
            refund.metadata = {"gateway_status": outcome.status}
            refund.save(update_fields=["status", "gateway_refund_id", "metadata", "updated_at"])

            Payment.objects.filter(pk=payment.pk).update(refund_amount=F("refund_amount") + refund_amount)
            payment.refresh_from_db(fields=["refund_amount"])
            fully_refunded = payment.refund_amount == payment.amount
            payment.status = Payment.Status.REFUNDED if fully_refunded else Payment.Status.PARTIALLY_REFUNDED
            payment.save(update_fields=["status", "updated_at"])

            locked_booking.payment_status = (
                locked_booking.PaymentStatus.REFUNDED
                if fully_refunded
                else locked_booking.PaymentStatus.PARTIALLY_REFUNDED
            )
            locked_booking.save(update_fields=["payment_status", "updated_at"])

        logger.info(
            "refund.processed",
            booking=locked_booking.booking_number,
            payment=payment.pk,
            amount=str(refund_amount),
            refunded_total=str(payment.refund_amount),
        )
        return RefundResult(refund=refund, payment=payment, booking=locked_booking)

    # -- commissions ----------------------------------------------------------------

    def settle_commissions(self, commission_ids: Iterable[int]) -> int:
        """Mark PENDING commissions as settled; others are skipped."""
        settled = Commission.objects.filter(
            pk__in=list(commission_ids),
            status=Commission.Status.PENDING,
        ).update(status=Commission.Status.SETTLED, settled_at=self.clock())
        logger.info("commissions.settled", count=settled)
        return settled
