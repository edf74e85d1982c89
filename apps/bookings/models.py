"""Booking domain models."""

from __future__ import annotations

import secrets
import string
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

BOOKING_NUMBER_ALPHABET = string.ascii_uppercase + string.digits


class Booking(models.Model):
    """Бронирование номера (посуточно или почасово)."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Ожидает оплаты")
        CONFIRMED = "confirmed", _("Подтверждено")
        CHECKED_IN = "checked_in", _("Гость заселён")
        CHECKED_OUT = "checked_out", _("Гость выехал")
        CANCELLED = "cancelled", _("Отменено")
        NO_SHOW = "no_show", _("Неявка")

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", _("Ожидает оплаты")
        PAID = "paid", _("Оплачено")
        PARTIALLY_REFUNDED = "partially_refunded", _("Частичный возврат")
        REFUNDED = "refunded", _("Возврат")
        FAILED = "failed", _("Ошибка оплаты")

    class BookingType(models.TextChoices):
        DAILY = "daily", _("Посуточно")
        HOURLY = "hourly", _("Почасово")

    class Source(models.TextChoices):
        PLATFORM = "platform", _("Платформа")
        DIRECT = "direct", _("Сайт отеля")
        WALK_IN = "walk_in", _("Стойка регистрации")

    class CancellationSource(models.TextChoices):
        GUEST = "guest", _("Гость")
        HOTEL = "hotel", _("Отель")
        SYSTEM = "system", _("Система")

    booking_number = models.CharField(max_length=20, unique=True, editable=False)
    idempotency_key = models.CharField(max_length=128, unique=True, editable=False)
    request_fingerprint = models.CharField(max_length=64, editable=False)

    guest = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="bookings",
    )
    guest_name = models.CharField(max_length=200)
    guest_email = models.EmailField()
    guest_phone = models.CharField(max_length=32, blank=True)

    hotel = models.ForeignKey("hotels.Hotel", on_delete=models.PROTECT, related_name="bookings")
    room_type = models.ForeignKey("hotels.RoomType", on_delete=models.PROTECT, related_name="bookings")
    booking_type = models.CharField(max_length=10, choices=BookingType.choices, default=BookingType.DAILY)
    source = models.CharField(max_length=20, choices=Source.choices, default=Source.PLATFORM)

    check_in_date = models.DateField()
    check_out_date = models.DateField(null=True, blank=True)
    check_in_time = models.CharField(max_length=5, blank=True, help_text=_("HH:MM, только почасовые"))
    check_out_time = models.CharField(max_length=5, blank=True, help_text=_("HH:MM, только почасовые"))
    num_hours = models.PositiveSmallIntegerField(null=True, blank=True)
    num_rooms = models.PositiveSmallIntegerField(default=1)
    num_guests = models.PositiveSmallIntegerField(default=1)
    num_extra_guests = models.PositiveSmallIntegerField(default=0)

    room_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    extra_guest_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    taxes = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal("0.0000"),
        help_text=_("Ставка комиссии на момент бронирования."),
    )
    commission_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    hotel_payout = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="INR")

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    hold_expires_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text=_("Срок удержания номеров, после которого неоплаченная бронь отменяется."),
    )
    inventory_released = models.BooleanField(default=False, editable=False)
    special_requests = models.TextField(blank=True)

    confirmed_at = models.DateTimeField(null=True, blank=True)
    checked_in_at = models.DateTimeField(null=True, blank=True)
    checked_out_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_source = models.CharField(max_length=20, choices=CancellationSource.choices, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Бронирование")
        verbose_name_plural = _("Бронирования")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(check_out_date__isnull=True)
                | models.Q(check_out_date__gt=models.F("check_in_date")),
                name="booking_valid_dates",
            ),
        ]
        indexes = [
            models.Index(fields=["room_type", "check_in_date"]),
            models.Index(fields=["status", "hold_expires_at"]),
        ]

    def __str__(self) -> str:
        return f"Booking {self.booking_number} ({self.status})"

    @staticmethod
    def generate_booking_number(day) -> str:
        suffix = "".join(secrets.choice(BOOKING_NUMBER_ALPHABET) for _ in range(6))
        return f"BK-{day:%Y%m%d}-{suffix}"

    @property
    def is_hourly(self) -> bool:
        return self.booking_type == self.BookingType.HOURLY

    @property
    def nights(self) -> int:
        if self.is_hourly or self.check_out_date is None:
            return 0
        return (self.check_out_date - self.check_in_date).days
