"""Financial domain models: payments, refunds and platform commission."""

from __future__ import annotations

from decimal import Decimal

from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Payment(models.Model):
    """Попытка оплаты бронирования. Актуальна последняя по времени."""

    class Status(models.TextChoices):
        CREATED = "created", _("Создан, ожидает оплаты")
        CAPTURED = "captured", _("Оплачен")
        FAILED = "failed", _("Ошибка")
        PARTIALLY_REFUNDED = "partially_refunded", _("Частичный возврат")
        REFUNDED = "refunded", _("Возврат")

    class Method(models.TextChoices):
        CARD = "card", _("Банковская карта")
        UPI = "upi", _("UPI")
        NETBANKING = "netbanking", _("Интернет-банк")
        WALLET = "wallet", _("Кошелёк")

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="payments",
    )
    gateway = models.CharField(max_length=30, help_text=_("Платёжный провайдер"))
    method = models.CharField(max_length=20, choices=Method.choices, default=Method.CARD)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.CREATED)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="INR")
    gateway_order_id = models.CharField(max_length=100, unique=True)
    gateway_payment_id = models.CharField(max_length=100, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    captured_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Платёж")
        verbose_name_plural = _("Платежи")
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(refund_amount__lte=models.F("amount")),
                name="payment_refund_within_amount",
            ),
        ]

    def __str__(self) -> str:
        return f"Payment {self.gateway_order_id} ({self.status})"

    @property
    def refundable_amount(self) -> Decimal:
        return self.amount - self.refund_amount


class PaymentRefund(models.Model):
    """Запись о попытке возврата. PENDING резервирует сумму до ответа провайдера."""

    class Status(models.TextChoices):
        PENDING = "pending", _("В обработке")
        SUCCEEDED = "succeeded", _("Выполнен")
        FAILED = "failed", _("Ошибка")

    payment = models.ForeignKey(Payment, on_delete=models.CASCADE, related_name="refunds")
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    gateway_refund_id = models.CharField(max_length=100, blank=True)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Возврат")
        verbose_name_plural = _("Возвраты")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Refund {self.amount} for {self.payment_id} ({self.status})"


class Commission(models.Model):
    """Комиссия платформы, зафиксированная при бронировании."""

    class Status(models.TextChoices):
        PENDING = "pending", _("Ожидает расчёта")
        SETTLED = "settled", _("Рассчитана")
        VOID = "void", _("Аннулирована")

    booking = models.OneToOneField(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="commission",
    )
    hotel = models.ForeignKey("hotels.Hotel", on_delete=models.PROTECT, related_name="commissions")
    booking_amount = models.DecimalField(max_digits=12, decimal_places=2)
    commission_rate = models.DecimalField(max_digits=5, decimal_places=4)
    commission_amount = models.DecimalField(max_digits=12, decimal_places=2)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    settled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Комиссия")
        verbose_name_plural = _("Комиссии")
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Commission {self.commission_amount} on {self.booking_id} ({self.status})"
