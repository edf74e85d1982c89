"""Hotel and room type models.

These are the pricing templates the reservation engine reads. The engine
never mutates them; operators manage them through the admin.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore


class Hotel(models.Model):
    """Отель (арендатор платформы)."""

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True)
    currency = models.CharField(max_length=3, default="INR")
    commission_rate = models.DecimalField(
        max_digits=5,
        decimal_places=4,
        default=Decimal("0.1000"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("1"))],
        help_text=_("Доля комиссии платформы, например 0.10."),
    )
    hourly_min_hours = models.PositiveSmallIntegerField(default=3)
    hourly_max_hours = models.PositiveSmallIntegerField(default=12)
    hourly_open_hour = models.PositiveSmallIntegerField(
        default=6,
        validators=[MaxValueValidator(23)],
        help_text=_("Первый час, с которого можно начать почасовую бронь."),
    )
    hourly_close_hour = models.PositiveSmallIntegerField(
        default=22,
        validators=[MaxValueValidator(24)],
        help_text=_("Час, к которому почасовая бронь должна закончиться."),
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Отель")
        verbose_name_plural = _("Отели")
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(hourly_close_hour__gt=models.F("hourly_open_hour")),
                name="hotel_valid_hourly_window",
            ),
        ]

    def __str__(self) -> str:
        return self.name


class RoomType(models.Model):
    """Категория номеров отеля с базовыми ценами."""

    hotel = models.ForeignKey(Hotel, on_delete=models.CASCADE, related_name="room_types")
    name = models.CharField(max_length=200)
    base_price_daily = models.DecimalField(max_digits=10, decimal_places=2)
    base_price_hourly = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("Цена за час. Если не задана, почасовое бронирование недоступно."),
    )
    max_guests = models.PositiveSmallIntegerField(default=2)
    max_extra_guests = models.PositiveSmallIntegerField(default=0)
    extra_guest_charge = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    total_rooms = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    min_hours = models.PositiveSmallIntegerField(null=True, blank=True)
    max_hours = models.PositiveSmallIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    sort_order = models.PositiveSmallIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Тип номера")
        verbose_name_plural = _("Типы номеров")
        ordering = ["hotel", "sort_order", "id"]

    def __str__(self) -> str:
        return f"{self.name} ({self.hotel_id})"

    @property
    def supports_hourly(self) -> bool:
        return self.base_price_hourly is not None

    @property
    def effective_min_hours(self) -> int:
        return self.min_hours if self.min_hours is not None else self.hotel.hourly_min_hours

    @property
    def effective_max_hours(self) -> int:
        return self.max_hours if self.max_hours is not None else self.hotel.hourly_max_hours

    @property
    def guest_capacity(self) -> int:
        """Guests one room accommodates, extra beds included."""
        return self.max_guests + self.max_extra_guests
