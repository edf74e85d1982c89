"""Serializers for the booking domain."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import Booking
from .services import ReservationRequest


class BookingCreateSerializer(serializers.Serializer):
    """Запрос на бронирование (посуточно или почасово)."""

    hotel = serializers.IntegerField(min_value=1)
    room_type = serializers.IntegerField(min_value=1)
    booking_type = serializers.ChoiceField(choices=Booking.BookingType.choices, default=Booking.BookingType.DAILY)
    source = serializers.ChoiceField(choices=Booking.Source.choices, default=Booking.Source.PLATFORM)
    check_in_date = serializers.DateField()
    check_out_date = serializers.DateField(required=False)
    check_in_time = serializers.RegexField(r"^\d{2}:\d{2}$", required=False)
    num_hours = serializers.IntegerField(min_value=1, required=False)
    num_rooms = serializers.IntegerField(min_value=1, default=1)
    num_guests = serializers.IntegerField(min_value=1, default=1)
    num_extra_guests = serializers.IntegerField(min_value=0, default=0)
    guest_name = serializers.CharField(max_length=200)
    guest_email = serializers.EmailField()
    guest_phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    special_requests = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):  # type: ignore
        if attrs["booking_type"] == Booking.BookingType.HOURLY:
            missing = [name for name in ("check_in_time", "num_hours") if not attrs.get(name)]
            if missing:
                raise serializers.ValidationError({name: "Обязательно для почасового бронирования." for name in missing})
        return attrs

    def to_reservation_request(self, guest_id=None) -> ReservationRequest:
        data = self.validated_data
        return ReservationRequest(
            hotel_id=data["hotel"],
            room_type_id=data["room_type"],
            guest_name=data["guest_name"],
            guest_email=data["guest_email"],
            guest_phone=data["guest_phone"],
            check_in_date=data["check_in_date"],
            check_out_date=data.get("check_out_date"),
            booking_type=data["booking_type"],
            check_in_time=data.get("check_in_time"),
            num_hours=data.get("num_hours"),
            num_rooms=data["num_rooms"],
            num_guests=data["num_guests"],
            num_extra_guests=data["num_extra_guests"],
            source=data["source"],
            special_requests=data["special_requests"],
            guest_id=guest_id,
        )


class BookingCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    source = serializers.ChoiceField(
        choices=Booking.CancellationSource.choices,
        default=Booking.CancellationSource.GUEST,
    )


class BookingSerializer(serializers.ModelSerializer):
    """Детальный сериализатор бронирования."""

    hotel_id = serializers.ReadOnlyField(source="hotel.id")
    hotel_name = serializers.ReadOnlyField(source="hotel.name")
    room_type_id = serializers.ReadOnlyField(source="room_type.id")
    room_type_name = serializers.ReadOnlyField(source="room_type.name")
    nights = serializers.ReadOnlyField()

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_number",
            "idempotency_key",
            "hotel_id",
            "hotel_name",
            "room_type_id",
            "room_type_name",
            "booking_type",
            "source",
            "guest_name",
            "guest_email",
            "guest_phone",
            "check_in_date",
            "check_out_date",
            "check_in_time",
            "check_out_time",
            "num_hours",
            "nights",
            "num_rooms",
            "num_guests",
            "num_extra_guests",
            "room_total",
            "extra_guest_total",
            "taxes",
            "total_amount",
            "commission_rate",
            "commission_amount",
            "hotel_payout",
            "currency",
            "status",
            "payment_status",
            "hold_expires_at",
            "special_requests",
            "confirmed_at",
            "checked_in_at",
            "checked_out_at",
            "cancelled_at",
            "cancellation_source",
            "cancellation_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
