"""Serializers for availability queries and results."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore


class DailyAvailabilityQuerySerializer(serializers.Serializer):
    hotel = serializers.IntegerField(min_value=1)
    room_type = serializers.IntegerField(min_value=1, required=False)
    check_in = serializers.DateField()
    check_out = serializers.DateField(required=False)
    num_rooms = serializers.IntegerField(min_value=1, default=1)
    num_guests = serializers.IntegerField(min_value=1, default=1)


class HourlyAvailabilityQuerySerializer(serializers.Serializer):
    hotel = serializers.IntegerField(min_value=1)
    room_type = serializers.IntegerField(min_value=1, required=False)
    date = serializers.DateField()
    start_time = serializers.RegexField(r"^\d{2}:\d{2}$", required=False)
    num_hours = serializers.IntegerField(min_value=1, default=3)
    num_rooms = serializers.IntegerField(min_value=1, default=1)


class CalendarQuerySerializer(serializers.Serializer):
    start = serializers.DateField()
    end = serializers.DateField()


class InventoryOverrideSerializer(serializers.Serializer):
    """Bulk override of price, closure and minimum stay for a date range."""

    start = serializers.DateField()
    end = serializers.DateField(help_text="Exclusive")
    price_override = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=0,
        required=False,
        allow_null=True,
    )
    is_closed = serializers.BooleanField(required=False)
    min_stay_nights = serializers.IntegerField(min_value=1, required=False)

    def validate(self, attrs):  # type: ignore
        if attrs["end"] <= attrs["start"]:
            raise serializers.ValidationError("end must be after start.")
        if not {"price_override", "is_closed", "min_stay_nights"} & set(attrs):
            raise serializers.ValidationError("Nothing to update.")
        return attrs


class DayStateSerializer(serializers.Serializer):
    date = serializers.DateField()
    available = serializers.IntegerField()
    price = serializers.DecimalField(max_digits=12, decimal_places=2)
    is_closed = serializers.BooleanField()
    min_stay_nights = serializers.IntegerField()


class CalendarDaySerializer(DayStateSerializer):
    has_custom_price = serializers.BooleanField()
    has_custom_availability = serializers.BooleanField(source="has_row")


class SlotStateSerializer(serializers.Serializer):
    start_time = serializers.CharField(source="slot_start")
    end_time = serializers.CharField(source="slot_end")
    available = serializers.IntegerField()
    price = serializers.DecimalField(max_digits=12, decimal_places=2)
    is_closed = serializers.BooleanField()


class DailyRoomTypeSerializer(serializers.Serializer):
    room_type_id = serializers.IntegerField()
    name = serializers.CharField()
    base_price_daily = serializers.DecimalField(max_digits=10, decimal_places=2)
    max_guests = serializers.IntegerField()
    nights = serializers.IntegerField()
    dates = DayStateSerializer(many=True)
    min_available = serializers.IntegerField()
    min_stay_nights = serializers.IntegerField()
    is_available = serializers.BooleanField()
    reason = serializers.CharField(allow_null=True)
    total_price = serializers.DecimalField(max_digits=12, decimal_places=2)
    price_per_night = serializers.DecimalField(max_digits=12, decimal_places=2)


class DailyAvailabilitySerializer(serializers.Serializer):
    hotel_id = serializers.IntegerField()
    check_in = serializers.DateField()
    check_out = serializers.DateField()
    nights = serializers.IntegerField()
    num_rooms = serializers.IntegerField()
    num_guests = serializers.IntegerField()
    available = DailyRoomTypeSerializer(many=True)
    unavailable = DailyRoomTypeSerializer(many=True)


class HourlyRoomTypeSerializer(serializers.Serializer):
    room_type_id = serializers.IntegerField()
    name = serializers.CharField()
    base_price_hourly = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True)
    min_hours = serializers.IntegerField()
    max_hours = serializers.IntegerField()
    slots = SlotStateSerializer(many=True)
    is_available = serializers.BooleanField()
    reason = serializers.CharField(allow_null=True)
    message = serializers.CharField(allow_blank=True)


class HourlyAvailabilitySerializer(serializers.Serializer):
    hotel_id = serializers.IntegerField()
    date = serializers.DateField()
    num_hours = serializers.IntegerField()
    num_rooms = serializers.IntegerField()
    available = HourlyRoomTypeSerializer(many=True)
    unavailable = HourlyRoomTypeSerializer(many=True)


class AvailabilityCalendarSerializer(serializers.Serializer):
    room_type_id = serializers.IntegerField()
    room_type_name = serializers.CharField()
    base_price_daily = serializers.DecimalField(max_digits=10, decimal_places=2)
    total_rooms = serializers.IntegerField()
    days = CalendarDaySerializer(many=True)
