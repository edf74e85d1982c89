"""django-filter filtersets for the booking list."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import Booking


class BookingFilter(django_filters.FilterSet):
    hotel = django_filters.NumberFilter(field_name="hotel_id")
    room_type = django_filters.NumberFilter(field_name="room_type_id")
    status = django_filters.MultipleChoiceFilter(choices=Booking.Status.choices)
    payment_status = django_filters.MultipleChoiceFilter(choices=Booking.PaymentStatus.choices)
    booking_type = django_filters.ChoiceFilter(choices=Booking.BookingType.choices)
    source = django_filters.ChoiceFilter(choices=Booking.Source.choices)
    check_in_from = django_filters.DateFilter(field_name="check_in_date", lookup_expr="gte")
    check_in_to = django_filters.DateFilter(field_name="check_in_date", lookup_expr="lte")
    booking_number = django_filters.CharFilter(field_name="booking_number", lookup_expr="iexact")
    guest_email = django_filters.CharFilter(field_name="guest_email", lookup_expr="iexact")

    class Meta:
        model = Booking
        fields = [
            "hotel",
            "room_type",
            "status",
            "payment_status",
            "booking_type",
            "source",
            "check_in_from",
            "check_in_to",
            "booking_number",
            "guest_email",
        ]
