"""API views for availability lookups and inventory overrides."""

from __future__ import annotations

from django.db import transaction  # type: ignore
from django.shortcuts import get_object_or_404  # type: ignore
from drf_spectacular.utils import extend_schema  # type: ignore
from rest_framework import permissions, status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.hotels.models import RoomType
from shared.domain.value_objects import DateRange

from .availability import AvailabilityCalculator
from .cache import invalidate_room_type
from .serializers import (
    AvailabilityCalendarSerializer,
    CalendarQuerySerializer,
    DailyAvailabilityQuerySerializer,
    DailyAvailabilitySerializer,
    HourlyAvailabilityQuerySerializer,
    HourlyAvailabilitySerializer,
    InventoryOverrideSerializer,
)
from .store import InventoryStore


class DailyAvailabilityView(APIView):
    """Свободные типы номеров и цены на период проживания."""

    permission_classes = [permissions.AllowAny]

    @extend_schema(parameters=[DailyAvailabilityQuerySerializer], responses=DailyAvailabilitySerializer)
    def get(self, request):  # type: ignore
        query = DailyAvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        result = AvailabilityCalculator().check_daily(
            params["hotel"],
            params["check_in"],
            params.get("check_out"),
            room_type_id=params.get("room_type"),
            num_rooms=params["num_rooms"],
            num_guests=params["num_guests"],
        )
        return Response(DailyAvailabilitySerializer(result).data)


class HourlyAvailabilityView(APIView):
    """Свободные почасовые слоты на дату."""

    permission_classes = [permissions.AllowAny]

    @extend_schema(parameters=[HourlyAvailabilityQuerySerializer], responses=HourlyAvailabilitySerializer)
    def get(self, request):  # type: ignore
        query = HourlyAvailabilityQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data
        result = AvailabilityCalculator().check_hourly(
            params["hotel"],
            params["date"],
            num_hours=params["num_hours"],
            room_type_id=params.get("room_type"),
            start_time=params.get("start_time"),
            num_rooms=params["num_rooms"],
        )
        return Response(HourlyAvailabilitySerializer(result).data)


class AvailabilityCalendarView(APIView):
    """Календарь остатков и цен по типу номера (границы включительно)."""

    permission_classes = [permissions.AllowAny]

    @extend_schema(parameters=[CalendarQuerySerializer], responses=AvailabilityCalendarSerializer)
    def get(self, request, room_type_id):  # type: ignore
        query = CalendarQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        calendar = AvailabilityCalculator().calendar(
            room_type_id,
            query.validated_data["start"],
            query.validated_data["end"],
        )
        return Response(AvailabilityCalendarSerializer(calendar).data)


class InventoryOverrideView(APIView):
    """Массовое изменение цены, закрытия продаж и минимального срока."""

    permission_classes = [permissions.IsAdminUser]

    @extend_schema(request=InventoryOverrideSerializer)
    def post(self, request, room_type_id):  # type: ignore
        room_type = get_object_or_404(RoomType, pk=room_type_id)
        serializer = InventoryOverrideSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        dates = DateRange(data.pop("start"), data.pop("end"))

        days_updated = InventoryStore().apply_overrides(room_type, dates, **data)
        transaction.on_commit(lambda: invalidate_room_type(room_type.pk))
        return Response({"success": True, "days_updated": days_updated}, status=status.HTTP_200_OK)
