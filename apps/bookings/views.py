"""API views for the booking domain."""

from __future__ import annotations

import structlog
from django.conf import settings  # type: ignore
from django.db import transaction  # type: ignore
from drf_spectacular.utils import OpenApiParameter, extend_schema  # type: ignore
from kombu.exceptions import OperationalError  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .filters import BookingFilter
from .lifecycle import BookingLifecycle
from .models import Booking
from .serializers import BookingCancelSerializer, BookingCreateSerializer, BookingSerializer
from .services import ReservationCoordinator

logger = structlog.get_logger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"


class IsBookingStakeholder(permissions.BasePermission):
    """Гость-владелец брони и персонал имеют доступ к бронированию."""

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return True
        return obj.guest_id == user.id


def _schedule_hold_expiration(booking: Booking) -> None:
    from .tasks import expire_booking_hold

    countdown = settings.BOOKING_HOLD_MINUTES * 60
    try:
        expire_booking_hold.apply_async(args=[booking.id], countdown=countdown)
    except OperationalError:
        # the periodic reaper still picks the booking up
        logger.warning("booking.hold_schedule_failed", booking=booking.booking_number, exc_info=True)


class BookingViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Viewset для создания бронирований и переходов жизненного цикла."""

    queryset = Booking.objects.select_related("hotel", "room_type", "guest").all()
    permission_classes = [IsBookingStakeholder]
    filterset_class = BookingFilter

    def get_permissions(self):  # type: ignore
        if self.action == "create":
            return [permissions.AllowAny()]
        if self.action in ("check_in", "check_out", "no_show"):
            return [permissions.IsAdminUser()]
        return [permissions.IsAuthenticated(), IsBookingStakeholder()]

    def get_serializer_class(self):  # type: ignore
        if self.action == "create":
            return BookingCreateSerializer
        if self.action == "cancel":
            return BookingCancelSerializer
        return BookingSerializer

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if not user.is_authenticated:
            return qs.none()
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return qs
        return qs.filter(guest=user)

    @extend_schema(
        parameters=[OpenApiParameter(IDEMPOTENCY_HEADER, str, OpenApiParameter.HEADER, required=False)],
        responses={201: BookingSerializer, 200: BookingSerializer},
    )
    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        guest_id = request.user.id if request.user.is_authenticated else None

        result = ReservationCoordinator().create_booking(
            serializer.to_reservation_request(guest_id=guest_id),
            idempotency_key=request.headers.get(IDEMPOTENCY_HEADER),
        )
        booking = result.booking
        if result.created:
            transaction.on_commit(lambda: _schedule_hold_expiration(booking))

        read_serializer = BookingSerializer(booking, context=self.get_serializer_context())
        return Response(
            read_serializer.data,
            status=status.HTTP_201_CREATED if result.created else status.HTTP_200_OK,
            headers={IDEMPOTENCY_HEADER: result.idempotency_key},
        )

    @extend_schema(request=BookingCancelSerializer, responses=BookingSerializer)
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = BookingCancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        source = serializer.validated_data["source"]
        if not request.user.is_staff and source != Booking.CancellationSource.GUEST:
            source = Booking.CancellationSource.GUEST
        booking = BookingLifecycle().cancel(
            booking.pk,
            reason=serializer.validated_data["reason"],
            source=source,
        )
        return Response(BookingSerializer(booking).data, status=status.HTTP_200_OK)

    @extend_schema(request=None, responses=BookingSerializer)
    @action(detail=True, methods=["post"], url_path="check-in")
    def check_in(self, request, pk=None):  # type: ignore
        booking = BookingLifecycle().check_in(self.get_object().pk)
        return Response(BookingSerializer(booking).data)

    @extend_schema(request=None, responses=BookingSerializer)
    @action(detail=True, methods=["post"], url_path="check-out")
    def check_out(self, request, pk=None):  # type: ignore
        booking = BookingLifecycle().check_out(self.get_object().pk)
        return Response(BookingSerializer(booking).data)

    @extend_schema(request=None, responses=BookingSerializer)
    @action(detail=True, methods=["post"], url_path="no-show")
    def no_show(self, request, pk=None):  # type: ignore
        booking = BookingLifecycle().mark_no_show(self.get_object().pk)
        return Response(BookingSerializer(booking).data)
