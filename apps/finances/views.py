"""API views for payment processing.

Guests start a payment for a PENDING booking and confirm it with the data
their checkout widget returned. Refunds and commission settlement are
staff operations.
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .models import Commission, Payment
from .serializers import (
    CommissionSerializer,
    CommissionSettleSerializer,
    ConfirmationResultSerializer,
    InitiatedPaymentSerializer,
    PaymentConfirmSerializer,
    PaymentInitiateSerializer,
    PaymentSerializer,
    RefundRequestSerializer,
    RefundResultSerializer,
)
from .services import SettlementEngine


class IsPaymentOwnerOrStaff(permissions.BasePermission):
    """Only the booking owner or staff can read payments."""

    def has_object_permission(self, request, view, obj: Payment) -> bool:  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return True
        return obj.booking.guest_id == user.id


class PaymentViewSet(viewsets.ReadOnlyModelViewSet):
    """Viewset for payments and the settlement operations around them."""

    queryset = Payment.objects.select_related("booking").prefetch_related("refunds").all()
    serializer_class = PaymentSerializer

    def get_permissions(self):  # type: ignore
        if self.action in ("initiate", "confirm"):
            return [permissions.AllowAny()]
        if self.action in ("refund", "commissions", "settle_commissions"):
            return [permissions.IsAdminUser()]
        return [permissions.IsAuthenticated(), IsPaymentOwnerOrStaff()]

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if self.action == "confirm":
            return qs
        if not user.is_authenticated:
            return qs.none()
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return qs
        return qs.filter(booking__guest=user)

    @extend_schema(request=PaymentInitiateSerializer, responses={201: InitiatedPaymentSerializer})
    @action(detail=False, methods=["post"])
    def initiate(self, request):  # type: ignore
        serializer = PaymentInitiateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        initiated = SettlementEngine().initiate_payment(
            serializer.validated_data["booking"],
            serializer.validated_data["method"],
        )
        return Response(InitiatedPaymentSerializer(initiated).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=PaymentConfirmSerializer, responses=ConfirmationResultSerializer)
    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):  # type: ignore
        serializer = PaymentConfirmSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = self.get_object()
        result = SettlementEngine().confirm_payment(
            payment.pk,
            serializer.validated_data.get("gateway_payment_id") or None,
            serializer.validated_data.get("signature") or None,
        )
        return Response(ConfirmationResultSerializer(result).data)

    @extend_schema(request=RefundRequestSerializer, responses=RefundResultSerializer)
    @action(detail=False, methods=["post"])
    def refund(self, request):  # type: ignore
        serializer = RefundRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = SettlementEngine().process_refund(
            serializer.validated_data["booking"],
            serializer.validated_data.get("amount"),
        )
        return Response(RefundResultSerializer(result).data)

    @extend_schema(responses=CommissionSerializer(many=True))
    @action(detail=False, methods=["get"])
    def commissions(self, request):  # type: ignore
        qs = Commission.objects.select_related("booking").all()
        status_filter = request.query_params.get("status")
        if status_filter:
            qs = qs.filter(status=status_filter)
        hotel = request.query_params.get("hotel")
        if hotel:
            qs = qs.filter(hotel_id=hotel)
        page = self.paginate_queryset(qs)
        if page is not None:
            return self.get_paginated_response(CommissionSerializer(page, many=True).data)
        return Response(CommissionSerializer(qs, many=True).data)

    @extend_schema(request=CommissionSettleSerializer)
    @action(detail=False, methods=["post"], url_path="commissions/settle")
    def settle_commissions(self, request):  # type: ignore
        serializer = CommissionSettleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        settled = SettlementEngine().settle_commissions(serializer.validated_data["commission_ids"])
        return Response({"settled": settled})
