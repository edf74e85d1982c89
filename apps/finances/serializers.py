"""Serializers for the finance domain (payments, refunds, commissions)."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from apps.bookings.serializers import BookingSerializer

from .models import Commission, Payment, PaymentRefund


class PaymentRefundSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentRefund
        fields = ["id", "amount", "status", "gateway_refund_id", "created_at"]
        read_only_fields = fields


class PaymentSerializer(serializers.ModelSerializer):
    """Отображение платёжных записей."""

    refunds = PaymentRefundSerializer(many=True, read_only=True)
    booking_number = serializers.ReadOnlyField(source="booking.booking_number")

    class Meta:
        model = Payment
        fields = [
            "id",
            "booking",
            "booking_number",
            "gateway",
            "method",
            "status",
            "amount",
            "refund_amount",
            "currency",
            "gateway_order_id",
            "gateway_payment_id",
            "metadata",
            "captured_at",
            "refunds",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PaymentInitiateSerializer(serializers.Serializer):
    booking = serializers.IntegerField(min_value=1)
    method = serializers.ChoiceField(choices=Payment.Method.choices, default=Payment.Method.CARD)


class PaymentConfirmSerializer(serializers.Serializer):
    gateway_payment_id = serializers.CharField(max_length=100, required=False, allow_blank=True)
    signature = serializers.CharField(max_length=256, required=False, allow_blank=True)


class RefundRequestSerializer(serializers.Serializer):
    booking = serializers.IntegerField(min_value=1)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)


class CommissionSettleSerializer(serializers.Serializer):
    commission_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)


class InitiatedPaymentSerializer(serializers.Serializer):
    payment_id = serializers.IntegerField(source="payment.id")
    booking_number = serializers.CharField(source="payment.booking.booking_number")
    order_id = serializers.CharField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    currency = serializers.CharField()
    gateway = serializers.CharField()
    gateway_data = serializers.JSONField()


class ConfirmationResultSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    message = serializers.CharField()
    refund_required = serializers.BooleanField()
    payment = PaymentSerializer()
    booking = BookingSerializer()


class RefundResultSerializer(serializers.Serializer):
    refund = PaymentRefundSerializer()
    payment = PaymentSerializer()
    booking = BookingSerializer()


class CommissionSerializer(serializers.ModelSerializer):
    booking_number = serializers.ReadOnlyField(source="booking.booking_number")

    class Meta:
        model = Commission
        fields = [
            "id",
            "booking",
            "booking_number",
            "hotel",
            "booking_amount",
            "commission_rate",
            "commission_amount",
            "status",
            "settled_at",
            "created_at",
        ]
        read_only_fields = fields
