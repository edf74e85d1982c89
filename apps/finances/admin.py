"""Admin registrations for payments and commissions."""

from __future__ import annotations

from django.contrib import admin

from .models import Commission, Payment, PaymentRefund


class PaymentRefundInline(admin.TabularInline):
    model = PaymentRefund
    extra = 0
    fields = ("amount", "status", "gateway_refund_id", "created_at")
    readonly_fields = fields
    can_delete = False


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("gateway_order_id", "booking", "gateway", "status", "amount", "refund_amount", "created_at")
    list_filter = ("status", "gateway", "method")
    search_fields = ("gateway_order_id", "gateway_payment_id", "booking__booking_number")
    readonly_fields = ("status", "amount", "refund_amount", "captured_at", "metadata", "created_at", "updated_at")
    inlines = (PaymentRefundInline,)


@admin.register(Commission)
class CommissionAdmin(admin.ModelAdmin):
    list_display = ("booking", "hotel", "booking_amount", "commission_rate", "commission_amount", "status")
    list_filter = ("status", "hotel")
    search_fields = ("booking__booking_number", "hotel__name")
    readonly_fields = ("booking_amount", "commission_rate", "commission_amount", "settled_at", "created_at")
