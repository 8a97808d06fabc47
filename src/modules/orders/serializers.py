"""Order DRF serializers for API input/output.

Input serializers only shape the payload; business rules live in the
Service Layer, which receives Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.deliveries.constants import TimeSlot
from modules.orders.constants import DeliveryStatus, PaymentStatus
from modules.orders.models import Order, OrderCancellationLog, OrderItem
from modules.payments.constants import PaymentMethod

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderItemSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class CreateOrderSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    items = CreateOrderItemSerializer(many=True, allow_empty=False)
    payment_method = serializers.ChoiceField(
        choices=PaymentMethod.choices, required=False, default=PaymentMethod.PIX
    )
    delivery_time_slot = serializers.ChoiceField(
        choices=TimeSlot.choices, required=False, allow_null=True, default=None
    )
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class UpdateOrderStatusSerializer(serializers.Serializer):
    """At least one of the two statuses must be sent."""

    payment_status = serializers.ChoiceField(choices=PaymentStatus.choices, required=False)
    delivery_status = serializers.ChoiceField(choices=DeliveryStatus.choices, required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError(
                "Send 'payment_status' or 'delivery_status'."
            )
        return attrs


class CancelOrderSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, default="", allow_blank=True)


class RescheduleDeliverySerializer(serializers.Serializer):
    delivery_date = serializers.DateField()
    delivery_time_slot = serializers.ChoiceField(
        choices=TimeSlot.choices, required=False, allow_null=True, default=None
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)
    product_code = serializers.CharField(source="product.code", read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "product_code",
            "quantity",
            "unit_price",
            "subtotal",
        ]
        read_only_fields = fields


class CancellationLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderCancellationLog
        fields = [
            "id",
            "cancelled_by",
            "cancelled_by_email",
            "reason",
            "previous_payment_status",
            "previous_delivery_status",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Full order with items, payment attempt and cancellation logs."""

    items = OrderItemSerializer(many=True, read_only=True)
    cancellation_logs = CancellationLogSerializer(many=True, read_only=True)
    customer_name = serializers.CharField(source="customer.name", read_only=True)
    delivery_time_slot_display = serializers.CharField(
        source="get_delivery_time_slot_display", read_only=True
    )

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_id",
            "customer_name",
            "payment_status",
            "delivery_status",
            "total_amount",
            "notes",
            "payment_method",
            "payment_url",
            "pix_payload",
            "payment_expires_at",
            "payment_expired_at",
            "payment_confirmed_at",
            "delivery_date",
            "delivery_time_slot",
            "delivery_time_slot_display",
            "cancelled_at",
            "cancelled_by",
            "cancellation_reason",
            "created_at",
            "updated_at",
            "items",
            "cancellation_logs",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_id",
            "payment_status",
            "delivery_status",
            "total_amount",
            "delivery_date",
            "delivery_time_slot",
            "created_at",
        ]
        read_only_fields = fields
