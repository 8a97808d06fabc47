"""Subscription DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.deliveries.constants import TimeSlot, Weekday
from modules.payments.constants import PaymentMethod
from modules.subscriptions.constants import Frequency
from modules.subscriptions.models import Subscription, SubscriptionDelivery, SubscriptionItem


class CreateSubscriptionItemSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class CreateSubscriptionSerializer(serializers.Serializer):
    customer_id = serializers.UUIDField()
    items = CreateSubscriptionItemSerializer(many=True, allow_empty=False)
    frequency = serializers.ChoiceField(choices=Frequency.choices, default=Frequency.WEEKLY)
    delivery_weekday = serializers.ChoiceField(choices=Weekday.choices, default=Weekday.MONDAY)
    delivery_weekdays = serializers.ListField(
        child=serializers.ChoiceField(choices=Weekday.choices), required=False, default=list
    )
    delivery_time_slot = serializers.ChoiceField(
        choices=TimeSlot.choices, required=False, allow_null=True, default=None
    )
    is_emergency = serializers.BooleanField(default=False)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, default=PaymentMethod.PIX)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class SubscriptionItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)
    product_code = serializers.CharField(source="product.code", read_only=True)
    subtotal = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = SubscriptionItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "product_code",
            "quantity",
            "unit_price",
            "subtotal",
            "reserved_stock",
        ]
        read_only_fields = fields


class SubscriptionDeliverySerializer(serializers.ModelSerializer):
    class Meta:
        model = SubscriptionDelivery
        fields = [
            "id",
            "delivery_date",
            "delivery_time_slot",
            "delivery_status",
            "payment_status",
            "total_amount",
        ]
        read_only_fields = fields


class SubscriptionSerializer(serializers.ModelSerializer):
    items = SubscriptionItemSerializer(many=True, read_only=True)
    deliveries = SubscriptionDeliverySerializer(many=True, read_only=True)
    customer_name = serializers.CharField(source="customer.name", read_only=True)

    class Meta:
        model = Subscription
        fields = [
            "id",
            "subscription_number",
            "customer_id",
            "customer_name",
            "frequency",
            "delivery_weekday",
            "delivery_weekdays",
            "delivery_time_slot",
            "is_emergency",
            "status",
            "next_delivery_date",
            "total_amount",
            "notes",
            "payment_method",
            "payment_url",
            "pix_payload",
            "payment_expires_at",
            "payment_expired_at",
            "activated_at",
            "cancelled_at",
            "created_at",
            "updated_at",
            "items",
            "deliveries",
        ]
        read_only_fields = fields


class SubscriptionListSerializer(serializers.ModelSerializer):
    class Meta:
        model = Subscription
        fields = [
            "id",
            "subscription_number",
            "customer_id",
            "frequency",
            "status",
            "next_delivery_date",
            "total_amount",
            "created_at",
        ]
        read_only_fields = fields
