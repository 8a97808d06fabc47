"""Delivery agenda serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.deliveries.constants import TimeSlot
from modules.orders.models import Order
from modules.subscriptions.models import SubscriptionDelivery


class AgendaQuerySerializer(serializers.Serializer):
    date = serializers.DateField(required=False)


class PreviewQuerySerializer(serializers.Serializer):
    at = serializers.DateTimeField(required=False)


class RescheduleSerializer(serializers.Serializer):
    delivery_date = serializers.DateField()
    time_slot = serializers.ChoiceField(
        choices=TimeSlot.choices, required=False, allow_null=True, default=None
    )


class OrderDeliverySerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source="customer.name", read_only=True)
    address = serializers.CharField(source="customer.full_address", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_name",
            "address",
            "delivery_date",
            "delivery_time_slot",
            "delivery_status",
            "total_amount",
        ]
        read_only_fields = fields


class SubscriptionDeliveryAgendaSerializer(serializers.ModelSerializer):
    subscription_number = serializers.CharField(
        source="subscription.subscription_number", read_only=True
    )
    customer_name = serializers.CharField(source="subscription.customer.name", read_only=True)
    address = serializers.CharField(source="subscription.customer.full_address", read_only=True)

    class Meta:
        model = SubscriptionDelivery
        fields = [
            "id",
            "subscription_id",
            "subscription_number",
            "customer_name",
            "address",
            "delivery_date",
            "delivery_time_slot",
            "delivery_status",
            "total_amount",
        ]
        read_only_fields = fields


class DeliveryScheduleSerializer(serializers.Serializer):
    delivery_date = serializers.DateField()
    time_slot = serializers.CharField()
    confirmed_at = serializers.DateTimeField()
    before_cutoff = serializers.BooleanField()
