"""Payment DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.payments.constants import PaymentMethod, PaymentTarget

TARGET_CHOICES = [(target.value, target.value) for target in PaymentTarget]


class CheckPaymentSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=TARGET_CHOICES)
    id = serializers.UUIDField()


class CreatePaymentSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=TARGET_CHOICES)
    id = serializers.UUIDField()
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    return_url = serializers.URLField(required=False, default="", allow_blank=True)


class PixWebhookSerializer(serializers.Serializer):
    """Efí posts ``{"pix": [{"txid": ..., "endToEndId": ..., "valor": ...}]}``."""

    pix = serializers.ListField(child=serializers.DictField(), allow_empty=True)
