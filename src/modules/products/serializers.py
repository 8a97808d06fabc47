"""Product DRF serializers (output)."""

from __future__ import annotations

from rest_framework import serializers

from modules.products.models import Product


class ProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = [
            "id",
            "code",
            "name",
            "description",
            "unit",
            "price_pf_single",
            "price_pj_single",
            "price_pf_subscription",
            "price_pj_subscription",
            "stock_quantity",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
