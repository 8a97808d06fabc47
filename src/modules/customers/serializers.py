"""Customer DRF serializers.

Output only: input is parsed into Pydantic DTOs by the view.  The
document is masked in every response.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.customers.models import Customer


class CustomerSerializer(serializers.ModelSerializer):
    document = serializers.SerializerMethodField()
    full_address = serializers.CharField(read_only=True)

    class Meta:
        model = Customer
        fields = [
            "id",
            "name",
            "customer_type",
            "document",
            "email",
            "phone",
            "street",
            "number",
            "complement",
            "neighborhood",
            "city",
            "state",
            "zip_code",
            "full_address",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_document(self, obj: Customer) -> str:
        suffix = obj.document[-4:] if obj.document else "????"
        return f"***{suffix}"
