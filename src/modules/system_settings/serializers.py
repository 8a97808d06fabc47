"""System setting DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.system_settings.constants import MASKED_KEYS
from modules.system_settings.models import SystemSetting


class SystemSettingSerializer(serializers.ModelSerializer):
    """Read serializer; secret values are masked."""

    value = serializers.SerializerMethodField()

    class Meta:
        model = SystemSetting
        fields = ["id", "key", "value", "description", "created_at", "updated_at"]
        read_only_fields = fields

    def get_value(self, obj: SystemSetting):
        if obj.key in MASKED_KEYS and obj.value:
            return "***MASKED***"
        return obj.value
