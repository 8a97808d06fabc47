"""Django ORM implementation of the system setting repository."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction

from modules.system_settings.models import SystemSetting
from modules.system_settings.repositories.interfaces import ISystemSettingRepository

logger = structlog.get_logger(__name__)


class SystemSettingDjangoRepository(ISystemSettingRepository):
    """Concrete system setting repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[SystemSetting]:
        try:
            return SystemSetting.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_key(self, key: str) -> Optional[SystemSetting]:
        return SystemSetting.objects.filter(key=key).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[SystemSetting]:
        queryset = SystemSetting.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    @transaction.atomic
    def save(self, entity: SystemSetting) -> SystemSetting:
        entity.save()
        logger.info("system_setting.saved", key=entity.key)
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        setting = self.get_by_id(id)
        if not setting:
            return False
        setting.delete()
        return True

    @transaction.atomic
    def delete_by_key(self, key: str) -> bool:
        deleted, _ = SystemSetting.objects.filter(key=key).delete()
        if deleted:
            logger.info("system_setting.deleted", key=key)
        return bool(deleted)
