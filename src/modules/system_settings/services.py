"""System settings service layer.

Thin use cases over ``ISystemSettingRepository`` plus the typed
readers other modules rely on (delivery configuration, active
payment environment).  Readers never raise on malformed values: they
log and fall back to defaults.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, List

import structlog
from django.db import transaction

from modules.deliveries.scheduling import DeliveryConfig, parse_cutoff, parse_holidays
from modules.system_settings.constants import (
    ACTIVE_ENVIRONMENT,
    DEFAULT_SETTINGS,
    DELIVERY_CUTOFF_TIME,
    ENVIRONMENT_PRODUCTION,
    ENVIRONMENT_SANDBOX,
    HOLIDAYS,
)
from modules.system_settings.exceptions import SettingNotFound
from modules.system_settings.models import SystemSetting

if TYPE_CHECKING:
    from modules.system_settings.repositories.interfaces import (
        ISystemSettingRepository,
    )

logger = structlog.get_logger(__name__)

_MISSING = object()


class SystemSettingService:
    """Application service for system configuration."""

    def __init__(self, repository: ISystemSettingRepository) -> None:
        self._repo = repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def set_value(self, key: str, value: Any, description: str | None = None) -> SystemSetting:
        """Create or update the setting stored under ``key``."""
        setting = self._repo.get_by_key(key)
        if setting is None:
            default_description = DEFAULT_SETTINGS.get(key, (None, ""))[1]
            setting = SystemSetting(key=key, description=description or default_description)
        elif description is not None:
            setting.description = description
        setting.value = value
        setting = self._repo.save(setting)
        logger.info("system_setting.updated", key=key)
        return setting

    @transaction.atomic
    def delete_setting(self, key: str) -> None:
        """Raises ``SettingNotFound`` when the key does not exist."""
        if not self._repo.delete_by_key(key):
            raise SettingNotFound(f"Setting '{key}' not found.")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_settings(self) -> List[SystemSetting]:
        return self._repo.list()

    def get_setting(self, key: str) -> SystemSetting:
        setting = self._repo.get_by_key(key)
        if setting is None:
            raise SettingNotFound(f"Setting '{key}' not found.")
        return setting

    def get_value(self, key: str, default: Any = _MISSING) -> Any:
        """Return the stored value, the given default, or the built-in default."""
        setting = self._repo.get_by_key(key)
        if setting is not None and setting.value is not None:
            return setting.value
        if default is not _MISSING:
            return default
        return DEFAULT_SETTINGS.get(key, (None, ""))[0]

    def get_delivery_config(self) -> DeliveryConfig:
        """Cutoff time and holidays used when a payment is confirmed."""
        return DeliveryConfig(
            cutoff=parse_cutoff(self.get_value(DELIVERY_CUTOFF_TIME)),
            holidays=parse_holidays(self.get_value(HOLIDAYS)),
        )

    def get_active_environment(self) -> str:
        value = self.get_value(ACTIVE_ENVIRONMENT)
        if isinstance(value, str):
            value = value.strip().strip('"').lower()
        if value not in (ENVIRONMENT_PRODUCTION, ENVIRONMENT_SANDBOX):
            logger.warning("system_setting.unknown_environment", value=repr(value))
            return ENVIRONMENT_SANDBOX
        return value
