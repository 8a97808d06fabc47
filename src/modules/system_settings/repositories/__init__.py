"""System settings repositories package."""

from modules.system_settings.repositories.django_repository import (
    SystemSettingDjangoRepository,
)
from modules.system_settings.repositories.interfaces import ISystemSettingRepository

__all__ = ["ISystemSettingRepository", "SystemSettingDjangoRepository"]
