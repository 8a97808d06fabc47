"""System setting repository interface.

Settings are addressed by ``key`` rather than by primary key, so the
contract adds key-based look-ups on top of ``IRepository``.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.system_settings.models import SystemSetting


class ISystemSettingRepository(IRepository["SystemSetting"]):
    """Repository contract for system settings."""

    @abstractmethod
    def get_by_key(self, key: str) -> Optional[SystemSetting]:
        """Retrieve a setting by its unique key."""

    @abstractmethod
    def delete_by_key(self, key: str) -> bool:
        """Remove a setting by key; ``False`` if it did not exist."""
