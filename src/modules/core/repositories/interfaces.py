"""Base contract shared by the per-module repository interfaces.

Services receive repositories through their constructor and only see
these methods; the Django implementations live next to each module.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Optional, TypeVar

from django.db.models import QuerySet

T = TypeVar("T")


class IRepository(ABC, Generic[T]):
    @abstractmethod
    def get_by_id(self, id: str) -> Optional[T]:
        """Live entity with this primary key, or ``None``."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        """Live entities matching ``filters``; views paginate the result."""

    @abstractmethod
    def save(self, entity: T) -> T: ...

    @abstractmethod
    def delete(self, id: str) -> bool:
        """Soft-delete; ``False`` when nothing matched."""
