"""Subscription repository interface."""

from __future__ import annotations

from abc import abstractmethod
from datetime import date
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.subscriptions.models import Subscription, SubscriptionDelivery


class ISubscriptionRepository(IRepository["Subscription"]):
    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Subscription:
        """Create a subscription with its items atomically."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Subscription]:
        """Retrieve a subscription holding a row-level lock."""

    @abstractmethod
    def get_by_pix_transaction_id(self, txid: str) -> Optional[Subscription]: ...

    @abstractmethod
    def get_by_card_checkout_id(self, checkout_id: str) -> Optional[Subscription]: ...

    @abstractmethod
    def add_deliveries(
        self, subscription: Subscription, rows: List[Dict[str, Any]]
    ) -> List[SubscriptionDelivery]:
        """Bulk-create delivery rows for ``subscription``."""

    @abstractmethod
    def cancel_open_deliveries(self, subscription: Subscription) -> int:
        """Cancel deliveries still waiting; returns how many changed."""

    @abstractmethod
    def list_deliveries_for(self, day: date) -> List[SubscriptionDelivery]:
        """Non-cancelled subscription deliveries scheduled on ``day``."""

    @abstractmethod
    def list_awaiting_payment(self) -> QuerySet[Subscription]:
        """Subscriptions waiting for payment with a live provider reference."""
