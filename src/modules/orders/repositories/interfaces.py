"""Order repository interface.

The Order aggregate includes its items and cancellation logs.
Mutations must be atomic; status changes go through
``get_for_update`` so the row is re-read under lock before it is
modified.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import date
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.orders.models import Order, OrderCancellationLog


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root."""

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` must include ``customer_id`` and ``items`` (dicts with
        ``product_id``, ``quantity``, ``unit_price``); optional keys are
        ``payment_method``, ``delivery_time_slot``, ``notes`` and
        ``idempotency_key``.
        """

    @abstractmethod
    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order holding a row-level lock."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its idempotency key."""

    @abstractmethod
    def get_by_pix_transaction_id(self, txid: str) -> Optional[Order]:
        """Retrieve the order whose current PIX charge is ``txid``."""

    @abstractmethod
    def get_by_card_checkout_id(self, checkout_id: str) -> Optional[Order]:
        """Retrieve the order whose current card checkout is ``checkout_id``."""

    @abstractmethod
    def list_scheduled_for(self, day: date) -> List[Order]:
        """Confirmed, non-cancelled orders delivering on ``day``."""

    @abstractmethod
    def list_awaiting_payment(self) -> QuerySet[Order]:
        """Pending orders holding a provider reference and not marked expired."""

    @abstractmethod
    def add_cancellation_log(self, order: Order, data: Dict[str, Any]) -> OrderCancellationLog:
        """Append a cancellation audit record."""
