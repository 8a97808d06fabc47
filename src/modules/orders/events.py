"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is created."""


@dataclass(frozen=True)
class OrderPaymentConfirmed(DomainEvent):
    """Raised when payment is confirmed and a delivery date is assigned."""

    delivery_date: Optional[date] = None
    delivery_time_slot: Optional[str] = None


@dataclass(frozen=True)
class OrderDeliveryStatusChanged(DomainEvent):
    """Raised when the delivery status changes or the delivery is rescheduled."""

    old_status: str = ""
    new_status: str = ""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order is cancelled."""

    reason: str = ""
