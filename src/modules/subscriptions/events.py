"""Domain events for the Subscriptions bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class SubscriptionCreated(DomainEvent):
    pass


@dataclass(frozen=True)
class SubscriptionActivated(DomainEvent):
    next_delivery_date: Optional[date] = None
    delivery_count: int = 0


@dataclass(frozen=True)
class SubscriptionStatusChanged(DomainEvent):
    old_status: str = ""
    new_status: str = ""


@dataclass(frozen=True)
class SubscriptionCancelled(DomainEvent):
    pass
