"""Domain events raised by orders and subscriptions.

Aggregates collect events while a service mutates them; the repository
writes them to the outbox when the aggregate is saved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID, uuid4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DomainEvent:
    aggregate_id: UUID
    event_id: UUID = field(default_factory=uuid4)
    occurred_on: datetime = field(default_factory=_utcnow)
    # Filled from the subclass name so it survives serialization
    event_name: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "event_name", type(self).__name__)


class DomainEventMixin:
    """Pending-event list for Django models acting as aggregate roots.

    The list lives outside the model fields and is created on first use,
    since ``Model.__init__`` knows nothing about it.
    """

    def _pending_events(self) -> list[DomainEvent]:
        return self.__dict__.setdefault("_domain_events", [])

    def add_domain_event(self, event: DomainEvent) -> None:
        self._pending_events().append(event)

    def clear_domain_events(self) -> None:
        self._pending_events().clear()

    @property
    def domain_events(self) -> list[DomainEvent]:
        return list(self._pending_events())
