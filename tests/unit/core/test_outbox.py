"""Unit tests for the transactional outbox.

Covers:
- record_domain_events writes one row per pending event and clears them.
- Payload serialisation of dates, UUIDs and decimals.
- OutboxEvent state transitions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from modules.core.models import EventStatus, OutboxEvent
from modules.core.outbox import record_domain_events, serialize_event_payload
from modules.orders.events import OrderCreated, OrderPaymentConfirmed
from shared.domain.events import DomainEvent, DomainEventMixin

pytestmark = pytest.mark.unit


@dataclass(frozen=True)
class PriceChanged(DomainEvent):
    amount: Decimal = Decimal("0.00")
    codes: tuple = ()


class Aggregate(DomainEventMixin):
    pass


# ---------------------------------------------------------------------------
# record_domain_events
# ---------------------------------------------------------------------------


class TestRecordDomainEvents:
    def test_writes_one_row_per_event(self):
        aggregate = Aggregate()
        aggregate_id = uuid4()
        aggregate.add_domain_event(OrderCreated(aggregate_id=aggregate_id))
        aggregate.add_domain_event(
            OrderPaymentConfirmed(
                aggregate_id=aggregate_id,
                delivery_date=date(2024, 3, 5),
                delivery_time_slot="AFTERNOON",
            )
        )

        assert record_domain_events(aggregate, topic="orders") == 2

        rows = list(OutboxEvent.objects.order_by("created_at", "id"))
        assert [row.event_type for row in rows] == ["OrderCreated", "OrderPaymentConfirmed"]
        assert {row.topic for row in rows} == {"orders"}
        assert {row.aggregate_id for row in rows} == {str(aggregate_id)}
        assert rows[1].payload["delivery_date"] == "2024-03-05"
        assert all(row.status == EventStatus.PENDING for row in rows)

    def test_clears_events_after_recording(self):
        aggregate = Aggregate()
        aggregate.add_domain_event(OrderCreated(aggregate_id=uuid4()))

        record_domain_events(aggregate, topic="orders")

        assert aggregate.domain_events == []
        assert record_domain_events(aggregate, topic="orders") == 0
        assert OutboxEvent.objects.count() == 1

    def test_objects_without_events_are_ignored(self):
        assert record_domain_events(object(), topic="orders") == 0
        assert OutboxEvent.objects.count() == 0


class TestSerializeEventPayload:
    def test_normalises_values(self):
        aggregate_id = uuid4()
        event = PriceChanged(
            aggregate_id=aggregate_id, amount=Decimal("4.50"), codes=("ALF", "RUCULA")
        )

        payload = serialize_event_payload(event)

        assert payload["aggregate_id"] == str(aggregate_id)
        assert payload["amount"] == "4.50"
        assert payload["codes"] == ["ALF", "RUCULA"]
        assert payload["event_name"] == "PriceChanged"
        assert isinstance(payload["occurred_on"], str)


# ---------------------------------------------------------------------------
# OutboxEvent
# ---------------------------------------------------------------------------


def _event() -> OutboxEvent:
    return OutboxEvent.objects.create(
        event_type="SubscriptionActivated",
        aggregate_id=str(uuid4()),
        payload={},
        topic="subscriptions",
    )


class TestOutboxEventTransitions:
    def test_mark_as_published(self):
        event = _event()

        event.mark_as_published()

        event.refresh_from_db()
        assert event.status == EventStatus.PUBLISHED
        assert event.processed_at is not None

    def test_mark_as_failed_counts_retries(self):
        event = _event()

        event.mark_as_failed("broker down")
        event.mark_as_failed("broker still down")

        event.refresh_from_db()
        assert event.status == EventStatus.FAILED
        assert event.error_message == "broker still down"
        assert event.retry_count == 2

    def test_str(self):
        event = _event()
        assert str(event) == f"SubscriptionActivated [PENDING] ({event.aggregate_id})"
