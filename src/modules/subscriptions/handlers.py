"""Event handlers for Subscriptions domain events."""

from __future__ import annotations

import structlog

from modules.subscriptions.events import (
    SubscriptionActivated,
    SubscriptionCancelled,
    SubscriptionCreated,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class SubscriptionCreatedHandler(IEventHandler[SubscriptionCreated]):
    def handle(self, event: SubscriptionCreated) -> None:
        logger.info("subscription.event.created", subscription_id=str(event.aggregate_id))


class SubscriptionActivatedHandler(IEventHandler[SubscriptionActivated]):
    def handle(self, event: SubscriptionActivated) -> None:
        logger.info(
            "subscription.event.activated",
            subscription_id=str(event.aggregate_id),
            next_delivery_date=(
                event.next_delivery_date.isoformat() if event.next_delivery_date else None
            ),
            delivery_count=event.delivery_count,
        )


class SubscriptionCancelledHandler(IEventHandler[SubscriptionCancelled]):
    def handle(self, event: SubscriptionCancelled) -> None:
        logger.info("subscription.event.cancelled", subscription_id=str(event.aggregate_id))


subscription_created_handler = SubscriptionCreatedHandler()
subscription_activated_handler = SubscriptionActivatedHandler()
subscription_cancelled_handler = SubscriptionCancelledHandler()
