"""Event handlers for Orders domain events."""

from __future__ import annotations

import structlog

from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderDeliveryStatusChanged,
    OrderPaymentConfirmed,
)
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info("order.event.created", order_id=str(event.aggregate_id))


class OrderPaymentConfirmedHandler(IEventHandler[OrderPaymentConfirmed]):
    def handle(self, event: OrderPaymentConfirmed) -> None:
        logger.info(
            "order.event.payment_confirmed",
            order_id=str(event.aggregate_id),
            delivery_date=event.delivery_date.isoformat() if event.delivery_date else None,
            time_slot=event.delivery_time_slot,
        )


class OrderDeliveryStatusChangedHandler(IEventHandler[OrderDeliveryStatusChanged]):
    def handle(self, event: OrderDeliveryStatusChanged) -> None:
        logger.info(
            "order.event.delivery_status_changed",
            order_id=str(event.aggregate_id),
            old_status=event.old_status,
            new_status=event.new_status,
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        logger.info("order.event.cancelled", order_id=str(event.aggregate_id), reason=event.reason)


order_created_handler = OrderCreatedHandler()
order_payment_confirmed_handler = OrderPaymentConfirmedHandler()
order_delivery_status_changed_handler = OrderDeliveryStatusChangedHandler()
order_cancelled_handler = OrderCancelledHandler()
