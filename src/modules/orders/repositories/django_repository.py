"""Django ORM implementation of the Order repository.

Writes are wrapped in ``transaction.atomic()`` so the aggregate and
its outbox events are persisted together.  Status changes rely on
``select_for_update()`` for concurrency control.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import models, transaction

from modules.core.outbox import record_domain_events
from modules.orders.constants import PaymentStatus
from modules.orders.models import Order, OrderCancellationLog, OrderItem
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    def _base_queryset(self) -> models.QuerySet[Order]:
        return (
            Order.objects.alive()
            .select_related("customer")
            .prefetch_related("items__product", "cancellation_logs")
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        order = Order(
            customer_id=data["customer_id"],
            idempotency_key=data.get("idempotency_key"),
            notes=data.get("notes", ""),
            delivery_time_slot=data.get("delivery_time_slot"),
        )
        if data.get("payment_method"):
            order.payment_method = data["payment_method"]
        order.save()

        total = Decimal("0.00")
        items = data.get("items", [])
        for item_data in items:
            item = OrderItem(
                order=order,
                product_id=item_data["product_id"],
                quantity=item_data["quantity"],
                unit_price=item_data["unit_price"],
            )
            item.save()
            total += item.subtotal

        order.total_amount = total
        order.save(update_fields=["total_amount"])

        logger.info("order.persisted", order_id=str(order.id), item_count=len(items))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Order with customer, items and cancellation logs eager-loaded."""
        try:
            return self._base_queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        """Must be called inside ``transaction.atomic``."""
        try:
            return (
                Order.objects.select_for_update()
                .alive()
                .select_related("customer")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        return self._base_queryset().filter(idempotency_key=key).first()

    def get_by_pix_transaction_id(self, txid: str) -> Optional[Order]:
        return Order.objects.alive().filter(pix_transaction_id=txid).first()

    def get_by_card_checkout_id(self, checkout_id: str) -> Optional[Order]:
        return Order.objects.alive().filter(card_checkout_id=checkout_id).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet[Order]:
        queryset = self._base_queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def list_scheduled_for(self, day: date) -> List[Order]:
        return list(
            self._base_queryset()
            .filter(delivery_date=day, payment_status=PaymentStatus.CONFIRMED)
            .order_by("delivery_time_slot", "order_number")
        )

    def list_awaiting_payment(self) -> models.QuerySet[Order]:
        return (
            Order.objects.alive()
            .filter(
                payment_status=PaymentStatus.PENDING,
                payment_expired_at__isnull=True,
            )
            .filter(
                models.Q(pix_transaction_id__isnull=False)
                | models.Q(card_checkout_id__isnull=False)
            )
            .order_by("created_at")
        )

    # ------------------------------------------------------------------
    # Save / Delete
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist the order and its pending domain events (outbox)."""
        entity.save()
        event_count = record_domain_events(entity, topic="orders")
        logger.info("order.saved", order_id=str(entity.id), event_count=event_count)
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        order = self.get_by_id(id)
        if not order:
            return False
        order.delete()
        logger.info("order.soft_deleted", order_id=str(id))
        return True

    @transaction.atomic
    def add_cancellation_log(self, order: Order, data: Dict[str, Any]) -> OrderCancellationLog:
        log = OrderCancellationLog.objects.create(order=order, **data)
        logger.info(
            "order.cancellation_logged",
            order_id=str(order.id),
            cancelled_by=log.cancelled_by,
        )
        return log
