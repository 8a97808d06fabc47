"""Django ORM implementation of the Subscription repository."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import models, transaction

from modules.core.outbox import record_domain_events
from modules.orders.constants import DeliveryStatus
from modules.subscriptions.constants import SubscriptionStatus
from modules.subscriptions.models import Subscription, SubscriptionDelivery, SubscriptionItem
from modules.subscriptions.repositories.interfaces import ISubscriptionRepository

logger = structlog.get_logger(__name__)


class SubscriptionDjangoRepository(ISubscriptionRepository):
    def _base_queryset(self) -> models.QuerySet[Subscription]:
        return (
            Subscription.objects.alive()
            .select_related("customer")
            .prefetch_related("items__product", "deliveries")
        )

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Subscription:
        items = data.pop("items", [])
        monthly_count = data.pop("monthly_count", 1)
        subscription = Subscription(**data)
        subscription.save()

        per_delivery = Decimal("0.00")
        for item_data in items:
            item = SubscriptionItem.objects.create(subscription=subscription, **item_data)
            per_delivery += item.subtotal

        subscription.total_amount = per_delivery * monthly_count
        subscription.save(update_fields=["total_amount"])
        logger.info(
            "subscription.persisted",
            subscription_id=str(subscription.id),
            item_count=len(items),
        )
        return subscription

    def get_by_id(self, id: str) -> Optional[Subscription]:
        try:
            return self._base_queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Subscription]:
        try:
            return (
                Subscription.objects.select_for_update()
                .alive()
                .select_related("customer")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_pix_transaction_id(self, txid: str) -> Optional[Subscription]:
        return Subscription.objects.alive().filter(pix_transaction_id=txid).first()

    def get_by_card_checkout_id(self, checkout_id: str) -> Optional[Subscription]:
        return Subscription.objects.alive().filter(card_checkout_id=checkout_id).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet[Subscription]:
        queryset = self._base_queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def list_deliveries_for(self, day: date) -> List[SubscriptionDelivery]:
        return list(
            SubscriptionDelivery.objects.filter(
                delivery_date=day,
                subscription__deleted_at__isnull=True,
            )
            .exclude(delivery_status=DeliveryStatus.CANCELLED)
            .select_related("subscription__customer")
            .order_by("delivery_time_slot", "subscription__subscription_number")
        )

    def list_awaiting_payment(self) -> models.QuerySet[Subscription]:
        return (
            Subscription.objects.alive()
            .filter(
                status=SubscriptionStatus.PENDING_PAYMENT,
                payment_expired_at__isnull=True,
            )
            .filter(
                models.Q(pix_transaction_id__isnull=False)
                | models.Q(card_checkout_id__isnull=False)
            )
            .order_by("created_at")
        )

    @transaction.atomic
    def add_deliveries(
        self, subscription: Subscription, rows: List[Dict[str, Any]]
    ) -> List[SubscriptionDelivery]:
        return SubscriptionDelivery.objects.bulk_create(
            [SubscriptionDelivery(subscription=subscription, **row) for row in rows]
        )

    @transaction.atomic
    def cancel_open_deliveries(self, subscription: Subscription) -> int:
        return subscription.deliveries.filter(delivery_status=DeliveryStatus.WAITING).update(
            delivery_status=DeliveryStatus.CANCELLED
        )

    @transaction.atomic
    def save(self, entity: Subscription) -> Subscription:
        entity.save()
        event_count = record_domain_events(entity, topic="subscriptions")
        logger.info(
            "subscription.saved", subscription_id=str(entity.id), event_count=event_count
        )
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        subscription = self.get_by_id(id)
        if not subscription:
            return False
        subscription.delete()
        logger.info("subscription.soft_deleted", subscription_id=str(id))
        return True
