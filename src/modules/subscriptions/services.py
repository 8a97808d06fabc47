"""Subscription service layer (Use Cases).

A subscription is created in ``PENDING_PAYMENT`` and becomes ``ACTIVE``
when its charge is confirmed.  Activation reserves a month of stock and
lays out the month's deliveries; cancelling gives the reserved stock
back and cancels the deliveries still waiting.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from modules.deliveries.constants import WEEKS_PER_MONTH, Weekday
from modules.deliveries.scheduling import (
    monthly_delivery_dates,
    next_business_day,
    next_subscription_delivery,
)
from modules.subscriptions.constants import (
    DELIVERIES_PER_FREQUENCY,
    FREQUENCY_STRIDE,
    Frequency,
    SubscriptionStatus,
)
from modules.subscriptions.events import (
    SubscriptionActivated,
    SubscriptionCancelled,
    SubscriptionCreated,
    SubscriptionStatusChanged,
)
from modules.subscriptions.exceptions import (
    CustomerNotFound,
    InactiveCustomer,
    InactiveProduct,
    InvalidSubscriptionStatus,
    ProductNotFound,
    SubscriptionNotFound,
)

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.customers.repositories.interfaces import ICustomerRepository
    from modules.products.repositories.interfaces import IProductRepository
    from modules.subscriptions.dtos import CreateSubscriptionDTO
    from modules.subscriptions.models import Subscription
    from modules.subscriptions.repositories.interfaces import ISubscriptionRepository
    from modules.system_settings.services import SystemSettingService

logger = structlog.get_logger(__name__)

BUSINESS_WEEKDAYS = [
    Weekday.MONDAY,
    Weekday.TUESDAY,
    Weekday.WEDNESDAY,
    Weekday.THURSDAY,
    Weekday.FRIDAY,
]


def monthly_delivery_count(
    frequency: str, weekdays: Optional[Iterable[int]] = None, is_emergency: bool = False
) -> int:
    """Deliveries covered by one monthly charge.

    >>> monthly_delivery_count(Frequency.WEEKLY, [0, 2, 4])
    13
    """
    if is_emergency:
        return 1
    weekdays = list(weekdays or [])
    if weekdays:
        return round(len(weekdays) * WEEKS_PER_MONTH)
    return DELIVERIES_PER_FREQUENCY.get(frequency, 1)


def delivery_weekdays_for(subscription: Subscription) -> list[int]:
    """Weekdays the subscription delivers on.

    Daily plans without a custom list deliver every business weekday.
    """
    if subscription.delivery_weekdays:
        return list(subscription.delivery_weekdays)
    if subscription.frequency == Frequency.DAILY:
        return [int(day) for day in BUSINESS_WEEKDAYS]
    return [subscription.delivery_weekday]


class SubscriptionService:
    def __init__(
        self,
        subscription_repository: ISubscriptionRepository,
        customer_repository: ICustomerRepository,
        product_repository: IProductRepository,
        settings_service: SystemSettingService,
    ) -> None:
        self._subscription_repo = subscription_repository
        self._customer_repo = customer_repository
        self._product_repo = product_repository
        self._settings = settings_service

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_subscription(self, dto: CreateSubscriptionDTO) -> Subscription:
        """Raises:
        CustomerNotFound, InactiveCustomer, ProductNotFound, InactiveProduct
        """
        log = logger.bind(customer_id=str(dto.customer_id))

        customer = self._customer_repo.get_by_id(str(dto.customer_id))
        if not customer:
            raise CustomerNotFound(f"Customer {dto.customer_id} not found.")
        if not customer.is_active:
            raise InactiveCustomer(f"Customer {dto.customer_id} is inactive.")

        items = []
        for item_dto in dto.items:
            product = self._product_repo.get_by_id(str(item_dto.product_id))
            if not product:
                raise ProductNotFound(f"Product {item_dto.product_id} not found.")
            if not product.is_active:
                raise InactiveProduct(f"Product {product.code} is inactive.")
            items.append(
                {
                    "product_id": product.id,
                    "quantity": item_dto.quantity,
                    "unit_price": product.price_for(customer.customer_type, subscription=True),
                }
            )

        subscription = self._subscription_repo.create(
            {
                "customer_id": dto.customer_id,
                "frequency": dto.frequency,
                "delivery_weekday": dto.delivery_weekday,
                "delivery_weekdays": list(dto.delivery_weekdays),
                "delivery_time_slot": dto.delivery_time_slot,
                "is_emergency": dto.is_emergency,
                "payment_method": dto.payment_method,
                "notes": dto.notes or "",
                "items": items,
                "monthly_count": monthly_delivery_count(
                    dto.frequency, dto.delivery_weekdays, dto.is_emergency
                ),
            }
        )
        subscription.add_domain_event(SubscriptionCreated(aggregate_id=subscription.id))
        self._subscription_repo.save(subscription)

        log.info(
            "subscription.created",
            subscription_id=str(subscription.id),
            total=str(subscription.total_amount),
        )
        return self._subscription_repo.get_by_id(str(subscription.id)) or subscription

    @transaction.atomic
    def activate(
        self, subscription_id: UUID | str, confirmed_at: Optional[datetime] = None
    ) -> Subscription:
        """Activate a subscription whose charge was confirmed.

        Activating an already paid subscription (active or paused) is a
        no-op.

        Raises:
            SubscriptionNotFound, InvalidSubscriptionStatus
        """
        subscription = self._subscription_repo.get_for_update(str(subscription_id))
        if not subscription:
            raise SubscriptionNotFound(f"Subscription {subscription_id} not found.")

        log = logger.bind(subscription_id=str(subscription.id), status=subscription.status)

        if subscription.status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.PAUSED):
            log.info("subscription.already_active")
            return subscription
        if subscription.is_cancelled:
            raise InvalidSubscriptionStatus("Cannot activate a cancelled subscription.")

        confirmed_at = confirmed_at or timezone.now()
        today = timezone.localdate(confirmed_at)
        count = monthly_delivery_count(
            subscription.frequency, subscription.delivery_weekdays, subscription.is_emergency
        )
        weekdays = delivery_weekdays_for(subscription)

        if subscription.is_emergency:
            holidays = self._settings.get_delivery_config().holidays
            dates = [next_business_day(today + timedelta(days=1), holidays)]
        else:
            stride = FREQUENCY_STRIDE.get(subscription.frequency, 1)
            dates = monthly_delivery_dates(today, weekdays, count * stride)[::stride]

        per_delivery = self._reserve_stock(subscription, count)

        self._subscription_repo.add_deliveries(
            subscription,
            [
                {
                    "delivery_date": day,
                    "delivery_time_slot": subscription.delivery_time_slot,
                    "total_amount": per_delivery,
                }
                for day in dates
            ],
        )

        subscription.status = SubscriptionStatus.ACTIVE
        subscription.activated_at = confirmed_at
        subscription.payment_expired_at = None
        subscription.next_delivery_date = (
            dates[0] if dates else next_subscription_delivery(today, weekdays)
        )
        subscription.add_domain_event(
            SubscriptionActivated(
                aggregate_id=subscription.id,
                next_delivery_date=subscription.next_delivery_date,
                delivery_count=len(dates),
            )
        )
        self._subscription_repo.save(subscription)

        log.info(
            "subscription.activated",
            monthly_count=count,
            delivery_count=len(dates),
            next_delivery_date=subscription.next_delivery_date.isoformat(),
        )
        return subscription

    def pause(self, subscription_id: UUID | str) -> Subscription:
        return self._change_status(subscription_id, SubscriptionStatus.PAUSED)

    def resume(self, subscription_id: UUID | str) -> Subscription:
        return self._change_status(subscription_id, SubscriptionStatus.ACTIVE)

    @transaction.atomic
    def cancel(self, subscription_id: UUID | str) -> Subscription:
        """Cancel, give back reserved stock and cancel waiting deliveries."""
        subscription = self._subscription_repo.get_for_update(str(subscription_id))
        if not subscription:
            raise SubscriptionNotFound(f"Subscription {subscription_id} not found.")
        if not subscription.can_transition_to(SubscriptionStatus.CANCELLED):
            raise InvalidSubscriptionStatus("Subscription is already cancelled.")

        log = logger.bind(subscription_id=str(subscription.id))

        for item in subscription.items.filter(reserved_stock__gt=0).order_by("product_id"):
            product = self._product_repo.get_for_update(str(item.product_id))
            if product:
                product.stock_quantity += item.reserved_stock
                product.save(update_fields=["stock_quantity", "updated_at"])
                log.info(
                    "subscription.stock_released",
                    product_id=str(product.id),
                    quantity=item.reserved_stock,
                )
            item.reserved_stock = 0
            item.save(update_fields=["reserved_stock"])

        cancelled_deliveries = self._subscription_repo.cancel_open_deliveries(subscription)

        subscription.status = SubscriptionStatus.CANCELLED
        subscription.cancelled_at = timezone.now()
        subscription.next_delivery_date = None
        subscription.add_domain_event(SubscriptionCancelled(aggregate_id=subscription.id))
        self._subscription_repo.save(subscription)

        log.info("subscription.cancelled", cancelled_deliveries=cancelled_deliveries)
        return self._subscription_repo.get_by_id(str(subscription.id)) or subscription

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_subscription(self, subscription_id: str) -> Subscription:
        subscription = self._subscription_repo.get_by_id(subscription_id)
        if not subscription:
            raise SubscriptionNotFound(f"Subscription {subscription_id} not found.")
        return subscription

    def list_subscriptions(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Subscription]:
        return self._subscription_repo.list(filters)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reserve_stock(self, subscription: Subscription, count: int) -> Decimal:
        """Take ``quantity * count`` of each product, never below zero.

        Returns the per-delivery amount.
        """
        per_delivery = Decimal("0.00")
        for item in subscription.items.all().order_by("product_id"):
            per_delivery += item.subtotal
            product = self._product_repo.get_for_update(str(item.product_id))
            if not product:
                continue
            wanted = item.quantity * count
            taken = min(wanted, product.stock_quantity)
            product.stock_quantity -= taken
            product.save(update_fields=["stock_quantity", "updated_at"])
            item.reserved_stock = taken
            item.save(update_fields=["reserved_stock"])
            if taken < wanted:
                logger.warning(
                    "subscription.stock_short",
                    subscription_id=str(subscription.id),
                    product_id=str(product.id),
                    wanted=wanted,
                    reserved=taken,
                )
        return per_delivery

    @transaction.atomic
    def _change_status(self, subscription_id: UUID | str, new_status: str) -> Subscription:
        subscription = self._subscription_repo.get_for_update(str(subscription_id))
        if not subscription:
            raise SubscriptionNotFound(f"Subscription {subscription_id} not found.")

        old_status = subscription.status
        if old_status == SubscriptionStatus.PENDING_PAYMENT or not subscription.can_transition_to(
            new_status
        ):
            logger.warning(
                "subscription.invalid_transition",
                subscription_id=str(subscription.id),
                current_status=old_status,
                new_status=new_status,
            )
            raise InvalidSubscriptionStatus(f"Cannot transition from {old_status} to {new_status}.")

        subscription.status = new_status
        if new_status == SubscriptionStatus.ACTIVE:
            subscription.next_delivery_date = next_subscription_delivery(
                timezone.localdate(), delivery_weekdays_for(subscription)
            )
        subscription.add_domain_event(
            SubscriptionStatusChanged(
                aggregate_id=subscription.id, old_status=old_status, new_status=new_status
            )
        )
        self._subscription_repo.save(subscription)
        logger.info(
            "subscription.status_updated",
            subscription_id=str(subscription.id),
            old_status=old_status,
            new_status=new_status,
        )
        return subscription


def build_subscription_service() -> SubscriptionService:
    from modules.customers.repositories.django_repository import CustomerDjangoRepository
    from modules.products.repositories.django_repository import ProductDjangoRepository
    from modules.subscriptions.repositories.django_repository import (
        SubscriptionDjangoRepository,
    )
    from modules.system_settings.repositories.django_repository import (
        SystemSettingDjangoRepository,
    )
    from modules.system_settings.services import SystemSettingService

    return SubscriptionService(
        subscription_repository=SubscriptionDjangoRepository(),
        customer_repository=CustomerDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        settings_service=SystemSettingService(SystemSettingDjangoRepository()),
    )
