"""Delivery agenda use cases.

The agenda of a day merges one-off orders and subscription deliveries.
Rescheduling and date assignment themselves belong to ``OrderService``;
this service only reads and previews.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING, List

import structlog
from django.utils import timezone

from modules.deliveries.scheduling import DeliverySchedule, compute_delivery_schedule

if TYPE_CHECKING:
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.subscriptions.models import SubscriptionDelivery
    from modules.subscriptions.repositories.interfaces import ISubscriptionRepository
    from modules.system_settings.services import SystemSettingService

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DeliveryAgenda:
    day: date
    orders: List[Order]
    subscription_deliveries: List[SubscriptionDelivery]

    @property
    def total(self) -> int:
        return len(self.orders) + len(self.subscription_deliveries)


class DeliveryService:
    def __init__(
        self,
        order_repository: IOrderRepository,
        subscription_repository: ISubscriptionRepository,
        settings_service: SystemSettingService,
    ) -> None:
        self._order_repo = order_repository
        self._subscription_repo = subscription_repository
        self._settings = settings_service

    def agenda_for(self, day: date) -> DeliveryAgenda:
        agenda = DeliveryAgenda(
            day=day,
            orders=self._order_repo.list_scheduled_for(day),
            subscription_deliveries=self._subscription_repo.list_deliveries_for(day),
        )
        logger.info("delivery.agenda_listed", day=day.isoformat(), total=agenda.total)
        return agenda

    def preview(self, at: datetime) -> DeliverySchedule:
        """Schedule a payment confirmed at ``at`` would get, without saving anything."""
        if timezone.is_naive(at):
            at = timezone.make_aware(at)
        return compute_delivery_schedule(
            at,
            self._settings.get_delivery_config(),
            tz=timezone.get_current_timezone(),
        )


def build_delivery_service() -> DeliveryService:
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.subscriptions.repositories.django_repository import (
        SubscriptionDjangoRepository,
    )
    from modules.system_settings.repositories.django_repository import (
        SystemSettingDjangoRepository,
    )
    from modules.system_settings.services import SystemSettingService

    return DeliveryService(
        order_repository=OrderDjangoRepository(),
        subscription_repository=SubscriptionDjangoRepository(),
        settings_service=SystemSettingService(SystemSettingDjangoRepository()),
    )
