"""Unit tests for SubscriptionService and the monthly delivery count."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

import pytest
from django.utils import timezone

from modules.deliveries.constants import TimeSlot
from modules.orders.constants import DeliveryStatus
from modules.subscriptions.constants import Frequency, SubscriptionStatus
from modules.subscriptions.dtos import CreateSubscriptionDTO, CreateSubscriptionItemDTO
from modules.subscriptions.exceptions import (
    InactiveProduct,
    InvalidSubscriptionStatus,
    SubscriptionNotFound,
)
from modules.subscriptions.services import build_subscription_service, monthly_delivery_count

pytestmark = pytest.mark.unit

# 2024-03-04 is a Monday
MONDAY_MORNING = timezone.make_aware(datetime(2024, 3, 4, 10, 0))


@pytest.fixture()
def service():
    return build_subscription_service()


def _create(service, customer, product, quantity=2, **overrides):
    return service.create_subscription(
        CreateSubscriptionDTO(
            customer_id=customer.id,
            items=[CreateSubscriptionItemDTO(product_id=product.id, quantity=quantity)],
            **overrides,
        )
    )


class TestMonthlyDeliveryCount:
    @pytest.mark.parametrize(
        ("frequency", "weekdays", "emergency", "expected"),
        [
            (Frequency.DAILY, None, False, 20),
            (Frequency.WEEKLY, None, False, 4),
            (Frequency.BIWEEKLY, None, False, 2),
            (Frequency.MONTHLY, None, False, 1),
            (Frequency.WEEKLY, [0, 2, 4], False, 13),
            (Frequency.WEEKLY, [1], False, 4),
            (Frequency.DAILY, None, True, 1),
        ],
    )
    def test_count(self, frequency, weekdays, emergency, expected):
        assert monthly_delivery_count(frequency, weekdays, emergency) == expected


class TestCreateSubscription:
    def test_starts_pending_with_monthly_total(self, service, customer_pj, lettuce):
        subscription = _create(service, customer_pj, lettuce, quantity=2)

        assert subscription.subscription_number.startswith("SUB-")
        assert subscription.status == SubscriptionStatus.PENDING_PAYMENT
        assert subscription.total_amount == Decimal("27.20")
        item = subscription.items.get()
        assert item.unit_price == Decimal("3.40")
        assert item.reserved_stock == 0

    def test_custom_weekdays_drive_the_total(self, service, customer_pf, lettuce):
        subscription = _create(
            service, customer_pf, lettuce, quantity=1, delivery_weekdays=[0, 2, 4]
        )

        # 13 deliveries of one lettuce at the PF subscription price
        assert subscription.total_amount == Decimal("52.00")

    def test_creation_does_not_touch_stock(self, service, customer_pj, lettuce):
        _create(service, customer_pj, lettuce)

        lettuce.refresh_from_db()
        assert lettuce.stock_quantity == 100

    def test_inactive_product(self, service, customer_pj, lettuce):
        lettuce.is_active = False
        lettuce.save()

        with pytest.raises(InactiveProduct):
            _create(service, customer_pj, lettuce)


class TestActivate:
    def test_weekly_plan(self, service, customer_pj, lettuce):
        subscription = _create(service, customer_pj, lettuce, quantity=2)

        active = service.activate(subscription.id, confirmed_at=MONDAY_MORNING)

        assert active.status == SubscriptionStatus.ACTIVE
        assert active.activated_at == MONDAY_MORNING
        assert active.next_delivery_date == date(2024, 3, 11)
        deliveries = list(active.deliveries.order_by("delivery_date"))
        assert [d.delivery_date for d in deliveries] == [
            date(2024, 3, 11),
            date(2024, 3, 18),
            date(2024, 3, 25),
            date(2024, 4, 1),
        ]
        assert all(d.total_amount == Decimal("6.80") for d in deliveries)
        assert all(d.delivery_status == DeliveryStatus.WAITING for d in deliveries)

    def test_reserves_a_month_of_stock(self, service, customer_pj, lettuce):
        subscription = _create(service, customer_pj, lettuce, quantity=2)

        service.activate(subscription.id, confirmed_at=MONDAY_MORNING)

        lettuce.refresh_from_db()
        assert lettuce.stock_quantity == 92
        assert subscription.items.get().reserved_stock == 8

    def test_short_stock_reserves_what_is_left(self, service, customer_pj, lettuce):
        lettuce.stock_quantity = 5
        lettuce.save()
        subscription = _create(service, customer_pj, lettuce, quantity=2)

        service.activate(subscription.id, confirmed_at=MONDAY_MORNING)

        lettuce.refresh_from_db()
        assert lettuce.stock_quantity == 0
        assert subscription.items.get().reserved_stock == 5

    def test_biweekly_plan_skips_a_week(self, service, customer_pj, lettuce):
        subscription = _create(service, customer_pj, lettuce, frequency=Frequency.BIWEEKLY)

        active = service.activate(subscription.id, confirmed_at=MONDAY_MORNING)

        dates = sorted(active.deliveries.values_list("delivery_date", flat=True))
        assert dates == [date(2024, 3, 11), date(2024, 3, 25)]

    def test_daily_plan_uses_business_days(self, service, customer_pj, lettuce):
        subscription = _create(service, customer_pj, lettuce, quantity=1, frequency=Frequency.DAILY)

        active = service.activate(subscription.id, confirmed_at=MONDAY_MORNING)

        dates = sorted(active.deliveries.values_list("delivery_date", flat=True))
        assert len(dates) == 20
        assert dates[0] == date(2024, 3, 5)
        assert all(day.weekday() < 5 for day in dates)

    def test_emergency_gets_next_business_day(self, service, customer_pj, lettuce):
        subscription = _create(
            service,
            customer_pj,
            lettuce,
            is_emergency=True,
            delivery_time_slot=TimeSlot.MORNING,
        )
        friday = timezone.make_aware(datetime(2024, 3, 1, 15, 0))

        active = service.activate(subscription.id, confirmed_at=friday)

        delivery = active.deliveries.get()
        assert delivery.delivery_date == date(2024, 3, 4)
        assert delivery.delivery_time_slot == TimeSlot.MORNING
        assert active.next_delivery_date == date(2024, 3, 4)

    def test_second_activation_is_a_no_op(self, service, customer_pj, lettuce):
        subscription = _create(service, customer_pj, lettuce)
        service.activate(subscription.id, confirmed_at=MONDAY_MORNING)

        service.activate(subscription.id)

        assert subscription.deliveries.count() == 4
        lettuce.refresh_from_db()
        assert lettuce.stock_quantity == 92

    def test_cancelled_cannot_be_activated(self, service, customer_pj, lettuce):
        subscription = _create(service, customer_pj, lettuce)
        service.cancel(subscription.id)

        with pytest.raises(InvalidSubscriptionStatus):
            service.activate(subscription.id)

    def test_unknown_subscription(self, service):
        with pytest.raises(SubscriptionNotFound):
            service.activate("0190b2d0-0000-7000-8000-000000000000")


class TestStatusChanges:
    def test_pending_cannot_be_paused(self, service, customer_pj, lettuce):
        subscription = _create(service, customer_pj, lettuce)

        with pytest.raises(InvalidSubscriptionStatus):
            service.pause(subscription.id)

    def test_pending_cannot_be_resumed(self, service, customer_pj, lettuce):
        subscription = _create(service, customer_pj, lettuce)

        with pytest.raises(InvalidSubscriptionStatus):
            service.resume(subscription.id)

    def test_pause_and_resume(self, service, customer_pj, lettuce):
        subscription = _create(service, customer_pj, lettuce)
        service.activate(subscription.id)

        paused = service.pause(subscription.id)
        assert paused.status == SubscriptionStatus.PAUSED

        resumed = service.resume(subscription.id)
        assert resumed.status == SubscriptionStatus.ACTIVE
        assert resumed.next_delivery_date > timezone.localdate()
        assert resumed.next_delivery_date.weekday() == 0

    def test_cancel_releases_stock_and_deliveries(self, service, customer_pj, lettuce):
        subscription = _create(service, customer_pj, lettuce)
        service.activate(subscription.id, confirmed_at=MONDAY_MORNING)

        cancelled = service.cancel(subscription.id)

        assert cancelled.status == SubscriptionStatus.CANCELLED
        assert cancelled.cancelled_at is not None
        assert cancelled.next_delivery_date is None
        lettuce.refresh_from_db()
        assert lettuce.stock_quantity == 100
        assert subscription.items.get().reserved_stock == 0
        statuses = set(subscription.deliveries.values_list("delivery_status", flat=True))
        assert statuses == {DeliveryStatus.CANCELLED}

    def test_double_cancel(self, service, customer_pj, lettuce):
        subscription = _create(service, customer_pj, lettuce)
        service.cancel(subscription.id)

        with pytest.raises(InvalidSubscriptionStatus):
            service.cancel(subscription.id)
