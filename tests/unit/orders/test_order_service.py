"""Unit tests for OrderService.

Covers:
- create_order: price list by customer type, stock reservation,
  idempotency, inactive customer/product, insufficient stock.
- confirm_payment: delivery date assignment and no-op on repeat.
- Delivery progress requires a confirmed payment.
- reschedule_delivery and cancel_order (stock release, audit log).
- The database refuses order items with a zero quantity.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction
from django.utils import timezone

from modules.core.models import OutboxEvent
from modules.deliveries.constants import TimeSlot
from modules.deliveries.exceptions import DeliveryCalendarError, InvalidDeliveryDate
from modules.deliveries.scheduling import next_business_day
from modules.orders.constants import DeliveryStatus, PaymentStatus
from modules.orders.dtos import (
    CancelOrderDTO,
    CreateOrderDTO,
    CreateOrderItemDTO,
    RescheduleDeliveryDTO,
)
from modules.orders.exceptions import (
    CustomerNotFound,
    InactiveCustomer,
    InactiveProduct,
    InsufficientStock,
    InvalidOrderStatus,
    OrderNotFound,
    ProductNotFound,
)
from modules.orders.models import OrderItem
from modules.orders.services import build_order_service
from modules.system_settings.models import SystemSetting

pytestmark = pytest.mark.unit


@pytest.fixture()
def service():
    return build_order_service()


def _order_dto(customer, *lines, **overrides) -> CreateOrderDTO:
    return CreateOrderDTO(
        customer_id=customer.id,
        items=[CreateOrderItemDTO(product_id=product.id, quantity=qty) for product, qty in lines],
        **overrides,
    )


def _local(year, month, day, hour, minute=0) -> datetime:
    return timezone.make_aware(datetime(year, month, day, hour, minute))


# ---------------------------------------------------------------------------
# create_order
# ---------------------------------------------------------------------------


class TestCreateOrder:
    def test_pf_customer_pays_pf_prices(self, service, customer_pf, lettuce, arugula):
        order = service.create_order(_order_dto(customer_pf, (lettuce, 2), (arugula, 3)))

        assert order.order_number.startswith("ORD-")
        assert order.total_amount == Decimal("21.00")
        assert order.payment_status == PaymentStatus.PENDING
        assert order.delivery_status == DeliveryStatus.WAITING
        assert order.delivery_date is None
        prices = {item.product_id: item.unit_price for item in order.items.all()}
        assert prices == {lettuce.id: Decimal("4.50"), arugula.id: Decimal("4.00")}

    def test_pj_customer_pays_pj_prices(self, service, customer_pj, lettuce):
        order = service.create_order(_order_dto(customer_pj, (lettuce, 10)))

        assert order.total_amount == Decimal("38.00")

    def test_stock_is_reserved(self, service, customer_pf, lettuce):
        service.create_order(_order_dto(customer_pf, (lettuce, 7)))

        lettuce.refresh_from_db()
        assert lettuce.stock_quantity == 93

    def test_insufficient_stock_reserves_nothing(self, service, customer_pf, lettuce, arugula):
        with pytest.raises(InsufficientStock):
            service.create_order(_order_dto(customer_pf, (lettuce, 5), (arugula, 51)))

        lettuce.refresh_from_db()
        arugula.refresh_from_db()
        assert lettuce.stock_quantity == 100
        assert arugula.stock_quantity == 50

    def test_idempotency_key_returns_same_order(self, service, customer_pf, lettuce):
        first = service.create_order(_order_dto(customer_pf, (lettuce, 1), idempotency_key="k-1"))
        second = service.create_order(_order_dto(customer_pf, (lettuce, 1), idempotency_key="k-1"))

        assert first.id == second.id
        lettuce.refresh_from_db()
        assert lettuce.stock_quantity == 99

    def test_chosen_time_slot_is_stored(self, service, customer_pf, lettuce):
        order = service.create_order(
            _order_dto(customer_pf, (lettuce, 1), delivery_time_slot=TimeSlot.MORNING)
        )
        assert order.delivery_time_slot == TimeSlot.MORNING

    def test_inactive_customer(self, service, customer_pf, lettuce):
        customer_pf.is_active = False
        customer_pf.save()

        with pytest.raises(InactiveCustomer):
            service.create_order(_order_dto(customer_pf, (lettuce, 1)))

    def test_deleted_customer_is_not_found(self, service, customer_pf, lettuce):
        customer_pf.delete()

        with pytest.raises(CustomerNotFound):
            service.create_order(_order_dto(customer_pf, (lettuce, 1)))

    def test_inactive_product(self, service, customer_pf, lettuce):
        lettuce.is_active = False
        lettuce.save()

        with pytest.raises(InactiveProduct):
            service.create_order(_order_dto(customer_pf, (lettuce, 1)))

    def test_deleted_product_is_not_found(self, service, customer_pf, lettuce):
        lettuce.delete()

        with pytest.raises(ProductNotFound):
            service.create_order(_order_dto(customer_pf, (lettuce, 1)))

    def test_creation_is_recorded_in_outbox(self, service, customer_pf, lettuce):
        order = service.create_order(_order_dto(customer_pf, (lettuce, 1)))

        event = OutboxEvent.objects.get(aggregate_id=str(order.id))
        assert event.event_type == "OrderCreated"
        assert event.topic == "orders"


# ---------------------------------------------------------------------------
# confirm_payment
# ---------------------------------------------------------------------------


class TestConfirmPayment:
    @pytest.fixture()
    def order(self, service, customer_pf, lettuce):
        return service.create_order(_order_dto(customer_pf, (lettuce, 2)))

    def test_before_cutoff_same_day_afternoon(self, service, order):
        # 2024-03-05 is a Tuesday
        confirmed = service.confirm_payment(order.id, confirmed_at=_local(2024, 3, 5, 11))

        assert confirmed.payment_status == PaymentStatus.CONFIRMED
        assert confirmed.delivery_date == date(2024, 3, 5)
        assert confirmed.delivery_time_slot == TimeSlot.AFTERNOON
        assert confirmed.payment_confirmed_at == _local(2024, 3, 5, 11)

    def test_friday_after_cutoff_monday_morning(self, service, order):
        confirmed = service.confirm_payment(order.id, confirmed_at=_local(2024, 3, 1, 13))

        assert confirmed.delivery_date == date(2024, 3, 4)
        assert confirmed.delivery_time_slot == TimeSlot.MORNING

    def test_uses_configured_cutoff_and_holidays(self, service, order):
        SystemSetting.objects.create(key="delivery_cutoff_time", value="10:00")
        SystemSetting.objects.create(key="holidays", value=["2024-03-06"])

        confirmed = service.confirm_payment(order.id, confirmed_at=_local(2024, 3, 5, 11))

        assert confirmed.delivery_date == date(2024, 3, 7)

    def test_second_confirmation_keeps_the_date(self, service, order):
        service.confirm_payment(order.id, confirmed_at=_local(2024, 3, 5, 11))

        again = service.confirm_payment(order.id, confirmed_at=_local(2024, 3, 8, 15))

        assert again.delivery_date == date(2024, 3, 5)
        assert again.delivery_time_slot == TimeSlot.AFTERNOON

    def test_cancelled_order_cannot_be_confirmed(self, service, order):
        service.cancel_order(order.id, CancelOrderDTO(cancelled_by="operador"))

        with pytest.raises(InvalidOrderStatus):
            service.confirm_payment(order.id)

    def test_calendar_error_leaves_order_pending(self, service, order):
        holidays = [(date(2024, 3, 5) + timedelta(days=n)).isoformat() for n in range(40)]
        SystemSetting.objects.create(key="holidays", value=holidays)

        with pytest.raises(DeliveryCalendarError):
            service.confirm_payment(order.id, confirmed_at=_local(2024, 3, 5, 11))

        order.refresh_from_db()
        assert order.payment_status == PaymentStatus.PENDING
        assert order.delivery_date is None

    def test_unknown_order(self, service):
        with pytest.raises(OrderNotFound):
            service.confirm_payment("0190b2d0-0000-7000-8000-000000000000")

    def test_declined_then_confirmed(self, service, order):
        service.update_payment_status(order.id, PaymentStatus.DECLINED)

        confirmed = service.update_payment_status(order.id, PaymentStatus.CONFIRMED)

        assert confirmed.payment_status == PaymentStatus.CONFIRMED
        assert confirmed.delivery_date is not None


# ---------------------------------------------------------------------------
# Delivery progress
# ---------------------------------------------------------------------------


class TestDeliveryStatus:
    @pytest.fixture()
    def order(self, service, customer_pf, lettuce):
        return service.create_order(_order_dto(customer_pf, (lettuce, 1)))

    def test_unpaid_order_cannot_leave(self, service, order):
        with pytest.raises(InvalidOrderStatus):
            service.update_delivery_status(order.id, DeliveryStatus.EN_ROUTE)

    def test_paid_order_progresses(self, service, order):
        service.confirm_payment(order.id)

        service.update_delivery_status(order.id, DeliveryStatus.EN_ROUTE)
        delivered = service.update_delivery_status(order.id, DeliveryStatus.DELIVERED)

        assert delivered.delivery_status == DeliveryStatus.DELIVERED

    def test_cannot_skip_en_route(self, service, order):
        service.confirm_payment(order.id)

        with pytest.raises(InvalidOrderStatus):
            service.update_delivery_status(order.id, DeliveryStatus.DELIVERED)

    def test_cancel_goes_through_cancel_operation(self, service, order):
        with pytest.raises(InvalidOrderStatus):
            service.update_delivery_status(order.id, DeliveryStatus.CANCELLED)
        with pytest.raises(InvalidOrderStatus):
            service.update_payment_status(order.id, PaymentStatus.CANCELLED)


# ---------------------------------------------------------------------------
# reschedule_delivery
# ---------------------------------------------------------------------------


class TestReschedule:
    @pytest.fixture()
    def paid_order(self, service, customer_pf, lettuce):
        order = service.create_order(_order_dto(customer_pf, (lettuce, 1)))
        return service.confirm_payment(order.id)

    def test_moves_to_business_day(self, service, paid_order):
        target = next_business_day(timezone.localdate() + timedelta(days=3))

        order = service.reschedule_delivery(
            paid_order.id,
            RescheduleDeliveryDTO(delivery_date=target, delivery_time_slot=TimeSlot.MORNING),
        )

        assert order.delivery_date == target
        assert order.delivery_time_slot == TimeSlot.MORNING

    def test_weekend_is_rejected(self, service, paid_order):
        day = timezone.localdate() + timedelta(days=1)
        while day.weekday() != 5:
            day += timedelta(days=1)

        with pytest.raises(InvalidDeliveryDate):
            service.reschedule_delivery(paid_order.id, RescheduleDeliveryDTO(delivery_date=day))

    def test_past_date_is_rejected(self, service, paid_order):
        with pytest.raises(InvalidDeliveryDate):
            service.reschedule_delivery(
                paid_order.id,
                RescheduleDeliveryDTO(delivery_date=timezone.localdate() - timedelta(days=1)),
            )

    def test_unpaid_order_cannot_be_rescheduled(self, service, customer_pf, lettuce):
        order = service.create_order(_order_dto(customer_pf, (lettuce, 1)))

        with pytest.raises(InvalidOrderStatus):
            service.reschedule_delivery(
                order.id,
                RescheduleDeliveryDTO(delivery_date=timezone.localdate() + timedelta(days=7)),
            )


# ---------------------------------------------------------------------------
# cancel_order
# ---------------------------------------------------------------------------


class TestCancelOrder:
    def test_releases_stock_and_logs(self, service, customer_pf, lettuce, arugula):
        order = service.create_order(_order_dto(customer_pf, (lettuce, 5), (arugula, 2)))

        cancelled = service.cancel_order(
            order.id,
            CancelOrderDTO(
                cancelled_by="operador",
                cancelled_by_email="operador@example.com",
                reason="Cliente desistiu",
            ),
        )

        assert cancelled.payment_status == PaymentStatus.CANCELLED
        assert cancelled.delivery_status == DeliveryStatus.CANCELLED
        assert cancelled.cancelled_by == "operador"
        assert cancelled.cancelled_at is not None
        lettuce.refresh_from_db()
        arugula.refresh_from_db()
        assert lettuce.stock_quantity == 100
        assert arugula.stock_quantity == 50

        log = cancelled.cancellation_logs.get()
        assert log.reason == "Cliente desistiu"
        assert log.previous_payment_status == PaymentStatus.PENDING
        assert log.previous_delivery_status == DeliveryStatus.WAITING

    def test_double_cancel_is_rejected(self, service, customer_pf, lettuce):
        order = service.create_order(_order_dto(customer_pf, (lettuce, 5)))
        service.cancel_order(order.id, CancelOrderDTO(cancelled_by="operador"))

        with pytest.raises(InvalidOrderStatus):
            service.cancel_order(order.id, CancelOrderDTO(cancelled_by="operador"))

        lettuce.refresh_from_db()
        assert lettuce.stock_quantity == 100

    def test_paid_order_can_be_cancelled(self, service, customer_pf, lettuce):
        order = service.create_order(_order_dto(customer_pf, (lettuce, 1)))
        service.confirm_payment(order.id)

        cancelled = service.cancel_order(order.id, CancelOrderDTO(cancelled_by="operador"))

        assert cancelled.cancellation_logs.get().previous_payment_status == PaymentStatus.CONFIRMED

    def test_delivered_order_cannot_be_cancelled(self, service, customer_pf, lettuce):
        order = service.create_order(_order_dto(customer_pf, (lettuce, 1)))
        service.confirm_payment(order.id)
        service.update_delivery_status(order.id, DeliveryStatus.EN_ROUTE)
        service.update_delivery_status(order.id, DeliveryStatus.DELIVERED)

        with pytest.raises(InvalidOrderStatus):
            service.cancel_order(order.id, CancelOrderDTO(cancelled_by="operador"))


# ---------------------------------------------------------------------------
# OrderItem constraints
# ---------------------------------------------------------------------------


class TestOrderItemConstraints:
    def test_database_rejects_zero_quantity(self, service, customer_pf, lettuce):
        order = service.create_order(_order_dto(customer_pf, (lettuce, 1)))

        with pytest.raises(IntegrityError), transaction.atomic():
            OrderItem.objects.create(
                order=order, product=lettuce, quantity=0, unit_price=Decimal("4.50")
            )
