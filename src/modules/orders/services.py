"""Order service layer (Use Cases).

Orchestrates order creation, payment confirmation, delivery progress
and cancellation.  All write operations are atomic: the service defines
the unit-of-work boundary.

Business rules enforced:
- Customer must exist and be active; products must be active.
- Unit prices come from the customer's price list (PF/PJ, one-off).
- Stock is reserved at creation under ``SELECT FOR UPDATE`` and released
  on cancellation.
- The delivery date is assigned only when the payment moves into
  ``CONFIRMED``; a confirmed or cancelled order never gets a new date.
- Delivery can only leave ``WAITING`` once the payment is confirmed.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone

from modules.deliveries.exceptions import DeliveryCalendarError, InvalidDeliveryDate
from modules.deliveries.scheduling import compute_delivery_schedule, is_business_day
from modules.orders.constants import PAID_DELIVERY_STATES, DeliveryStatus, PaymentStatus
from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderDeliveryStatusChanged,
    OrderPaymentConfirmed,
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

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.customers.repositories.interfaces import ICustomerRepository
    from modules.orders.dtos import CancelOrderDTO, CreateOrderDTO, RescheduleDeliveryDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.products.repositories.interfaces import IProductRepository
    from modules.system_settings.services import SystemSettingService

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and the settings service via constructor
    injection.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        customer_repository: ICustomerRepository,
        product_repository: IProductRepository,
        settings_service: SystemSettingService,
    ) -> None:
        self._order_repo = order_repository
        self._customer_repo = customer_repository
        self._product_repo = product_repository
        self._settings = settings_service

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Create a new order reserving stock for every item.

        Products are locked in id order to avoid deadlocks between
        concurrent orders sharing products.

        Raises:
            CustomerNotFound, InactiveCustomer, ProductNotFound,
            InactiveProduct, InsufficientStock
        """
        log = logger.bind(customer_id=str(dto.customer_id))
        log.info("order.creation_started")

        if dto.idempotency_key:
            existing = self._order_repo.get_by_idempotency_key(dto.idempotency_key)
            if existing:
                log.info("order.idempotency_hit", order_id=str(existing.id))
                return existing

        customer = self._customer_repo.get_by_id(str(dto.customer_id))
        if not customer:
            raise CustomerNotFound(f"Customer {dto.customer_id} not found.")
        if not customer.is_active:
            raise InactiveCustomer(f"Customer {dto.customer_id} is inactive.")

        repo_items = []
        for item_dto in sorted(dto.items, key=lambda i: str(i.product_id)):
            product = self._product_repo.get_for_update(str(item_dto.product_id))
            if not product:
                raise ProductNotFound(f"Product {item_dto.product_id} not found.")
            if not product.is_active:
                raise InactiveProduct(f"Product {product.code} is inactive.")
            if product.stock_quantity < item_dto.quantity:
                raise InsufficientStock(
                    f"Product {product.code}: requested {item_dto.quantity}, "
                    f"available {product.stock_quantity}."
                )

            product.stock_quantity -= item_dto.quantity
            product.save(update_fields=["stock_quantity", "updated_at"])
            log.info(
                "order.stock_reserved",
                product_id=str(product.id),
                quantity=item_dto.quantity,
                remaining=product.stock_quantity,
            )

            repo_items.append(
                {
                    "product_id": product.id,
                    "quantity": item_dto.quantity,
                    "unit_price": product.price_for(customer.customer_type),
                }
            )

        order = self._order_repo.create(
            {
                "customer_id": dto.customer_id,
                "items": repo_items,
                "payment_method": dto.payment_method,
                "delivery_time_slot": dto.delivery_time_slot,
                "notes": dto.notes or "",
                "idempotency_key": dto.idempotency_key,
            }
        )
        order.add_domain_event(OrderCreated(aggregate_id=order.id))
        self._order_repo.save(order)

        log.info("order.created", order_id=str(order.id), total=str(order.total_amount))
        return self._order_repo.get_by_id(str(order.id)) or order

    @transaction.atomic
    def confirm_payment(
        self, order_id: UUID | str, confirmed_at: Optional[datetime] = None
    ) -> Order:
        """Mark the payment as confirmed and assign the delivery date.

        Confirming an already confirmed order is a no-op: the stored date
        and window are kept.

        Raises:
            OrderNotFound: order does not exist.
            InvalidOrderStatus: the order is cancelled.
            DeliveryCalendarError: no business day within the search window.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order.id), payment_status=order.payment_status)

        if order.is_paid:
            log.info("order.payment_already_confirmed")
            return order
        if not order.can_transition_payment_to(PaymentStatus.CONFIRMED):
            log.warning("order.invalid_payment_transition")
            raise InvalidOrderStatus(
                f"Cannot confirm payment of an order in status {order.payment_status}."
            )

        confirmed_at = confirmed_at or timezone.now()
        try:
            schedule = compute_delivery_schedule(
                confirmed_at,
                self._settings.get_delivery_config(),
                current_slot=order.delivery_time_slot,
                tz=timezone.get_current_timezone(),
            )
        except DeliveryCalendarError:
            log.error("order.delivery_date_unavailable")
            raise

        order.payment_status = PaymentStatus.CONFIRMED
        order.payment_confirmed_at = confirmed_at
        order.payment_expired_at = None
        order.delivery_date = schedule.delivery_date
        order.delivery_time_slot = schedule.time_slot
        order.add_domain_event(
            OrderPaymentConfirmed(
                aggregate_id=order.id,
                delivery_date=schedule.delivery_date,
                delivery_time_slot=schedule.time_slot,
            )
        )
        self._order_repo.save(order)

        log.info(
            "order.payment_confirmed",
            delivery_date=schedule.delivery_date.isoformat(),
            time_slot=schedule.time_slot,
            before_cutoff=schedule.before_cutoff,
        )
        return order

    @transaction.atomic
    def update_payment_status(self, order_id: UUID | str, new_status: str) -> Order:
        """Manual payment status change from the back-office.

        ``CONFIRMED`` goes through ``confirm_payment``; cancellation has
        its own use case.
        """
        if new_status == PaymentStatus.CONFIRMED:
            return self.confirm_payment(order_id)
        if new_status == PaymentStatus.CANCELLED:
            raise InvalidOrderStatus("Use the cancel operation to cancel an order.")

        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        if not order.can_transition_payment_to(new_status):
            logger.warning(
                "order.invalid_payment_transition",
                order_id=str(order.id),
                current_status=order.payment_status,
                new_status=new_status,
            )
            raise InvalidOrderStatus(
                f"Cannot transition payment from {order.payment_status} to {new_status}."
            )

        order.payment_status = new_status
        self._order_repo.save(order)
        logger.info("order.payment_status_updated", order_id=str(order.id), new_status=new_status)
        return order

    @transaction.atomic
    def update_delivery_status(self, order_id: UUID | str, new_status: str) -> Order:
        """Raises:
        OrderNotFound, InvalidOrderStatus
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(
            order_id=str(order.id),
            current_status=order.delivery_status,
            new_status=new_status,
        )

        if new_status == DeliveryStatus.CANCELLED:
            raise InvalidOrderStatus("Use the cancel operation to cancel an order.")
        if new_status in PAID_DELIVERY_STATES and not order.is_paid:
            log.warning("order.delivery_before_payment")
            raise InvalidOrderStatus("Delivery cannot progress before the payment is confirmed.")
        if not order.can_transition_delivery_to(new_status):
            log.warning("order.invalid_delivery_transition")
            raise InvalidOrderStatus(
                f"Cannot transition delivery from {order.delivery_status} to {new_status}."
            )

        old_status = order.delivery_status
        order.delivery_status = new_status
        order.add_domain_event(
            OrderDeliveryStatusChanged(
                aggregate_id=order.id, old_status=old_status, new_status=new_status
            )
        )
        self._order_repo.save(order)
        log.info("order.delivery_status_updated")
        return order

    @transaction.atomic
    def reschedule_delivery(self, order_id: UUID | str, dto: RescheduleDeliveryDTO) -> Order:
        """Move a confirmed delivery to another business day.

        Raises:
            OrderNotFound, InvalidOrderStatus, InvalidDeliveryDate
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        if not order.is_paid:
            raise InvalidOrderStatus("Only confirmed orders can be rescheduled.")
        if order.delivery_status != DeliveryStatus.WAITING:
            raise InvalidOrderStatus(
                f"Cannot reschedule a delivery in status {order.delivery_status}."
            )

        today = timezone.localdate()
        if dto.delivery_date < today:
            raise InvalidDeliveryDate("Delivery date cannot be in the past.")
        config = self._settings.get_delivery_config()
        if not is_business_day(dto.delivery_date, config.holidays):
            raise InvalidDeliveryDate(
                f"{dto.delivery_date.isoformat()} is not a business day."
            )

        previous = order.delivery_date
        order.delivery_date = dto.delivery_date
        if dto.delivery_time_slot:
            order.delivery_time_slot = dto.delivery_time_slot
        order.add_domain_event(
            OrderDeliveryStatusChanged(
                aggregate_id=order.id,
                old_status=order.delivery_status,
                new_status=order.delivery_status,
            )
        )
        self._order_repo.save(order)

        logger.info(
            "order.delivery_rescheduled",
            order_id=str(order.id),
            previous_date=previous.isoformat() if previous else None,
            delivery_date=dto.delivery_date.isoformat(),
        )
        return order

    @transaction.atomic
    def cancel_order(self, order_id: UUID | str, dto: CancelOrderDTO) -> Order:
        """Cancel an order, release reserved stock and log who did it.

        The order row is locked first so concurrent cancellations cannot
        release stock twice.

        Raises:
            OrderNotFound, InvalidOrderStatus
        """
        order = self._order_repo.get_for_update(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order.id), cancelled_by=dto.cancelled_by)

        if order.is_cancelled:
            raise InvalidOrderStatus("Order is already cancelled.")
        if order.delivery_status == DeliveryStatus.DELIVERED:
            log.warning("order.cancel_not_allowed")
            raise InvalidOrderStatus("Delivered orders cannot be cancelled.")

        for item in order.items.all().order_by("product_id"):
            product = self._product_repo.get_for_update(str(item.product_id))
            if product:
                product.stock_quantity += item.quantity
                product.save(update_fields=["stock_quantity", "updated_at"])
                log.info(
                    "order.stock_released",
                    product_id=str(product.id),
                    quantity=item.quantity,
                    restored_stock=product.stock_quantity,
                )

        self._order_repo.add_cancellation_log(
            order,
            {
                "cancelled_by": dto.cancelled_by,
                "cancelled_by_email": dto.cancelled_by_email,
                "reason": dto.reason,
                "previous_payment_status": order.payment_status,
                "previous_delivery_status": order.delivery_status,
            },
        )

        order.payment_status = PaymentStatus.CANCELLED
        order.delivery_status = DeliveryStatus.CANCELLED
        order.cancelled_at = timezone.now()
        order.cancelled_by = dto.cancelled_by
        order.cancellation_reason = dto.reason
        order.add_domain_event(OrderCancelled(aggregate_id=order.id, reason=dto.reason))
        self._order_repo.save(order)

        log.info("order.cancelled")
        return self._order_repo.get_by_id(str(order.id)) or order

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Order]:
        return self._order_repo.list(filters)


def build_order_service() -> OrderService:
    """Wire the service with the Django repositories."""
    from modules.customers.repositories.django_repository import CustomerDjangoRepository
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.products.repositories.django_repository import ProductDjangoRepository
    from modules.system_settings.repositories.django_repository import (
        SystemSettingDjangoRepository,
    )
    from modules.system_settings.services import SystemSettingService

    return OrderService(
        order_repository=OrderDjangoRepository(),
        customer_repository=CustomerDjangoRepository(),
        product_repository=ProductDjangoRepository(),
        settings_service=SystemSettingService(SystemSettingDjangoRepository()),
    )
