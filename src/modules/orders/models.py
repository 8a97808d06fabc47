"""Order, OrderItem and OrderCancellationLog models.

Rules:
- ``delivery_date`` is assigned only when ``payment_status`` moves into
  ``CONFIRMED`` (see ``OrderService.confirm_payment``); a cancelled order
  never gets a new date.
- ``delivery_time_slot`` chosen by the customer is never overwritten.
- Idempotent creation via the ``idempotency_key`` unique constraint.
- ``OrderItem`` snapshots the unit price of the customer's price list.
- Every cancellation writes an append-only ``OrderCancellationLog``.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

import structlog
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel, SoftDeleteModel
from modules.deliveries.constants import TimeSlot
from modules.orders.constants import (
    DELIVERY_TRANSITIONS,
    ORDER_NUMBER_MAX_RETRIES,
    PAYMENT_TRANSITIONS,
    DeliveryStatus,
    PaymentStatus,
)
from modules.payments.models import PaymentAttemptFields
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)


class Order(DomainEventMixin, PaymentAttemptFields, SoftDeleteModel):
    """Order aggregate root.

    ``order_number`` (``ORD-YYYYMMDD-XXXXXX``) is generated on first save;
    the UUIDv7 ``id`` is used for API look-ups.
    """

    order_number = models.CharField(max_length=20, unique=True, editable=False)
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    delivery_status = models.CharField(
        max_length=20,
        choices=DeliveryStatus.choices,
        default=DeliveryStatus.WAITING,
    )
    total_amount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )
    notes = models.TextField(blank=True, default="")

    delivery_date = models.DateField(null=True, blank=True, default=None)
    delivery_time_slot = models.CharField(
        max_length=10,
        choices=TimeSlot.choices,
        null=True,
        blank=True,
        default=None,
    )
    payment_confirmed_at = models.DateTimeField(null=True, blank=True, default=None)

    cancelled_at = models.DateTimeField(null=True, blank=True, default=None)
    cancelled_by = models.CharField(max_length=150, blank=True, default="")
    cancellation_reason = models.TextField(blank=True, default="")

    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["payment_status"], name="orders_payment_status_idx"),
            models.Index(fields=["delivery_date"], name="orders_delivery_date_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]

    # ------------------------------------------------------------------
    # State machine helpers
    # ------------------------------------------------------------------

    @property
    def is_cancelled(self) -> bool:
        return self.payment_status == PaymentStatus.CANCELLED

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.CONFIRMED

    def can_transition_payment_to(self, new_status: str) -> bool:
        return new_status in PAYMENT_TRANSITIONS.get(self.payment_status, set())

    def can_transition_delivery_to(self, new_status: str) -> bool:
        return new_status in DELIVERY_TRANSITIONS.get(self.delivery_status, set())

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        now = timezone.localtime()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.payment_status}/{self.delivery_status})"


class OrderItem(BaseModel):
    """Line item; ``subtotal`` is always ``quantity * unit_price``."""

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, editable=False)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})

    def save(self, *args: Any, **kwargs: Any) -> None:
        if self.unit_price is None:
            raise ValidationError({"unit_price": "Unit price is required."})
        self.subtotal = self.quantity * self.unit_price
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product} x{self.quantity} (R$ {self.subtotal})"


class OrderCancellationLog(BaseModel):
    """Append-only audit record of an order cancellation.

    ``cancelled_by`` is the username of the operator (or ``"system"``).
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="cancellation_logs",
    )
    cancelled_by = models.CharField(max_length=150)
    cancelled_by_email = models.CharField(max_length=254, blank=True, default="")
    reason = models.TextField(blank=True, default="")
    previous_payment_status = models.CharField(max_length=20, choices=PaymentStatus.choices)
    previous_delivery_status = models.CharField(max_length=20, choices=DeliveryStatus.choices)

    class Meta:
        db_table = "order_cancellation_logs"
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.order} cancelled by {self.cancelled_by}"
