"""Subscription, SubscriptionItem and SubscriptionDelivery models.

A subscription is paid by a single charge covering one month of
deliveries.  ``total_amount`` is that monthly charge; each
``SubscriptionDelivery`` carries the per-delivery amount.

Delivery weekdays follow ``date.weekday()`` (Monday is 0).  A non-empty
``delivery_weekdays`` list overrides the single ``delivery_weekday``.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel, SoftDeleteModel
from modules.deliveries.constants import TimeSlot, Weekday
from modules.orders.constants import DeliveryStatus, PaymentStatus
from modules.payments.models import PaymentAttemptFields
from modules.subscriptions.constants import (
    STATUS_TRANSITIONS,
    SUBSCRIPTION_NUMBER_MAX_RETRIES,
    Frequency,
    SubscriptionStatus,
)
from shared.domain.events import DomainEventMixin


class Subscription(DomainEventMixin, PaymentAttemptFields, SoftDeleteModel):
    subscription_number = models.CharField(max_length=20, unique=True, editable=False)
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.PROTECT,
        related_name="subscriptions",
    )
    frequency = models.CharField(
        max_length=10, choices=Frequency.choices, default=Frequency.WEEKLY
    )
    delivery_weekday = models.PositiveSmallIntegerField(
        choices=Weekday.choices,
        default=Weekday.MONDAY,
        validators=[MaxValueValidator(6)],
    )
    delivery_weekdays = models.JSONField(default=list, blank=True)
    delivery_time_slot = models.CharField(
        max_length=10, choices=TimeSlot.choices, null=True, blank=True, default=None
    )
    is_emergency = models.BooleanField(default=False)
    status = models.CharField(
        max_length=20,
        choices=SubscriptionStatus.choices,
        default=SubscriptionStatus.PENDING_PAYMENT,
    )
    next_delivery_date = models.DateField(null=True, blank=True, default=None)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    notes = models.TextField(blank=True, default="")
    activated_at = models.DateTimeField(null=True, blank=True, default=None)
    cancelled_at = models.DateTimeField(null=True, blank=True, default=None)

    class Meta:
        db_table = "subscriptions"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="subscriptions_status_idx"),
        ]

    @property
    def target_weekdays(self) -> list[int]:
        if self.delivery_weekdays:
            return list(self.delivery_weekdays)
        return [self.delivery_weekday]

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE

    @property
    def is_cancelled(self) -> bool:
        return self.status == SubscriptionStatus.CANCELLED

    def can_transition_to(self, new_status: str) -> bool:
        return new_status in STATUS_TRANSITIONS.get(self.status, set())

    def clean(self) -> None:
        super().clean()
        weekdays = self.delivery_weekdays or []
        if not isinstance(weekdays, list) or any(
            not isinstance(day, int) or not 0 <= day <= 6 for day in weekdays
        ):
            raise ValidationError({"delivery_weekdays": "Weekdays must be integers 0-6."})

    @staticmethod
    def generate_subscription_number() -> str:
        now = timezone.localtime()
        return f"SUB-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.subscription_number:
            for _ in range(SUBSCRIPTION_NUMBER_MAX_RETRIES):
                candidate = self.generate_subscription_number()
                if not Subscription.objects.filter(subscription_number=candidate).exists():
                    self.subscription_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique subscription_number after "
                    f"{SUBSCRIPTION_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.subscription_number} ({self.status})"


class SubscriptionItem(BaseModel):
    """``unit_price`` comes from the subscription price list of the customer type."""

    subscription = models.ForeignKey(
        "subscriptions.Subscription",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="subscription_items",
    )
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    reserved_stock = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "subscription_items"
        ordering = ["created_at"]

    @property
    def subtotal(self) -> Decimal:
        return self.quantity * self.unit_price

    def __str__(self) -> str:
        return f"{self.product} x{self.quantity}"


class SubscriptionDelivery(BaseModel):
    subscription = models.ForeignKey(
        "subscriptions.Subscription",
        on_delete=models.CASCADE,
        related_name="deliveries",
    )
    delivery_date = models.DateField()
    delivery_time_slot = models.CharField(
        max_length=10, choices=TimeSlot.choices, null=True, blank=True, default=None
    )
    delivery_status = models.CharField(
        max_length=20, choices=DeliveryStatus.choices, default=DeliveryStatus.WAITING
    )
    payment_status = models.CharField(
        max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.CONFIRMED
    )
    total_amount = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        db_table = "subscription_deliveries"
        ordering = ["delivery_date"]
        indexes = [
            models.Index(fields=["delivery_date"], name="sub_deliveries_date_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.subscription} @ {self.delivery_date}"
