"""Subscription DTOs for the Service Layer."""

from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from modules.deliveries.constants import TimeSlot
from modules.payments.constants import PaymentMethod
from modules.subscriptions.constants import Frequency


class CreateSubscriptionItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CreateSubscriptionDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    customer_id: UUID
    items: List[CreateSubscriptionItemDTO]
    frequency: Frequency = Frequency.WEEKLY
    delivery_weekday: int = 0
    delivery_weekdays: List[int] = []
    delivery_time_slot: Optional[TimeSlot] = None
    is_emergency: bool = False
    payment_method: PaymentMethod = PaymentMethod.PIX
    notes: Optional[str] = ""

    @field_validator("delivery_weekday")
    @classmethod
    def weekday_in_range(cls, v: int) -> int:
        if not 0 <= v <= 6:
            raise ValueError("Weekday must be between 0 (Monday) and 6 (Sunday).")
        return v

    @field_validator("delivery_weekdays")
    @classmethod
    def weekdays_in_range(cls, v: List[int]) -> List[int]:
        if any(not 0 <= day <= 6 for day in v):
            raise ValueError("Weekdays must be between 0 (Monday) and 6 (Sunday).")
        return sorted(set(v))

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateSubscriptionItemDTO]
    ) -> List[CreateSubscriptionItemDTO]:
        if not v:
            raise ValueError("Subscription must have at least one item.")
        return v

    @model_validator(mode="after")
    def no_duplicate_products(self):
        product_ids = [item.product_id for item in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError("Duplicate product IDs are not allowed in the same subscription.")
        return self
