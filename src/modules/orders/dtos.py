"""Order DTOs for the Service Layer.

Immutable Pydantic v2 contracts between the API layer and
``OrderService``.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from modules.deliveries.constants import TimeSlot
from modules.payments.constants import PaymentMethod


class CreateOrderItemDTO(BaseModel):
    """``unit_price`` is resolved by the service from the customer's price list."""

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CreateOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    customer_id: UUID
    items: List[CreateOrderItemDTO]
    payment_method: PaymentMethod = PaymentMethod.PIX
    delivery_time_slot: Optional[TimeSlot] = None
    notes: Optional[str] = ""
    idempotency_key: Optional[str] = None

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @model_validator(mode="after")
    def no_duplicate_products(self):
        product_ids = [item.product_id for item in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError("Duplicate product IDs are not allowed in the same order.")
        return self


class CancelOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    cancelled_by: str
    cancelled_by_email: str = ""
    reason: str = ""

    @field_validator("cancelled_by")
    @classmethod
    def cancelled_by_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("cancelled_by is required.")
        return v.strip()


class RescheduleDeliveryDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    delivery_date: date
    delivery_time_slot: Optional[TimeSlot] = None
