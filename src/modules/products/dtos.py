"""Product DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


def _positive(v: Decimal | None) -> Decimal | None:
    if v is not None and v <= 0:
        raise ValueError("Price must be greater than zero.")
    return v


class CreateProductDTO(BaseModel):
    """Creation payload.  Subscription prices default to the one-off prices."""

    model_config = ConfigDict(frozen=True)

    code: str
    name: str
    price_pf_single: Decimal
    price_pj_single: Decimal
    price_pf_subscription: Decimal | None = None
    price_pj_subscription: Decimal | None = None
    description: str = ""
    unit: str = "un"
    stock_quantity: int = 0

    @field_validator(
        "price_pf_single",
        "price_pj_single",
        "price_pf_subscription",
        "price_pj_subscription",
    )
    @classmethod
    def prices_must_be_positive(cls, v: Decimal | None) -> Decimal | None:
        return _positive(v)

    @field_validator("code")
    @classmethod
    def code_must_not_be_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Code must not be empty.")
        return v.strip().upper()

    @field_validator("stock_quantity")
    @classmethod
    def stock_must_be_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Stock quantity cannot be negative.")
        return v

    @model_validator(mode="before")
    @classmethod
    def default_subscription_prices(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            for audience in ("pf", "pj"):
                if data.get(f"price_{audience}_subscription") is None:
                    data[f"price_{audience}_subscription"] = data.get(
                        f"price_{audience}_single"
                    )
        return data


class UpdateProductDTO(BaseModel):
    """Partial update; ``None`` means "leave unchanged"."""

    model_config = ConfigDict(frozen=True)

    name: str | None = None
    description: str | None = None
    unit: str | None = None
    price_pf_single: Decimal | None = None
    price_pj_single: Decimal | None = None
    price_pf_subscription: Decimal | None = None
    price_pj_subscription: Decimal | None = None
    stock_quantity: int | None = None
    is_active: bool | None = None

    @field_validator(
        "price_pf_single",
        "price_pj_single",
        "price_pf_subscription",
        "price_pj_subscription",
    )
    @classmethod
    def prices_must_be_positive(cls, v: Decimal | None) -> Decimal | None:
        return _positive(v)

    @field_validator("stock_quantity")
    @classmethod
    def stock_must_be_non_negative(cls, v: int | None) -> int | None:
        if v is not None and v < 0:
            raise ValueError("Stock quantity cannot be negative.")
        return v
