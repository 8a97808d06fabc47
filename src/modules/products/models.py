"""Product catalogue with per-audience price lists.

Each product carries four prices: individual (PF) and company (PJ)
customers, each for one-off orders and for subscriptions.

Rules:
- ``code`` is unique and normalised to uppercase.
- Every price is greater than zero.
- Stock never goes negative.
- Inactive products cannot be sold (service layer).
"""

from __future__ import annotations

from decimal import Decimal

import structlog

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import SoftDeleteModel

logger = structlog.get_logger(__name__)

PRICE_FIELDS = (
    "price_pf_single",
    "price_pj_single",
    "price_pf_subscription",
    "price_pj_subscription",
)


def _price_field() -> models.DecimalField:
    return models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )


class Product(SoftDeleteModel):
    code = models.CharField(max_length=64, unique=True)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    unit = models.CharField(max_length=20, default="un")
    price_pf_single = _price_field()
    price_pj_single = _price_field()
    price_pf_subscription = _price_field()
    price_pj_subscription = _price_field()
    stock_quantity = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_active"], name="products_active_idx"),
        ]

    def price_for(self, customer_type: str, subscription: bool = False) -> Decimal:
        """Unit price for a PF/PJ customer on a one-off order or a subscription."""
        audience = "pj" if customer_type == "PJ" else "pf"
        kind = "subscription" if subscription else "single"
        return getattr(self, f"price_{audience}_{kind}")

    def clean(self) -> None:
        super().clean()
        if self.code:
            self.code = self.code.strip().upper()
        for field in PRICE_FIELDS:
            value = getattr(self, field)
            if value is not None and value <= 0:
                raise ValidationError({field: "Price must be greater than zero."})

    def save(self, *args, **kwargs) -> None:
        is_new = self._state.adding
        if self.code:
            self.code = self.code.strip().upper()
        super().save(*args, **kwargs)
        if is_new:
            logger.info("product.created", product_id=str(self.id), code=self.code)

    def __str__(self) -> str:
        return f"{self.code} - {self.name}"
