"""Customer model: individuals (PF) and companies (PJ).

Rules:
- The document is a CPF for PF customers and a CNPJ for PJ customers,
  stored as digits only and unique across the system.
- Email is unique.
- Inactive customers cannot place orders or subscriptions (service layer).
- The document is masked in ``__str__`` and logs.
"""

from __future__ import annotations

import re

import structlog
from validate_docbr import CNPJ, CPF

from django.core.exceptions import ValidationError
from django.db import models

from modules.core.models import SoftDeleteModel

logger = structlog.get_logger(__name__)


class CustomerType(models.TextChoices):
    PF = "PF", "Pessoa Física"
    PJ = "PJ", "Pessoa Jurídica"


class Customer(SoftDeleteModel):
    """Customer aggregate root.

    ``customer_type`` drives both document validation and which price
    list (PF or PJ) applies to the customer's orders.
    """

    name = models.CharField(max_length=255)
    customer_type = models.CharField(
        max_length=2, choices=CustomerType.choices, default=CustomerType.PF
    )
    document = models.CharField(max_length=14, unique=True)
    email = models.EmailField(max_length=254, unique=True)
    phone = models.CharField(max_length=20, blank=True, default="")

    street = models.CharField(max_length=255, blank=True, default="")
    number = models.CharField(max_length=20, blank=True, default="")
    complement = models.CharField(max_length=100, blank=True, default="")
    neighborhood = models.CharField(max_length=100, blank=True, default="")
    city = models.CharField(max_length=100, blank=True, default="")
    state = models.CharField(max_length=2, blank=True, default="")
    zip_code = models.CharField(max_length=9, blank=True, default="")

    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "customers"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["-created_at"], name="customers_created_idx"),
            models.Index(fields=["is_active"], name="customers_active_idx"),
        ]

    @staticmethod
    def _sanitize_document(value: str) -> str:
        return re.sub(r"\D", "", value)

    @property
    def full_address(self) -> str:
        parts = [
            f"{self.street}, {self.number}".strip(", "),
            self.complement,
            self.neighborhood,
            f"{self.city}/{self.state}".strip("/"),
            self.zip_code,
        ]
        return " - ".join(part for part in parts if part)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self) -> None:
        super().clean()
        if self.document:
            self.document = self._sanitize_document(self.document)
        validator = CPF() if self.customer_type == CustomerType.PF else CNPJ()
        if not validator.validate(self.document):
            logger.warning(
                "customer.invalid_document",
                customer_type=self.customer_type,
                document_suffix=self.document[-4:] if self.document else "",
            )
            raise ValidationError({"document": "Invalid document for customer type."})

    def save(self, *args, **kwargs) -> None:
        if self.document:
            self.document = self._sanitize_document(self.document)
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        suffix = self.document[-4:] if self.document else "????"
        return f"{self.name} ({self.customer_type}: ***{suffix})"
