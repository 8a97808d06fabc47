"""Customer service layer (Use Cases).

Document and email uniqueness are checked here before persisting;
deletion is a soft delete so historical orders keep their customer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from django.db import transaction

from modules.customers.exceptions import CustomerAlreadyExists, CustomerNotFound
from modules.customers.models import Customer

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.customers.dtos import CreateCustomerDTO, UpdateCustomerDTO
    from modules.customers.repositories.interfaces import ICustomerRepository

logger = structlog.get_logger(__name__)

ADDRESS_FIELDS = (
    "street",
    "number",
    "complement",
    "neighborhood",
    "city",
    "state",
    "zip_code",
)


class CustomerService:
    """Application service for Customer use-cases."""

    def __init__(self, repository: ICustomerRepository) -> None:
        self._repo = repository

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def create_customer(self, dto: CreateCustomerDTO) -> Customer:
        """Raises ``CustomerAlreadyExists`` on a duplicate document or email."""
        log = logger.bind(customer_type=dto.customer_type, email=dto.email)

        if self._repo.get_by_document(dto.document):
            log.warning("customer.duplicate_document")
            raise CustomerAlreadyExists("Document already registered.")

        if self._repo.get_by_email(dto.email):
            log.warning("customer.duplicate_email")
            raise CustomerAlreadyExists("Email already registered.")

        customer = Customer(
            name=dto.name,
            customer_type=dto.customer_type,
            document=dto.document,
            email=dto.email,
            phone=dto.phone,
            **{field: getattr(dto.address, field) for field in ADDRESS_FIELDS},
        )
        customer = self._repo.save(customer)
        log.info("customer.created", customer_id=str(customer.id))
        return customer

    @transaction.atomic
    def update_customer(self, id: str, dto: UpdateCustomerDTO) -> Customer:
        customer = self._repo.get_by_id(id)
        if not customer:
            raise CustomerNotFound(f"Customer {id} not found.")

        log = logger.bind(customer_id=str(id))

        if dto.email is not None and dto.email.lower() != customer.email.lower():
            if self._repo.get_by_email(dto.email):
                log.warning("customer.duplicate_email")
                raise CustomerAlreadyExists("Email already registered.")

        for field in ("name", "email", "phone", "is_active"):
            value = getattr(dto, field)
            if value is not None:
                setattr(customer, field, value)
        if dto.address is not None:
            for field in ADDRESS_FIELDS:
                setattr(customer, field, getattr(dto.address, field))

        customer = self._repo.save(customer)
        log.info("customer.updated")
        return customer

    @transaction.atomic
    def delete_customer(self, id: str) -> None:
        if not self._repo.delete(id):
            raise CustomerNotFound(f"Customer {id} not found.")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_customers(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Customer]:
        return self._repo.list(filters)

    def get_customer(self, id: str) -> Customer:
        customer = self._repo.get_by_id(id)
        if not customer:
            raise CustomerNotFound(f"Customer {id} not found.")
        return customer
