"""Product service layer (Use Cases)."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from django.db import transaction

from modules.products.exceptions import ProductAlreadyExists, ProductNotFound
from modules.products.models import PRICE_FIELDS, Product

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.products.dtos import CreateProductDTO, UpdateProductDTO
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductService:
    """Application service for the product catalogue."""

    def __init__(self, repository: IProductRepository) -> None:
        self._repo = repository

    @transaction.atomic
    def create_product(self, dto: CreateProductDTO) -> Product:
        """Raises ``ProductAlreadyExists`` when the code is taken."""
        log = logger.bind(code=dto.code)

        if self._repo.get_by_code(dto.code):
            log.warning("product.duplicate_code")
            raise ProductAlreadyExists(f"Code '{dto.code}' already registered.")

        product = Product(
            code=dto.code,
            name=dto.name,
            description=dto.description,
            unit=dto.unit,
            stock_quantity=dto.stock_quantity,
            **{field: getattr(dto, field) for field in PRICE_FIELDS},
        )
        product = self._repo.save(product)
        log.info("product.registered", product_id=str(product.id))
        return product

    @transaction.atomic
    def update_product(self, id: str, dto: UpdateProductDTO) -> Product:
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")

        fields = ("name", "description", "unit", "stock_quantity", "is_active", *PRICE_FIELDS)
        for field in fields:
            value = getattr(dto, field)
            if value is not None:
                setattr(product, field, value)

        product = self._repo.save(product)
        logger.info("product.updated", product_id=str(id))
        return product

    @transaction.atomic
    def delete_product(self, id: str) -> None:
        if not self._repo.delete(id):
            raise ProductNotFound(f"Product {id} not found.")

    def list_products(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Product]:
        return self._repo.list(filters)

    def get_product(self, id: str) -> Product:
        product = self._repo.get_by_id(id)
        if not product:
            raise ProductNotFound(f"Product {id} not found.")
        return product
