"""Unit tests for the soft-delete base model.

Covers:
- delete() stamps ``deleted_at`` and keeps the row.
- alive()/deleted() filtering on manager and queryset.
- hard_delete().
- Bulk queryset delete.
- updated_at refreshed when ``update_fields`` omits it.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.products.models import Product

pytestmark = pytest.mark.unit


def _product(code: str) -> Product:
    return Product.objects.create(
        code=code,
        name=f"Produto {code}",
        price_pf_single=Decimal("5.00"),
        price_pj_single=Decimal("4.00"),
        price_pf_subscription=Decimal("4.50"),
        price_pj_subscription=Decimal("3.50"),
    )


class TestSoftDelete:
    def test_delete_keeps_the_row(self):
        product = _product("AGRIAO")

        result = product.delete()

        assert result == (1, {"products.Product": 1})
        assert product.is_deleted
        assert Product.objects.filter(pk=product.pk).exists()
        assert not Product.objects.alive().filter(pk=product.pk).exists()
        assert Product.objects.deleted().filter(pk=product.pk).exists()

    def test_second_delete_is_a_no_op(self):
        product = _product("AGRIAO")
        product.delete()
        deleted_at = product.deleted_at

        assert product.delete() == (0, {})
        assert product.deleted_at == deleted_at

    def test_hard_delete_removes_the_row(self):
        product = _product("AGRIAO")

        product.hard_delete()

        assert not Product.objects.filter(pk=product.pk).exists()

    def test_bulk_delete_only_touches_alive_rows(self):
        first = _product("AGRIAO")
        _product("ESPINAFRE")
        first.delete()

        count, by_label = Product.objects.all().delete()

        assert count == 1
        assert by_label == {"products.Product": 1}
        assert Product.objects.alive().count() == 0
        assert Product.objects.count() == 2


class TestTimestamps:
    def test_update_fields_also_refreshes_updated_at(self):
        product = _product("AGRIAO")
        before = product.updated_at

        product.stock_quantity = 7
        product.save(update_fields=["stock_quantity"])

        product.refresh_from_db()
        assert product.stock_quantity == 7
        assert product.updated_at >= before

    def test_primary_key_is_uuid7(self):
        assert _product("AGRIAO").id.version == 7
