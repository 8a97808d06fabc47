"""Integration tests for /api/v1/products/."""

from uuid import uuid4

import pytest

from modules.products.models import Product

pytestmark = pytest.mark.integration

URL = "/api/v1/products/"


def _payload(**overrides):
    data = {
        "code": "agriao",
        "name": "Agrião Hidropônico",
        "price_pf_single": "5.00",
        "price_pj_single": "4.20",
        "price_pf_subscription": "4.50",
        "price_pj_subscription": "3.90",
        "stock_quantity": 30,
    }
    data.update(overrides)
    return data


class TestCreateProduct:
    def test_create(self, auth_client):
        response = auth_client.post(URL, _payload(), format="json")

        assert response.status_code == 201
        body = response.json()
        assert body["code"] == "AGRIAO"
        assert body["price_pj_subscription"] == "3.90"
        assert body["stock_quantity"] == 30

    def test_subscription_prices_default_to_single(self, auth_client):
        payload = _payload()
        del payload["price_pf_subscription"], payload["price_pj_subscription"]

        body = auth_client.post(URL, payload, format="json").json()

        assert body["price_pf_subscription"] == "5.00"
        assert body["price_pj_subscription"] == "4.20"

    def test_zero_price_rejected(self, auth_client):
        response = auth_client.post(URL, _payload(price_pf_single="0"), format="json")
        assert response.status_code == 400

    def test_missing_price_rejected(self, auth_client):
        payload = _payload()
        del payload["price_pj_single"]
        assert auth_client.post(URL, payload, format="json").status_code == 400

    def test_duplicate_code(self, auth_client, lettuce):
        response = auth_client.post(URL, _payload(code="alf-crespa"), format="json")
        assert response.status_code == 409


class TestReadProducts:
    def test_list_ordered_by_name(self, auth_client, lettuce, arugula):
        body = auth_client.get(URL).json()

        assert body["count"] == 2
        assert [p["code"] for p in body["results"]] == ["ALF-CRESPA", "RUCULA"]

    def test_low_stock_filter(self, auth_client, lettuce, arugula):
        body = auth_client.get(URL, {"low_stock": 60}).json()
        assert [p["code"] for p in body["results"]] == ["RUCULA"]

    def test_active_filter(self, auth_client, lettuce, arugula):
        arugula.is_active = False
        arugula.save()

        body = auth_client.get(URL, {"active": "true"}).json()

        assert [p["code"] for p in body["results"]] == ["ALF-CRESPA"]

    def test_retrieve_unknown(self, auth_client):
        assert auth_client.get(f"{URL}{uuid4()}/").status_code == 404


class TestStockAndUpdates:
    def test_update_stock(self, auth_client, lettuce):
        response = auth_client.patch(
            f"{URL}{lettuce.id}/stock/", {"stock_quantity": 250}, format="json"
        )

        assert response.status_code == 200
        lettuce.refresh_from_db()
        assert lettuce.stock_quantity == 250

    def test_stock_required(self, auth_client, lettuce):
        response = auth_client.patch(f"{URL}{lettuce.id}/stock/", {}, format="json")
        assert response.status_code == 400

    def test_negative_stock(self, auth_client, lettuce):
        response = auth_client.patch(
            f"{URL}{lettuce.id}/stock/", {"stock_quantity": -5}, format="json"
        )
        assert response.status_code == 400

    def test_update_prices(self, auth_client, lettuce):
        response = auth_client.patch(
            f"{URL}{lettuce.id}/", {"price_pf_single": "4.90"}, format="json"
        )

        assert response.status_code == 200
        assert response.json()["price_pf_single"] == "4.90"
        assert response.json()["price_pj_single"] == "3.80"

    def test_soft_delete(self, auth_client, lettuce):
        assert auth_client.delete(f"{URL}{lettuce.id}/").status_code == 204
        assert Product.objects.alive().count() == 0
        assert auth_client.get(f"{URL}{lettuce.id}/").status_code == 404
