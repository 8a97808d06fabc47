"""Integration tests for /api/v1/subscriptions/."""

from uuid import uuid4

import pytest

from modules.subscriptions.services import build_subscription_service

pytestmark = pytest.mark.integration

URL = "/api/v1/subscriptions/"


def _payload(customer, product, quantity=2, **overrides):
    data = {
        "customer_id": str(customer.id),
        "items": [{"product_id": str(product.id), "quantity": quantity}],
    }
    data.update(overrides)
    return data


@pytest.fixture()
def subscription_id(auth_client, customer_pj, lettuce):
    response = auth_client.post(URL, _payload(customer_pj, lettuce), format="json")
    assert response.status_code == 201
    return response.json()["id"]


@pytest.fixture()
def active_subscription_id(subscription_id):
    build_subscription_service().activate(subscription_id)
    return subscription_id


class TestCreateSubscription:
    def test_weekly_default(self, auth_client, customer_pj, lettuce):
        response = auth_client.post(URL, _payload(customer_pj, lettuce), format="json")

        assert response.status_code == 201
        body = response.json()
        assert body["subscription_number"].startswith("SUB-")
        assert body["status"] == "PENDING_PAYMENT"
        assert body["frequency"] == "WEEKLY"
        assert body["total_amount"] == "27.20"
        assert body["items"][0]["unit_price"] == "3.40"
        assert body["deliveries"] == []

    def test_custom_weekdays(self, auth_client, customer_pf, arugula):
        response = auth_client.post(
            URL,
            _payload(customer_pf, arugula, quantity=1, delivery_weekdays=[0, 2, 4]),
            format="json",
        )

        body = response.json()
        assert body["delivery_weekdays"] == [0, 2, 4]
        # 13 deliveries at 3.60
        assert body["total_amount"] == "46.80"

    def test_emergency(self, auth_client, customer_pf, lettuce):
        response = auth_client.post(
            URL,
            _payload(customer_pf, lettuce, quantity=3, is_emergency=True),
            format="json",
        )

        assert response.json()["is_emergency"] is True
        assert response.json()["total_amount"] == "12.00"

    def test_invalid_frequency(self, auth_client, customer_pj, lettuce):
        response = auth_client.post(
            URL, _payload(customer_pj, lettuce, frequency="HOURLY"), format="json"
        )
        assert response.status_code == 400

    def test_invalid_weekday(self, auth_client, customer_pj, lettuce):
        response = auth_client.post(
            URL, _payload(customer_pj, lettuce, delivery_weekdays=[8]), format="json"
        )
        assert response.status_code == 400

    def test_unknown_customer(self, auth_client, lettuce):
        payload = {
            "customer_id": str(uuid4()),
            "items": [{"product_id": str(lettuce.id), "quantity": 1}],
        }
        assert auth_client.post(URL, payload, format="json").status_code == 404

    def test_inactive_product(self, auth_client, customer_pj, lettuce):
        lettuce.is_active = False
        lettuce.save()

        response = auth_client.post(URL, _payload(customer_pj, lettuce), format="json")

        assert response.status_code == 400


class TestReadSubscriptions:
    def test_list_and_filter(self, auth_client, subscription_id):
        assert auth_client.get(URL).json()["count"] == 1
        assert auth_client.get(URL, {"status": "active"}).json()["count"] == 0
        assert auth_client.get(URL, {"status": "pending_payment"}).json()["count"] == 1

    def test_retrieve(self, auth_client, subscription_id):
        body = auth_client.get(f"{URL}{subscription_id}/").json()
        assert body["customer_name"] == "Restaurante Verde Ltda"

    def test_retrieve_unknown(self, auth_client):
        assert auth_client.get(f"{URL}{uuid4()}/").status_code == 404


class TestStatusActions:
    def test_pending_cannot_be_paused(self, auth_client, subscription_id):
        assert auth_client.post(f"{URL}{subscription_id}/pause/").status_code == 400

    def test_pause_and_resume(self, auth_client, active_subscription_id):
        paused = auth_client.post(f"{URL}{active_subscription_id}/pause/")
        assert paused.status_code == 200
        assert paused.json()["status"] == "PAUSED"

        resumed = auth_client.post(f"{URL}{active_subscription_id}/resume/")
        assert resumed.json()["status"] == "ACTIVE"
        assert resumed.json()["next_delivery_date"] is not None

    def test_activated_subscription_lists_deliveries(self, auth_client, active_subscription_id):
        body = auth_client.get(f"{URL}{active_subscription_id}/").json()

        assert body["status"] == "ACTIVE"
        assert len(body["deliveries"]) == 4
        assert body["items"][0]["reserved_stock"] == 8

    def test_cancel(self, auth_client, active_subscription_id, lettuce):
        response = auth_client.post(f"{URL}{active_subscription_id}/cancel/")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "CANCELLED"
        assert {d["delivery_status"] for d in body["deliveries"]} == {"CANCELLED"}
        lettuce.refresh_from_db()
        assert lettuce.stock_quantity == 100

    def test_cancel_twice(self, auth_client, subscription_id):
        auth_client.post(f"{URL}{subscription_id}/cancel/")
        assert auth_client.post(f"{URL}{subscription_id}/cancel/").status_code == 400

    def test_unknown(self, auth_client):
        assert auth_client.post(f"{URL}{uuid4()}/pause/").status_code == 404
