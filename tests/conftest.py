from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.cache import cache

from rest_framework.test import APIClient

from modules.customers.models import Customer, CustomerType
from modules.products.models import Product

User = get_user_model()

# Valid check digits
VALID_CPF = "39053344705"
OTHER_CPF = "52998224725"
VALID_CNPJ = "11222333000181"


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def operator():
    return User.objects.create_user(
        username="operador", email="operador@example.com", password="testpass123"
    )


@pytest.fixture()
def auth_client(operator):
    """APIClient with a force-authenticated back-office operator."""
    client = APIClient()
    client.force_authenticate(user=operator)
    return client


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def customer_pf():
    return Customer.objects.create(
        name="Ana Souza",
        customer_type=CustomerType.PF,
        document=VALID_CPF,
        email="ana@example.com",
        street="Rua das Hortaliças",
        number="42",
        city="Campinas",
        state="SP",
    )


@pytest.fixture()
def customer_pj():
    return Customer.objects.create(
        name="Restaurante Verde Ltda",
        customer_type=CustomerType.PJ,
        document=VALID_CNPJ,
        email="compras@verde.example.com",
        city="Campinas",
        state="SP",
    )


@pytest.fixture()
def lettuce():
    return Product.objects.create(
        code="ALF-CRESPA",
        name="Alface Crespa",
        price_pf_single=Decimal("4.50"),
        price_pj_single=Decimal("3.80"),
        price_pf_subscription=Decimal("4.00"),
        price_pj_subscription=Decimal("3.40"),
        stock_quantity=100,
    )


@pytest.fixture()
def arugula():
    return Product.objects.create(
        code="RUCULA",
        name="Rúcula",
        unit="maço",
        price_pf_single=Decimal("4.00"),
        price_pj_single=Decimal("3.40"),
        price_pf_subscription=Decimal("3.60"),
        price_pj_subscription=Decimal("3.00"),
        stock_quantity=50,
    )
