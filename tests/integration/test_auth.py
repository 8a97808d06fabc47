"""Integration tests for JWT authentication.

Validates:
  - /health is public.
  - Protected endpoints return 401 without or with a bad token.
  - A token obtained from /api/v1/auth/token/ opens /api/v1/me.
"""

import pytest

pytestmark = pytest.mark.integration


class TestPublicEndpoints:
    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestProtectedEndpoints:
    def test_no_token_returns_401(self, api_client):
        assert api_client.get("/api/v1/me").status_code == 401

    def test_invalid_token_returns_401(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer invalid.token.here")
        assert api_client.get("/api/v1/me").status_code == 401

    def test_malformed_auth_header_returns_401(self, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Token some-token")
        assert api_client.get("/api/v1/me").status_code == 401

    def test_401_includes_www_authenticate_header(self, api_client):
        response = api_client.get("/api/v1/me")
        assert "Bearer" in response.get("WWW-Authenticate", "")

    @pytest.mark.parametrize(
        "url",
        [
            "/api/v1/customers/",
            "/api/v1/products/",
            "/api/v1/orders/",
            "/api/v1/subscriptions/",
            "/api/v1/deliveries/",
            "/api/v1/settings/",
        ],
    )
    def test_back_office_endpoints_require_auth(self, api_client, url):
        assert api_client.get(url).status_code == 401


class TestTokenFlow:
    def test_obtain_token_and_call_me(self, api_client, operator):
        response = api_client.post(
            "/api/v1/auth/token/",
            {"username": "operador", "password": "testpass123"},
            format="json",
        )
        assert response.status_code == 200
        access = response.json()["access"]

        api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
        me = api_client.get("/api/v1/me")

        assert me.status_code == 200
        assert me.json() == {"message": "authenticated", "user": "operador"}

    def test_wrong_password(self, api_client, operator):
        response = api_client.post(
            "/api/v1/auth/token/",
            {"username": "operador", "password": "wrong"},
            format="json",
        )
        assert response.status_code == 401
