"""Integration tests for request correlation ids.

Covers:
- Caller-supplied X-Request-ID echoed back, also on API errors.
- A UUID4 generated when the header is missing.
- The id reaching the structured log lines of the request.
"""

import logging
import uuid

import pytest

pytestmark = pytest.mark.integration


class TestCorrelationIdMiddleware:
    def test_echoes_request_id(self, auth_client):
        response = auth_client.get("/api/v1/products/", HTTP_X_REQUEST_ID="backoffice-42")

        assert response.status_code == 200
        assert response["X-Request-ID"] == "backoffice-42"

    def test_echoes_request_id_on_errors(self, api_client):
        response = api_client.get("/api/v1/orders/", HTTP_X_REQUEST_ID="anon-7")

        assert response.status_code == 401
        assert response["X-Request-ID"] == "anon-7"

    def test_generates_uuid4(self, client):
        request_id = client.get("/health")["X-Request-ID"]

        assert str(uuid.UUID(request_id, version=4)) == request_id

    def test_each_request_gets_its_own_id(self, client):
        first = client.get("/health")["X-Request-ID"]
        second = client.get("/health")["X-Request-ID"]

        assert first != second

    def test_request_id_in_logs(self, client, caplog):
        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_X_REQUEST_ID="log-correlation-456")

        assert any("log-correlation-456" in record.getMessage() for record in caplog.records)
