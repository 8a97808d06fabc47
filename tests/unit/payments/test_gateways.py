"""Unit tests for the PIX and card provider clients.

Requests are served by ``httpx.MockTransport``; nothing leaves the
process.
"""

from __future__ import annotations

import json
from decimal import Decimal
from urllib.parse import parse_qs

import httpx
import pytest

from modules.payments.constants import ProviderStatus
from modules.payments.errors import (
    IntegrationBadGatewayError,
    IntegrationConfigurationError,
    IntegrationTimeoutError,
    IntegrationUnavailableError,
)
from modules.payments.gateways import CardGateway, PixGateway

pytestmark = pytest.mark.unit


def _pix(handler, **overrides) -> PixGateway:
    options = {
        "client_id": "client-id",
        "client_secret": "client-secret",
        "pix_key": "chave@example.com",
        "transport": httpx.MockTransport(handler),
    }
    options.update(overrides)
    return PixGateway("https://pix.test", **options)


def _card(handler, **overrides) -> CardGateway:
    options = {"secret_key": "sk_test_123", "transport": httpx.MockTransport(handler)}
    options.update(overrides)
    return CardGateway("https://card.test", **options)


def _pix_handler(cob_response: httpx.Response, seen: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        if request.url.path == "/oauth/token":
            return httpx.Response(200, json={"access_token": "token-123"})
        return cob_response

    return handler


# ---------------------------------------------------------------------------
# PIX
# ---------------------------------------------------------------------------


class TestPixCreateCharge:
    def test_creates_charge(self):
        seen: list[httpx.Request] = []
        gateway = _pix(
            _pix_handler(
                httpx.Response(
                    201,
                    json={
                        "txid": "tx123",
                        "pixCopiaECola": "000201...",
                        "location": "pix.test/qr/v2/abc",
                    },
                ),
                seen,
            )
        )

        charge = gateway.create_charge(Decimal("18.00"), "Pedido ORD-1", "ORD-1", 3600)

        assert charge.txid == "tx123"
        assert charge.pix_payload == "000201..."
        assert charge.location == "pix.test/qr/v2/abc"

        token_request, cob_request = seen
        assert token_request.headers["Authorization"].startswith("Basic ")
        assert cob_request.headers["Authorization"] == "Bearer token-123"
        body = json.loads(cob_request.content)
        assert body["valor"]["original"] == "18.00"
        assert body["calendario"]["expiracao"] == 3600
        assert body["chave"] == "chave@example.com"

    def test_missing_txid_is_bad_gateway(self):
        gateway = _pix(_pix_handler(httpx.Response(201, json={"status": "ATIVA"})))

        with pytest.raises(IntegrationBadGatewayError):
            gateway.create_charge(Decimal("10.00"), "Pedido", "ORD-1", 3600)

    def test_missing_credentials(self):
        gateway = _pix(_pix_handler(httpx.Response(200, json={})), client_secret="")

        with pytest.raises(IntegrationConfigurationError):
            gateway.create_charge(Decimal("10.00"), "Pedido", "ORD-1", 3600)

    def test_token_without_access_token(self):
        def handler(request):
            return httpx.Response(200, json={"token_type": "Bearer"})

        with pytest.raises(IntegrationBadGatewayError):
            _pix(handler).create_charge(Decimal("10.00"), "Pedido", "ORD-1", 3600)


class TestPixChargeStatus:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("CONCLUIDA", ProviderStatus.CONFIRMED),
            ("ATIVA", ProviderStatus.PENDING),
            ("REMOVIDA_PELO_USUARIO_RECEBEDOR", ProviderStatus.EXPIRED),
            ("REMOVIDA_PELO_PSP", ProviderStatus.EXPIRED),
        ],
    )
    def test_status_mapping(self, raw, expected):
        gateway = _pix(_pix_handler(httpx.Response(200, json={"txid": "tx", "status": raw})))

        assert gateway.get_charge_status("tx") == expected

    def test_server_error_is_unavailable(self):
        gateway = _pix(_pix_handler(httpx.Response(503, text="maintenance")))

        with pytest.raises(IntegrationUnavailableError) as exc_info:
            gateway.get_charge_status("tx")
        assert exc_info.value.retryable is True
        assert exc_info.value.status_code == 503

    def test_client_error_is_bad_gateway(self):
        gateway = _pix(_pix_handler(httpx.Response(404, json={"detail": "not found"})))

        with pytest.raises(IntegrationBadGatewayError) as exc_info:
            gateway.get_charge_status("tx")
        assert exc_info.value.retryable is False
        assert exc_info.value.status_code == 404

    def test_malformed_json(self):
        gateway = _pix(_pix_handler(httpx.Response(200, text="<html>")))

        with pytest.raises(IntegrationBadGatewayError):
            gateway.get_charge_status("tx")

    def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(IntegrationTimeoutError):
            _pix(handler).get_charge_status("tx")

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(IntegrationUnavailableError):
            _pix(handler).get_charge_status("tx")


# ---------------------------------------------------------------------------
# Card
# ---------------------------------------------------------------------------


class TestCardCheckout:
    def test_creates_session(self):
        seen: list[httpx.Request] = []

        def handler(request):
            seen.append(request)
            return httpx.Response(
                200, json={"id": "cs_test_1", "url": "https://checkout.test/cs_test_1"}
            )

        checkout = _card(handler).create_checkout(
            Decimal("19.99"),
            "Pedido ORD-1",
            "ORD-1",
            success_url="https://app.test/orders?payment=success",
            cancel_url="https://app.test/orders?payment=cancelled",
            customer_email="ana@example.com",
        )

        assert checkout.session_id == "cs_test_1"
        assert checkout.url == "https://checkout.test/cs_test_1"

        request = seen[0]
        assert request.url.path == "/v1/checkout/sessions"
        assert request.headers["Authorization"] == "Bearer sk_test_123"
        form = parse_qs(request.content.decode())
        assert form["line_items[0][price_data][unit_amount]"] == ["1999"]
        assert form["line_items[0][price_data][currency]"] == ["brl"]
        assert form["mode"] == ["payment"]
        assert form["customer_email"] == ["ana@example.com"]
        assert form["metadata[reference]"] == ["ORD-1"]

    def test_missing_url_is_bad_gateway(self):
        def handler(request):
            return httpx.Response(200, json={"id": "cs_test_1"})

        with pytest.raises(IntegrationBadGatewayError):
            _card(handler).create_checkout(
                Decimal("10.00"), "Pedido", "ORD-1", "https://a.test", "https://b.test"
            )

    def test_missing_secret_key(self):
        gateway = _card(lambda request: httpx.Response(200, json={}), secret_key="")

        with pytest.raises(IntegrationConfigurationError):
            gateway.get_checkout_status("cs_test_1")

    @pytest.mark.parametrize(
        ("payload", "expected"),
        [
            ({"status": "complete", "payment_status": "paid"}, ProviderStatus.CONFIRMED),
            ({"status": "open", "payment_status": "unpaid"}, ProviderStatus.PENDING),
            ({"status": "expired", "payment_status": "unpaid"}, ProviderStatus.EXPIRED),
        ],
    )
    def test_status_mapping(self, payload, expected):
        gateway = _card(lambda request: httpx.Response(200, json=payload))

        assert gateway.get_checkout_status("cs_test_1") == expected
