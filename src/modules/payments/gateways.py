"""HTTP clients for the payment providers.

- ``PixGateway``: Efí PIX API (OAuth client credentials over mTLS),
  immediate charges via ``/v2/cob``.
- ``CardGateway``: Stripe Checkout sessions (form-encoded REST).

Both translate transport failures and unexpected responses into the
``IntegrationError`` hierarchy and normalise the provider status into
``ProviderStatus``.  An ``httpx`` transport can be injected for tests.
"""

from __future__ import annotations

import ssl
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional, Protocol

import httpx
import structlog
from django.conf import settings

from modules.payments.constants import (
    CARD_PAYMENT_STATUS_PAID,
    CARD_SESSION_STATUS_EXPIRED,
    PIX_STATUS_CONCLUDED,
    PIX_STATUS_REMOVED,
    ProviderStatus,
)
from modules.payments.errors import (
    IntegrationBadGatewayError,
    IntegrationConfigurationError,
    IntegrationTimeoutError,
    IntegrationUnavailableError,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PixCharge:
    txid: str
    pix_payload: str
    location: str


@dataclass(frozen=True)
class CardCheckout:
    session_id: str
    url: str


class PixGatewayProtocol(Protocol):
    def create_charge(
        self, amount: Decimal, description: str, reference: str, expires_in: int
    ) -> PixCharge: ...

    def get_charge_status(self, txid: str) -> ProviderStatus: ...


class CardGatewayProtocol(Protocol):
    def create_checkout(
        self,
        amount: Decimal,
        description: str,
        reference: str,
        success_url: str,
        cancel_url: str,
        customer_email: str = "",
    ) -> CardCheckout: ...

    def get_checkout_status(self, session_id: str) -> ProviderStatus: ...


def _send(
    client: httpx.Client, service: str, method: str, path: str, **kwargs: Any
) -> dict[str, Any]:
    try:
        response = client.request(method, path, **kwargs)
    except httpx.TimeoutException as err:
        raise IntegrationTimeoutError(service) from err
    except httpx.TransportError as err:
        raise IntegrationUnavailableError(service, str(err)) from err

    if response.status_code >= 500:
        raise IntegrationUnavailableError(
            service, f"{method} {path} returned {response.status_code}", status_code=response.status_code
        )
    if response.status_code >= 400:
        logger.warning(
            "payment.provider_rejected",
            service=service,
            path=path,
            status_code=response.status_code,
            body=response.text[:500],
        )
        raise IntegrationBadGatewayError(
            service, f"{method} {path} returned {response.status_code}", status_code=response.status_code
        )

    try:
        payload = response.json()
    except ValueError as err:
        raise IntegrationBadGatewayError(service, "Malformed JSON payload") from err
    if not isinstance(payload, dict):
        raise IntegrationBadGatewayError(service, "Malformed JSON payload")
    return payload


# ---------------------------------------------------------------------------
# PIX (Efí)
# ---------------------------------------------------------------------------


class PixGateway:
    service = "pix"

    def __init__(
        self,
        base_url: str,
        client_id: str,
        client_secret: str,
        pix_key: str,
        cert_path: str = "",
        key_path: str = "",
        timeout_s: float = 20.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client_id = client_id
        self.client_secret = client_secret
        self.pix_key = pix_key
        self.cert_path = cert_path
        self.key_path = key_path
        self.timeout_s = timeout_s
        self._transport = transport

    def _client(self) -> httpx.Client:
        if not (self.base_url and self.client_id and self.client_secret):
            raise IntegrationConfigurationError(self.service, "PIX credentials are not configured")

        verify: bool | ssl.SSLContext = True
        if self.cert_path:
            verify = ssl.create_default_context()
            verify.load_cert_chain(self.cert_path, self.key_path or None)
        return httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout_s),
            verify=verify,
            transport=self._transport,
        )

    def _authenticate(self, client: httpx.Client) -> str:
        data = _send(
            client,
            self.service,
            "POST",
            "/oauth/token",
            auth=(self.client_id, self.client_secret),
            json={"grant_type": "client_credentials"},
        )
        token = data.get("access_token")
        if not token:
            raise IntegrationBadGatewayError(self.service, "OAuth response without access_token")
        return token

    def create_charge(
        self, amount: Decimal, description: str, reference: str, expires_in: int
    ) -> PixCharge:
        """POST /v2/cob: immediate charge with a PIX copy-and-paste payload."""
        body = {
            "calendario": {"expiracao": expires_in},
            "valor": {"original": f"{amount:.2f}"},
            "chave": self.pix_key,
            "solicitacaoPagador": description[:140],
            "infoAdicionais": [{"nome": "Referência", "valor": reference}],
        }
        with self._client() as client:
            token = self._authenticate(client)
            data = _send(
                client,
                self.service,
                "POST",
                "/v2/cob",
                json=body,
                headers={"Authorization": f"Bearer {token}"},
            )

        txid = data.get("txid")
        if not txid:
            raise IntegrationBadGatewayError(self.service, "Charge response without txid")
        logger.info("payment.pix_charge_created", txid=txid, reference=reference)
        return PixCharge(
            txid=txid,
            pix_payload=data.get("pixCopiaECola") or data.get("brcode") or "",
            location=data.get("location") or "",
        )

    def get_charge_status(self, txid: str) -> ProviderStatus:
        """GET /v2/cob/{txid}"""
        with self._client() as client:
            token = self._authenticate(client)
            data = _send(
                client,
                self.service,
                "GET",
                f"/v2/cob/{txid}",
                headers={"Authorization": f"Bearer {token}"},
            )

        raw_status = data.get("status", "")
        if raw_status == PIX_STATUS_CONCLUDED:
            return ProviderStatus.CONFIRMED
        if raw_status in PIX_STATUS_REMOVED:
            return ProviderStatus.EXPIRED
        return ProviderStatus.PENDING


# ---------------------------------------------------------------------------
# Card (Stripe Checkout)
# ---------------------------------------------------------------------------


class CardGateway:
    service = "card"

    def __init__(
        self,
        base_url: str,
        secret_key: str,
        timeout_s: float = 20.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.secret_key = secret_key
        self.timeout_s = timeout_s
        self._transport = transport

    def _client(self) -> httpx.Client:
        if not self.secret_key:
            raise IntegrationConfigurationError(self.service, "Card secret key is not configured")
        return httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout_s),
            headers={"Authorization": f"Bearer {self.secret_key}"},
            transport=self._transport,
        )

    def create_checkout(
        self,
        amount: Decimal,
        description: str,
        reference: str,
        success_url: str,
        cancel_url: str,
        customer_email: str = "",
    ) -> CardCheckout:
        """POST /v1/checkout/sessions: one-time BRL payment."""
        cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        form = {
            "mode": "payment",
            "payment_method_types[0]": "card",
            "line_items[0][price_data][currency]": "brl",
            "line_items[0][price_data][product_data][name]": description,
            "line_items[0][price_data][unit_amount]": str(cents),
            "line_items[0][quantity]": "1",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata[reference]": reference,
        }
        if customer_email:
            form["customer_email"] = customer_email

        with self._client() as client:
            data = _send(client, self.service, "POST", "/v1/checkout/sessions", data=form)

        session_id = data.get("id")
        url = data.get("url")
        if not session_id or not url:
            raise IntegrationBadGatewayError(self.service, "Checkout response without id/url")
        logger.info("payment.card_checkout_created", session_id=session_id, reference=reference)
        return CardCheckout(session_id=session_id, url=url)

    def get_checkout_status(self, session_id: str) -> ProviderStatus:
        """GET /v1/checkout/sessions/{id}"""
        with self._client() as client:
            data = _send(client, self.service, "GET", f"/v1/checkout/sessions/{session_id}")

        if data.get("payment_status") == CARD_PAYMENT_STATUS_PAID:
            return ProviderStatus.CONFIRMED
        if data.get("status") == CARD_SESSION_STATUS_EXPIRED:
            return ProviderStatus.EXPIRED
        return ProviderStatus.PENDING


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def get_pix_gateway(sandbox: bool = False) -> PixGatewayProtocol:
    base_url = settings.PIX_SANDBOX_API_BASE_URL if sandbox else settings.PIX_API_BASE_URL
    return PixGateway(
        base_url,
        client_id=settings.PIX_CLIENT_ID,
        client_secret=settings.PIX_CLIENT_SECRET,
        pix_key=settings.PIX_KEY,
        cert_path=settings.PIX_CLIENT_CERT_PATH,
        key_path=settings.PIX_CLIENT_KEY_PATH,
        timeout_s=settings.PAYMENT_HTTP_TIMEOUT,
    )


def get_card_gateway() -> CardGatewayProtocol:
    return CardGateway(
        settings.CARD_API_BASE_URL,
        secret_key=settings.CARD_SECRET_KEY,
        timeout_s=settings.PAYMENT_HTTP_TIMEOUT,
    )
