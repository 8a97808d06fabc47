"""Payment service layer.

Checks the provider status of the current charge of an order or
subscription, issues (or re-issues) charges and applies PIX and card
webhook notifications.  Confirmations are delegated to ``OrderService`` and
``SubscriptionService`` so the delivery rules run in one place.

Rules:
- A charge is never issued for a cancelled or already paid target.
- Issuing is serialized per target through a cache lock; a concurrent
  second request fails with ``PaymentIssueInProgress`` instead of
  creating a second live charge.
- An expired charge only stamps ``payment_expired_at``: the payment
  stays pending so a re-issued charge can still confirm it.
"""

from __future__ import annotations

import json
from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Iterable, Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import structlog
from django.conf import settings
from django.core.cache import cache
from django.db import transaction
from django.utils import timezone

from modules.deliveries.exceptions import DeliveryCalendarError
from modules.orders.exceptions import InvalidOrderStatus
from modules.payments.constants import (
    CARD_CHECKOUT_EXPIRATION_SECONDS,
    CARD_PAID_EVENTS,
    CARD_PAYMENT_STATUS_PAID,
    ISSUE_LOCK_KEY,
    IssueMode,
    PaymentMethod,
    PaymentTarget,
    ProviderStatus,
)
from modules.payments.dtos import (
    CheckPaymentDTO,
    CreatePaymentDTO,
    PaymentCheckResult,
    PaymentIssueResult,
)
from modules.payments.errors import IntegrationError
from modules.payments.exceptions import (
    InvalidPaymentRequest,
    PaymentAlreadyConfirmed,
    PaymentIssueInProgress,
    PaymentProviderError,
    PaymentTargetNotFound,
)
from modules.payments.signatures import verify_card_signature
from modules.subscriptions.constants import SubscriptionStatus
from modules.subscriptions.exceptions import InvalidSubscriptionStatus

if TYPE_CHECKING:
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.orders.services import OrderService
    from modules.payments.gateways import CardGatewayProtocol, PixGatewayProtocol
    from modules.subscriptions.models import Subscription
    from modules.subscriptions.repositories.interfaces import ISubscriptionRepository
    from modules.subscriptions.services import SubscriptionService

    PaymentTargetModel = Union[Order, Subscription]

logger = structlog.get_logger(__name__)


def _with_query(url: str, **params: str) -> str:
    parts = urlsplit(url)
    query = dict(parse_qsl(parts.query))
    query.update(params)
    return urlunsplit(parts._replace(query=urlencode(query)))


class PaymentService:
    def __init__(
        self,
        order_repository: IOrderRepository,
        subscription_repository: ISubscriptionRepository,
        order_service: OrderService,
        subscription_service: SubscriptionService,
        pix_gateway: PixGatewayProtocol,
        card_gateway: CardGatewayProtocol,
    ) -> None:
        self._order_repo = order_repository
        self._subscription_repo = subscription_repository
        self._order_service = order_service
        self._subscription_service = subscription_service
        self._pix = pix_gateway
        self._card = card_gateway

    # ------------------------------------------------------------------
    # Status check
    # ------------------------------------------------------------------

    def check_payment(self, dto: CheckPaymentDTO) -> PaymentCheckResult:
        """Ask the provider about the current charge and apply the outcome.

        Raises:
            PaymentTargetNotFound: unknown order or subscription.
            PaymentProviderError: the provider could not be reached.
        """
        target = self.get_target(dto.type, str(dto.id))
        log = logger.bind(target=str(dto.type), target_id=str(dto.id))

        if self._is_paid(target):
            return PaymentCheckResult(status=ProviderStatus.CONFIRMED, updated=False)
        if self._is_cancelled(target):
            log.info("payment.check_skipped_cancelled")
            return PaymentCheckResult(status=ProviderStatus.PENDING, updated=False)

        reference = target.transaction_reference
        if not reference:
            return PaymentCheckResult(status=ProviderStatus.PENDING, updated=False)

        try:
            if target.payment_method == PaymentMethod.CARD:
                provider_status = self._card.get_checkout_status(reference)
            else:
                provider_status = self._pix.get_charge_status(reference)
        except IntegrationError as exc:
            log.warning("payment.check_failed", reference=reference, error=str(exc))
            raise PaymentProviderError(str(exc)) from exc

        log = log.bind(reference=reference, provider_status=str(provider_status))

        if provider_status == ProviderStatus.CONFIRMED:
            self._confirm(dto.type, str(target.id))
            log.info("payment.confirmed")
            return PaymentCheckResult(status=ProviderStatus.CONFIRMED, updated=True)

        if provider_status == ProviderStatus.EXPIRED:
            self._mark_expired(dto.type, str(target.id), reference)
            log.info("payment.expired")
            return PaymentCheckResult(status=ProviderStatus.EXPIRED, updated=True)

        return PaymentCheckResult(status=ProviderStatus.PENDING, updated=False)

    # ------------------------------------------------------------------
    # Issue / re-issue
    # ------------------------------------------------------------------

    def issue_payment(self, dto: CreatePaymentDTO) -> PaymentIssueResult:
        """Create a new charge of ``dto.payment_method`` for the full amount.

        On success the new reference, URL and PIX payload replace the
        stored ones and the expiry marker is cleared.  On failure the
        target keeps its previous (expired) charge.

        Raises:
            PaymentIssueInProgress, PaymentTargetNotFound,
            InvalidPaymentRequest, PaymentAlreadyConfirmed,
            PaymentProviderError
        """
        lock_key = ISSUE_LOCK_KEY.format(target=dto.type, id=dto.id)
        if not cache.add(lock_key, "1", timeout=settings.PAYMENT_ISSUE_LOCK_TIMEOUT):
            logger.warning("payment.issue_in_progress", target=str(dto.type), target_id=str(dto.id))
            raise PaymentIssueInProgress(
                f"A charge for {dto.type} {dto.id} is already being issued."
            )
        try:
            return self._issue(dto)
        finally:
            cache.delete(lock_key)

    def _issue(self, dto: CreatePaymentDTO) -> PaymentIssueResult:
        target = self.get_target(dto.type, str(dto.id))
        log = logger.bind(
            target=str(dto.type), target_id=str(dto.id), payment_method=str(dto.payment_method)
        )

        if self._is_cancelled(target):
            raise InvalidPaymentRequest("Cannot issue a charge for a cancelled target.")
        if self._is_paid(target):
            raise PaymentAlreadyConfirmed("Target is already paid.")
        amount = Decimal(target.total_amount or 0)
        if amount <= 0:
            raise InvalidPaymentRequest("Amount must be greater than zero.")

        number = self._number(target)
        description = (
            f"Pedido {number}" if dto.type == PaymentTarget.ORDER else f"Assinatura {number}"
        )
        now = timezone.now()

        try:
            if dto.payment_method == PaymentMethod.CARD:
                return_url = dto.return_url or settings.PAYMENT_RETURN_URL
                checkout = self._card.create_checkout(
                    amount,
                    description,
                    number,
                    success_url=_with_query(return_url, payment="success"),
                    cancel_url=_with_query(return_url, payment="cancelled"),
                    customer_email=target.customer.email,
                )
                fields: dict[str, Any] = {
                    "card_checkout_id": checkout.session_id,
                    "pix_transaction_id": None,
                    "payment_url": checkout.url,
                    "pix_payload": "",
                    "payment_expires_at": now + timedelta(seconds=CARD_CHECKOUT_EXPIRATION_SECONDS),
                }
                transaction_id = checkout.session_id
            else:
                expires_in = settings.PIX_CHARGE_EXPIRATION
                charge = self._pix.create_charge(amount, description, number, expires_in)
                fields = {
                    "pix_transaction_id": charge.txid,
                    "card_checkout_id": None,
                    "payment_url": charge.location,
                    "pix_payload": charge.pix_payload,
                    "payment_expires_at": now + timedelta(seconds=expires_in),
                }
                transaction_id = charge.txid
        except IntegrationError as exc:
            log.error("payment.issue_failed", error=str(exc), retryable=exc.retryable)
            raise PaymentProviderError(str(exc)) from exc

        self._store_charge(dto.type, str(target.id), dto.payment_method, fields)
        log.info("payment.issued", transaction_id=transaction_id)
        return PaymentIssueResult(
            payment_url=fields["payment_url"],
            pix_payload=fields["pix_payload"],
            mode=IssueMode.ONE_TIME,
            transaction_id=transaction_id,
        )

    # ------------------------------------------------------------------
    # Webhook
    # ------------------------------------------------------------------

    def handle_pix_webhook(self, notifications: Iterable[dict[str, Any]]) -> int:
        """Confirm the order or subscription of every paid ``txid``.

        A notification is only a hint: the charge status is read back
        from the provider and applied only when it reports the charge as
        paid.  Unknown transaction ids, unpaid charges and targets that
        cannot be confirmed are logged and skipped.  Returns how many
        notifications were applied.
        """
        applied = 0
        for notification in notifications:
            txid = notification.get("txid") if isinstance(notification, dict) else None
            if not txid:
                logger.warning("payment.webhook_without_txid")
                continue

            found = self._find_by_reference(PaymentMethod.PIX, txid)
            if not found:
                logger.warning("payment.webhook_unknown_txid", txid=txid)
                continue

            try:
                provider_status = self._pix.get_charge_status(txid)
            except IntegrationError as exc:
                logger.warning("payment.webhook_unverified", txid=txid, error=str(exc))
                continue
            if provider_status != ProviderStatus.CONFIRMED:
                logger.warning(
                    "payment.webhook_not_paid", txid=txid, provider_status=str(provider_status)
                )
                continue

            if self._apply_notification(*found, reference=txid):
                applied += 1
        return applied

    def handle_card_webhook(self, payload: bytes, signature: Optional[str]) -> int:
        """Confirm the target of a paid Stripe Checkout session.

        With ``CARD_WEBHOOK_SECRET`` set the ``Stripe-Signature`` header
        must sign the raw body and the event is trusted as sent.  Without
        a secret the session status is read back from the provider before
        anything is confirmed.  Returns 1 when a target was confirmed and
        0 when the event was ignored.

        Raises:
            InvalidWebhookSignature: the signature is missing or wrong.
            InvalidPaymentRequest: the body is not a JSON event.
        """
        secret = settings.CARD_WEBHOOK_SECRET
        if secret:
            verify_card_signature(payload, signature, secret)
        else:
            logger.warning("payment.card_webhook_unsigned")

        try:
            event = json.loads(payload)
        except ValueError as exc:
            raise InvalidPaymentRequest("Webhook body is not valid JSON.") from exc
        if not isinstance(event, dict):
            raise InvalidPaymentRequest("Webhook body is not an event object.")

        event_type = event.get("type")
        data = event.get("data")
        session = data.get("object") if isinstance(data, dict) else None
        if not isinstance(session, dict):
            session = {}
        session_id = session.get("id")
        log = logger.bind(event_type=event_type, session_id=session_id)

        if event_type not in CARD_PAID_EVENTS or not session_id:
            log.info("payment.card_webhook_ignored")
            return 0

        found = self._find_by_reference(PaymentMethod.CARD, session_id)
        if not found:
            log.warning("payment.card_webhook_unknown_session")
            return 0

        if secret:
            paid = session.get("payment_status") == CARD_PAYMENT_STATUS_PAID
        else:
            try:
                paid = self._card.get_checkout_status(session_id) == ProviderStatus.CONFIRMED
            except IntegrationError as exc:
                log.warning("payment.webhook_unverified", error=str(exc))
                return 0
        if not paid:
            log.info("payment.webhook_not_paid")
            return 0

        return int(self._apply_notification(*found, reference=session_id))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def get_target(self, target: PaymentTarget, target_id: str) -> PaymentTargetModel:
        repo = self._order_repo if target == PaymentTarget.ORDER else self._subscription_repo
        entity = repo.get_by_id(target_id)
        if not entity:
            raise PaymentTargetNotFound(f"{target} {target_id} not found.")
        return entity

    def _load_for_update(self, target: PaymentTarget, target_id: str) -> PaymentTargetModel:
        repo = self._order_repo if target == PaymentTarget.ORDER else self._subscription_repo
        entity = repo.get_for_update(target_id)
        if not entity:
            raise PaymentTargetNotFound(f"{target} {target_id} not found.")
        return entity

    def _save(self, target: PaymentTarget, entity: PaymentTargetModel) -> None:
        repo = self._order_repo if target == PaymentTarget.ORDER else self._subscription_repo
        repo.save(entity)

    @staticmethod
    def _is_paid(entity: PaymentTargetModel) -> bool:
        if hasattr(entity, "is_paid"):
            return entity.is_paid
        return entity.status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.PAUSED)

    @staticmethod
    def _is_cancelled(entity: PaymentTargetModel) -> bool:
        return entity.is_cancelled

    @staticmethod
    def _number(entity: PaymentTargetModel) -> str:
        return getattr(entity, "order_number", None) or entity.subscription_number

    def _confirm(self, target: PaymentTarget, target_id: str) -> None:
        if target == PaymentTarget.ORDER:
            self._order_service.confirm_payment(target_id)
        else:
            self._subscription_service.activate(target_id)

    def _find_by_reference(
        self, payment_method: str, reference: str
    ) -> Optional[tuple[PaymentTarget, PaymentTargetModel]]:
        if payment_method == PaymentMethod.CARD:
            order = self._order_repo.get_by_card_checkout_id(reference)
            subscription = (
                None if order else self._subscription_repo.get_by_card_checkout_id(reference)
            )
        else:
            order = self._order_repo.get_by_pix_transaction_id(reference)
            subscription = (
                None if order else self._subscription_repo.get_by_pix_transaction_id(reference)
            )
        if order:
            return PaymentTarget.ORDER, order
        if subscription:
            return PaymentTarget.SUBSCRIPTION, subscription
        return None

    def _apply_notification(
        self, target: PaymentTarget, entity: PaymentTargetModel, reference: str
    ) -> bool:
        try:
            self._confirm(target, str(entity.id))
        except (InvalidOrderStatus, InvalidSubscriptionStatus, DeliveryCalendarError) as exc:
            logger.warning("payment.webhook_ignored", reference=reference, reason=str(exc))
            return False
        logger.info("payment.webhook_applied", target=str(target), reference=reference)
        return True

    @transaction.atomic
    def _mark_expired(self, target: PaymentTarget, target_id: str, reference: str) -> None:
        entity = self._load_for_update(target, target_id)
        if entity.transaction_reference != reference or entity.payment_expired_at:
            return
        entity.payment_expired_at = timezone.now()
        self._save(target, entity)

    @transaction.atomic
    def _store_charge(
        self,
        target: PaymentTarget,
        target_id: str,
        payment_method: str,
        fields: dict[str, Any],
    ) -> None:
        entity = self._load_for_update(target, target_id)
        entity.payment_method = payment_method
        for name, value in fields.items():
            setattr(entity, name, value)
        entity.payment_expired_at = None
        self._save(target, entity)


def build_payment_service(
    pix_gateway: Optional[PixGatewayProtocol] = None,
    card_gateway: Optional[CardGatewayProtocol] = None,
) -> PaymentService:
    """Wire the service; the PIX environment follows the ``active_environment`` setting."""
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.orders.services import build_order_service
    from modules.payments.gateways import get_card_gateway, get_pix_gateway
    from modules.subscriptions.repositories.django_repository import (
        SubscriptionDjangoRepository,
    )
    from modules.subscriptions.services import build_subscription_service
    from modules.system_settings.constants import ENVIRONMENT_SANDBOX
    from modules.system_settings.repositories.django_repository import (
        SystemSettingDjangoRepository,
    )
    from modules.system_settings.services import SystemSettingService

    if pix_gateway is None:
        environment = SystemSettingService(SystemSettingDjangoRepository()).get_active_environment()
        pix_gateway = get_pix_gateway(sandbox=environment == ENVIRONMENT_SANDBOX)

    return PaymentService(
        order_repository=OrderDjangoRepository(),
        subscription_repository=SubscriptionDjangoRepository(),
        order_service=build_order_service(),
        subscription_service=build_subscription_service(),
        pix_gateway=pix_gateway,
        card_gateway=card_gateway or get_card_gateway(),
    )
