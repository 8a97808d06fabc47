"""Payment API views.

- ``POST /payments/check/``: provider status of the current charge.
- ``POST /payments/issue/``: issue or re-issue a charge.
- ``POST /payments/webhooks/pix/``: provider notifications (no JWT,
  optional shared secret header).
- ``POST /payments/webhooks/card/``: Stripe Checkout events (no JWT,
  signed with the ``Stripe-Signature`` header).
"""

from __future__ import annotations

import secrets

import structlog
from django.conf import settings
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import ViewSet

from modules.deliveries.exceptions import DeliveryCalendarError
from modules.payments.dtos import CheckPaymentDTO, CreatePaymentDTO
from modules.payments.exceptions import (
    InvalidPaymentRequest,
    InvalidWebhookSignature,
    PaymentAlreadyConfirmed,
    PaymentIssueInProgress,
    PaymentProviderError,
    PaymentTargetNotFound,
)
from modules.payments.serializers import (
    CheckPaymentSerializer,
    CreatePaymentSerializer,
    PixWebhookSerializer,
)
from modules.payments.services import build_payment_service

logger = structlog.get_logger(__name__)


class PaymentViewSet(ViewSet):
    def get_throttles(self) -> list[BaseThrottle]:
        if self.action == "check":
            self.throttle_scope = "payment_check"
        elif self.action == "issue":
            self.throttle_scope = "payment_issue"
        else:
            self.throttle_scope = None
        return super().get_throttles()

    @action(detail=False, methods=["post"])
    def check(self, request: Request) -> Response:
        """POST /api/v1/payments/check/"""
        serializer = CheckPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = CheckPaymentDTO(**serializer.validated_data)

        try:
            result = build_payment_service().check_payment(dto)
        except PaymentTargetNotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except PaymentProviderError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_502_BAD_GATEWAY)
        except DeliveryCalendarError as exc:
            logger.error("payment.check_calendar_error", error=str(exc))
            return Response(
                {"detail": str(exc)}, status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        return Response(result.model_dump(mode="json"))

    @action(detail=False, methods=["post"])
    def issue(self, request: Request) -> Response:
        """POST /api/v1/payments/issue/"""
        serializer = CreatePaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = CreatePaymentDTO(**serializer.validated_data)

        try:
            result = build_payment_service().issue_payment(dto)
        except PaymentTargetNotFound as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)
        except InvalidPaymentRequest as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except (PaymentAlreadyConfirmed, PaymentIssueInProgress) as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
        except PaymentProviderError as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_502_BAD_GATEWAY)

        return Response(result.model_dump(mode="json"), status=status.HTTP_201_CREATED)

    @action(
        detail=False,
        methods=["post"],
        url_path="webhooks/pix",
        permission_classes=[AllowAny],
        authentication_classes=[],
    )
    def pix_webhook(self, request: Request) -> Response:
        """POST /api/v1/payments/webhooks/pix/"""
        expected = settings.PIX_WEBHOOK_SECRET
        if expected:
            received = request.headers.get("X-Webhook-Secret", "")
            if not secrets.compare_digest(received, expected):
                logger.warning("payment.webhook_rejected")
                return Response({"detail": "Invalid webhook secret."}, status=status.HTTP_403_FORBIDDEN)

        serializer = PixWebhookSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        applied = build_payment_service().handle_pix_webhook(serializer.validated_data["pix"])
        return Response({"applied": applied})

    @action(
        detail=False,
        methods=["post"],
        url_path="webhooks/card",
        permission_classes=[AllowAny],
        authentication_classes=[],
    )
    def card_webhook(self, request: Request) -> Response:
        """POST /api/v1/payments/webhooks/card/"""
        # The signature covers the raw bytes, so the body is never re-parsed
        payload = request.body
        try:
            applied = build_payment_service().handle_card_webhook(
                payload, request.headers.get("Stripe-Signature")
            )
        except InvalidWebhookSignature as exc:
            logger.warning("payment.card_webhook_rejected", reason=str(exc))
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        except InvalidPaymentRequest as exc:
            return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)

        return Response({"applied": applied})
