"""Payment domain constants."""

from enum import StrEnum

from django.db import models


class PaymentMethod(models.TextChoices):
    PIX = "PIX", "PIX"
    CARD = "CARD", "Cartão de crédito"


class PaymentTarget(StrEnum):
    """What is being paid: a one-off order or a subscription."""

    ORDER = "order"
    SUBSCRIPTION = "subscription"


class ProviderStatus(StrEnum):
    """Normalised charge status, as reported to API clients."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    EXPIRED = "expired"


class IssueMode(StrEnum):
    ONE_TIME = "one_time"


# Efí PIX charge statuses
PIX_STATUS_CONCLUDED = "CONCLUIDA"
PIX_STATUS_REMOVED = frozenset({"REMOVIDA_PELO_USUARIO_RECEBEDOR", "REMOVIDA_PELO_PSP"})

# Stripe Checkout session fields
CARD_PAYMENT_STATUS_PAID = "paid"
CARD_SESSION_STATUS_EXPIRED = "expired"

DEFAULT_POLL_INTERVAL_SECONDS = 15
ISSUE_LOCK_KEY = "payments:issue:{target}:{id}"

# Stripe Checkout sessions expire after 24 hours by default
CARD_CHECKOUT_EXPIRATION_SECONDS = 24 * 60 * 60

# Stripe webhook events that mean a checkout session was paid
CARD_PAID_EVENTS = frozenset(
    {"checkout.session.completed", "checkout.session.async_payment_succeeded"}
)
CARD_SIGNATURE_TOLERANCE_SECONDS = 300
