"""Subscription domain constants."""

from django.db import models


class Frequency(models.TextChoices):
    DAILY = "DAILY", "Diária"
    WEEKLY = "WEEKLY", "Semanal"
    BIWEEKLY = "BIWEEKLY", "Quinzenal"
    MONTHLY = "MONTHLY", "Mensal"


class SubscriptionStatus(models.TextChoices):
    PENDING_PAYMENT = "PENDING_PAYMENT", "Aguardando pagamento"
    ACTIVE = "ACTIVE", "Ativa"
    PAUSED = "PAUSED", "Pausada"
    CANCELLED = "CANCELLED", "Cancelada"


STATUS_TRANSITIONS: dict[str, set[str]] = {
    SubscriptionStatus.PENDING_PAYMENT: {
        SubscriptionStatus.ACTIVE,
        SubscriptionStatus.CANCELLED,
    },
    SubscriptionStatus.ACTIVE: {SubscriptionStatus.PAUSED, SubscriptionStatus.CANCELLED},
    SubscriptionStatus.PAUSED: {SubscriptionStatus.ACTIVE, SubscriptionStatus.CANCELLED},
    SubscriptionStatus.CANCELLED: set(),
}

DELIVERIES_PER_FREQUENCY: dict[str, int] = {
    Frequency.DAILY: 20,
    Frequency.WEEKLY: 4,
    Frequency.BIWEEKLY: 2,
    Frequency.MONTHLY: 1,
}

# Matching weekdays skipped between two deliveries
FREQUENCY_STRIDE: dict[str, int] = {
    Frequency.BIWEEKLY: 2,
}

SUBSCRIPTION_NUMBER_MAX_RETRIES = 5
