"""Order domain constants.

Payment and delivery progress are tracked by two independent state
machines.  Cancelling an order moves both to ``CANCELLED``.
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    PENDING = "PENDING", "Pendente"
    CONFIRMED = "CONFIRMED", "Confirmado"
    DECLINED = "DECLINED", "Recusado"
    CANCELLED = "CANCELLED", "Cancelado"


class DeliveryStatus(models.TextChoices):
    WAITING = "WAITING", "Aguardando"
    EN_ROUTE = "EN_ROUTE", "Em rota"
    DELIVERED = "DELIVERED", "Entregue"
    CANCELLED = "CANCELLED", "Cancelado"


PAYMENT_TRANSITIONS: dict[str, set[str]] = {
    PaymentStatus.PENDING: {
        PaymentStatus.CONFIRMED,
        PaymentStatus.DECLINED,
        PaymentStatus.CANCELLED,
    },
    PaymentStatus.DECLINED: {
        PaymentStatus.PENDING,
        PaymentStatus.CONFIRMED,
        PaymentStatus.CANCELLED,
    },
    PaymentStatus.CONFIRMED: {PaymentStatus.CANCELLED},
    PaymentStatus.CANCELLED: set(),
}

DELIVERY_TRANSITIONS: dict[str, set[str]] = {
    DeliveryStatus.WAITING: {DeliveryStatus.EN_ROUTE, DeliveryStatus.CANCELLED},
    DeliveryStatus.EN_ROUTE: {DeliveryStatus.DELIVERED, DeliveryStatus.WAITING},
    DeliveryStatus.DELIVERED: set(),
    DeliveryStatus.CANCELLED: set(),
}

# Delivery may only progress once the payment is confirmed
PAID_DELIVERY_STATES: set[str] = {DeliveryStatus.EN_ROUTE, DeliveryStatus.DELIVERED}

ORDER_NUMBER_MAX_RETRIES = 5
