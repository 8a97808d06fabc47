"""Tasks assíncronas do módulo de pagamentos."""

from __future__ import annotations

from collections import Counter

import structlog
from celery import shared_task
from django.conf import settings

from modules.payments.constants import PaymentTarget
from modules.payments.dtos import CheckPaymentDTO, CreatePaymentDTO
from modules.payments.reconciliation import PaymentReconciler
from modules.payments.services import PaymentService, build_payment_service

logger = structlog.get_logger(__name__)


def reconciler_for(
    service: PaymentService,
    target: PaymentTarget,
    target_id: str,
    payment_method: str,
    auto_reissue: bool,
    **kwargs,
) -> PaymentReconciler:
    """Build a reconciler whose check and re-issue go through ``service``."""

    def check(reference: str):
        return service.check_payment(CheckPaymentDTO(type=target, id=reference))

    def reissue(reference: str):
        return service.issue_payment(
            CreatePaymentDTO(
                type=target,
                id=reference,
                payment_method=payment_method,
                return_url=settings.PAYMENT_RETURN_URL,
            )
        )

    return PaymentReconciler(
        reference=target_id,
        check=check,
        reissue=reissue if auto_reissue else None,
        interval=settings.PAYMENT_POLL_INTERVAL,
        **kwargs,
    )


@shared_task(name="payments.reconcile_pending")
def reconcile_pending_payments() -> dict[str, int]:
    """Um passo de reconciliação para cada cobrança pendente."""
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.subscriptions.repositories.django_repository import (
        SubscriptionDjangoRepository,
    )

    service = build_payment_service()
    auto_reissue = settings.PAYMENT_AUTO_REISSUE
    outcome: Counter[str] = Counter()

    pending = [
        (PaymentTarget.ORDER, entity)
        for entity in OrderDjangoRepository().list_awaiting_payment()
    ] + [
        (PaymentTarget.SUBSCRIPTION, entity)
        for entity in SubscriptionDjangoRepository().list_awaiting_payment()
    ]

    for target, entity in pending:
        reconciler = reconciler_for(
            service, target, str(entity.id), entity.payment_method, auto_reissue
        )
        outcome[str(reconciler.poll())] += 1

    logger.info("payment.reconcile_pending.completed", checked=len(pending), **outcome)
    return dict(outcome)
