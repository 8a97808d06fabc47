"""Payment reconciliation state machine.

Polls the status of one pending charge and, when the provider reports
it expired, re-issues it automatically exactly once::

    IDLE -> PENDING_CHECK -> STILL_PENDING | CONFIRMED | EXPIRED
    EXPIRED -> REISSUING -> REISSUED | FAILED

At most one check or re-issue is in flight per instance: a ``poll()``
arriving while either is running is ignored.  ``close()`` and
``switch_reference()`` make any result that is still in flight stale,
and stale results are discarded.

The check and re-issue operations, the clock and the notifications
are injected, so the machine runs the same way under the Celery task,
the ``watch_payment`` command and the tests.
"""

from __future__ import annotations

import time
from enum import StrEnum
from typing import Any, Callable, Optional

import structlog

from modules.payments.constants import DEFAULT_POLL_INTERVAL_SECONDS, ProviderStatus
from modules.payments.dtos import PaymentCheckResult

logger = structlog.get_logger(__name__)


class ReconcilerState(StrEnum):
    IDLE = "idle"
    PENDING_CHECK = "pending_check"
    STILL_PENDING = "still_pending"
    CONFIRMED = "confirmed"
    EXPIRED = "expired"
    REISSUING = "reissuing"
    REISSUED = "reissued"
    FAILED = "failed"
    CLOSED = "closed"


TERMINAL_STATES = frozenset(
    {
        ReconcilerState.CONFIRMED,
        ReconcilerState.REISSUED,
        ReconcilerState.FAILED,
        ReconcilerState.CLOSED,
    }
)


class PaymentReconciler:
    """Reconciles the charge of a single order or subscription.

    ``check(reference)`` returns a ``PaymentCheckResult``;
    ``reissue(reference)`` returns whatever the caller wants handed to
    ``on_reissued``.  Without ``reissue`` an expired charge ends the
    reconciliation in ``EXPIRED``.
    """

    def __init__(
        self,
        reference: str,
        check: Callable[[str], PaymentCheckResult],
        reissue: Optional[Callable[[str], Any]] = None,
        on_confirmed: Optional[Callable[[str], None]] = None,
        on_reissued: Optional[Callable[[str, Any], None]] = None,
        on_error: Optional[Callable[[str, Exception], None]] = None,
        interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.reference = reference
        self.interval = interval
        self._check = check
        self._reissue = reissue
        self._on_confirmed = on_confirmed
        self._on_reissued = on_reissued
        self._on_error = on_error
        self._sleep = sleep
        self._reset()

    def _reset(self) -> None:
        self.state = ReconcilerState.IDLE
        self._closed = False
        self._checking = False
        self._reissuing = False
        self._reissue_attempted = False
        self._generation = getattr(self, "_generation", 0) + 1

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def is_finished(self) -> bool:
        if self.state in TERMINAL_STATES:
            return True
        return self.state == ReconcilerState.EXPIRED and self._reissue is None

    @property
    def is_busy(self) -> bool:
        return self._checking or self._reissuing

    # ------------------------------------------------------------------
    # Driving
    # ------------------------------------------------------------------

    def poll(self) -> ReconcilerState:
        """Run one check unless finished, closed or already busy."""
        if self.is_finished or self.is_busy:
            logger.debug(
                "payment.reconcile.poll_skipped", reference=self.reference, state=str(self.state)
            )
            return self.state

        generation = self._generation
        reference = self.reference
        self._checking = True
        self.state = ReconcilerState.PENDING_CHECK
        try:
            result = self._check(reference)
        except Exception as exc:
            if generation == self._generation:
                logger.warning(
                    "payment.reconcile.check_failed",
                    reference=reference,
                    error=str(exc),
                    exc_info=True,
                )
                self.state = ReconcilerState.STILL_PENDING
            return self.state
        finally:
            if generation == self._generation:
                self._checking = False

        return self._apply(result, generation)

    def on_check_result(self, result: PaymentCheckResult) -> ReconcilerState:
        """Apply a check result obtained outside ``poll()``."""
        if self.is_finished:
            return self.state
        return self._apply(result, self._generation)

    def run(self, should_continue: Callable[[], bool] = lambda: True) -> ReconcilerState:
        """Poll every ``interval`` seconds until finished or told to stop."""
        while not self.is_finished and should_continue():
            self.poll()
            if self.is_finished:
                break
            self._sleep(self.interval)
        return self.state

    def close(self) -> None:
        """Stop immediately; results still in flight are discarded."""
        self._closed = True
        self._generation += 1
        self._checking = False
        self._reissuing = False
        self.state = ReconcilerState.CLOSED
        logger.info("payment.reconcile.closed", reference=self.reference)

    def switch_reference(self, reference: str) -> None:
        """Start over for another order or subscription."""
        logger.info("payment.reconcile.switched", old=self.reference, new=reference)
        self.reference = reference
        self._reset()

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _apply(self, result: PaymentCheckResult, generation: int) -> ReconcilerState:
        if generation != self._generation or self._closed:
            logger.debug("payment.reconcile.stale_result", reference=self.reference)
            return self.state

        log = logger.bind(reference=self.reference, status=str(result.status))

        if result.status == ProviderStatus.CONFIRMED:
            self.state = ReconcilerState.CONFIRMED
            log.info("payment.reconcile.confirmed", updated=result.updated)
            if result.updated and self._on_confirmed:
                self._on_confirmed(self.reference)
            return self.state

        if result.status == ProviderStatus.EXPIRED:
            if self._reissue_attempted or self._reissuing:
                log.debug("payment.reconcile.expired_ignored")
                return self.state
            self.state = ReconcilerState.EXPIRED
            log.info("payment.reconcile.expired")
            if self._reissue is not None:
                self._reissue_once(generation)
            return self.state

        self.state = ReconcilerState.STILL_PENDING
        return self.state

    def _reissue_once(self, generation: int) -> None:
        reference = self.reference
        self._reissue_attempted = True
        self._reissuing = True
        self.state = ReconcilerState.REISSUING
        try:
            outcome = self._reissue(reference)
        except Exception as exc:
            if generation != self._generation:
                return
            if self.state == ReconcilerState.CONFIRMED:
                logger.info("payment.reconcile.reissue_superseded", reference=reference)
                return
            self.state = ReconcilerState.FAILED
            logger.error("payment.reconcile.reissue_failed", reference=reference, error=str(exc))
            if self._on_error:
                self._on_error(reference, exc)
            return
        finally:
            if generation == self._generation:
                self._reissuing = False

        if generation != self._generation:
            logger.debug("payment.reconcile.stale_reissue", reference=reference)
            return
        # A confirmation that arrived during the re-issue wins
        if self.state == ReconcilerState.CONFIRMED:
            logger.info("payment.reconcile.reissue_superseded", reference=reference)
            return
        self.state = ReconcilerState.REISSUED
        logger.info("payment.reconcile.reissued", reference=reference)
        if self._on_reissued:
            self._on_reissued(reference, outcome)
