"""Unit tests for the payment reconciliation state machine.

The check and re-issue callables are plain fakes; ``sleep`` records
the requested intervals instead of waiting.
"""

from __future__ import annotations

import pytest

from modules.payments.constants import ProviderStatus
from modules.payments.dtos import PaymentCheckResult
from modules.payments.reconciliation import PaymentReconciler, ReconcilerState

pytestmark = pytest.mark.unit

PENDING = PaymentCheckResult(status=ProviderStatus.PENDING)
CONFIRMED = PaymentCheckResult(status=ProviderStatus.CONFIRMED, updated=True)
ALREADY_CONFIRMED = PaymentCheckResult(status=ProviderStatus.CONFIRMED, updated=False)
EXPIRED = PaymentCheckResult(status=ProviderStatus.EXPIRED, updated=True)


class FakeProvider:
    """Returns queued check results and counts calls."""

    def __init__(self, *results: PaymentCheckResult) -> None:
        self.results = list(results)
        self.checked: list[str] = []
        self.reissued: list[str] = []
        self.reissue_error: Exception | None = None

    def check(self, reference: str) -> PaymentCheckResult:
        self.checked.append(reference)
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]

    def reissue(self, reference: str) -> str:
        self.reissued.append(reference)
        if self.reissue_error:
            raise self.reissue_error
        return f"new-charge-for-{reference}"


@pytest.fixture()
def sleeps():
    return []


def _reconciler(provider: FakeProvider, sleeps: list, **kwargs) -> PaymentReconciler:
    kwargs.setdefault("reissue", provider.reissue)
    return PaymentReconciler(
        "order-1",
        check=provider.check,
        interval=15,
        sleep=sleeps.append,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Single poll
# ---------------------------------------------------------------------------


class TestPoll:
    def test_starts_idle(self, sleeps):
        reconciler = _reconciler(FakeProvider(PENDING), sleeps)
        assert reconciler.state == ReconcilerState.IDLE
        assert not reconciler.is_finished

    def test_pending_result(self, sleeps):
        reconciler = _reconciler(FakeProvider(PENDING), sleeps)

        assert reconciler.poll() == ReconcilerState.STILL_PENDING
        assert not reconciler.is_finished

    def test_confirmed_result_notifies(self, sleeps):
        confirmed = []
        reconciler = _reconciler(FakeProvider(CONFIRMED), sleeps, on_confirmed=confirmed.append)

        assert reconciler.poll() == ReconcilerState.CONFIRMED
        assert reconciler.is_finished
        assert confirmed == ["order-1"]

    def test_confirmed_without_update_does_not_notify(self, sleeps):
        confirmed = []
        reconciler = _reconciler(
            FakeProvider(ALREADY_CONFIRMED), sleeps, on_confirmed=confirmed.append
        )

        assert reconciler.poll() == ReconcilerState.CONFIRMED
        assert confirmed == []

    def test_check_failure_keeps_polling(self, sleeps):
        def failing_check(reference):
            raise ConnectionError("provider down")

        reconciler = PaymentReconciler("order-1", check=failing_check, sleep=sleeps.append)

        assert reconciler.poll() == ReconcilerState.STILL_PENDING
        assert not reconciler.is_busy

    def test_poll_after_finish_does_not_check_again(self, sleeps):
        provider = FakeProvider(CONFIRMED)
        reconciler = _reconciler(provider, sleeps)
        reconciler.poll()

        reconciler.poll()

        assert provider.checked == ["order-1"]

    def test_poll_while_busy_is_ignored(self, sleeps):
        calls = []
        reconciler = None

        def reentrant_check(reference):
            calls.append(reference)
            # A second trigger while the first check is still running
            assert reconciler.poll() == ReconcilerState.PENDING_CHECK
            return PENDING

        reconciler = PaymentReconciler("order-1", check=reentrant_check, sleep=sleeps.append)

        assert reconciler.poll() == ReconcilerState.STILL_PENDING
        assert calls == ["order-1"]


# ---------------------------------------------------------------------------
# Expiry and re-issue
# ---------------------------------------------------------------------------


class TestReissue:
    def test_expired_charge_is_reissued_once(self, sleeps):
        provider = FakeProvider(EXPIRED)
        outcomes = []
        reconciler = _reconciler(
            provider, sleeps, on_reissued=lambda ref, outcome: outcomes.append(outcome)
        )

        assert reconciler.poll() == ReconcilerState.REISSUED
        assert reconciler.is_finished
        assert provider.reissued == ["order-1"]
        assert outcomes == ["new-charge-for-order-1"]

    def test_second_expiry_does_not_reissue_again(self, sleeps):
        provider = FakeProvider(EXPIRED)
        reconciler = _reconciler(provider, sleeps)
        reconciler.poll()

        assert reconciler.on_check_result(EXPIRED) == ReconcilerState.REISSUED
        assert provider.reissued == ["order-1"]

    def test_expiry_during_reissue_does_not_reissue_again(self, sleeps):
        provider = FakeProvider(EXPIRED)
        calls = []

        def reissue(reference):
            calls.append(reference)
            assert reconciler.on_check_result(EXPIRED) == ReconcilerState.REISSUING
            assert reconciler.poll() == ReconcilerState.REISSUING
            return "new-charge"

        reconciler = _reconciler(provider, sleeps, reissue=reissue)

        assert reconciler.poll() == ReconcilerState.REISSUED
        assert calls == ["order-1"]
        assert provider.checked == ["order-1"]

    def test_confirmation_during_failed_reissue_wins(self, sleeps):
        confirmed, errors = [], []

        def reissue(reference):
            reconciler.on_check_result(CONFIRMED)
            raise RuntimeError("Target is already paid.")

        reconciler = _reconciler(
            FakeProvider(EXPIRED),
            sleeps,
            reissue=reissue,
            on_confirmed=confirmed.append,
            on_error=lambda ref, exc: errors.append(ref),
        )

        assert reconciler.poll() == ReconcilerState.CONFIRMED
        assert reconciler.is_finished
        assert confirmed == ["order-1"]
        assert errors == []

    def test_confirmation_during_successful_reissue_wins(self, sleeps):
        reissued = []

        def reissue(reference):
            reconciler.on_check_result(CONFIRMED)
            return "new-charge"

        reconciler = _reconciler(
            FakeProvider(EXPIRED),
            sleeps,
            reissue=reissue,
            on_reissued=lambda ref, outcome: reissued.append(outcome),
        )

        assert reconciler.poll() == ReconcilerState.CONFIRMED
        assert reissued == []

    def test_failed_reissue_reports_error(self, sleeps):
        provider = FakeProvider(EXPIRED)
        provider.reissue_error = RuntimeError("provider rejected")
        errors = []
        reconciler = _reconciler(
            provider, sleeps, on_error=lambda ref, exc: errors.append((ref, str(exc)))
        )

        assert reconciler.poll() == ReconcilerState.FAILED
        assert reconciler.is_finished
        assert errors == [("order-1", "provider rejected")]

    def test_without_reissue_expired_is_final(self, sleeps):
        provider = FakeProvider(EXPIRED)
        reconciler = _reconciler(provider, sleeps, reissue=None)

        assert reconciler.poll() == ReconcilerState.EXPIRED
        assert reconciler.is_finished
        assert provider.reissued == []


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_run_polls_immediately_then_every_interval(self, sleeps):
        provider = FakeProvider(PENDING, PENDING, CONFIRMED)
        reconciler = _reconciler(provider, sleeps)

        assert reconciler.run() == ReconcilerState.CONFIRMED
        assert len(provider.checked) == 3
        assert sleeps == [15, 15]

    def test_run_stops_when_told(self, sleeps):
        provider = FakeProvider(PENDING)
        reconciler = _reconciler(provider, sleeps)
        allowed = iter([True, True, False])

        assert reconciler.run(lambda: next(allowed)) == ReconcilerState.STILL_PENDING
        assert len(provider.checked) == 2

    def test_close_discards_results_in_flight(self, sleeps):
        confirmed = []
        reconciler = None

        def closing_check(reference):
            reconciler.close()
            return CONFIRMED

        reconciler = PaymentReconciler(
            "order-1", check=closing_check, on_confirmed=confirmed.append, sleep=sleeps.append
        )

        assert reconciler.poll() == ReconcilerState.CLOSED
        assert confirmed == []
        assert reconciler.is_finished

    def test_result_after_close_is_ignored(self, sleeps):
        reconciler = _reconciler(FakeProvider(PENDING), sleeps)
        reconciler.close()

        assert reconciler.on_check_result(CONFIRMED) == ReconcilerState.CLOSED

    def test_switch_reference_discards_old_result(self, sleeps):
        confirmed = []
        reconciler = None

        def switching_check(reference):
            reconciler.switch_reference("order-2")
            return CONFIRMED

        reconciler = PaymentReconciler(
            "order-1", check=switching_check, on_confirmed=confirmed.append, sleep=sleeps.append
        )

        assert reconciler.poll() == ReconcilerState.IDLE
        assert reconciler.reference == "order-2"
        assert confirmed == []

    def test_switch_reference_allows_a_new_reissue(self, sleeps):
        provider = FakeProvider(EXPIRED)
        reconciler = _reconciler(provider, sleeps)
        reconciler.poll()

        reconciler.switch_reference("order-2")
        reconciler.poll()

        assert provider.reissued == ["order-1", "order-2"]
