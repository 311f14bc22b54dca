"""Tests for the bounded polling loop.

Covers convergence, fail-fast on FAILED, continuous-pipeline convergence,
read-error retries, timeout diagnostics, absence polling and
cancellation.  Time is driven by a fake clock, so nothing sleeps.
"""

from __future__ import annotations

import logging
import threading

import pytest

from pipeline_lifecycle.clients.base import (
    ClientAuthError,
    ClientError,
    NotFoundError,
    TransportError,
)
from pipeline_lifecycle.core.exceptions import ContractError, ValidationError
from pipeline_lifecycle.core.config import LifecycleConfig
from pipeline_lifecycle.models.pipeline import PipelineState, PollStatus, Verdict
from pipeline_lifecycle.orchestrators.poller import (
    ConvergenceTimeoutError,
    PollCancelledError,
    Poller,
    ProvisioningFailedError,
    until_state,
)
from tests.fakes import FakeClock, ScriptedClient, observed

S = PipelineState


# ===================================================================
# Predicates
# ===================================================================


class TestUntilState:
    """until_state predicate verdicts."""

    def test_desired_state_succeeds(self) -> None:
        decision = until_state(S.RUNNING)(observed(S.RUNNING))
        assert decision.verdict is Verdict.SUCCEED

    def test_failed_state_fails_with_cause(self) -> None:
        decision = until_state(S.RUNNING)(observed(S.FAILED, cause="cluster quota exceeded"))
        assert decision.verdict is Verdict.FAIL
        assert decision.reason == "cluster quota exceeded"

    def test_initial_state_continues(self) -> None:
        decision = until_state(S.RUNNING)(observed(S.DEPLOYING))
        assert decision.verdict is Verdict.CONTINUE
        assert "not yet in state RUNNING" in decision.reason

    def test_non_continuous_idle_continues(self) -> None:
        decision = until_state(S.RUNNING)(observed(S.IDLE, continuous=False))
        assert decision.verdict is Verdict.CONTINUE

    @pytest.mark.parametrize("state", [S.IDLE, S.RECOVERING, S.RESETTING])
    def test_continuous_non_initial_succeeds(self, state: PipelineState) -> None:
        decision = until_state(S.RUNNING)(observed(state, continuous=True))
        assert decision.verdict is Verdict.SUCCEED

    @pytest.mark.parametrize("state", [S.DEPLOYING, S.STARTING])
    def test_continuous_initial_continues(self, state: PipelineState) -> None:
        decision = until_state(S.RUNNING)(observed(state, continuous=True))
        assert decision.verdict is Verdict.CONTINUE

    def test_continuous_failed_still_fails(self) -> None:
        decision = until_state(S.RUNNING)(observed(S.FAILED, continuous=True))
        assert decision.verdict is Verdict.FAIL

    def test_submitted_flag_used_when_spec_not_reported(self) -> None:
        decision = until_state(S.RUNNING, continuous=True)(observed(S.IDLE))
        assert decision.verdict is Verdict.SUCCEED

    def test_observed_flag_wins_over_submitted_flag(self) -> None:
        decision = until_state(S.RUNNING, continuous=True)(observed(S.IDLE, continuous=False))
        assert decision.verdict is Verdict.CONTINUE


# ===================================================================
# wait_for
# ===================================================================


class TestWaitFor:
    """Poller.wait_for loop behaviour."""

    def test_converges_after_three_ticks(
        self, client: ScriptedClient, poller: Poller, clock: FakeClock
    ) -> None:
        client.script([S.DEPLOYING, S.STARTING, S.RUNNING])

        outcome = poller.wait_for("p-123", 600, until_state(S.RUNNING))

        assert outcome.status is PollStatus.CONVERGED
        assert outcome.last_state is S.RUNNING
        assert outcome.poll_count == 3
        assert clock.sleeps == [10.0, 10.0]
        assert outcome.elapsed_seconds == 20.0

    def test_failed_state_fails_fast(
        self, client: ScriptedClient, poller: Poller, clock: FakeClock
    ) -> None:
        client.script([S.DEPLOYING, observed(S.FAILED, cause="bad library")])

        with pytest.raises(ProvisioningFailedError) as exc_info:
            poller.wait_for("p-123", 1200, until_state(S.RUNNING))

        err = exc_info.value
        assert "bad library" in str(err)
        assert err.retryable is False
        assert err.outcome is not None
        assert err.outcome.status is PollStatus.FAILED
        assert client.read_count == 2
        assert clock.now == 10.0

    def test_continuous_converges_on_idle(self, client: ScriptedClient, poller: Poller) -> None:
        client.script(
            [
                observed(S.STARTING, continuous=True),
                observed(S.IDLE, continuous=True),
            ]
        )

        outcome = poller.wait_for("p-123", 600, until_state(S.RUNNING))

        assert outcome.status is PollStatus.CONVERGED
        assert outcome.last_state is S.IDLE

    def test_timeout_names_identifier_and_last_state(
        self, client: ScriptedClient, poller: Poller, clock: FakeClock
    ) -> None:
        client.script([S.STARTING])

        with pytest.raises(ConvergenceTimeoutError) as exc_info:
            poller.wait_for("p-123", 60, until_state(S.RUNNING))

        err = exc_info.value
        assert "p-123" in str(err)
        assert "STARTING" in str(err)
        assert err.last_state is S.STARTING
        assert err.outcome is not None
        assert err.outcome.status is PollStatus.TIMED_OUT
        assert client.read_count == 6
        assert clock.now == 60.0

    def test_no_read_after_deadline(self, client: ScriptedClient, clock: FakeClock) -> None:
        client.script([S.STARTING])
        poller = Poller(
            client,
            poll_interval=25.0,
            jitter=0.0,
            clock=clock,
            sleep=clock.sleep,
        )

        with pytest.raises(ConvergenceTimeoutError):
            poller.wait_for("p-123", 60, until_state(S.RUNNING))

        # Reads at t=0, 25, 50; the last sleep is clipped to the deadline.
        assert client.read_count == 3
        assert clock.sleeps == [25.0, 25.0, 10.0]

    def test_transient_read_errors_are_retried(
        self, client: ScriptedClient, poller: Poller, clock: FakeClock
    ) -> None:
        client.script(
            [
                TransportError("pipeline", "connection reset"),
                TransportError("pipeline", "503 service unavailable", status_code=503),
                S.RUNNING,
            ]
        )

        outcome = poller.wait_for("p-123", 600, until_state(S.RUNNING))

        assert outcome.status is PollStatus.CONVERGED
        assert outcome.poll_count == 3
        assert clock.sleeps == [2.0, 4.0]

    def test_backoff_is_capped(self, client: ScriptedClient, poller: Poller, clock: FakeClock) -> None:
        client.script([TransportError("pipeline", "flaky")] * 5 + [S.RUNNING])

        poller.wait_for("p-123", 600, until_state(S.RUNNING))

        assert clock.sleeps == [2.0, 4.0, 8.0, 8.0, 8.0]

    def test_persistent_transient_errors_time_out_with_unknown_state(
        self, client: ScriptedClient, poller: Poller
    ) -> None:
        client.script([TransportError("pipeline", "down")])

        with pytest.raises(ConvergenceTimeoutError) as exc_info:
            poller.wait_for("p-123", 30, until_state(S.RUNNING))

        assert exc_info.value.last_state is None
        assert "unknown" in str(exc_info.value)

    def test_not_found_propagates(self, client: ScriptedClient, poller: Poller) -> None:
        client.script([S.DEPLOYING, NotFoundError("pipeline", "gone")])

        with pytest.raises(NotFoundError):
            poller.wait_for("p-123", 600, until_state(S.RUNNING))

    @pytest.mark.parametrize(
        "error",
        [
            ClientAuthError("pipeline", "token expired", status_code=401),
            ClientAuthError("pipeline", "forbidden", status_code=403),
            ClientError("pipeline", "bad request", status_code=400),
            ContractError("no state"),
        ],
        ids=["unauthorized", "forbidden", "rejected", "malformed"],
    )
    def test_any_read_error_is_retried_until_converged(
        self,
        client: ScriptedClient,
        poller: Poller,
        clock: FakeClock,
        error: Exception,
    ) -> None:
        client.script([error, S.RUNNING])

        outcome = poller.wait_for("p-123", 600, until_state(S.RUNNING))

        assert outcome.status is PollStatus.CONVERGED
        assert outcome.poll_count == 2
        assert clock.sleeps == [2.0]

    def test_persistent_auth_error_times_out(
        self, client: ScriptedClient, poller: Poller, clock: FakeClock
    ) -> None:
        client.script([ClientAuthError("pipeline", "token expired", status_code=401)])

        with pytest.raises(ConvergenceTimeoutError) as exc_info:
            poller.wait_for("p-123", 30, until_state(S.RUNNING))

        assert exc_info.value.outcome is not None
        assert "token expired" in exc_info.value.outcome.reason
        assert client.read_count > 1
        assert clock.now == 30.0

    def test_non_positive_timeout_rejected(self, poller: Poller) -> None:
        with pytest.raises(ValidationError):
            poller.wait_for("p-123", 0, until_state(S.RUNNING))

    def test_jitter_added_to_interval(self, client: ScriptedClient, clock: FakeClock) -> None:
        client.script([S.STARTING, S.RUNNING])
        poller = Poller(client, poll_interval=10.0, jitter=2.0, clock=clock, sleep=clock.sleep)

        poller.wait_for("p-123", 600, until_state(S.RUNNING))

        assert len(clock.sleeps) == 1
        assert 10.0 <= clock.sleeps[0] <= 12.0

    def test_illegal_transition_is_logged_not_fatal(
        self,
        client: ScriptedClient,
        poller: Poller,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        client.script([S.DELETED, S.RUNNING])

        with caplog.at_level(logging.WARNING, logger="pipeline_lifecycle.orchestrators.poller"):
            outcome = poller.wait_for("p-123", 600, until_state(S.RUNNING))

        assert outcome.status is PollStatus.CONVERGED
        assert "Unexpected state transition" in caplog.text


# ===================================================================
# wait_for_absence
# ===================================================================


class TestWaitForAbsence:
    """Poller.wait_for_absence loop behaviour."""

    def test_not_found_is_success(self, client: ScriptedClient, poller: Poller) -> None:
        client.script([S.STOPPING, S.STOPPING, NotFoundError("pipeline", "gone")])

        outcome = poller.wait_for_absence("p-123", 600)

        assert outcome.status is PollStatus.CONVERGED
        assert outcome.last_state is None
        assert outcome.poll_count == 3

    def test_deleted_state_keeps_waiting(self, client: ScriptedClient, poller: Poller) -> None:
        client.script([S.DELETED, NotFoundError("pipeline", "gone")])

        outcome = poller.wait_for_absence("p-123", 600)

        assert outcome.poll_count == 2

    def test_failed_state_keeps_waiting(self, client: ScriptedClient, poller: Poller) -> None:
        client.script([S.FAILED, NotFoundError("pipeline", "gone")])

        outcome = poller.wait_for_absence("p-123", 600)

        assert outcome.status is PollStatus.CONVERGED

    def test_timeout_names_last_state(self, client: ScriptedClient, poller: Poller) -> None:
        client.script([S.STOPPING])

        with pytest.raises(ConvergenceTimeoutError) as exc_info:
            poller.wait_for_absence("p-123", 30)

        message = str(exc_info.value)
        assert "p-123" in message
        assert "deleted" in message
        assert "STOPPING" in message

    def test_transient_errors_retried(self, client: ScriptedClient, poller: Poller) -> None:
        client.script([TransportError("pipeline", "timeout"), NotFoundError("pipeline", "gone")])

        outcome = poller.wait_for_absence("p-123", 600)

        assert outcome.poll_count == 2


# ===================================================================
# Cancellation and configuration
# ===================================================================


class TestCancellation:
    def test_cancel_before_start(self, client: ScriptedClient, poller: Poller) -> None:
        event = threading.Event()
        event.set()

        with pytest.raises(PollCancelledError) as exc_info:
            poller.wait_for("p-123", 600, until_state(S.RUNNING), cancel_event=event)

        assert client.read_count == 0
        assert exc_info.value.outcome is not None
        assert exc_info.value.outcome.status is PollStatus.CANCELLED

    def test_cancel_between_reads(self, client: ScriptedClient, clock: FakeClock) -> None:
        client.script([S.STARTING])
        event = threading.Event()

        def _sleep(seconds: float) -> None:
            clock.sleep(seconds)
            event.set()

        poller = Poller(client, poll_interval=10.0, jitter=0.0, clock=clock, sleep=_sleep)

        with pytest.raises(PollCancelledError) as exc_info:
            poller.wait_for("p-123", 600, until_state(S.RUNNING), cancel_event=event)

        assert client.read_count == 1
        assert exc_info.value.outcome is not None
        assert exc_info.value.outcome.last_state is S.STARTING

    def test_cancelled_wait_does_not_affect_next_wait(
        self, client: ScriptedClient, poller: Poller
    ) -> None:
        event = threading.Event()
        event.set()
        client.script([S.RUNNING])

        with pytest.raises(PollCancelledError):
            poller.wait_for("p-123", 600, until_state(S.RUNNING), cancel_event=event)

        outcome = poller.wait_for("p-123", 600, until_state(S.RUNNING))

        assert outcome.status is PollStatus.CONVERGED
        assert client.read_count == 1

    def test_cancel_absence_wait(self, client: ScriptedClient, poller: Poller) -> None:
        event = threading.Event()
        event.set()
        client.script([S.STOPPING])

        with pytest.raises(PollCancelledError):
            poller.wait_for_absence("p-123", 600, cancel_event=event)

        assert client.read_count == 0

    def test_default_sleep_waits_on_cancel_event(self, client: ScriptedClient) -> None:
        client.script([S.STARTING])
        event = threading.Event()
        poller = Poller(client, poll_interval=3600.0, jitter=0.0)
        timer = threading.Timer(0.05, event.set)
        timer.start()
        try:
            with pytest.raises(PollCancelledError):
                poller.wait_for("p-123", 7200, until_state(S.RUNNING), cancel_event=event)
        finally:
            timer.cancel()


class TestFromConfig:
    def test_uses_config_timing(self, client: ScriptedClient, clock: FakeClock) -> None:
        config = LifecycleConfig(
            poll_interval_seconds=15.0,
            poll_jitter_seconds=0.0,
            retry_base_seconds=1.0,
            max_backoff_seconds=4.0,
        )
        poller = Poller.from_config(client, config, clock=clock, sleep=clock.sleep)
        client.script([S.STARTING, TransportError("pipeline", "x"), S.RUNNING])

        poller.wait_for("p-123", 600, until_state(S.RUNNING))

        assert clock.sleeps == [15.0, 1.0]
