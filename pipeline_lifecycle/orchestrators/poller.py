"""Bounded polling loop for asynchronously-provisioned resources.

The poller repeatedly reads a remote resource and hands each observation
to a *predicate* that returns a tri-state ``PollDecision``:

- ``SUCCEED``: the resource converged; return a ``PollOutcome``.
- ``FAIL``: the resource reached a terminal failure; raise
  ``ProvisioningFailedError`` immediately, whatever time is left.
- ``CONTINUE``: not there yet; sleep the poll interval and read again.

Read failures are treated like ``CONTINUE``: logged, backed off
exponentially and retried until the deadline.  That covers transport and
auth errors, rejected requests and malformed read responses alike; a wait
only ends on a predicate verdict, the deadline or cancellation.  The one
read error with its own meaning is ``NotFoundError``: terminal while
waiting for a resource to converge, and the success signal while waiting
for it to disappear.

Timing:
    The deadline is checked before every read.  A read that is already in
    flight when the deadline passes is allowed to complete, but no further
    read is issued; sleeps are clipped to the time remaining.

Cancellation:
    Each wait takes its own optional ``cancel_event``.  Setting it wakes a
    sleeping wait and stops the loop before its next read.  The event
    belongs to the call, so cancelling one wait never affects another wait
    on the same poller.

The clock, sleep and random source are injectable so tests never sleep.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from typing import TYPE_CHECKING

from pipeline_lifecycle.clients.base import ClientError, NotFoundError
from pipeline_lifecycle.core.constants import (
    DEFAULT_MAX_BACKOFF_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_JITTER_SECONDS,
    DEFAULT_RETRY_BASE_SECONDS,
)
from pipeline_lifecycle.core.exceptions import (
    ContractError,
    PermanentError,
    TransientError,
    ValidationError,
)
from pipeline_lifecycle.models.pipeline import (
    ObservedState,
    PipelineState,
    PollDecision,
    PollOutcome,
    PollStatus,
    Verdict,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from pipeline_lifecycle.clients.base import RemoteClient
    from pipeline_lifecycle.core.config import LifecycleConfig

    Predicate = Callable[[ObservedState], PollDecision]

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Poll errors
# ---------------------------------------------------------------------------


class ConvergenceTimeoutError(TransientError):
    """The deadline elapsed before the resource reached the desired state.

    Attributes:
        identifier: The resource that was polled.
        timeout_seconds: The timeout that elapsed.
        last_state: Last observed lifecycle state (``None`` if no read succeeded).
        outcome: The ``PollOutcome`` of the loop.
    """

    default_stage = "poll"
    default_code = "CONVERGENCE_TIMEOUT"

    def __init__(
        self,
        identifier: str,
        timeout_seconds: float,
        last_state: PipelineState | None,
        *,
        outcome: PollOutcome | None = None,
        waiting_for: str = "",
    ) -> None:
        self.identifier = identifier
        self.timeout_seconds = timeout_seconds
        self.last_state = last_state
        self.outcome = outcome
        observed = last_state.value if last_state else "unknown"
        target = f" to be {waiting_for}" if waiting_for else ""
        msg = (
            f"timed out after {timeout_seconds:.0f}s waiting for {identifier}{target}; "
            f"last observed state: {observed}"
        )
        super().__init__(msg)


class ProvisioningFailedError(PermanentError):
    """The remote resource entered a terminal failure state.

    Attributes:
        identifier: The resource that failed.
        cause: Remote-supplied diagnostic text.
        outcome: The ``PollOutcome`` of the loop.
    """

    default_stage = "poll"
    default_code = "PROVISIONING_FAILED"

    def __init__(
        self,
        identifier: str,
        cause: str = "",
        *,
        outcome: PollOutcome | None = None,
    ) -> None:
        self.identifier = identifier
        self.cause = cause
        self.outcome = outcome
        msg = f"{identifier} has failed"
        if cause:
            msg = f"{msg}: {cause}"
        super().__init__(msg)


class PollCancelledError(TransientError):
    """The poll loop was cancelled before reaching a terminal outcome."""

    default_stage = "poll"
    default_code = "POLL_CANCELLED"

    def __init__(self, identifier: str, *, outcome: PollOutcome | None = None) -> None:
        self.identifier = identifier
        self.outcome = outcome
        super().__init__(f"polling {identifier} was cancelled")


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def until_state(desired: PipelineState, *, continuous: bool = False) -> Predicate:
    """Build a predicate that waits for *desired*.

    Args:
        desired: The lifecycle state that counts as converged.
        continuous: Continuity flag of the submitted spec.  The flag on the
            observed (derived-from) spec wins when the remote reports one.

    A continuous resource never settles into a single steady state, so it
    converges as soon as it leaves the initial transient states.  A
    ``FAILED`` observation is always a terminal failure.
    """

    def _evaluate(observed: ObservedState) -> PollDecision:
        state = observed.state
        if state is desired:
            return PollDecision.succeed(f"reached {state.value}")
        if state.is_terminal_failure:
            return PollDecision.fail(observed.cause)
        is_continuous = observed.spec.continuous if observed.spec is not None else continuous
        if is_continuous and not state.is_initial:
            return PollDecision.succeed(f"continuous pipeline is {state.value}")
        return PollDecision.keep_waiting(
            f"{observed.pipeline_id} is in state {state.value}, not yet in state {desired.value}"
        )

    return _evaluate


def _until_absent(observed: ObservedState) -> PollDecision:
    return PollDecision.keep_waiting(
        f"{observed.pipeline_id} is in state {observed.state.value}, not yet deleted"
    )


# ---------------------------------------------------------------------------
# Poller
# ---------------------------------------------------------------------------


class Poller:
    """Drive a bounded polling loop against a ``RemoteClient``.

    Args:
        client: Client used for ``read``.
        poll_interval: Seconds between reads while not yet converged.
        jitter: Maximum random seconds added to each poll interval.
        retry_base: Backoff base after a read failure; doubles
            per consecutive failure.
        max_backoff: Cap on the read-failure backoff.
        clock: Monotonic clock returning seconds.
        sleep: Sleep function; defaults to waiting on the call's cancel event.
        rng: Random source for jitter.
    """

    def __init__(
        self,
        client: RemoteClient,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        jitter: float = DEFAULT_POLL_JITTER_SECONDS,
        retry_base: float = DEFAULT_RETRY_BASE_SECONDS,
        max_backoff: float = DEFAULT_MAX_BACKOFF_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], object] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._client = client
        self._poll_interval = poll_interval
        self._jitter = jitter
        self._retry_base = retry_base
        self._max_backoff = max_backoff
        self._clock = clock
        self._sleep = sleep
        self._rng = rng or random.Random()

    @classmethod
    def from_config(cls, client: RemoteClient, config: LifecycleConfig, **kwargs: object) -> Poller:
        """Build a poller using the timing values from *config*."""
        return cls(
            client,
            poll_interval=config.poll_interval_seconds,
            jitter=config.poll_jitter_seconds,
            retry_base=config.retry_base_seconds,
            max_backoff=config.max_backoff_seconds,
            **kwargs,  # type: ignore[arg-type]
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def wait_for(
        self,
        identifier: str,
        timeout: float,
        predicate: Predicate,
        *,
        cancel_event: threading.Event | None = None,
    ) -> PollOutcome:
        """Poll *identifier* until *predicate* succeeds.

        Returns:
            A ``CONVERGED`` outcome.

        Raises:
            ProvisioningFailedError: The predicate reported a terminal failure.
            ConvergenceTimeoutError: The deadline elapsed first.
            PollCancelledError: *cancel_event* was set.
            NotFoundError: The resource disappeared.
        """
        return self._run(
            identifier, timeout, predicate, absent_is_success=False, cancel_event=cancel_event
        )

    def wait_for_absence(
        self,
        identifier: str,
        timeout: float,
        *,
        cancel_event: threading.Event | None = None,
    ) -> PollOutcome:
        """Poll *identifier* until a read reports it no longer exists.

        Returns:
            A ``CONVERGED`` outcome with ``last_state`` ``None``.

        Raises:
            ConvergenceTimeoutError: The resource still existed at the deadline.
            PollCancelledError: *cancel_event* was set.
        """
        return self._run(
            identifier, timeout, _until_absent, absent_is_success=True, cancel_event=cancel_event
        )

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def _run(
        self,
        identifier: str,
        timeout: float,
        predicate: Predicate,
        *,
        absent_is_success: bool,
        cancel_event: threading.Event | None,
    ) -> PollOutcome:
        if timeout <= 0:
            msg = f"timeout must be > 0 seconds, got {timeout!r}"
            raise ValidationError(msg, stage="poll")

        cancel = cancel_event or threading.Event()
        start = self._clock()
        deadline = start + timeout
        poll_count = 0
        failures = 0
        last_state: PipelineState | None = None
        reason = ""

        def _outcome(status: PollStatus, state: PipelineState | None = None) -> PollOutcome:
            return PollOutcome(
                identifier=identifier,
                status=status,
                last_state=state,
                poll_count=poll_count,
                elapsed_seconds=self._clock() - start,
                reason=reason,
            )

        while self._clock() < deadline:
            if cancel.is_set():
                logger.warning("Poll cancelled | id=%s | poll_count=%d", identifier, poll_count)
                raise PollCancelledError(identifier, outcome=_outcome(PollStatus.CANCELLED, last_state))

            poll_count += 1
            try:
                observed = self._client.read(identifier)
            except NotFoundError:
                if not absent_is_success:
                    raise
                reason = "resource no longer exists"
                logger.info(
                    "Poll result | id=%s | absent=True | poll_count=%d",
                    identifier,
                    poll_count,
                )
                return _outcome(PollStatus.CONVERGED)
            except (ClientError, ContractError) as exc:
                failures += 1
                backoff = min(self._retry_base * (2 ** (failures - 1)), self._max_backoff)
                reason = str(exc)
                logger.warning(
                    "Poll read error (attempt %d) | id=%s | backoff=%.1fs | error=%s",
                    failures,
                    identifier,
                    backoff,
                    exc,
                )
                self._pause(backoff, deadline, cancel)
                continue

            failures = 0
            if last_state is not None and not last_state.can_transition_to(observed.state):
                logger.warning(
                    "Unexpected state transition | id=%s | from=%s | to=%s",
                    identifier,
                    last_state.value,
                    observed.state.value,
                )
            last_state = observed.state

            decision = predicate(observed)
            reason = decision.reason

            if decision.verdict is Verdict.SUCCEED:
                logger.info(
                    "Poll converged | id=%s | state=%s | poll_count=%d | reason=%s",
                    identifier,
                    last_state.value,
                    poll_count,
                    reason,
                )
                return _outcome(PollStatus.CONVERGED, last_state)

            if decision.verdict is Verdict.FAIL:
                logger.error(
                    "Poll failed | id=%s | state=%s | poll_count=%d | cause=%s",
                    identifier,
                    last_state.value,
                    poll_count,
                    reason,
                )
                raise ProvisioningFailedError(
                    identifier,
                    reason,
                    outcome=_outcome(PollStatus.FAILED, last_state),
                )

            logger.debug("Poll result | id=%s | poll_count=%d | %s", identifier, poll_count, reason)
            self._pause(self._poll_interval + self._rng.uniform(0, self._jitter), deadline, cancel)

        logger.warning(
            "Poll timeout | id=%s | timeout=%.0fs | poll_count=%d | last_state=%s",
            identifier,
            timeout,
            poll_count,
            last_state.value if last_state else "unknown",
        )
        raise ConvergenceTimeoutError(
            identifier,
            timeout,
            last_state,
            outcome=_outcome(PollStatus.TIMED_OUT, last_state),
            waiting_for="deleted" if absent_is_success else "",
        )

    def _pause(self, delay: float, deadline: float, cancel: threading.Event) -> None:
        remaining = deadline - self._clock()
        if remaining <= 0:
            return
        if self._sleep is None:
            cancel.wait(min(delay, remaining))
        else:
            self._sleep(min(delay, remaining))
