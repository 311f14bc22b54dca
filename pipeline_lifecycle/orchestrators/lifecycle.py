"""Pipeline lifecycle orchestrator: create, read, update and delete.

Sequences each mutating request with a bounded convergence wait and owns
the partial-failure handling:

- **create** → ``client.create`` → wait for ``RUNNING``.  If the wait
  fails, the new pipeline is deleted as compensation.  A successful
  clean-up re-raises the original convergence error; a failed clean-up
  raises ``CompensationFailedError`` naming both failures, because the
  remote pipeline may now be orphaned.
- **update** → ``client.update`` → wait for ``RUNNING``.  No compensation:
  the existing pipeline stays in place and the caller decides what to do.
- **delete** → ``client.delete`` → wait until a read reports the pipeline
  absent.  Deleting a pipeline that is already gone is a success.
- **read** → plain passthrough for refresh-only use.

Every operation takes an explicit ``timeout`` in seconds and an optional
``cancel_event`` scoped to that call.  Cancelling a create still runs the
compensating delete, uncancelled, before ``PollCancelledError`` surfaces.

Concurrency:
    Each call runs one sequential control flow and shares no state with
    other calls.  The caller must ensure that at most one lifecycle
    operation is in flight per pipeline identifier; this is not enforced.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pipeline_lifecycle.clients.base import NotFoundError
from pipeline_lifecycle.core.exceptions import LifecycleError, PermanentError
from pipeline_lifecycle.models.pipeline import PipelineState
from pipeline_lifecycle.orchestrators.poller import Poller, until_state

if TYPE_CHECKING:
    import threading

    from pipeline_lifecycle.clients.base import RemoteClient
    from pipeline_lifecycle.core.config import LifecycleConfig
    from pipeline_lifecycle.models.pipeline import ObservedState, PipelineSpec, PollOutcome

logger = logging.getLogger(__name__)


class CompensationFailedError(PermanentError):
    """Clean-up after a failed create also failed.

    The remote pipeline may still exist and need manual clean-up.

    Attributes:
        identifier: The pipeline that could not be cleaned up.
        original: The convergence error that triggered the clean-up.
        cleanup_error: The error raised by the compensating delete.
        orphaned: Always ``True``; the remote resource may be orphaned.
    """

    default_stage = "create"
    default_code = "COMPENSATION_FAILED"

    def __init__(
        self,
        identifier: str,
        original: BaseException,
        cleanup_error: BaseException,
    ) -> None:
        self.identifier = identifier
        self.original = original
        self.cleanup_error = cleanup_error
        self.orphaned = True
        msg = (
            f"multiple errors occurred when creating pipeline {identifier}. "
            f'Error while waiting for creation: "{original}"; '
            f'error while attempting to clean up failed pipeline: "{cleanup_error}". '
            f"The pipeline may be orphaned and require manual clean-up."
        )
        super().__init__(msg)

    def to_error_dict(self) -> dict[str, object]:
        payload = super().to_error_dict()
        payload["identifier"] = self.identifier
        payload["orphaned"] = self.orphaned
        payload["original_error"] = str(self.original)
        payload["cleanup_error"] = str(self.cleanup_error)
        return payload


class PipelineLifecycle:
    """Create, update and delete pipelines, waiting for each to converge.

    Args:
        client: Remote client for the pipelines API.
        poller: Poller to wait with.  Built from *config* (or defaults)
            when omitted.
        config: Lifecycle configuration used to build the default poller.
    """

    def __init__(
        self,
        client: RemoteClient,
        *,
        poller: Poller | None = None,
        config: LifecycleConfig | None = None,
    ) -> None:
        self._client = client
        if poller is None:
            poller = Poller.from_config(client, config) if config is not None else Poller(client)
        self._poller = poller

    @property
    def client(self) -> RemoteClient:
        return self._client

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(
        self,
        spec: PipelineSpec,
        timeout: float,
        *,
        cancel_event: threading.Event | None = None,
    ) -> str:
        """Create a pipeline and wait until it is running.

        Args:
            spec: Desired configuration.
            timeout: Seconds to wait for convergence (and, on failure,
                for the compensating delete).
            cancel_event: Stops the convergence wait when set.

        Returns:
            The new pipeline identifier.

        Raises:
            ClientError: The create request itself failed; nothing was
                provisioned.
            ConvergenceTimeoutError, ProvisioningFailedError,
            PollCancelledError: The pipeline did not converge and was
                cleaned up.
            CompensationFailedError: The pipeline did not converge and
                could not be cleaned up.
        """
        identifier = self._client.create(spec)
        logger.info(
            "Pipeline create accepted | pipeline=%s | continuous=%s | timeout=%.0fs",
            identifier,
            spec.continuous,
            timeout,
        )

        try:
            self._poller.wait_for(
                identifier,
                timeout,
                until_state(PipelineState.RUNNING, continuous=spec.continuous),
                cancel_event=cancel_event,
            )
        except LifecycleError as exc:
            logger.info(
                "Pipeline creation failed, attempting to clean up pipeline %s | error=%s",
                identifier,
                exc,
            )
            try:
                self.delete(identifier, timeout)
            except LifecycleError as cleanup_exc:
                logger.error(
                    "Unable to delete pipeline %s; this resource needs to be manually "
                    "cleaned up | error=%s",
                    identifier,
                    cleanup_exc,
                )
                raise CompensationFailedError(identifier, exc, cleanup_exc) from exc
            logger.info("Successfully cleaned up pipeline %s", identifier)
            raise

        logger.info("Pipeline created | pipeline=%s", identifier)
        return identifier

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def read(self, identifier: str) -> ObservedState:
        """Return the current remote state of *identifier*."""
        return self._client.read(identifier)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(
        self,
        identifier: str,
        spec: PipelineSpec,
        timeout: float,
        *,
        cancel_event: threading.Event | None = None,
    ) -> PollOutcome:
        """Submit *spec* for *identifier* and wait until it is running again.

        Errors from the update request propagate unmodified.  A failed
        wait leaves the existing pipeline in place.
        """
        self._client.update(identifier, spec)
        logger.info("Pipeline update accepted | pipeline=%s | timeout=%.0fs", identifier, timeout)
        return self._poller.wait_for(
            identifier,
            timeout,
            until_state(PipelineState.RUNNING, continuous=spec.continuous),
            cancel_event=cancel_event,
        )

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete(
        self,
        identifier: str,
        timeout: float,
        *,
        cancel_event: threading.Event | None = None,
    ) -> PollOutcome | None:
        """Delete *identifier* and wait until it no longer exists.

        Returns:
            The absence-poll outcome, or ``None`` when the pipeline was
            already gone (no polling happens in that case).

        Raises:
            ConvergenceTimeoutError: The pipeline still existed at the
                deadline; the message names its last observed state.
            PollCancelledError: *cancel_event* was set.
            ClientError: The delete request failed for a reason other
                than the pipeline being absent.
        """
        try:
            self._client.delete(identifier)
        except NotFoundError:
            logger.info("Pipeline already absent | pipeline=%s", identifier)
            return None

        outcome = self._poller.wait_for_absence(identifier, timeout, cancel_event=cancel_event)
        logger.info(
            "Pipeline deleted | pipeline=%s | poll_count=%d | elapsed=%.1fs",
            identifier,
            outcome.poll_count,
            outcome.elapsed_seconds,
        )
        return outcome
