"""RemoteClient abstract base class and client error classification.

Defines the contract the lifecycle engine consumes.  The orchestrator and
poller interact exclusively with this interface; they never know which
concrete transport is behind it.

Lifecycle:
    1. ``create(spec)``: submit a new resource, returns its identifier.
    2. ``read(identifier)``: observe the current remote state.
    3. ``update(identifier, spec)``: submit a new desired configuration.
    4. ``delete(identifier)``: request teardown.

Every mutation returns as soon as the remote has *accepted* the request;
convergence is the poller's job.  No retries happen inside a client.

Errors are classified so the engine can decide what to do with them:

- ``NotFoundError``: the resource does not exist.  Success for deletes.
- ``TransportError``: the request did not complete (network, throttling,
  server error).  ``retryable`` is set.
- ``ClientError``: anything else the remote rejected.

Mutations surface every error to the caller.  While polling, every read
error except ``NotFoundError`` is backed off and retried.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from pipeline_lifecycle.core.exceptions import LifecycleError

if TYPE_CHECKING:
    from pipeline_lifecycle.models.pipeline import ObservedState, PipelineSpec


class RemoteClient(abc.ABC):
    """Abstract base class for control-plane resource clients.

    Example usage::

        client = PipelinesClient(ApiClient(config))
        pipeline_id = client.create(spec)
        observed = client.read(pipeline_id)
        client.delete(pipeline_id)
    """

    #: Human-readable resource kind used in error messages and logs.
    resource: str = "resource"

    @abc.abstractmethod
    def create(self, spec: PipelineSpec) -> str:
        """Submit a new resource and return its remote identifier.

        Raises:
            ClientError: If the remote rejected the request.
        """

    @abc.abstractmethod
    def read(self, identifier: str) -> ObservedState:
        """Return the current remote state of *identifier*.

        Raises:
            NotFoundError: If the resource does not exist.
            ClientError: On any other failure.
        """

    @abc.abstractmethod
    def update(self, identifier: str, spec: PipelineSpec) -> None:
        """Submit a new desired configuration for *identifier*.

        Raises:
            NotFoundError: If the resource does not exist.
            ClientError: On any other failure.
        """

    @abc.abstractmethod
    def delete(self, identifier: str) -> None:
        """Request teardown of *identifier*.

        Raises:
            NotFoundError: If the resource is already gone.
            ClientError: On any other failure.
        """


# ---------------------------------------------------------------------------
# Client exceptions
# ---------------------------------------------------------------------------


class ClientError(LifecycleError):
    """Base exception for remote client errors.

    Attributes:
        resource: Resource kind or path the request targeted.
        message: Human-readable error description.
        status_code: HTTP status code (``0`` if no response was received).
        error_code: Control-plane error code from the response body, if any.
        retryable: Whether the request may succeed if repeated.
    """

    default_stage = "client"
    default_code = "CLIENT_ERROR"

    def __init__(
        self,
        resource: str,
        message: str,
        *,
        status_code: int = 0,
        error_code: str = "",
        retryable: bool = False,
    ) -> None:
        self.resource = resource
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(
            message,
            retryable=retryable,
            code=self.default_code,
            stage=self.default_stage,
        )

    def __str__(self) -> str:
        return f"[{self.resource}] {self.message}"


class TransportError(ClientError):
    """The request could not be completed (network, throttling, server error)."""

    default_code = "TRANSPORT_ERROR"

    def __init__(
        self,
        resource: str,
        message: str,
        *,
        status_code: int = 0,
        error_code: str = "",
        retryable: bool = True,
    ) -> None:
        super().__init__(
            resource,
            message,
            status_code=status_code,
            error_code=error_code,
            retryable=retryable,
        )


class ClientAuthError(TransportError):
    """Authentication or authorisation failure with the control plane."""

    default_code = "CLIENT_AUTH_FAILED"

    def __init__(self, resource: str, message: str, *, status_code: int = 0) -> None:
        super().__init__(resource, message, status_code=status_code, retryable=False)


class NotFoundError(ClientError):
    """The remote resource does not exist."""

    default_code = "RESOURCE_NOT_FOUND"

    def __init__(
        self,
        resource: str,
        message: str,
        *,
        status_code: int = 404,
        error_code: str = "",
    ) -> None:
        super().__init__(
            resource,
            message,
            status_code=status_code,
            error_code=error_code,
            retryable=False,
        )
