"""Typed payload schemas for the resource-handler contracts.

Every resource handler receives and returns a JSON-serialisable dict.
These ``TypedDict`` definitions make the contracts explicit so that
pyright catches key mismatches at analysis time and ``validate_payload``
catches them at runtime.  Every input may carry an optional
``correlation_id`` that handlers log and stamp onto raised errors.

Usage::

    from pipeline_lifecycle.models.payloads import CreatePipelineInput, validate_payload

    def create_pipeline(payload: dict, ...) -> ...:
        validate_payload(payload, CreatePipelineInput, operation="create_pipeline")
        # payload is now known to contain all required keys
"""

from __future__ import annotations

from typing import Any, NotRequired, TypedDict

from pipeline_lifecycle.core.exceptions import ContractError

# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class OperationTimeouts(TypedDict, total=False):
    """Per-operation convergence timeouts in seconds."""

    create: float
    update: float
    delete: float


# ---------------------------------------------------------------------------
# Pipelines
# ---------------------------------------------------------------------------


class CreatePipelineInput(TypedDict):
    """Caller → ``create_pipeline``."""

    spec: dict[str, Any]
    timeouts: NotRequired[OperationTimeouts]
    correlation_id: NotRequired[str]


class CreatePipelineOutput(TypedDict):
    """``create_pipeline`` → caller."""

    id: str
    url: str


class ReadPipelineInput(TypedDict):
    """Caller → ``read_pipeline``."""

    id: str
    correlation_id: NotRequired[str]


class ReadPipelineOutput(TypedDict):
    """``read_pipeline`` → caller."""

    id: str
    state: str
    health: str
    cause: str
    spec: dict[str, Any]
    url: str


class UpdatePipelineInput(TypedDict):
    """Caller → ``update_pipeline``."""

    id: str
    spec: dict[str, Any]
    timeouts: NotRequired[OperationTimeouts]
    correlation_id: NotRequired[str]


class DeletePipelineInput(TypedDict):
    """Caller → ``delete_pipeline``."""

    id: str
    timeouts: NotRequired[OperationTimeouts]
    correlation_id: NotRequired[str]


# ---------------------------------------------------------------------------
# Log delivery
# ---------------------------------------------------------------------------


class CreateLogDeliveryInput(TypedDict):
    """Caller → ``create_log_delivery``."""

    configuration: dict[str, Any]
    correlation_id: NotRequired[str]


class CreateLogDeliveryOutput(TypedDict):
    """``create_log_delivery`` → caller.  ``id`` is ``account_id/config_id``."""

    id: str
    config_id: str


class ReadLogDeliveryInput(TypedDict):
    """Caller → ``read_log_delivery``."""

    id: str
    correlation_id: NotRequired[str]


class ReadLogDeliveryOutput(TypedDict):
    """``read_log_delivery`` → caller.  ``removed`` is set for disabled configs."""

    id: str
    removed: bool
    configuration: dict[str, Any]


class DeleteLogDeliveryInput(TypedDict):
    """Caller → ``delete_log_delivery``."""

    id: str
    correlation_id: NotRequired[str]


# ---------------------------------------------------------------------------
# Required-key registrations (used by validate_payload)
# ---------------------------------------------------------------------------

_REQUIRED_KEYS: dict[type, frozenset[str]] = {
    CreatePipelineInput: frozenset({"spec"}),
    ReadPipelineInput: frozenset({"id"}),
    UpdatePipelineInput: frozenset({"id", "spec"}),
    DeletePipelineInput: frozenset({"id"}),
    CreateLogDeliveryInput: frozenset({"configuration"}),
    ReadLogDeliveryInput: frozenset({"id"}),
    DeleteLogDeliveryInput: frozenset({"id"}),
}


# ---------------------------------------------------------------------------
# Runtime validation
# ---------------------------------------------------------------------------


def validate_payload(
    raw: dict[str, Any],
    schema: type,
    *,
    operation: str,
) -> None:
    """Validate that *raw* contains the required keys for *schema*.

    Raises:
        ContractError: If required keys are missing from the payload.
    """
    required = _REQUIRED_KEYS.get(schema)
    if required is None:
        return

    missing = required - raw.keys()
    if missing:
        msg = f"{operation}: missing required payload key(s): {', '.join(sorted(missing))}"
        raise ContractError(msg, stage=operation, code="PAYLOAD_MISSING_KEYS")
