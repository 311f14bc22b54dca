"""Typed models for the pipeline lifecycle engine.

Defines the data structures exchanged between the orchestrator, the
poller and the remote client:

- ``PipelineState``: Closed lifecycle-state enumeration with transition rules
- ``HealthStatus``: Remote health indicator
- ``PipelineSpec``: Desired configuration submitted by the caller
- ``ObservedState``: One snapshot of the remote pipeline, read per poll tick
- ``PollDecision``: Tri-state verdict returned by a poll predicate
- ``PollOutcome``: Result of a bounded polling loop

Design notes:
- ``PipelineSpec`` and its nested blocks are frozen pydantic models, since
  they are parsed from and serialised to the control-plane JSON.
- ``ObservedState``, ``PollDecision`` and ``PollOutcome`` are frozen
  dataclasses; the engine builds them but never mutates them.
- No magic strings; states are ``PipelineState`` members.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from pipeline_lifecycle.core.exceptions import ContractError, LifecycleError

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ModelValidationError(ValueError, LifecycleError):
    """Raised when a domain model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_stage = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        formatted = f"{model}.{field_name}={value!r}: {message}"
        LifecycleError.__init__(self, formatted)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class PipelineState(enum.Enum):
    """Lifecycle state of a remote pipeline, as reported by the control plane.

    The engine observes these states; it never drives or synthesises them.
    """

    DEPLOYING = "DEPLOYING"
    STARTING = "STARTING"
    RUNNING = "RUNNING"
    STOPPING = "STOPPING"
    DELETED = "DELETED"
    RECOVERING = "RECOVERING"
    FAILED = "FAILED"
    RESETTING = "RESETTING"
    IDLE = "IDLE"

    @classmethod
    def _missing_(cls, value: object) -> PipelineState | None:
        # The control plane has historically spelled this state "STOPPPING".
        if value == "STOPPPING":
            return cls.STOPPING
        return None

    @classmethod
    def parse(cls, raw: object) -> PipelineState:
        """Parse a wire value, raising ``ContractError`` for unknown states."""
        try:
            return cls(str(raw).upper())
        except ValueError as exc:
            msg = f"Unknown pipeline state: {raw!r}"
            raise ContractError(msg, stage="read") from exc

    @property
    def is_initial(self) -> bool:
        """Whether this is one of the transient pre-run states."""
        return self in INITIAL_STATES

    @property
    def is_terminal_failure(self) -> bool:
        return self is PipelineState.FAILED

    def can_transition_to(self, other: PipelineState) -> bool:
        """Return whether *other* may legally follow this state.

        Observations are sampled, so intermediate states can be skipped;
        the table lists every state reachable in one observed step.
        """
        return other is self or other in _TRANSITIONS[self]


INITIAL_STATES: frozenset[PipelineState] = frozenset(
    {PipelineState.DEPLOYING, PipelineState.STARTING}
)

_P = PipelineState
_TRANSITIONS: dict[PipelineState, frozenset[PipelineState]] = {
    _P.DEPLOYING: frozenset({_P.STARTING, _P.RUNNING, _P.IDLE, _P.STOPPING, _P.DELETED, _P.FAILED}),
    _P.STARTING: frozenset(
        {_P.RUNNING, _P.IDLE, _P.RECOVERING, _P.STOPPING, _P.DELETED, _P.FAILED}
    ),
    _P.RUNNING: frozenset(
        {
            _P.DEPLOYING,
            _P.STARTING,
            _P.IDLE,
            _P.RECOVERING,
            _P.RESETTING,
            _P.STOPPING,
            _P.DELETED,
            _P.FAILED,
        }
    ),
    _P.RECOVERING: frozenset({_P.RUNNING, _P.IDLE, _P.STOPPING, _P.DELETED, _P.FAILED}),
    _P.RESETTING: frozenset({_P.STARTING, _P.RUNNING, _P.STOPPING, _P.DELETED, _P.FAILED}),
    _P.IDLE: frozenset(
        {
            _P.DEPLOYING,
            _P.STARTING,
            _P.RUNNING,
            _P.RECOVERING,
            _P.RESETTING,
            _P.STOPPING,
            _P.DELETED,
            _P.FAILED,
        }
    ),
    _P.STOPPING: frozenset({_P.IDLE, _P.DELETED, _P.FAILED}),
    _P.FAILED: frozenset({_P.DEPLOYING, _P.STARTING, _P.RESETTING, _P.STOPPING, _P.DELETED}),
    _P.DELETED: frozenset(),
}
del _P


class HealthStatus(enum.Enum):
    """Health indicator reported alongside the lifecycle state."""

    HEALTHY = "HEALTHY"
    UNHEALTHY = "UNHEALTHY"


# ---------------------------------------------------------------------------
# Desired configuration (the spec submitted by the caller)
# ---------------------------------------------------------------------------

_EDITIONS = ("pro", "core", "advanced")
_CHANNELS = ("current", "preview")


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class AutoScale(_FrozenModel):
    min_workers: int = 0
    max_workers: int = 0
    mode: str = ""


class PipelineCluster(_FrozenModel):
    """Cluster block of a pipeline spec.

    Unlike a general-purpose cluster, a pipeline cluster carries a
    ``label`` and needs no Spark version.  Cloud attribute blocks, init
    scripts and log configuration are passed through untouched.
    """

    label: str = ""
    num_workers: int = 0
    autoscale: AutoScale | None = None
    node_type_id: str = ""
    driver_node_type_id: str = ""
    instance_pool_id: str = ""
    driver_instance_pool_id: str = ""
    aws_attributes: dict[str, Any] | None = None
    gcp_attributes: dict[str, Any] | None = None
    spark_conf: dict[str, str] = Field(default_factory=dict)
    spark_env_vars: dict[str, str] = Field(default_factory=dict)
    custom_tags: dict[str, str] = Field(default_factory=dict)
    ssh_public_keys: list[str] = Field(default_factory=list, max_length=10)
    init_scripts: list[dict[str, Any]] = Field(default_factory=list, max_length=10)
    cluster_log_conf: dict[str, Any] | None = None


class MavenLibrary(_FrozenModel):
    coordinates: str
    repo: str = ""
    exclusions: list[str] = Field(default_factory=list)


class NotebookLibrary(_FrozenModel):
    path: str


class PipelineLibrary(_FrozenModel):
    jar: str = ""
    maven: MavenLibrary | None = None
    whl: str = ""
    notebook: NotebookLibrary | None = None


class PipelineFilters(_FrozenModel):
    include: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)


class PipelineSpec(_FrozenModel):
    """Desired configuration of a remote pipeline.

    Only ``continuous`` influences the lifecycle engine (it changes the
    convergence rule); every other field is payload carried to and from
    the control plane.

    Attributes:
        id: Remote identifier, echoed back by reads (empty on create).
        name: Display name.
        storage: Storage root; changing it forces a new pipeline.
        configuration: Free-form key/value settings.
        clusters: Cluster blocks.
        libraries: Notebook / jar / wheel / maven libraries.
        filters: Include / exclude filters.
        continuous: Whether the pipeline runs indefinitely.
        development: Development-mode flag.
        allow_duplicate_names: Skip the remote uniqueness check on name.
        target: Target database.
        photon: Photon runtime flag.
        edition: ``pro``, ``core`` or ``advanced``.
        channel: ``current`` or ``preview``.
    """

    id: str = ""
    name: str = ""
    storage: str = ""
    configuration: dict[str, str] = Field(default_factory=dict)
    clusters: list[PipelineCluster] = Field(default_factory=list)
    libraries: list[PipelineLibrary] = Field(default_factory=list)
    filters: PipelineFilters | None = None
    continuous: bool = False
    development: bool = False
    allow_duplicate_names: bool = False
    target: str = ""
    photon: bool = False
    edition: str = "advanced"
    channel: str = "current"

    @field_validator("edition")
    @classmethod
    def _check_edition(cls, value: str) -> str:
        if value and value.lower() not in _EDITIONS:
            msg = f"edition must be one of {', '.join(_EDITIONS)}"
            raise ValueError(msg)
        return value

    @field_validator("channel")
    @classmethod
    def _check_channel(cls, value: str) -> str:
        if value and value.lower() not in _CHANNELS:
            msg = f"channel must be one of {', '.join(_CHANNELS)}"
            raise ValueError(msg)
        return value

    def to_payload(self) -> dict[str, Any]:
        """Serialise to the request body, omitting empty fields."""
        return _drop_empty(self.model_dump(mode="json"))


def _drop_empty(value: Any) -> Any:
    """Recursively drop ``None``, empty strings/collections, ``False`` and ``0``."""
    if isinstance(value, dict):
        cleaned = {k: _drop_empty(v) for k, v in value.items()}
        return {k: v for k, v in cleaned.items() if not _is_empty(v)}
    if isinstance(value, list):
        return [_drop_empty(v) for v in value]
    return value


def _is_empty(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str | dict | list):
        return len(value) == 0
    return isinstance(value, int | float) and value == 0


# ---------------------------------------------------------------------------
# Observed state
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ObservedState:
    """A single snapshot of a remote pipeline.

    Attributes:
        pipeline_id: Remote identifier.
        state: Current lifecycle state.
        health: Health indicator (``None`` if the remote omitted it).
        cause: Remote-supplied diagnostic text (set on failures).
        spec: The spec the remote pipeline was derived from, if reported.
        name: Display name.
        cluster_id: Identifier of the cluster currently running the pipeline.
        creator_user_name: User who created the pipeline.
    """

    pipeline_id: str
    state: PipelineState
    health: HealthStatus | None = None
    cause: str = ""
    spec: PipelineSpec | None = None
    name: str = ""
    cluster_id: str = ""
    creator_user_name: str = ""

    def __post_init__(self) -> None:
        _check_non_empty("ObservedState", "pipeline_id", self.pipeline_id)

    @property
    def continuous(self) -> bool:
        """Continuity flag of the derived spec (``False`` if none was reported)."""
        return self.spec is not None and self.spec.continuous

    @classmethod
    def from_payload(cls, payload: dict[str, Any], *, identifier: str = "") -> ObservedState:
        """Build an ``ObservedState`` from a control-plane read response.

        Args:
            payload: Decoded JSON body of ``GET /pipelines/{id}``.
            identifier: Identifier that was read; used when the body
                omits ``pipeline_id``.

        Raises:
            ContractError: If ``state`` is missing or unknown.
        """
        pipeline_id = str(payload.get("pipeline_id") or identifier)
        raw_state = payload.get("state")
        if raw_state is None:
            msg = f"Pipeline {pipeline_id} read response has no state"
            raise ContractError(msg, stage="read")

        raw_health = payload.get("health")
        try:
            health = HealthStatus(str(raw_health).upper()) if raw_health else None
        except ValueError:
            health = None

        raw_spec = payload.get("spec")
        try:
            spec = PipelineSpec.model_validate(raw_spec) if isinstance(raw_spec, dict) else None
        except PydanticValidationError as exc:
            msg = f"Pipeline {pipeline_id} read response has a malformed spec: {exc}"
            raise ContractError(msg, stage="read") from exc

        return cls(
            pipeline_id=pipeline_id,
            state=PipelineState.parse(raw_state),
            health=health,
            cause=str(payload.get("cause") or ""),
            spec=spec,
            name=str(payload.get("name") or ""),
            cluster_id=str(payload.get("cluster_id") or ""),
            creator_user_name=str(payload.get("creator_user_name") or ""),
        )


# ---------------------------------------------------------------------------
# Polling results
# ---------------------------------------------------------------------------


class Verdict(enum.Enum):
    """What the poll loop should do after evaluating one observation."""

    CONTINUE = "continue"
    SUCCEED = "succeed"
    FAIL = "fail"


@dataclass(frozen=True, slots=True)
class PollDecision:
    """Verdict returned by a poll predicate, with a diagnostic reason."""

    verdict: Verdict
    reason: str = ""

    @classmethod
    def succeed(cls, reason: str = "") -> PollDecision:
        return cls(Verdict.SUCCEED, reason)

    @classmethod
    def fail(cls, reason: str) -> PollDecision:
        return cls(Verdict.FAIL, reason)

    @classmethod
    def keep_waiting(cls, reason: str = "") -> PollDecision:
        return cls(Verdict.CONTINUE, reason)


class PollStatus(enum.Enum):
    CONVERGED = "converged"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class PollOutcome:
    """Result of a bounded polling loop.

    Successful waits return one; failed waits raise an error that carries
    one as its ``outcome`` attribute.

    Attributes:
        identifier: The resource that was polled.
        status: How the loop ended.
        last_state: Last observed lifecycle state (``None`` if nothing
            was observed, or the resource was confirmed absent).
        poll_count: Number of read attempts, including failed ones.
        elapsed_seconds: Time spent in the loop.
        reason: Diagnostic text (failure cause or last predicate reason).
    """

    identifier: str
    status: PollStatus
    last_state: PipelineState | None = None
    poll_count: int = 0
    elapsed_seconds: float = 0.0
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "status": self.status.value,
            "last_state": self.last_state.value if self.last_state else None,
            "poll_count": self.poll_count,
            "elapsed_seconds": self.elapsed_seconds,
            "reason": self.reason,
        }


# ---------------------------------------------------------------------------
# Validation helpers (module-private)
# ---------------------------------------------------------------------------


def _check_non_empty(model: str, field_name: str, value: str) -> None:
    """Raise `ModelValidationError` if *value* is empty or blank."""
    if not value or not value.strip():
        raise ModelValidationError(model, field_name, value, "must not be empty")
