"""Data models and schemas.

Defines the data structures used throughout the lifecycle engine:
- PipelineState / HealthStatus: Closed enumerations of remote status
- PipelineSpec: Desired pipeline configuration
- ObservedState: One polled snapshot of a remote pipeline
- PollDecision / PollOutcome: Poll predicate verdicts and loop results
- LogDeliveryConfiguration: Account-level log-delivery settings
"""

from pipeline_lifecycle.models.log_delivery import LogDeliveryConfiguration, LogDeliveryStatus
from pipeline_lifecycle.models.pipeline import (
    INITIAL_STATES,
    HealthStatus,
    ModelValidationError,
    ObservedState,
    PipelineSpec,
    PipelineState,
    PollDecision,
    PollOutcome,
    PollStatus,
    Verdict,
)

__all__ = [
    "INITIAL_STATES",
    "HealthStatus",
    "LogDeliveryConfiguration",
    "LogDeliveryStatus",
    "ModelValidationError",
    "ObservedState",
    "PipelineSpec",
    "PipelineState",
    "PollDecision",
    "PollOutcome",
    "PollStatus",
    "Verdict",
]
