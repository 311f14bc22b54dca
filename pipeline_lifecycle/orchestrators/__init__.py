"""Lifecycle orchestrators.

Sequences mutating requests with bounded convergence waits:
- Poller: Bounded, deadline-aware polling loop
- PipelineLifecycle: create / update / delete with compensation
- LogDeliveryLifecycle: create / read / disable
"""

from pipeline_lifecycle.orchestrators.lifecycle import CompensationFailedError, PipelineLifecycle
from pipeline_lifecycle.orchestrators.log_delivery import LogDeliveryLifecycle
from pipeline_lifecycle.orchestrators.poller import (
    ConvergenceTimeoutError,
    PollCancelledError,
    Poller,
    ProvisioningFailedError,
    until_state,
)

__all__ = [
    "CompensationFailedError",
    "ConvergenceTimeoutError",
    "LogDeliveryLifecycle",
    "PipelineLifecycle",
    "PollCancelledError",
    "Poller",
    "ProvisioningFailedError",
    "until_state",
]
