"""Control-plane clients.

- RemoteClient: Abstract base class consumed by the lifecycle engine
- ApiClient: httpx transport with error classification
- PipelinesClient: RemoteClient for data-processing pipelines
- LogDeliveryClient: Account-level log-delivery configurations
"""

from pipeline_lifecycle.clients.base import (
    ClientAuthError,
    ClientError,
    NotFoundError,
    RemoteClient,
    TransportError,
)
from pipeline_lifecycle.clients.http import ApiClient
from pipeline_lifecycle.clients.log_delivery import LogDeliveryClient
from pipeline_lifecycle.clients.pipelines import PipelinesClient

__all__ = [
    "ApiClient",
    "ClientAuthError",
    "ClientError",
    "LogDeliveryClient",
    "NotFoundError",
    "PipelinesClient",
    "RemoteClient",
    "TransportError",
]
