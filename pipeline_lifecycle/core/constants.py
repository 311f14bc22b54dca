"""Shared lifecycle constants.

Centralises API paths, error codes and timing defaults that are used by
the clients, the poller and the resource handlers.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Timing defaults
# ---------------------------------------------------------------------------

DEFAULT_TIMEOUT_SECONDS: float = 20 * 60
"""Default convergence timeout for create, update and delete (20 minutes)."""

DEFAULT_POLL_INTERVAL_SECONDS: float = 10.0
DEFAULT_POLL_JITTER_SECONDS: float = 1.0
DEFAULT_RETRY_BASE_SECONDS: float = 2.0
DEFAULT_MAX_BACKOFF_SECONDS: float = 30.0
DEFAULT_HTTP_TIMEOUT_SECONDS: float = 60.0

# ---------------------------------------------------------------------------
# Control-plane API
# ---------------------------------------------------------------------------

DEFAULT_API_VERSION: str = "2.0"

PIPELINES_PATH: str = "/pipelines"
LOG_DELIVERY_PATH_TEMPLATE: str = "/accounts/{account_id}/log-delivery"

PIPELINE_URL_FRAGMENT: str = "#joblist/pipelines/"
"""Browser URL fragment for a pipeline, relative to the API host."""

#: Error code the control plane returns (with or without a 404) for a missing resource.
RESOURCE_DOES_NOT_EXIST: str = "RESOURCE_DOES_NOT_EXIST"

#: Maximum length of a log-delivery ``config_name``.
MAX_CONFIG_NAME_LENGTH: int = 255
