"""Lifecycle engine configuration loaded from environment variables.

All values have defaults suitable for human-timescale provisioning
operations (minutes, not seconds).  The configuration is built once by the
caller and passed explicitly to clients, pollers and resource handlers;
nothing in the package reads it from module-level state.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any numeric value
    is out of its valid range.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from pipeline_lifecycle.core.constants import (
    DEFAULT_API_VERSION,
    DEFAULT_HTTP_TIMEOUT_SECONDS,
    DEFAULT_MAX_BACKOFF_SECONDS,
    DEFAULT_POLL_INTERVAL_SECONDS,
    DEFAULT_POLL_JITTER_SECONDS,
    DEFAULT_RETRY_BASE_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
)
from pipeline_lifecycle.core.exceptions import LifecycleError


class ConfigValidationError(LifecycleError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class LifecycleConfig:
    """Immutable lifecycle engine configuration.

    Attributes:
        api_host: Control-plane base URL (e.g. ``https://example.cloud.net``).
        api_token: Bearer token sent on every request (empty disables auth).
        api_version: REST API version segment (``/api/{api_version}``).
        http_timeout_seconds: Per-request HTTP timeout.
        default_timeout_seconds: Convergence timeout used by the resource
            handlers when the caller supplies none.
        poll_interval_seconds: Sleep between reads while waiting.
        poll_jitter_seconds: Maximum random jitter added to each sleep.
        retry_base_seconds: Backoff base after a transient read failure.
        max_backoff_seconds: Cap on the transient-failure backoff.
    """

    api_host: str = ""
    api_token: str = ""
    api_version: str = DEFAULT_API_VERSION
    http_timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS
    default_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    poll_jitter_seconds: float = DEFAULT_POLL_JITTER_SECONDS
    retry_base_seconds: float = DEFAULT_RETRY_BASE_SECONDS
    max_backoff_seconds: float = DEFAULT_MAX_BACKOFF_SECONDS

    @classmethod
    def from_env(cls) -> LifecycleConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a numeric value is out of range
                or a required string value is empty.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``LIFECYCLE_POLL_INTERVAL_SECONDS=abc``).
        """
        config = cls(
            api_host=os.getenv("LIFECYCLE_API_HOST", "").rstrip("/"),
            api_token=os.getenv("LIFECYCLE_API_TOKEN", ""),
            api_version=os.getenv("LIFECYCLE_API_VERSION", DEFAULT_API_VERSION),
            http_timeout_seconds=float(
                os.getenv("LIFECYCLE_HTTP_TIMEOUT_SECONDS", str(DEFAULT_HTTP_TIMEOUT_SECONDS))
            ),
            default_timeout_seconds=float(
                os.getenv("LIFECYCLE_DEFAULT_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))
            ),
            poll_interval_seconds=float(
                os.getenv("LIFECYCLE_POLL_INTERVAL_SECONDS", str(DEFAULT_POLL_INTERVAL_SECONDS))
            ),
            poll_jitter_seconds=float(
                os.getenv("LIFECYCLE_POLL_JITTER_SECONDS", str(DEFAULT_POLL_JITTER_SECONDS))
            ),
            retry_base_seconds=float(
                os.getenv("LIFECYCLE_RETRY_BASE_SECONDS", str(DEFAULT_RETRY_BASE_SECONDS))
            ),
            max_backoff_seconds=float(
                os.getenv("LIFECYCLE_MAX_BACKOFF_SECONDS", str(DEFAULT_MAX_BACKOFF_SECONDS))
            ),
        )
        validate_config(config)
        return config


def validate_config(config: LifecycleConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if not config.api_version:
        raise ConfigValidationError(
            "LIFECYCLE_API_VERSION",
            config.api_version,
            "must not be empty",
        )

    if config.http_timeout_seconds <= 0:
        raise ConfigValidationError(
            "LIFECYCLE_HTTP_TIMEOUT_SECONDS",
            config.http_timeout_seconds,
            "must be > 0 (seconds)",
        )

    if config.default_timeout_seconds <= 0:
        raise ConfigValidationError(
            "LIFECYCLE_DEFAULT_TIMEOUT_SECONDS",
            config.default_timeout_seconds,
            "must be > 0 (seconds)",
        )

    if not 0 < config.poll_interval_seconds < config.default_timeout_seconds:
        raise ConfigValidationError(
            "LIFECYCLE_POLL_INTERVAL_SECONDS",
            config.poll_interval_seconds,
            f"must be > 0 and < LIFECYCLE_DEFAULT_TIMEOUT_SECONDS "
            f"({config.default_timeout_seconds})",
        )

    if config.poll_jitter_seconds < 0:
        raise ConfigValidationError(
            "LIFECYCLE_POLL_JITTER_SECONDS",
            config.poll_jitter_seconds,
            "must be >= 0 (seconds)",
        )

    if config.retry_base_seconds <= 0:
        raise ConfigValidationError(
            "LIFECYCLE_RETRY_BASE_SECONDS",
            config.retry_base_seconds,
            "must be > 0 (seconds)",
        )

    if config.max_backoff_seconds < config.retry_base_seconds:
        raise ConfigValidationError(
            "LIFECYCLE_MAX_BACKOFF_SECONDS",
            config.max_backoff_seconds,
            f"must be >= LIFECYCLE_RETRY_BASE_SECONDS ({config.retry_base_seconds})",
        )
