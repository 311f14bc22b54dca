"""Pydantic model for account-level log-delivery configurations.

A log-delivery configuration tells the control plane to ship billable-usage
or audit logs for an account to a storage location.  It is applied
synchronously by the remote, so it has no lifecycle state to poll; it is
either ``ENABLED`` or ``DISABLED``, and "deleting" one means disabling it.

Computed fields (``config_id``, ``status``, ``delivery_start_time``) are
filled in by the remote and echoed back on reads.
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, Field

from pipeline_lifecycle.core.constants import MAX_CONFIG_NAME_LENGTH


class LogDeliveryStatus(enum.Enum):
    ENABLED = "ENABLED"
    DISABLED = "DISABLED"


class LogDeliveryConfiguration(BaseModel):
    """Log-delivery configuration as exchanged with the control plane.

    Attributes:
        account_id: Account that owns the configuration.
        config_id: Remote identifier (computed).
        credentials_id: Credentials used to write to storage.
        storage_configuration_id: Target storage configuration.
        workspace_ids_filter: Restrict delivery to these workspaces.
        config_name: Optional display name (at most 255 characters).
        status: ``ENABLED`` or ``DISABLED`` (computed).
        log_type: ``BILLABLE_USAGE`` or ``AUDIT_LOGS``.
        output_format: ``CSV`` or ``JSON``.
        delivery_path_prefix: Optional object-key prefix.
        delivery_start_time: First month to deliver, ``YYYY-MM`` (computed).
    """

    account_id: str
    config_id: str = ""
    credentials_id: str
    storage_configuration_id: str
    workspace_ids_filter: list[int] = Field(default_factory=list)
    config_name: str = Field(default="", max_length=MAX_CONFIG_NAME_LENGTH)
    status: str = ""
    log_type: str
    output_format: str
    delivery_path_prefix: str = ""
    delivery_start_time: str = ""

    @property
    def is_disabled(self) -> bool:
        return self.status.upper() == LogDeliveryStatus.DISABLED.value

    def to_payload(self) -> dict[str, Any]:
        """Serialise to the request body, omitting empty optional fields."""
        return self.model_dump(mode="json", exclude_defaults=True)
