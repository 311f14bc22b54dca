"""Log-delivery resource handlers: payload in, payload out.

The caller addresses a configuration by the composite id
``account_id/config_id``.  A configuration that reads back as disabled is
reported with ``removed=True`` so the caller can drop it from its state.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from pipeline_lifecycle.core.exceptions import ValidationError, correlated
from pipeline_lifecycle.models.log_delivery import LogDeliveryConfiguration
from pipeline_lifecycle.models.payloads import (
    CreateLogDeliveryInput,
    CreateLogDeliveryOutput,
    DeleteLogDeliveryInput,
    ReadLogDeliveryInput,
    ReadLogDeliveryOutput,
    validate_payload,
)
from pipeline_lifecycle.orchestrators.log_delivery import LogDeliveryLifecycle
from pipeline_lifecycle.utils.pair_id import PairId

if TYPE_CHECKING:
    from pipeline_lifecycle.clients.log_delivery import LogDeliveryClient

logger = logging.getLogger("pipeline_lifecycle.resources.log_delivery")


def create_log_delivery(
    payload: dict[str, Any],
    *,
    client: LogDeliveryClient,
) -> CreateLogDeliveryOutput:
    """Create a log-delivery configuration.

    Raises:
        ContractError: ``configuration`` is missing from the payload.
        ValidationError: The configuration is invalid (e.g. a
            ``config_name`` over 255 characters).
    """
    correlation_id = str(payload.get("correlation_id", ""))
    with correlated(correlation_id):
        validate_payload(payload, CreateLogDeliveryInput, operation="create_log_delivery")
        raw = payload["configuration"]
        if not isinstance(raw, dict):
            msg = f"configuration must be an object, got {type(raw).__name__}"
            raise ValidationError(msg, stage="log_delivery")
        try:
            conf = LogDeliveryConfiguration.model_validate(raw)
        except PydanticValidationError as exc:
            msg = f"invalid log delivery configuration: {exc}"
            raise ValidationError(msg, stage="log_delivery") from exc

        pair_id = LogDeliveryLifecycle(client).create(conf)

    logger.info(
        "create_log_delivery completed | id=%s | correlation_id=%s", pair_id, correlation_id
    )
    return CreateLogDeliveryOutput(id=pair_id.pack(), config_id=pair_id.right)


def read_log_delivery(
    payload: dict[str, Any],
    *,
    client: LogDeliveryClient,
) -> ReadLogDeliveryOutput:
    """Read a log-delivery configuration; disabled ones are reported as removed."""
    with correlated(str(payload.get("correlation_id", ""))):
        validate_payload(payload, ReadLogDeliveryInput, operation="read_log_delivery")
        pair_id = PairId.unpack(str(payload["id"]), "account_id", "config_id")
        conf = LogDeliveryLifecycle(client).read(pair_id)

    if conf is None:
        return ReadLogDeliveryOutput(id=pair_id.pack(), removed=True, configuration={})
    return ReadLogDeliveryOutput(
        id=pair_id.pack(),
        removed=False,
        configuration=conf.model_dump(mode="json"),
    )


def delete_log_delivery(
    payload: dict[str, Any],
    *,
    client: LogDeliveryClient,
) -> None:
    """Disable a log-delivery configuration."""
    correlation_id = str(payload.get("correlation_id", ""))
    with correlated(correlation_id):
        validate_payload(payload, DeleteLogDeliveryInput, operation="delete_log_delivery")
        pair_id = PairId.unpack(str(payload["id"]), "account_id", "config_id")
        LogDeliveryLifecycle(client).delete(pair_id)
    logger.info(
        "delete_log_delivery completed | id=%s | correlation_id=%s", pair_id, correlation_id
    )
