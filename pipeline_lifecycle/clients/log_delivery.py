"""Log-delivery REST client.

Account-scoped endpoints:

- ``POST  /accounts/{account}/log-delivery``          create
- ``GET   /accounts/{account}/log-delivery/{config}`` read
- ``PATCH /accounts/{account}/log-delivery/{config}`` enable / disable

Both the request and response bodies wrap the configuration in a
``log_delivery_configuration`` object.  The remote has no delete; a
configuration is retired by disabling it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from pipeline_lifecycle.core.constants import LOG_DELIVERY_PATH_TEMPLATE
from pipeline_lifecycle.core.exceptions import ContractError
from pipeline_lifecycle.models.log_delivery import LogDeliveryConfiguration, LogDeliveryStatus

if TYPE_CHECKING:
    from pipeline_lifecycle.clients.http import ApiClient

logger = logging.getLogger(__name__)

_WRAPPER_KEY = "log_delivery_configuration"


class LogDeliveryClient:
    """Client for account-level log-delivery configurations."""

    resource = "log_delivery"

    def __init__(self, api: ApiClient) -> None:
        self._api = api

    def create(self, conf: LogDeliveryConfiguration) -> str:
        """Create a configuration and return its ``config_id``."""
        body = self._api.post(
            LOG_DELIVERY_PATH_TEMPLATE.format(account_id=conf.account_id),
            {_WRAPPER_KEY: conf.to_payload()},
        )
        config_id = str(_unwrap(body).get("config_id", ""))
        if not config_id:
            msg = "Log delivery create response has no config_id"
            raise ContractError(msg, stage="create")
        logger.info(
            "Log delivery created | account=%s | config=%s | log_type=%s",
            conf.account_id,
            config_id,
            conf.log_type,
        )
        return config_id

    def read(self, account_id: str, config_id: str) -> LogDeliveryConfiguration:
        body = self._api.get(_config_path(account_id, config_id))
        try:
            return LogDeliveryConfiguration.model_validate(_unwrap(body))
        except PydanticValidationError as exc:
            msg = f"Log delivery {config_id} read response is malformed: {exc}"
            raise ContractError(msg, stage="read") from exc

    def disable(self, account_id: str, config_id: str) -> None:
        self._api.patch(
            _config_path(account_id, config_id),
            {"status": LogDeliveryStatus.DISABLED.value},
        )
        logger.info("Log delivery disabled | account=%s | config=%s", account_id, config_id)


def _config_path(account_id: str, config_id: str) -> str:
    return f"{LOG_DELIVERY_PATH_TEMPLATE.format(account_id=account_id)}/{config_id}"


def _unwrap(body: dict[str, Any]) -> dict[str, Any]:
    inner = body.get(_WRAPPER_KEY)
    if not isinstance(inner, dict):
        msg = f"Log delivery response has no {_WRAPPER_KEY!r} object"
        raise ContractError(msg, stage="log_delivery")
    return inner
