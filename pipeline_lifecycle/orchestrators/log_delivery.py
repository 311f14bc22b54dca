"""Log-delivery lifecycle: create, read and delete (disable).

Log-delivery configurations are applied synchronously by the remote, so
there is nothing to poll.  The lifecycle still follows the same rules as
pipelines:

- a configuration that reads back as ``DISABLED`` no longer exists from
  the caller's point of view, so ``read`` returns ``None``;
- deleting a configuration that is already gone is a success.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pipeline_lifecycle.clients.base import NotFoundError
from pipeline_lifecycle.utils.pair_id import PairId

if TYPE_CHECKING:
    from pipeline_lifecycle.clients.log_delivery import LogDeliveryClient
    from pipeline_lifecycle.models.log_delivery import LogDeliveryConfiguration

logger = logging.getLogger(__name__)


class LogDeliveryLifecycle:
    """Lifecycle operations for account-level log-delivery configurations."""

    def __init__(self, client: LogDeliveryClient) -> None:
        self._client = client

    def create(self, conf: LogDeliveryConfiguration) -> PairId:
        """Create *conf* and return its ``account_id/config_id`` identifier."""
        config_id = self._client.create(conf)
        return PairId(conf.account_id, config_id)

    def read(self, pair_id: PairId) -> LogDeliveryConfiguration | None:
        """Return the configuration, or ``None`` if it has been disabled."""
        conf = self._client.read(pair_id.left, pair_id.right)
        if conf.is_disabled:
            logger.debug(
                "Log delivery configuration %s was disabled. Removing from state.",
                pair_id.right,
            )
            return None
        return conf

    def delete(self, pair_id: PairId) -> None:
        """Disable the configuration; an already-absent one is not an error."""
        try:
            self._client.disable(pair_id.left, pair_id.right)
        except NotFoundError:
            logger.info("Log delivery already absent | id=%s", pair_id)
