"""Pipelines REST client.

Concrete ``RemoteClient`` for data-processing pipelines:

- ``POST   /pipelines``       → ``{"pipeline_id": ...}``
- ``GET    /pipelines/{id}``  → pipeline info (state, health, cause, spec)
- ``PUT    /pipelines/{id}``  → accept a new spec
- ``DELETE /pipelines/{id}``  → request teardown
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pipeline_lifecycle.clients.base import RemoteClient
from pipeline_lifecycle.core.constants import PIPELINE_URL_FRAGMENT, PIPELINES_PATH
from pipeline_lifecycle.core.exceptions import ContractError
from pipeline_lifecycle.models.pipeline import ObservedState

if TYPE_CHECKING:
    from pipeline_lifecycle.clients.http import ApiClient
    from pipeline_lifecycle.models.pipeline import PipelineSpec

logger = logging.getLogger(__name__)


class PipelinesClient(RemoteClient):
    """``RemoteClient`` implementation backed by the pipelines API."""

    resource = "pipeline"

    def __init__(self, api: ApiClient) -> None:
        self._api = api

    def create(self, spec: PipelineSpec) -> str:
        body = self._api.post(PIPELINES_PATH, spec.to_payload())
        pipeline_id = str(body.get("pipeline_id", ""))
        if not pipeline_id:
            msg = "Pipeline create response has no pipeline_id"
            raise ContractError(msg, stage="create")
        logger.info("Pipeline submitted | pipeline=%s | name=%s", pipeline_id, spec.name)
        return pipeline_id

    def read(self, identifier: str) -> ObservedState:
        body = self._api.get(f"{PIPELINES_PATH}/{identifier}")
        return ObservedState.from_payload(body, identifier=identifier)

    def update(self, identifier: str, spec: PipelineSpec) -> None:
        self._api.put(f"{PIPELINES_PATH}/{identifier}", spec.to_payload())
        logger.info("Pipeline update submitted | pipeline=%s", identifier)

    def delete(self, identifier: str) -> None:
        self._api.delete(f"{PIPELINES_PATH}/{identifier}", {})
        logger.info("Pipeline delete submitted | pipeline=%s", identifier)

    def url(self, identifier: str) -> str:
        """Browser URL of the pipeline's page."""
        return self._api.format_url(PIPELINE_URL_FRAGMENT, identifier)
