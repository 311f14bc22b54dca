"""Pipeline resource handlers: payload in, payload out.

These functions are the seam between a configuration-management tool
(which thinks in JSON-like dicts) and the lifecycle engine (which thinks
in typed models).  Each handler validates its payload contract, builds a
``PipelineSpec``, resolves the per-operation timeout and delegates to
``PipelineLifecycle``.

Timeouts:
    ``payload["timeouts"]`` may carry ``create`` / ``update`` / ``delete``
    values in seconds.  Missing values fall back to
    ``LifecycleConfig.default_timeout_seconds`` (20 minutes by default).

Errors from the engine propagate unchanged apart from carrying the
payload's ``correlation_id``; only spec validation failures are translated
(into ``ValidationError``).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from pipeline_lifecycle.core.exceptions import ContractError, ValidationError, correlated
from pipeline_lifecycle.models.payloads import (
    CreatePipelineInput,
    CreatePipelineOutput,
    DeletePipelineInput,
    ReadPipelineInput,
    ReadPipelineOutput,
    UpdatePipelineInput,
    validate_payload,
)
from pipeline_lifecycle.models.pipeline import PipelineSpec
from pipeline_lifecycle.orchestrators.lifecycle import PipelineLifecycle
from pipeline_lifecycle.utils.timeouts import resolve_timeout

if TYPE_CHECKING:
    from pipeline_lifecycle.clients.pipelines import PipelinesClient
    from pipeline_lifecycle.core.config import LifecycleConfig
    from pipeline_lifecycle.orchestrators.poller import Poller

logger = logging.getLogger("pipeline_lifecycle.resources.pipeline")


def create_pipeline(
    payload: dict[str, Any],
    *,
    client: PipelinesClient,
    config: LifecycleConfig,
    poller: Poller | None = None,
) -> CreatePipelineOutput:
    """Create a pipeline and wait for it to run.

    Args:
        payload: ``{"spec": {...}, "timeouts": {"create": seconds}}``.
        client: Pipelines client.
        config: Lifecycle configuration (default timeout, poll timing).
        poller: Optional poller override.

    Returns:
        ``{"id": ..., "url": ...}``.

    Raises:
        ContractError: Required payload keys are missing.
        ValidationError: The spec or timeouts are invalid.
        LifecycleError: Any lifecycle failure (see ``PipelineLifecycle.create``).
    """
    correlation_id = str(payload.get("correlation_id", ""))
    with correlated(correlation_id):
        validate_payload(payload, CreatePipelineInput, operation="create_pipeline")
        spec = _build_spec(payload["spec"])
        timeout = resolve_timeout(payload.get("timeouts"), "create", config.default_timeout_seconds)

        logger.info(
            "create_pipeline started | name=%s | timeout=%.0fs | correlation_id=%s",
            spec.name,
            timeout,
            correlation_id,
        )
        lifecycle = PipelineLifecycle(client, poller=poller, config=config)
        pipeline_id = lifecycle.create(spec, timeout)

    return CreatePipelineOutput(id=pipeline_id, url=client.url(pipeline_id))


def read_pipeline(
    payload: dict[str, Any],
    *,
    client: PipelinesClient,
) -> ReadPipelineOutput:
    """Refresh a pipeline's observed state and spec.

    Raises:
        ContractError: Required payload keys are missing, or the remote
            returned no spec for the pipeline.
        NotFoundError: The pipeline does not exist.
    """
    correlation_id = str(payload.get("correlation_id", ""))
    with correlated(correlation_id):
        validate_payload(payload, ReadPipelineInput, operation="read_pipeline")
        pipeline_id = str(payload["id"])

        observed = PipelineLifecycle(client).read(pipeline_id)
        if observed.spec is None:
            msg = f"pipeline spec is nil for {observed.pipeline_id!r}"
            raise ContractError(msg, stage="read_pipeline")

    logger.debug(
        "read_pipeline completed | pipeline=%s | state=%s | correlation_id=%s",
        observed.pipeline_id,
        observed.state.value,
        correlation_id,
    )
    return ReadPipelineOutput(
        id=observed.pipeline_id,
        state=observed.state.value,
        health=observed.health.value if observed.health else "",
        cause=observed.cause,
        spec=observed.spec.model_dump(mode="json"),
        url=client.url(observed.pipeline_id),
    )


def update_pipeline(
    payload: dict[str, Any],
    *,
    client: PipelinesClient,
    config: LifecycleConfig,
    poller: Poller | None = None,
) -> dict[str, Any]:
    """Submit a new spec and wait for the pipeline to run again.

    Returns:
        The poll outcome as a dict.
    """
    correlation_id = str(payload.get("correlation_id", ""))
    with correlated(correlation_id):
        validate_payload(payload, UpdatePipelineInput, operation="update_pipeline")
        pipeline_id = str(payload["id"])
        spec = _build_spec(payload["spec"])
        timeout = resolve_timeout(payload.get("timeouts"), "update", config.default_timeout_seconds)

        logger.info(
            "update_pipeline started | pipeline=%s | timeout=%.0fs | correlation_id=%s",
            pipeline_id,
            timeout,
            correlation_id,
        )
        outcome = PipelineLifecycle(client, poller=poller, config=config).update(
            pipeline_id, spec, timeout
        )
    return outcome.to_dict()


def delete_pipeline(
    payload: dict[str, Any],
    *,
    client: PipelinesClient,
    config: LifecycleConfig,
    poller: Poller | None = None,
) -> dict[str, Any]:
    """Delete a pipeline and wait until it is gone.

    Returns:
        ``{"id": ..., "already_absent": bool}``.
    """
    correlation_id = str(payload.get("correlation_id", ""))
    with correlated(correlation_id):
        validate_payload(payload, DeletePipelineInput, operation="delete_pipeline")
        pipeline_id = str(payload["id"])
        timeout = resolve_timeout(payload.get("timeouts"), "delete", config.default_timeout_seconds)

        logger.info(
            "delete_pipeline started | pipeline=%s | timeout=%.0fs | correlation_id=%s",
            pipeline_id,
            timeout,
            correlation_id,
        )
        outcome = PipelineLifecycle(client, poller=poller, config=config).delete(
            pipeline_id, timeout
        )
    return {"id": pipeline_id, "already_absent": outcome is None}


def _build_spec(raw: object) -> PipelineSpec:
    if not isinstance(raw, dict):
        msg = f"spec must be an object, got {type(raw).__name__}"
        raise ValidationError(msg, stage="pipeline_spec")
    try:
        return PipelineSpec.model_validate(raw)
    except PydanticValidationError as exc:
        msg = f"invalid pipeline spec: {exc}"
        raise ValidationError(msg, stage="pipeline_spec") from exc
