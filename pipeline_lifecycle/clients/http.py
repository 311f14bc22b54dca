"""HTTP transport for the control-plane REST API.

``ApiClient`` wraps an ``httpx.Client`` and turns every failure into one
of the classified client errors from ``clients.base``:

==========================================  ============================
Condition                                   Raised
==========================================  ============================
``httpx.TransportError`` (connect, timeout)  ``TransportError`` (retryable)
404, or ``error_code`` RESOURCE_DOES_NOT_EXIST  ``NotFoundError``
401 / 403                                   ``ClientAuthError``
429, 5xx                                    ``TransportError`` (retryable)
any other 4xx                               ``ClientError``
==========================================  ============================

The concrete resource clients (``PipelinesClient``, ``LogDeliveryClient``)
build request paths and bodies on top of this class.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from pipeline_lifecycle.clients.base import (
    ClientAuthError,
    ClientError,
    NotFoundError,
    TransportError,
)
from pipeline_lifecycle.core.constants import RESOURCE_DOES_NOT_EXIST

if TYPE_CHECKING:
    from types import TracebackType

    from pipeline_lifecycle.core.config import LifecycleConfig

logger = logging.getLogger(__name__)


class ApiClient:
    """Thin JSON client bound to one control-plane host.

    Args:
        config: Lifecycle configuration (host, token, API version, timeout).
        http_client: Optional pre-built ``httpx.Client``.  Tests pass one
            backed by ``httpx.MockTransport``.  When omitted a client is
            created and owned by this instance.
    """

    def __init__(
        self,
        config: LifecycleConfig,
        *,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._config = config
        self._host = config.api_host.rstrip("/")
        self._owns_client = http_client is None
        headers = {"Accept": "application/json"}
        if config.api_token:
            headers["Authorization"] = f"Bearer {config.api_token}"
        if http_client is None:
            http_client = httpx.Client(
                base_url=f"{self._host}/api/{config.api_version}",
                headers=headers,
                timeout=config.http_timeout_seconds,
            )
        else:
            http_client.headers.update(headers)
        self._http = http_client

    @property
    def host(self) -> str:
        return self._host

    def format_url(self, *parts: str) -> str:
        """Build a browser URL on the API host, e.g. ``{host}/#joblist/pipelines/{id}``."""
        return f"{self._host}/{''.join(parts)}"

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    def get(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return self._request("GET", path, params=params)

    def post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", path, json=body)

    def put(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        return self._request("PUT", path, json=body)

    def patch(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        return self._request("PATCH", path, json=body)

    def delete(self, path: str, body: dict[str, Any] | None = None) -> dict[str, Any]:
        return self._request("DELETE", path, json=body)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        logger.debug("API request | method=%s | path=%s", method, path)
        try:
            # httpx rejects a body on DELETE via the shorthand helpers.
            response = self._http.request(method, path, params=params, json=json)
        except httpx.TransportError as exc:
            msg = f"{method} {path} failed: {exc}"
            raise TransportError(path, msg) from exc

        if response.is_success:
            if not response.content:
                return {}
            try:
                body = response.json()
            except ValueError as exc:
                msg = f"{method} {path} returned invalid JSON"
                raise ClientError(path, msg, status_code=response.status_code) from exc
            return body if isinstance(body, dict) else {"value": body}

        raise _classify(method, path, response)


def _classify(method: str, path: str, response: httpx.Response) -> ClientError:
    """Map an unsuccessful response to the matching client error."""
    status = response.status_code
    error_code, detail = _error_details(response)
    msg = f"{method} {path} returned {status}"
    if error_code:
        msg = f"{msg} {error_code}"
    if detail:
        msg = f"{msg}: {detail}"

    if status == 404 or error_code == RESOURCE_DOES_NOT_EXIST:
        return NotFoundError(path, msg, status_code=status, error_code=error_code)
    if status in (401, 403):
        return ClientAuthError(path, msg, status_code=status)
    if status == 429 or status >= 500:
        return TransportError(path, msg, status_code=status, error_code=error_code)
    return ClientError(path, msg, status_code=status, error_code=error_code)


def _error_details(response: httpx.Response) -> tuple[str, str]:
    """Extract ``(error_code, message)`` from an error body, if it is JSON."""
    try:
        body = response.json()
    except ValueError:
        return "", response.text.strip()[:200]
    if not isinstance(body, dict):
        return "", ""
    return str(body.get("error_code", "")), str(body.get("message", ""))
