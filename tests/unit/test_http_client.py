"""Tests for the control-plane HTTP transport.

Uses ``httpx.MockTransport`` so requests never leave the process.
Covers request construction, JSON decoding and the mapping of HTTP
failures onto the client error taxonomy.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from unittest.mock import MagicMock

import httpx
import pytest

from pipeline_lifecycle.clients.base import (
    ClientAuthError,
    ClientError,
    NotFoundError,
    TransportError,
)
from pipeline_lifecycle.clients.http import ApiClient
from pipeline_lifecycle.core.config import LifecycleConfig

HOST = "https://ws.example.net"
CONFIG = LifecycleConfig(api_host=HOST, api_token="dapi-secret")

Handler = Callable[[httpx.Request], httpx.Response]


def _api(handler: Handler) -> ApiClient:
    http = httpx.Client(transport=httpx.MockTransport(handler), base_url=f"{HOST}/api/2.0")
    return ApiClient(CONFIG, http_client=http)


class TestRequests:
    """Request construction."""

    def test_get_sends_bearer_token_and_decodes_json(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"pipeline_id": "p-1", "state": "RUNNING"})

        body = _api(handler).get("/pipelines/p-1")

        assert body == {"pipeline_id": "p-1", "state": "RUNNING"}
        assert seen[0].method == "GET"
        assert seen[0].url == httpx.URL(f"{HOST}/api/2.0/pipelines/p-1")
        assert seen[0].headers["Authorization"] == "Bearer dapi-secret"

    def test_post_sends_json_body(self) -> None:
        seen: list[dict[str, object]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"pipeline_id": "p-1"})

        _api(handler).post("/pipelines", {"name": "etl"})

        assert seen == [{"name": "etl"}]

    def test_delete_can_carry_body(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        assert _api(handler).delete("/pipelines/p-1", {}) == {}
        assert seen[0].method == "DELETE"
        assert seen[0].content == b"{}"

    def test_empty_success_body_is_empty_dict(self) -> None:
        assert _api(lambda _r: httpx.Response(200)).put("/pipelines/p-1", {}) == {}

    def test_non_object_body_is_wrapped(self) -> None:
        api = _api(lambda _r: httpx.Response(200, json=[1, 2]))
        assert api.patch("/x", {}) == {"value": [1, 2]}

    def test_invalid_json_is_client_error(self) -> None:
        api = _api(lambda _r: httpx.Response(200, content=b"<html>"))
        with pytest.raises(ClientError, match="invalid JSON"):
            api.get("/pipelines/p-1")

    def test_format_url(self) -> None:
        api = _api(lambda _r: httpx.Response(200))
        assert api.format_url("#joblist/pipelines/", "p-1") == f"{HOST}/#joblist/pipelines/p-1"


class TestErrorClassification:
    """HTTP failures map onto the client error taxonomy."""

    def test_404_is_not_found(self) -> None:
        api = _api(
            lambda _r: httpx.Response(
                404,
                json={"error_code": "RESOURCE_DOES_NOT_EXIST", "message": "Pipeline p-1 does not exist"},
            )
        )

        with pytest.raises(NotFoundError) as exc_info:
            api.get("/pipelines/p-1")

        err = exc_info.value
        assert err.status_code == 404
        assert err.error_code == "RESOURCE_DOES_NOT_EXIST"
        assert "GET /pipelines/p-1 returned 404 RESOURCE_DOES_NOT_EXIST" in str(err)
        assert "does not exist" in str(err)

    def test_resource_does_not_exist_code_is_not_found_on_400(self) -> None:
        api = _api(
            lambda _r: httpx.Response(400, json={"error_code": "RESOURCE_DOES_NOT_EXIST"})
        )
        with pytest.raises(NotFoundError):
            api.delete("/pipelines/p-1", {})

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_failures(self, status: int) -> None:
        api = _api(lambda _r: httpx.Response(status, json={"message": "denied"}))

        with pytest.raises(ClientAuthError) as exc_info:
            api.get("/pipelines/p-1")

        assert exc_info.value.retryable is False
        assert exc_info.value.status_code == status

    @pytest.mark.parametrize("status", [429, 500, 502, 503])
    def test_throttling_and_server_errors_are_retryable(self, status: int) -> None:
        api = _api(lambda _r: httpx.Response(status, text="try later"))

        with pytest.raises(TransportError) as exc_info:
            api.get("/pipelines/p-1")

        err = exc_info.value
        assert err.retryable is True
        assert not isinstance(err, ClientAuthError)
        assert "try later" in str(err)

    def test_other_4xx_is_permanent_client_error(self) -> None:
        api = _api(
            lambda _r: httpx.Response(
                400, json={"error_code": "INVALID_PARAMETER_VALUE", "message": "bad storage"}
            )
        )

        with pytest.raises(ClientError) as exc_info:
            api.post("/pipelines", {})

        err = exc_info.value
        assert type(err) is ClientError
        assert err.retryable is False
        assert err.error_code == "INVALID_PARAMETER_VALUE"

    def test_network_failure_is_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(TransportError, match="connection refused") as exc_info:
            _api(handler).get("/pipelines/p-1")

        assert exc_info.value.retryable is True
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


class TestClientLifecycle:
    """Ownership of the underlying httpx client."""

    def test_builds_own_client(self) -> None:
        with ApiClient(CONFIG) as api:
            assert api.host == HOST
            assert str(api._http.base_url) == f"{HOST}/api/2.0/"  # noqa: SLF001
            assert api._http.headers["Authorization"] == "Bearer dapi-secret"  # noqa: SLF001

    def test_no_auth_header_without_token(self) -> None:
        with ApiClient(LifecycleConfig(api_host=HOST)) as api:
            assert "Authorization" not in api._http.headers  # noqa: SLF001

    def test_injected_client_not_closed(self) -> None:
        http = MagicMock(spec=httpx.Client)
        http.headers = httpx.Headers()

        ApiClient(CONFIG, http_client=http).close()

        http.close.assert_not_called()
