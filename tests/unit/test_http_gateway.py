"""Unit tests for the httpx-based gateway and reachability probe.

Requests are answered by httpx.MockTransport; nothing leaves the process.
"""

from __future__ import annotations

import json
from collections.abc import Callable

import httpx
import pytest

from offline_sync.adapters.http_gateway import (
    HttpReachabilityProbe,
    HttpRemoteGateway,
    classify_response,
)
from offline_sync.core.errors import (
    PermanentDeliveryError,
    RemoteSnapshotError,
    TransientDeliveryError,
)
from offline_sync.core.models import ProgressSnapshot
from tests.conftest import target

BASE_URL = "http://remote.test"

Handler = Callable[[httpx.Request], httpx.Response]


def _gateway(handler: Handler) -> HttpRemoteGateway:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url=BASE_URL)
    return HttpRemoteGateway(BASE_URL, progress_path="/progress", client=client)


def _response(status: int, method: str = "POST") -> httpx.Response:
    return httpx.Response(status, request=httpx.Request(method, f"{BASE_URL}/x"))


@pytest.mark.unit
class TestClassifyResponse:
    """Tests for mapping status codes to delivery errors."""

    @pytest.mark.parametrize("status", [200, 201, 204])
    def test_success(self, status: int) -> None:
        assert classify_response(_response(status)) is None

    @pytest.mark.parametrize("status", [500, 502, 503, 408, 425, 429])
    def test_transient(self, status: int) -> None:
        error = classify_response(_response(status))
        assert isinstance(error, TransientDeliveryError)
        assert error.status_code == status

    @pytest.mark.parametrize("status", [400, 401, 403, 404, 409, 422])
    def test_permanent(self, status: int) -> None:
        assert isinstance(classify_response(_response(status)), PermanentDeliveryError)


@pytest.mark.unit
class TestRead:
    """Tests for reading remote progress."""

    @pytest.mark.asyncio
    async def test_read_parses_snapshot(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"step": 4, "data": {"name": "Ada"}})

        gateway = _gateway(handler)
        snapshot = await gateway.read("user 1")

        assert snapshot == ProgressSnapshot("user 1", 4, {"name": "Ada"})
        assert seen[0].method == "GET"
        assert seen[0].url.raw_path == b"/progress/user%201"

    @pytest.mark.asyncio
    async def test_missing_progress_is_none(self) -> None:
        gateway = _gateway(lambda request: httpx.Response(404))
        assert await gateway.read("user-1") is None

    @pytest.mark.asyncio
    async def test_null_body_is_none(self) -> None:
        gateway = _gateway(lambda request: httpx.Response(200, content=b"null"))
        assert await gateway.read("user-1") is None

    @pytest.mark.asyncio
    async def test_malformed_snapshot_raises(self) -> None:
        gateway = _gateway(lambda request: httpx.Response(200, json={"step": "three"}))
        with pytest.raises(RemoteSnapshotError):
            await gateway.read("user-1")

    @pytest.mark.asyncio
    async def test_non_json_body_raises(self) -> None:
        gateway = _gateway(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(RemoteSnapshotError, match="not JSON"):
            await gateway.read("user-1")

    @pytest.mark.asyncio
    async def test_server_error_is_transient(self) -> None:
        gateway = _gateway(lambda request: httpx.Response(503))
        with pytest.raises(TransientDeliveryError):
            await gateway.read("user-1")

    @pytest.mark.asyncio
    async def test_transport_error_is_transient(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        gateway = _gateway(handler)
        with pytest.raises(TransientDeliveryError, match="connection refused"):
            await gateway.read("user-1")


@pytest.mark.unit
class TestWrite:
    """Tests for upsert and send."""

    @pytest.mark.asyncio
    async def test_upsert_puts_full_record(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        gateway = _gateway(handler)
        await gateway.upsert("user-1", 3, {"name": "Ada"})

        assert seen[0].method == "PUT"
        assert seen[0].url.path == "/progress/user-1"
        assert json.loads(seen[0].content) == {
            "owner_id": "user-1",
            "step": 3,
            "data": {"name": "Ada"},
        }

    @pytest.mark.asyncio
    async def test_upsert_conflict_is_permanent(self) -> None:
        gateway = _gateway(lambda request: httpx.Response(409))
        with pytest.raises(PermanentDeliveryError) as exc_info:
            await gateway.upsert("user-1", 1, {})
        assert exc_info.value.status_code == 409

    @pytest.mark.asyncio
    async def test_send_uses_target_method_and_json_body(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201)

        gateway = _gateway(handler)
        await gateway.send(target("/api/answers", "PATCH"), {"value": 3})

        assert seen[0].method == "PATCH"
        assert seen[0].url.path == "/api/answers"
        assert json.loads(seen[0].content) == {"value": 3}

    @pytest.mark.asyncio
    async def test_send_without_payload_has_empty_body(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(204)

        gateway = _gateway(handler)
        await gateway.send(target("/api/items/7", "DELETE"), None)

        assert seen[0].content == b""

    @pytest.mark.asyncio
    async def test_send_rate_limited_is_transient(self) -> None:
        gateway = _gateway(lambda request: httpx.Response(429))
        with pytest.raises(TransientDeliveryError):
            await gateway.send(target("/api/events"), {})

    @pytest.mark.asyncio
    async def test_auth_header_on_owned_client(self) -> None:
        gateway = HttpRemoteGateway(BASE_URL, auth_token="secret-token")
        client = gateway._get_client()
        try:
            assert client.headers["Authorization"] == "Bearer secret-token"
            assert str(client.base_url).rstrip("/") == BASE_URL
        finally:
            await gateway.aclose()

    @pytest.mark.asyncio
    async def test_aclose_leaves_injected_client_open(self) -> None:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(200)),
            base_url=BASE_URL,
        )
        gateway = HttpRemoteGateway(BASE_URL, client=client)

        await gateway.aclose()

        assert not client.is_closed
        await client.aclose()


@pytest.mark.unit
class TestReachabilityProbe:
    """Tests for the HEAD-based probe."""

    @pytest.mark.asyncio
    async def test_any_response_is_reachable(self) -> None:
        methods: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            methods.append(request.method)
            return httpx.Response(503)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        probe = HttpReachabilityProbe(f"{BASE_URL}/health", client=client)

        assert await probe.is_reachable() is True
        assert methods == ["HEAD"]
        await client.aclose()

    @pytest.mark.asyncio
    async def test_transport_error_is_unreachable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        probe = HttpReachabilityProbe(f"{BASE_URL}/health", client=client)

        assert await probe.is_reachable() is False
        await client.aclose()
