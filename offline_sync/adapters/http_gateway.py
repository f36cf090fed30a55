"""HTTP implementation of the remote gateway, built on httpx.

Wire contract:
    GET  {base}{progress_path}/{owner_id}  -> 200 {"step": int, "data": ...} | 404
    PUT  {base}{progress_path}/{owner_id}  <- {"owner_id", "step", "data"}
    {target.method} {target.url}           <- JSON payload (queued mutations)

Failures are classified, never retried here:
    - transport errors, 5xx, 408/425/429 -> TransientDeliveryError
    - any other non-2xx                  -> PermanentDeliveryError
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from offline_sync.core.constants import RETRYABLE_CLIENT_STATUSES
from offline_sync.core.errors import (
    DeliveryError,
    PermanentDeliveryError,
    RemoteSnapshotError,
    TransientDeliveryError,
)
from offline_sync.core.models import ProgressSnapshot, RequestTarget

logger = logging.getLogger(__name__)


def classify_response(response: httpx.Response) -> DeliveryError | None:
    """Map a non-success response to a delivery error.

    Returns:
        None for 2xx, otherwise the error to raise.
    """
    status = response.status_code
    if 200 <= status < 300:
        return None
    message = f"{response.request.method} {response.request.url} returned {status}"
    if status >= 500 or status in RETRYABLE_CLIENT_STATUSES:
        return TransientDeliveryError(message, status_code=status)
    return PermanentDeliveryError(message, status_code=status)


class HttpRemoteGateway:
    """RemoteGatewayProtocol over HTTP.

    Example:
        gateway = HttpRemoteGateway("https://api.example.com", auth_token=token)
        snapshot = await gateway.read("user-1")
        await gateway.upsert("user-1", 3, {"name": "Ada"})
        await gateway.aclose()
    """

    def __init__(
        self,
        base_url: str,
        progress_path: str = "/progress",
        auth_token: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            base_url: Base URL of the remote store.
            progress_path: Path of the progress resource under base_url.
            auth_token: Optional bearer token added to every request.
            timeout: Transport timeout in seconds.
            client: Pre-built client (tests inject one with a MockTransport).
        """
        self._base_url = base_url.rstrip("/")
        self._progress_path = "/" + progress_path.strip("/")
        self._auth_token = auth_token
        self._timeout = httpx.Timeout(timeout)
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            if self._auth_token:
                headers["Authorization"] = f"Bearer {self._auth_token}"
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=headers,
                timeout=self._timeout,
            )
        return self._client

    def _progress_url(self, owner_id: str) -> str:
        return f"{self._progress_path}/{quote(owner_id, safe='')}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._get_client().request(method, url, **kwargs)
        except httpx.TransportError as e:
            logger.debug(f"{method} {url} failed: {e!r}")
            raise TransientDeliveryError(f"{method} {url} failed: {e}") from e
        return response

    async def read(self, owner_id: str) -> ProgressSnapshot | None:
        response = await self._request("GET", self._progress_url(owner_id))
        if response.status_code == 404:
            return None
        error = classify_response(response)
        if error is not None:
            raise error
        try:
            body = response.json()
        except ValueError as e:
            raise RemoteSnapshotError(f"Progress for {owner_id} is not JSON") from e
        if body is None:
            return None
        try:
            return ProgressSnapshot.from_json(owner_id, body)
        except ValueError as e:
            raise RemoteSnapshotError(f"Invalid progress for {owner_id}: {e}") from e

    async def upsert(self, owner_id: str, step: int, data: Any) -> None:
        response = await self._request(
            "PUT",
            self._progress_url(owner_id),
            json={"owner_id": owner_id, "step": step, "data": data},
        )
        error = classify_response(response)
        if error is not None:
            raise error

    async def send(self, target: RequestTarget, payload: Any) -> None:
        kwargs: dict[str, Any] = {}
        if payload is not None:
            kwargs["json"] = payload
        response = await self._request(target.method, target.url, **kwargs)
        error = classify_response(response)
        if error is not None:
            raise error

    async def aclose(self) -> None:
        """Close the underlying client if this gateway created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


class HttpReachabilityProbe:
    """ReachabilityProbeProtocol that treats any HTTP answer as online."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._timeout = httpx.Timeout(timeout)
        self._client = client
        self._owns_client = client is None

    async def is_reachable(self) -> bool:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        try:
            await self._client.head(self._url)
        except httpx.HTTPError as e:
            logger.debug(f"Reachability probe to {self._url} failed: {e!r}")
            return False
        return True

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
