"""Client transports: send request text, receive response text."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx

from seamrpc.utils.exceptions import ErrorKind, RpcError

if TYPE_CHECKING:
    from seamrpc.server.dispatcher import RpcServer


@runtime_checkable
class Transport(Protocol):
    """One request/response exchange with one logical endpoint."""

    async def send(self, payload: str) -> str:
        ...


class HttpTransport:
    """POST the request text to a single URL over httpx."""

    def __init__(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            # wall-clock timeouts are enforced by RpcClient
            self._client = httpx.AsyncClient(timeout=None)
        return self._client

    async def send(self, payload: str) -> str:
        client = self._get_client()
        try:
            resp = await client.post(self.url, content=payload.encode("utf-8"), headers=self._headers)
        except httpx.TimeoutException as exc:
            raise RpcError("Request timeout", ErrorKind.TIMEOUT) from exc
        except httpx.RequestError as exc:
            raise RpcError(f"Network error: {exc}", ErrorKind.CONNECTION_FAILED) from exc
        if not resp.is_success:
            raise RpcError(
                f"HTTP {resp.status_code}: {resp.reason_phrase}",
                ErrorKind.NETWORK_ERROR,
                status_code=resp.status_code,
            )
        return resp.text

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None


class LocalTransport:
    """In-process transport straight into an RpcServer."""

    def __init__(self, server: RpcServer, *, context: Any = None):
        self.server = server
        self.context = context

    async def send(self, payload: str) -> str:
        return await self.server.handle(payload, context=self.context)
