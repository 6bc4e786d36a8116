"""RPC client: request envelopes, timeout, retry and typed errors."""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterator

from loguru import logger

from seamrpc.client.transport import HttpTransport, Transport
from seamrpc.core.protocol import RpcRequest, parse_response
from seamrpc.core.retry import RetryPolicy, with_retry
from seamrpc.core.serialization import ERROR_CONTEXT_PREVIEW, decode, encode, validate_serializable
from seamrpc.utils.exceptions import ErrorKind, RpcError, classify_exception

if TYPE_CHECKING:
    from seamrpc.config.schema import ClientConfig


class _Unset:
    """Marker for an optional argument the caller did not pass."""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


def _should_retry(exc: Exception) -> bool:
    return isinstance(exc, RpcError) and exc.kind.retryable


class RpcClient:
    """
    Calls remote functions by method identity.

    Each call builds one request envelope and sends it through the
    transport, retrying transport-class failures with exponential backoff.
    Retries reuse the request id, so handlers see at-least-once delivery.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        timeout_seconds: float = 30.0,
        retry_attempts: int = 3,
        retry_delay_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.transport = transport
        self.timeout_seconds = timeout_seconds
        self.policy = RetryPolicy(retry_attempts=retry_attempts, base_delay_seconds=retry_delay_seconds)
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: ClientConfig, transport: Transport | None = None) -> RpcClient:
        return cls(
            transport or HttpTransport(config.base_url, headers=config.headers),
            timeout_seconds=config.timeout_seconds,
            retry_attempts=config.retry_attempts,
            retry_delay_seconds=config.retry_delay_seconds,
        )

    async def call(self, method: str, *params: Any) -> Any:
        """Invoke ``method`` remotely and return its decoded result.

        Retries resend the same request id, so a handler may run more than
        once for a single call (at-least-once delivery).
        """
        args = list(params)
        if not all(validate_serializable(p) for p in args):
            raise RpcError("Invalid parameter types", ErrorKind.UNSUPPORTED_TYPE, context={"method": method})
        request = RpcRequest.create(method, args)
        text = encode(request.to_dict())
        logger.debug("RPC request method={} id={}", method, request.id)
        return await with_retry(
            lambda: self._attempt(request, text),
            self.policy,
            should_retry=_should_retry,
            sleep=self._sleep,
        )

    async def _attempt(self, request: RpcRequest, text: str) -> Any:
        try:
            raw = await asyncio.wait_for(self.transport.send(text), timeout=self.timeout_seconds)
        except RpcError:
            raise
        except asyncio.TimeoutError as exc:
            logger.info("RPC request {} id={} timed out after {}s", request.method, request.id, self.timeout_seconds)
            raise RpcError("Request timeout", ErrorKind.TIMEOUT) from exc
        except Exception as exc:
            # only OS-level connection failures are retryable
            kind = classify_exception(exc)
            label = "Network error" if kind is ErrorKind.CONNECTION_FAILED else "Transport failed"
            raise RpcError(f"{label}: {exc}", kind) from exc

        response = parse_response(decode(raw))
        if response is None:
            raise RpcError(
                "Malformed response envelope",
                ErrorKind.DESERIALIZATION_ERROR,
                context={"json": raw[:ERROR_CONTEXT_PREVIEW]},
            )
        if not response.has_result:
            raise RpcError.from_payload(response.error)
        return response.result

    async def aclose(self) -> None:
        close = getattr(self.transport, "aclose", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> RpcClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


_current_client: ContextVar[RpcClient | None] = ContextVar("seamrpc_client", default=None)


@contextmanager
def bind_client(client: RpcClient) -> Iterator[RpcClient]:
    """Make ``client`` the target of generated stubs within this context."""
    token = _current_client.set(client)
    try:
        yield client
    finally:
        _current_client.reset(token)


def current_client() -> RpcClient:
    client = _current_client.get()
    if client is None:
        raise RuntimeError("No RpcClient bound; wrap calls in `with bind_client(client):`")
    return client


async def rpc_call(method: str, *params: Any, param_names: tuple[str, ...] = ()) -> Any:
    """Generic call primitive used by generated client stubs.

    Trailing ``UNSET`` arguments are dropped so the server applies its own
    defaults. An ``UNSET`` followed by a passed argument cannot be expressed
    positionally and raises INVALID_ARGUMENTS.
    """
    args = list(params)
    while args and args[-1] is UNSET:
        args.pop()
    for index, value in enumerate(args):
        if value is UNSET:
            name = param_names[index] if index < len(param_names) else f"#{index}"
            raise RpcError(
                f"Parameter '{name}' has no client-side default and must be passed when later parameters are",
                ErrorKind.INVALID_ARGUMENTS,
                context={"method": method, "parameter": name},
            )
    return await current_client().call(method, *args)
