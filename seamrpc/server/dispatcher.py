"""RPC server dispatcher.

``RpcServer.handle`` takes one request text and always returns one encoded
response envelope. Per request the flow is::

    RECEIVED -> DECODED -> VALIDATED -> RESOLVED -> EXECUTING
             -> SUCCEEDED | FAILED -> ENCODED

Any failure short-circuits to an error envelope; nothing raised by a
registered function crosses ``handle`` unclassified.
"""

from __future__ import annotations

import inspect
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any

from loguru import logger

from seamrpc.core.protocol import RpcResponse, error_response, is_request_shape, ok_response
from seamrpc.core.serialization import decode, encode, validate_serializable
from seamrpc.server.call_log import CallLog
from seamrpc.server.error_boundary import rpc_error_payload, unhandled_exception_payload, unknown_method_error
from seamrpc.server.registry import FunctionRegistry, RpcFunction
from seamrpc.utils.exceptions import ErrorKind, RpcError

if TYPE_CHECKING:
    from seamrpc.config.schema import ServerConfig
    from seamrpc.core.types import MethodDescriptor

UNKNOWN_ID = "unknown"

_request_context: ContextVar[Any] = ContextVar("seamrpc_request_context", default=None)


def current_context() -> Any:
    """Opaque context passed to ``RpcServer.handle`` for the running call."""
    return _request_context.get()


class RpcServer:
    """Dispatches request envelopes to functions in a FunctionRegistry."""

    def __init__(
        self,
        registry: FunctionRegistry | None = None,
        *,
        expose_diagnostics: bool = False,
        call_log: CallLog | None = None,
    ):
        self.registry = registry if registry is not None else FunctionRegistry()
        self.expose_diagnostics = expose_diagnostics
        self.call_log = call_log

    @classmethod
    def from_config(cls, config: ServerConfig, registry: FunctionRegistry | None = None) -> RpcServer:
        call_log = CallLog(config.call_log_size) if config.call_log_size > 0 else None
        return cls(registry, expose_diagnostics=config.expose_diagnostics, call_log=call_log)

    def register(self, name: str, fn: RpcFunction, descriptor: MethodDescriptor | None = None) -> None:
        self.registry.register(name, fn, descriptor)

    def unregister(self, name: str) -> bool:
        return self.registry.unregister(name)

    def list_registered(self) -> list[str]:
        return self.registry.list_registered()

    async def handle(self, request_text: str | bytes, context: Any = None) -> str:
        """Process one request and return the encoded response envelope."""
        try:
            response = await self._dispatch(request_text, context)
        except Exception as exc:
            logger.exception("RPC dispatch failed unexpectedly: {}", exc)
            response = error_response(
                UNKNOWN_ID,
                RpcError("Internal server error", ErrorKind.INTERNAL_SERVER_ERROR).to_payload(),
            )
        return self._encode_response(response)

    async def _dispatch(self, request_text: str | bytes, context: Any) -> RpcResponse:
        try:
            payload = decode(request_text)
        except RpcError as exc:
            logger.info("RPC request could not be decoded: {}", exc.message)
            err = RpcError("Invalid request format", ErrorKind.DESERIALIZATION_ERROR, context=exc.context)
            return error_response(UNKNOWN_ID, err.to_payload())

        if not is_request_shape(payload):
            raw_id = payload.get("id") if isinstance(payload, dict) else None
            request_id = raw_id if isinstance(raw_id, str) and raw_id else UNKNOWN_ID
            err = RpcError("Invalid request structure", ErrorKind.INVALID_ARGUMENTS)
            return error_response(request_id, err.to_payload())

        request_id = payload["id"]
        method = payload["method"]
        params = payload["params"]
        logger.debug("RPC call method={} id={}", method, request_id)

        entry = self.registry.get(method)
        if entry is None:
            return error_response(request_id, unknown_method_error(method=method, log_info=logger.info).to_payload())

        log_entry = self.call_log.log_request(request_id, method, params) if self.call_log else None
        response = await self._execute(request_id, method, entry.fn, params, context)
        if self.call_log is not None and log_entry is not None:
            message = None if response.has_result else str((response.error or {}).get("message"))
            self.call_log.log_response(log_entry, error=message)
        return response

    async def _execute(
        self,
        request_id: str,
        method: str,
        fn: RpcFunction,
        params: list[Any],
        context: Any,
    ) -> RpcResponse:
        if not all(validate_serializable(p) for p in params):
            err = RpcError("Invalid parameter types", ErrorKind.UNSUPPORTED_TYPE, context={"method": method})
            return error_response(request_id, err.to_payload())

        bind_error = _check_arguments(fn, params)
        if bind_error is not None:
            err = RpcError(
                f"Invalid arguments for '{method}': {bind_error}",
                ErrorKind.INVALID_ARGUMENTS,
                context={"method": method},
            )
            return error_response(request_id, err.to_payload())

        token = _request_context.set(context)
        try:
            outcome = fn(*params)
            result = await outcome if inspect.isawaitable(outcome) else outcome
        except RpcError as exc:
            return error_response(
                request_id,
                rpc_error_payload(
                    method=method,
                    exc=exc,
                    expose_diagnostics=self.expose_diagnostics,
                    log_warning=logger.warning,
                ),
            )
        except Exception as exc:
            return error_response(
                request_id,
                unhandled_exception_payload(
                    method=method,
                    exc=exc,
                    expose_diagnostics=self.expose_diagnostics,
                    log_exception=logger.exception,
                ),
            )
        finally:
            _request_context.reset(token)

        if not validate_serializable(result):
            logger.warning("RPC method {} returned non-serializable {}", method, type(result).__name__)
            err = RpcError(
                "Function returned non-serializable value",
                ErrorKind.SERIALIZATION_ERROR,
                context={"method": method, "resultType": type(result).__name__},
            )
            return error_response(request_id, err.to_payload())
        return ok_response(request_id, result)

    def _encode_response(self, response: RpcResponse) -> str:
        try:
            return encode(response.to_dict())
        except RpcError as exc:
            logger.warning("RPC response for id={} could not be encoded: {}", response.id, exc.message)
            fallback = error_response(
                response.id,
                RpcError("Failed to encode response", ErrorKind.SERIALIZATION_ERROR).to_payload(),
            )
            return encode(fallback.to_dict())


def _check_arguments(fn: RpcFunction, params: list[Any]) -> str | None:
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        return None
    try:
        signature.bind(*params)
    except TypeError as exc:
        return str(exc)
    return None
