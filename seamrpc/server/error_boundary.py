"""Error-boundary helpers: map dispatch failures to wire error payloads."""

from __future__ import annotations

import traceback
from typing import Any, Callable

from seamrpc.utils.exceptions import ErrorKind, RpcError, sanitize_error_message


def unknown_method_error(*, method: str, log_info: Callable[[str, Any], None]) -> RpcError:
    """Build the standardized unknown-method error."""
    log_info("RPC unknown method {}", method)
    return RpcError(f"Function '{method}' not found", ErrorKind.FUNCTION_NOT_FOUND, context={"method": method})


def rpc_error_payload(
    *,
    method: str,
    exc: RpcError,
    expose_diagnostics: bool,
    log_warning: Callable[[str, Any, Any, Any], None],
) -> dict[str, Any]:
    """Pass a structured error through unchanged; keep its stack only with diagnostics."""
    log_warning("RPC method {} failed with {}: {}", method, exc.code, exc.message)
    return exc.to_payload(include_stack=expose_diagnostics)


def unhandled_exception_payload(
    *,
    method: str,
    exc: Exception,
    expose_diagnostics: bool,
    log_exception: Callable[[str, Any, Any], None],
) -> dict[str, Any]:
    """Wrap an unexpected exception as INTERNAL_SERVER_ERROR."""
    sanitized = sanitize_error_message(str(exc) or type(exc).__name__)
    log_exception("RPC method {} failed: {}", method, sanitized)
    stack = "".join(traceback.format_exception(exc)) if expose_diagnostics else None
    return RpcError(sanitized, ErrorKind.INTERNAL_SERVER_ERROR, server_stack=stack).to_payload(
        include_stack=expose_diagnostics
    )
