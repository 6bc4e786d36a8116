"""
Error taxonomy and error handling utilities for seamrpc.

Provides:
- A closed set of error kinds with status codes and retry classification
- A single RpcError exception tagged with its kind
- Safe error message formatting (no sensitive data leak)
- Classification of local exceptions into taxonomy kinds
"""

from __future__ import annotations

import asyncio
import re
from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification."""
    TRANSPORT = "transport"
    SERVER = "server"
    ENCODING = "encoding"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"


class ErrorKind(str, Enum):
    """Closed set of error kinds. The value is the wire code."""

    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    CONNECTION_FAILED = "CONNECTION_FAILED"

    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"
    FUNCTION_NOT_FOUND = "FUNCTION_NOT_FOUND"
    INVALID_ARGUMENTS = "INVALID_ARGUMENTS"

    SERIALIZATION_ERROR = "SERIALIZATION_ERROR"
    DESERIALIZATION_ERROR = "DESERIALIZATION_ERROR"
    UNSUPPORTED_TYPE = "UNSUPPORTED_TYPE"

    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"

    VALIDATION_ERROR = "VALIDATION_ERROR"
    MISSING_PARAMETER = "MISSING_PARAMETER"

    @property
    def category(self) -> ErrorCategory:
        return _KIND_CATEGORY[self]

    @property
    def default_status(self) -> int:
        return _KIND_STATUS[self]

    @property
    def retryable(self) -> bool:
        return self.category is ErrorCategory.TRANSPORT

    @classmethod
    def from_code(cls, code: Any) -> ErrorKind | None:
        try:
            return cls(str(code))
        except ValueError:
            return None


_KIND_CATEGORY: dict[ErrorKind, ErrorCategory] = {
    ErrorKind.NETWORK_ERROR: ErrorCategory.TRANSPORT,
    ErrorKind.TIMEOUT: ErrorCategory.TRANSPORT,
    ErrorKind.CONNECTION_FAILED: ErrorCategory.TRANSPORT,
    ErrorKind.INTERNAL_SERVER_ERROR: ErrorCategory.SERVER,
    ErrorKind.FUNCTION_NOT_FOUND: ErrorCategory.SERVER,
    ErrorKind.INVALID_ARGUMENTS: ErrorCategory.SERVER,
    ErrorKind.SERIALIZATION_ERROR: ErrorCategory.ENCODING,
    ErrorKind.DESERIALIZATION_ERROR: ErrorCategory.ENCODING,
    ErrorKind.UNSUPPORTED_TYPE: ErrorCategory.ENCODING,
    ErrorKind.UNAUTHORIZED: ErrorCategory.AUTHORIZATION,
    ErrorKind.FORBIDDEN: ErrorCategory.AUTHORIZATION,
    ErrorKind.VALIDATION_ERROR: ErrorCategory.VALIDATION,
    ErrorKind.MISSING_PARAMETER: ErrorCategory.VALIDATION,
}

_KIND_STATUS: dict[ErrorKind, int] = {
    ErrorKind.NETWORK_ERROR: 503,
    ErrorKind.TIMEOUT: 408,
    ErrorKind.CONNECTION_FAILED: 0,
    ErrorKind.INTERNAL_SERVER_ERROR: 500,
    ErrorKind.FUNCTION_NOT_FOUND: 404,
    ErrorKind.INVALID_ARGUMENTS: 400,
    ErrorKind.SERIALIZATION_ERROR: 500,
    ErrorKind.DESERIALIZATION_ERROR: 400,
    ErrorKind.UNSUPPORTED_TYPE: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.MISSING_PARAMETER: 400,
}


class RpcError(Exception):
    """Structured RPC error, tagged with one taxonomy kind."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.INTERNAL_SERVER_ERROR,
        status_code: int | None = None,
        server_stack: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status_code = kind.default_status if status_code is None else status_code
        self.server_stack = server_stack
        self.context = context

    @property
    def code(self) -> str:
        return self.kind.value

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def to_payload(self, *, include_stack: bool = True) -> dict[str, Any]:
        """Wire error payload: {code, message, statusCode, serverStack?, context?}."""
        payload: dict[str, Any] = {
            "code": self.kind.value,
            "message": self.message,
            "statusCode": self.status_code,
        }
        if include_stack and self.server_stack:
            payload["serverStack"] = self.server_stack
        if self.context is not None:
            payload["context"] = self.context
        return payload

    @classmethod
    def from_payload(cls, payload: Any) -> RpcError:
        """Rebuild an error from a wire payload, keeping the reported kind."""
        row = payload if isinstance(payload, dict) else {}
        raw_code = row.get("code")
        kind = ErrorKind.from_code(raw_code)
        context = row.get("context") if isinstance(row.get("context"), dict) else None
        if kind is None:
            kind = ErrorKind.INTERNAL_SERVER_ERROR
            context = {**(context or {}), "code": str(raw_code)}
        status = row.get("statusCode")
        stack = row.get("serverStack")
        return cls(
            str(row.get("message") or "rpc failed"),
            kind,
            status_code=status if isinstance(status, int) and not isinstance(status, bool) else None,
            server_stack=stack if isinstance(stack, str) else None,
            context=context,
        )

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"

    def __repr__(self) -> str:
        return f"RpcError({self.message!r}, {self.kind}, status_code={self.status_code})"


def validation_error(message: str, field: str | None = None) -> RpcError:
    """Input validation error, for function implementations to raise."""
    return RpcError(message, ErrorKind.VALIDATION_ERROR, context={"field": field} if field else None)


def missing_parameter(name: str) -> RpcError:
    return RpcError(f"Missing required parameter: {name}", ErrorKind.MISSING_PARAMETER, context={"parameter": name})


def unauthorized(message: str = "Unauthorized") -> RpcError:
    return RpcError(message, ErrorKind.UNAUTHORIZED)


def forbidden(message: str = "Forbidden", resource: str | None = None) -> RpcError:
    return RpcError(message, ErrorKind.FORBIDDEN, context={"resource": resource} if resource else None)


_SENSITIVE_PATTERNS = [
    re.compile(r"(api[_-]?key|token|secret|password|auth)[=:]\s*['\"]?([^\s'\"]+)['\"]?", re.IGNORECASE),
    re.compile(r"bearer\s+[a-zA-Z0-9\-._~+/]+=*", re.IGNORECASE),
    re.compile(r"sk-[a-zA-Z0-9]{20,}"),
    re.compile(r"xox[baprs]-[a-zA-Z0-9\-]+"),
]


def sanitize_error_message(message: str, replacement: str = "[REDACTED]") -> str:
    """Remove sensitive information from error messages."""
    sanitized = message
    for pattern in _SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized


def classify_exception(exc: BaseException) -> ErrorKind:
    """
    Map a local exception to a taxonomy kind.

    Used by the client for failures raised by a transport, before any
    response envelope exists.
    """
    if isinstance(exc, RpcError):
        return exc.kind

    if isinstance(exc, asyncio.TimeoutError):
        return ErrorKind.TIMEOUT

    if isinstance(exc, (ConnectionError, OSError)):
        return ErrorKind.CONNECTION_FAILED

    return ErrorKind.INTERNAL_SERVER_ERROR
