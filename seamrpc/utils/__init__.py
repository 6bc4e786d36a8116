"""Utility functions for seamrpc."""

from seamrpc.utils.exceptions import (
    ErrorCategory,
    ErrorKind,
    RpcError,
    classify_exception,
    forbidden,
    missing_parameter,
    sanitize_error_message,
    unauthorized,
    validation_error,
)

__all__ = [
    "ErrorCategory",
    "ErrorKind",
    "RpcError",
    "classify_exception",
    "forbidden",
    "missing_parameter",
    "sanitize_error_message",
    "unauthorized",
    "validation_error",
]
