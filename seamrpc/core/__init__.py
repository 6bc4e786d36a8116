"""Shared RPC types and helpers."""

from .protocol import RpcRequest, RpcResponse, error_response, is_request_shape, ok_response, parse_response
from .retry import RetryPolicy, with_retry
from .serialization import RpcValue, decode, encode, validate_serializable
from .types import MethodDescriptor, ParameterDescriptor

__all__ = [
    "MethodDescriptor",
    "ParameterDescriptor",
    "RpcRequest",
    "RpcResponse",
    "RpcValue",
    "RetryPolicy",
    "with_retry",
    "encode",
    "decode",
    "validate_serializable",
    "ok_response",
    "error_response",
    "is_request_shape",
    "parse_response",
]
