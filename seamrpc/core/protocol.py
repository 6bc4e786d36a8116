"""Wire envelope models shared by the client and the server dispatcher."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from typing import Any


def now_ms() -> int:
    return int(time.time() * 1000)


def new_request_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True)
class RpcRequest:
    """Request envelope: {id, method, params, timestamp}."""

    id: str
    method: str
    params: list[Any]
    timestamp: int

    @classmethod
    def create(cls, method: str, params: list[Any]) -> RpcRequest:
        return cls(id=new_request_id(), method=method, params=params, timestamp=now_ms())

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "method": self.method, "params": self.params, "timestamp": self.timestamp}


@dataclass(slots=True)
class RpcResponse:
    """Response envelope. Exactly one of result / error is present."""

    id: str
    timestamp: int
    has_result: bool
    result: Any = None
    error: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id}
        if self.has_result:
            payload["result"] = self.result
        else:
            payload["error"] = self.error
        payload["timestamp"] = self.timestamp
        return payload


def ok_response(request_id: str, result: Any) -> RpcResponse:
    return RpcResponse(id=request_id, timestamp=now_ms(), has_result=True, result=result)


def error_response(request_id: str, error: dict[str, Any]) -> RpcResponse:
    return RpcResponse(id=request_id, timestamp=now_ms(), has_result=False, error=error)


def is_request_shape(value: Any) -> bool:
    """True for {id: str, method: str, params: list, timestamp: number}."""
    if not isinstance(value, dict):
        return False
    timestamp = value.get("timestamp")
    return (
        isinstance(value.get("id"), str)
        and isinstance(value.get("method"), str)
        and isinstance(value.get("params"), list)
        and isinstance(timestamp, (int, float))
        and not isinstance(timestamp, bool)
    )


def parse_response(value: Any) -> RpcResponse | None:
    """Validate a decoded response envelope; None when the shape is wrong."""
    if not isinstance(value, dict):
        return None
    has_result = "result" in value
    has_error = "error" in value
    if has_result == has_error:
        return None
    if has_error and not isinstance(value.get("error"), dict):
        return None
    req_id = value.get("id")
    timestamp = value.get("timestamp")
    return RpcResponse(
        id=req_id if isinstance(req_id, str) else "unknown",
        timestamp=int(timestamp) if isinstance(timestamp, (int, float)) and not isinstance(timestamp, bool) else 0,
        has_result=has_result,
        result=value.get("result"),
        error=value.get("error") if has_error else None,
    )
