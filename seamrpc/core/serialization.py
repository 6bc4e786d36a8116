"""Serialization codec for RPC envelopes.

JSON is the base format. Timestamps, which JSON cannot carry natively,
travel as a tagged object: {"__type": "Date", "value": "<ISO-8601>"}.
"""

from __future__ import annotations

import json
import math
from datetime import datetime
from typing import Any, Union

from seamrpc.utils.exceptions import ErrorKind, RpcError

RpcPrimitive = Union[str, int, float, bool, None]
RpcValue = Union[RpcPrimitive, datetime, list["RpcValue"], dict[str, "RpcValue"]]

DATE_TAG = "Date"
ERROR_CONTEXT_PREVIEW = 100


def _encode_extension(value: Any) -> Any:
    if isinstance(value, datetime):
        return {"__type": DATE_TAG, "value": value.isoformat()}
    raise TypeError(f"Object of type {type(value).__name__} is not serializable")


def _decode_extension(obj: dict[str, Any]) -> Any:
    if obj.get("__type") == DATE_TAG and len(obj) == 2 and isinstance(obj.get("value"), str):
        return datetime.fromisoformat(obj["value"])
    return obj


def encode(value: Any) -> str:
    """Encode a value to wire text; raise SERIALIZATION_ERROR when impossible."""
    try:
        return json.dumps(value, default=_encode_extension, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError, RecursionError) as exc:
        raise RpcError(
            f"Failed to serialize value: {exc}",
            ErrorKind.SERIALIZATION_ERROR,
            context={"originalValue": type(value).__name__},
        ) from exc


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def _parse_float(literal: str) -> float:
    value = float(literal)
    if not math.isfinite(value):
        raise ValueError(f"number out of range: {literal}")
    return value


def decode(text: str | bytes) -> Any:
    """Decode wire text; raise DESERIALIZATION_ERROR on malformed input."""
    try:
        if isinstance(text, (bytes, bytearray)):
            text = text.decode("utf-8")
        return json.loads(
            text, object_hook=_decode_extension, parse_constant=_reject_constant, parse_float=_parse_float
        )
    except (ValueError, TypeError, RecursionError) as exc:
        preview = text[:ERROR_CONTEXT_PREVIEW] if isinstance(text, str) else repr(text[:ERROR_CONTEXT_PREVIEW])
        raise RpcError(
            f"Failed to deserialize JSON: {exc}",
            ErrorKind.DESERIALIZATION_ERROR,
            context={"json": preview},
        ) from exc


def validate_serializable(value: Any) -> bool:
    """Check a value recursively against the serializable value grammar."""
    return _validate(value, set())


def _validate(value: Any, active: set[int]) -> bool:
    if value is None or isinstance(value, (str, bool, int)):
        return True
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, datetime):
        return True
    if isinstance(value, (list, tuple, dict)):
        marker = id(value)
        if marker in active:
            return False
        active.add(marker)
        try:
            if isinstance(value, dict):
                return all(isinstance(k, str) and _validate(v, active) for k, v in value.items())
            return all(_validate(item, active) for item in value)
        finally:
            active.discard(marker)
    return False
