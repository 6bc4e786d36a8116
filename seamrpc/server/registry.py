"""Function registry: method identity -> callable."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable

from loguru import logger

from seamrpc.core.types import MethodDescriptor

RpcFunction = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class RegisteredFunction:
    name: str
    fn: RpcFunction
    descriptor: MethodDescriptor | None = None


class FunctionRegistry:
    """
    Registry of callable server functions keyed by method identity.

    Writers take a lock and swap in a new mapping; readers use whatever
    mapping is current without locking, so dispatch never blocks on
    registration.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, RegisteredFunction] = {}

    def register(self, name: str, fn: RpcFunction, descriptor: MethodDescriptor | None = None) -> None:
        if not name or not isinstance(name, str):
            raise ValueError("method name must be a non-empty string")
        if not callable(fn):
            raise TypeError(f"registered object for {name!r} is not callable")
        entry = RegisteredFunction(name=name, fn=fn, descriptor=descriptor)
        with self._lock:
            if name in self._entries:
                logger.warning("Replacing registered RPC function {}", name)
            self._entries = {**self._entries, name: entry}

    def unregister(self, name: str) -> bool:
        with self._lock:
            if name not in self._entries:
                return False
            entries = dict(self._entries)
            entries.pop(name)
            self._entries = entries
        return True

    def list_registered(self) -> list[str]:
        return list(self._entries)

    def get(self, name: str) -> RegisteredFunction | None:
        return self._entries.get(name)

    def clear(self) -> None:
        with self._lock:
            self._entries = {}

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)
