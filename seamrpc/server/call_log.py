"""Bounded in-memory log of recent RPC calls for developer tooling."""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any


@dataclass(slots=True)
class CallLogEntry:
    id: str
    method: str
    params: list[Any]
    timestamp: float
    duration_ms: float | None = None
    success: bool = False
    error: str | None = None


class CallLog:
    """Most-recent-first call log capped at ``max_entries``."""

    def __init__(self, max_entries: int = 1000) -> None:
        self._max_entries = max(1, max_entries)
        self._entries: deque[CallLogEntry] = deque(maxlen=self._max_entries)
        self._lock = threading.Lock()

    def log_request(self, request_id: str, method: str, params: list[Any]) -> CallLogEntry:
        entry = CallLogEntry(id=request_id, method=method, params=list(params), timestamp=time.time())
        with self._lock:
            self._entries.appendleft(entry)
        return entry

    def log_response(self, entry: CallLogEntry, *, error: str | None = None) -> None:
        entry.duration_ms = round((time.time() - entry.timestamp) * 1000, 3)
        entry.success = error is None
        entry.error = error

    def entries(self) -> list[dict[str, Any]]:
        with self._lock:
            return [asdict(e) for e in self._entries]

    def stats(self) -> dict[str, Any]:
        with self._lock:
            rows = list(self._entries)
        finished = [e for e in rows if e.duration_ms is not None]
        failed = sum(1 for e in finished if not e.success)
        avg = sum(e.duration_ms or 0.0 for e in finished) / len(finished) if finished else 0.0
        methods: dict[str, int] = {}
        for e in rows:
            methods[e.method] = methods.get(e.method, 0) + 1
        return {
            "totalCalls": len(rows),
            "successfulCalls": len(finished) - failed,
            "failedCalls": failed,
            "averageDurationMs": round(avg, 3),
            "methodCounts": methods,
        }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
