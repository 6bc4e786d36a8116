"""Retry policy helpers for client calls."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import TypeVar
from collections.abc import Awaitable, Callable

from loguru import logger

from seamrpc.utils.exceptions import ErrorKind, RpcError

T = TypeVar("T")


@dataclass(slots=True)
class RetryPolicy:
    """Exponential-backoff retry policy: delay = base_delay_seconds * 2**attempt."""

    retry_attempts: int = 3
    base_delay_seconds: float = 1.0

    def delay_for(self, attempt: int) -> float:
        return self.base_delay_seconds * (2**attempt)


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    should_retry: Callable[[Exception], bool],
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run an async callable, retrying sequentially while should_retry holds."""
    last_exc: Exception | None = None
    for attempt in range(max(0, policy.retry_attempts) + 1):
        try:
            return await fn()
        except Exception as exc:
            last_exc = exc
            if attempt >= policy.retry_attempts or not should_retry(exc):
                break
            delay = policy.delay_for(attempt)
            logger.debug("Retrying after {}s (attempt {}/{}): {}", delay, attempt + 1, policy.retry_attempts, exc)
            await sleep(delay)
    if last_exc is None:
        raise RpcError("Unknown error occurred", ErrorKind.INTERNAL_SERVER_ERROR)
    raise last_exc
