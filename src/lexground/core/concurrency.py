"""Concurrency control utilities for async operations."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from lexground.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class ConcurrencyLimiter:
    """Async concurrency limiter."""

    max_concurrent: int
    _semaphore: asyncio.Semaphore = field(init=False)
    _running: int = field(default=0)

    def __post_init__(self) -> None:
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self._semaphore = asyncio.Semaphore(self.max_concurrent)

    async def acquire(self) -> None:
        await self._semaphore.acquire()
        self._running += 1

    def release(self) -> None:
        self._semaphore.release()
        self._running -= 1

    async def __aenter__(self) -> ConcurrencyLimiter:
        await self.acquire()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.release()

    @property
    def running(self) -> int:
        """Get number of running tasks."""
        return self._running


async def gather_bounded(
    factories: Sequence[Callable[[], Awaitable[T]]],
    *,
    max_concurrent: int,
    timeout_s: float,
) -> list[T | BaseException]:
    """Run coroutine factories with bounded concurrency and a per-task timeout.

    Each task gets its own ``timeout_s`` budget once it holds a slot. Results
    keep the order of ``factories``; a failed or timed-out task yields its
    exception instead of a value. Cancelling the caller cancels every task.

    Args:
        factories: Zero-argument callables returning awaitables.
        max_concurrent: Maximum tasks running at once.
        timeout_s: Per-task timeout in seconds.

    Returns:
        One result or exception per factory.
    """

    if not factories:
        return []
    limiter = ConcurrencyLimiter(max_concurrent)

    async def _run(factory: Callable[[], Awaitable[T]]) -> T:
        async with limiter:
            return await asyncio.wait_for(factory(), timeout=timeout_s)

    return await asyncio.gather(*(_run(f) for f in factories), return_exceptions=True)
