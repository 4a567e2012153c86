"""Bounded-concurrency dispatcher for outbound S/4HANA calls.

Caps the number of backend calls in flight. Callers beyond the cap are
parked in a FIFO queue of futures and resumed one at a time as running
calls finish. A freed slot is handed straight to the oldest waiter, so a
brand-new caller can never overtake someone who is already queued.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_CONCURRENT = 5


class RequestDispatcher:
    """Admit at most ``max_concurrent`` operations at a time."""

    def __init__(self, max_concurrent: int = DEFAULT_MAX_CONCURRENT) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._max_concurrent = max_concurrent
        self._running = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def running(self) -> int:
        return self._running

    @property
    def waiting(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    def stats(self) -> dict[str, int]:
        """Snapshot of slot usage for health reporting."""
        return {
            "max_concurrent": self._max_concurrent,
            "running": self._running,
            "waiting": self.waiting,
        }

    async def submit(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` once a slot is free.

        The slot is released on every exit path. Whatever ``operation``
        raises reaches the caller unchanged.
        """
        await self._acquire()
        try:
            return await operation()
        finally:
            self._release()

    async def _acquire(self) -> None:
        if self._running < self._max_concurrent and not self._waiters:
            self._running += 1
            return

        waiter: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        logger.debug(
            "S/4 dispatcher full (%d/%d running), queued at position %d",
            self._running, self._max_concurrent, len(self._waiters),
        )
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.done() and not waiter.cancelled():
                # The slot was handed over just before the cancellation landed.
                self._release()
            else:
                try:
                    self._waiters.remove(waiter)
                except ValueError:
                    pass
            raise

    def _release(self) -> None:
        # Hand the slot over without touching the running count.
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._running -= 1
