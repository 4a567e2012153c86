"""Retry-with-backoff wrapper around single S/4HANA calls.

Every attempt is admitted through the :class:`RequestDispatcher`. Only
transient failures are retried, with a linear backoff of
``attempt * backoff_seconds`` spent outside the dispatcher so a backing
off call does not hold a concurrency slot.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx

from src.integrations.s4hana.dispatcher import RequestDispatcher
from src.integrations.s4hana.errors import is_transient
from src.integrations.s4hana.transport import RequestSpec, S4Transport

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 2
DEFAULT_BACKOFF_SECONDS = 1.0


class RequestExecutor:
    """Execute backend calls with bounded retries."""

    def __init__(
        self,
        transport: S4Transport,
        dispatcher: RequestDispatcher,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._transport = transport
        self._dispatcher = dispatcher
        self._max_attempts = max_attempts
        self._backoff = backoff_seconds
        self._sleep = sleep

    async def execute(self, spec: RequestSpec, max_attempts: int | None = None) -> httpx.Response:
        """Run ``spec`` and return the backend response.

        Args:
            spec: The call to make.
            max_attempts: Overrides the configured attempt count.

        Returns:
            The successful response.

        Raises:
            The last error encountered, unchanged.
        """
        attempts = max_attempts if max_attempts is not None else self._max_attempts
        if attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        for attempt in range(1, attempts + 1):
            try:
                return await self._dispatcher.submit(lambda: self._transport.send(spec))
            except Exception as exc:  # noqa: BLE001 - classified below, always re-raised
                logger.error("[S4 Request] %s attempt %d/%d failed: %s", spec.describe(), attempt, attempts, exc)
                if attempt >= attempts or not is_transient(exc):
                    raise
                delay = attempt * self._backoff
                logger.warning("[S4 Request] retrying %s in %.1fs", spec.describe(), delay)
                await self._sleep(delay)

        raise RuntimeError("Unexpected retry loop exit")
