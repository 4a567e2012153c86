"""CSRF token cache for state-changing S/4HANA calls.

S/4HANA rejects POST/PATCH requests unless they carry an ``X-CSRF-Token``
obtained from an earlier GET, together with the session cookies issued
with it. Tokens are cached per service path for a fixed window.

Refreshes are single-flight: while a fetch for a key is running, every
other caller asking for that key attaches to the same in-flight task and
sees its result or its error. Failed fetches are never cached.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx

from src.integrations.s4hana.errors import BackendError, TokenFetchError
from src.integrations.s4hana.transport import RequestSpec, S4Transport

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_FETCH_TIMEOUT = 30.0


@dataclass(frozen=True)
class CSRFToken:
    """A cached token and the session cookies it is bound to."""

    token: str
    cookies: tuple[str, ...]
    fetched_at: float

    def cookie_header(self) -> str:
        return "; ".join(self.cookies)

    def as_headers(self) -> dict[str, str]:
        """Headers that authenticate a write with this token."""
        headers = {"X-CSRF-Token": self.token}
        if self.cookies:
            headers["Cookie"] = self.cookie_header()
        return headers


def _extract_cookies(response: httpx.Response) -> tuple[str, ...]:
    # Keep only name=value; path/domain attributes are not sent back.
    return tuple(
        raw.split(";", 1)[0].strip()
        for raw in response.headers.get_list("set-cookie")
        if raw.strip()
    )


class CSRFTokenCache:
    """Per-service-path CSRF token cache with single-flight refresh."""

    def __init__(
        self,
        transport: S4Transport,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._transport = transport
        self._ttl = ttl_seconds
        self._fetch_timeout = fetch_timeout
        self._clock = clock
        self._entries: dict[str, CSRFToken] = {}
        self._inflight: dict[str, asyncio.Task[CSRFToken]] = {}

    def _is_fresh(self, entry: CSRFToken) -> bool:
        return self._clock() - entry.fetched_at < self._ttl

    async def get(self, key: str) -> CSRFToken:
        """Return a valid token for ``key``, fetching it if needed.

        Raises:
            TokenFetchError: the single refresh in flight for ``key`` failed.
        """
        entry = self._entries.get(key)
        if entry is not None and self._is_fresh(entry):
            return entry

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.get_running_loop().create_task(self._refresh(key))
            task.add_done_callback(_consume_exception)
            self._inflight[key] = task
        else:
            logger.debug("CSRF refresh for %s already in flight, waiting", key)

        # A cancelled waiter must not cancel the refresh other callers share.
        return await asyncio.shield(task)

    def invalidate(self, key: str) -> bool:
        """Drop the cached token for ``key``. Returns whether one existed."""
        removed = self._entries.pop(key, None) is not None
        if removed:
            logger.info("Invalidated CSRF token for %s", key)
        return removed

    def invalidate_all(self) -> list[str]:
        """Drop every cached token and return the keys that were cached."""
        keys = list(self._entries)
        self._entries.clear()
        if keys:
            logger.info("Invalidated %d CSRF tokens", len(keys))
        return keys

    def cached_keys(self) -> list[str]:
        return list(self._entries)

    async def _refresh(self, key: str) -> CSRFToken:
        try:
            entry = await self._fetch(key)
            self._entries[key] = entry
            return entry
        finally:
            self._inflight.pop(key, None)

    async def _fetch(self, key: str) -> CSRFToken:
        spec = RequestSpec(
            method="GET",
            path=key,
            headers={"X-CSRF-Token": "Fetch", "Accept": "application/json"},
            timeout=self._fetch_timeout,
        )
        logger.info("Fetching CSRF token from %s", key)
        try:
            response = await self._transport.send(spec)
        except BackendError as exc:
            logger.error("CSRF token fetch from %s failed: %s", key, exc)
            raise TokenFetchError(key, str(exc), status=exc.status, code=exc.code) from exc

        token = response.headers.get("x-csrf-token", "")
        if not token or token.lower() == "required":
            logger.error("No CSRF token in response from %s", key)
            raise TokenFetchError(key, "response carried no X-CSRF-Token header", status=response.status_code)

        cookies = _extract_cookies(response)
        logger.debug("CSRF token for %s fetched (%d cookies)", key, len(cookies))
        return CSRFToken(token=token, cookies=cookies, fetched_at=self._clock())


def _consume_exception(task: asyncio.Task[CSRFToken]) -> None:
    # Waiters re-raise the error; this only stops asyncio warning about it
    # when every waiter has gone away.
    if not task.cancelled():
        task.exception()
