"""S/4HANA client facade used by the request handlers.

Composes the transport, dispatcher, CSRF token cache and retry executor
into read and write calls with the per-operation timeouts.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from src.core.config import Settings
from src.integrations.s4hana.csrf import CSRFTokenCache
from src.integrations.s4hana.dispatcher import RequestDispatcher
from src.integrations.s4hana.errors import TerminalBackendError
from src.integrations.s4hana.executor import RequestExecutor
from src.integrations.s4hana.odata import service_root
from src.integrations.s4hana.transport import RequestSpec, S4Transport

logger = logging.getLogger(__name__)


def _json_or_none(response: httpx.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _csrf_rejected(exc: TerminalBackendError) -> bool:
    if exc.status != 403:
        return False
    marker = next((v for k, v in exc.headers.items() if k.lower() == "x-csrf-token"), "")
    return marker.lower() == "required"


class S4Client:
    """Read and write OData resources on one S/4HANA system."""

    def __init__(
        self,
        transport: S4Transport,
        dispatcher: RequestDispatcher,
        csrf_cache: CSRFTokenCache,
        executor: RequestExecutor,
        *,
        read_timeout: float = 120.0,
        write_timeout: float = 90.0,
    ) -> None:
        self.transport = transport
        self.dispatcher = dispatcher
        self.csrf_cache = csrf_cache
        self.executor = executor
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> S4Client:
        """Build the full execution stack from application settings."""
        transport = S4Transport(
            settings.s4_base_url,
            username=settings.s4_username,
            password=settings.s4_password.get_secret_value(),
            sap_client=settings.s4_sap_client,
            verify=settings.s4_verify_ssl,
        )
        dispatcher = RequestDispatcher(settings.s4_max_concurrent)
        csrf_cache = CSRFTokenCache(
            transport,
            ttl_seconds=settings.s4_csrf_ttl_seconds,
            fetch_timeout=settings.s4_token_timeout,
        )
        executor = RequestExecutor(
            transport,
            dispatcher,
            max_attempts=settings.s4_retry_attempts,
            backoff_seconds=settings.s4_retry_backoff_seconds,
        )
        return cls(
            transport,
            dispatcher,
            csrf_cache,
            executor,
            read_timeout=settings.s4_read_timeout,
            write_timeout=settings.s4_write_timeout,
        )

    async def read(
        self,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """GET ``path`` and return the decoded JSON body."""
        spec = RequestSpec(
            method="GET",
            path=path,
            headers={"Accept": "application/json"},
            params=params,
            timeout=timeout or self.read_timeout,
        )
        logger.info("[S4 Proxy] GET %s params=%s", path, params or {})
        response = await self.executor.execute(spec)
        return _json_or_none(response)

    async def write(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        content: bytes | None = None,
        headers: dict[str, str] | None = None,
        csrf_key: str | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Send a CSRF-protected POST/PATCH/PUT/DELETE and return the body.

        The token is taken from the cache keyed on ``csrf_key`` (default:
        the service root of ``path``). If the backend rejects the token,
        it is invalidated and the write is retried once with a fresh one.
        """
        key = csrf_key or service_root(path)
        try:
            return await self._write_once(method, path, key, json=json, content=content, headers=headers, timeout=timeout)
        except TerminalBackendError as exc:
            if not _csrf_rejected(exc):
                raise
            logger.warning("[S4 Proxy] CSRF token for %s rejected, refetching", key)
            self.csrf_cache.invalidate(key)
            return await self._write_once(method, path, key, json=json, content=content, headers=headers, timeout=timeout)

    async def _write_once(
        self,
        method: str,
        path: str,
        key: str,
        *,
        json: Any,
        content: bytes | None,
        headers: dict[str, str] | None,
        timeout: float | None,
    ) -> Any:
        token = await self.csrf_cache.get(key)
        request_headers = {"Accept": "application/json", "X-Requested-With": "X"}
        if json is not None:
            request_headers["Content-Type"] = "application/json"
        request_headers.update(headers or {})
        request_headers.update(token.as_headers())
        spec = RequestSpec(
            method=method,
            path=path,
            headers=request_headers,
            json=json,
            content=content,
            timeout=timeout or self.write_timeout,
        )
        logger.info("[S4 Proxy] %s %s", method, path)
        response = await self.executor.execute(spec)
        return _json_or_none(response)

    async def aclose(self) -> None:
        await self.transport.aclose()
