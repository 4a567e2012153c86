"""HTTP transport to the S/4HANA OData backend.

Performs exactly one HTTP call per :class:`RequestSpec` and maps every
failure onto the structured :mod:`errors` hierarchy. Retry and
throttling live one layer up, in the executor and dispatcher.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from src.integrations.s4hana.errors import (
    ECONNREFUSED,
    ECONNRESET,
    ETIMEDOUT,
    ETRANSPORT,
    TerminalBackendError,
    TransientBackendError,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass
class RequestSpec:
    """Description of one backend call.

    Attributes:
        method: HTTP method (GET, POST, PATCH, ...).
        path: Path relative to the backend base URL, e.g.
            ``/sap/opu/odata/sap/API_PURCHASEORDER_PROCESS_SRV/A_PurchaseOrder``.
        headers: Extra request headers.
        params: Query parameters.
        json: JSON body.
        content: Raw body (used for attachments).
        timeout: Per-call timeout in seconds.
    """

    method: str
    path: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, Any] | None = None
    json: Any = None
    content: bytes | None = None
    timeout: float = DEFAULT_TIMEOUT

    def describe(self) -> str:
        return f"{self.method} {self.path}"


def _decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class S4Transport:
    """Async transport bound to one S/4HANA system.

    Uses Basic authentication when credentials are configured and sends
    the ``sap-client`` header on every call.
    """

    def __init__(
        self,
        base_url: str,
        *,
        username: str = "",
        password: str = "",
        sap_client: str = "100",
        verify: bool = True,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._sap_client = sap_client
        auth = httpx.BasicAuth(username, password) if username and password else None
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            auth=auth,
            verify=verify,
            follow_redirects=True,
        )

    def _headers(self, extra: dict[str, str]) -> dict[str, str]:
        headers = {"Accept": "application/json", "sap-client": self._sap_client}
        headers.update(extra)
        return headers

    async def send(self, spec: RequestSpec) -> httpx.Response:
        """Execute ``spec`` and return the successful response.

        Raises:
            TransientBackendError: connection reset, timeout or 5xx.
            TerminalBackendError: 4xx, refused connection or other failures.
        """
        try:
            response = await self._client.request(
                spec.method,
                spec.path,
                headers=self._headers(spec.headers),
                params=spec.params,
                json=spec.json,
                content=spec.content,
                timeout=spec.timeout,
            )
        except httpx.TimeoutException as exc:
            raise TransientBackendError(
                f"{spec.describe()} timed out after {spec.timeout:.0f}s", code=ETIMEDOUT
            ) from exc
        except httpx.ConnectError as exc:
            raise TerminalBackendError(f"{spec.describe()} connection failed: {exc}", code=ECONNREFUSED) from exc
        except (httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError) as exc:
            raise TransientBackendError(f"{spec.describe()} connection reset: {exc}", code=ECONNRESET) from exc
        except httpx.TransportError as exc:
            raise TerminalBackendError(f"{spec.describe()} transport error: {exc}", code=ETRANSPORT) from exc

        if response.is_success:
            return response

        status = response.status_code
        error_cls = TransientBackendError if 500 <= status <= 599 else TerminalBackendError
        raise error_cls(
            f"{spec.describe()} returned HTTP {status}",
            status=status,
            body=_decode_body(response),
            headers=dict(response.headers),
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
