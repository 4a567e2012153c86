"""Error types raised by the S/4HANA request execution layer.

Backend errors keep the network-level ``code`` and the HTTP-level
``status`` of the failure so callers can classify them without
unwrapping.
"""

from __future__ import annotations

from typing import Any

# Network-level codes surfaced by the transport.
ECONNRESET = "ECONNRESET"
ETIMEDOUT = "ETIMEDOUT"
ECONNREFUSED = "ECONNREFUSED"
ETRANSPORT = "ETRANSPORT"

TRANSIENT_CODES = frozenset({ECONNRESET, ETIMEDOUT})


class S4Error(Exception):
    """Base class for S/4HANA integration errors."""


class BackendError(S4Error):
    """A single backend call failed.

    Attributes:
        status: HTTP status of the backend response, if one was received.
        code: Network-level error code, if the call never got a response.
        body: Decoded response body (JSON or text), if any.
        headers: Response headers, if any.
    """

    def __init__(
        self,
        message: str,
        *,
        status: int | None = None,
        code: str | None = None,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.body = body
        self.headers = headers or {}


class TransientBackendError(BackendError):
    """Connection reset, timeout or 5xx. Eligible for retry."""


class TerminalBackendError(BackendError):
    """4xx or any failure not expected to resolve on retry."""


class TokenFetchError(S4Error):
    """No CSRF token could be obtained for a service path."""

    def __init__(self, key: str, message: str, *, status: int | None = None, code: str | None = None) -> None:
        super().__init__(f"CSRF token fetch for {key} failed: {message}")
        self.key = key
        self.status = status
        self.code = code


def is_transient(exc: BaseException) -> bool:
    """Classify a failed call as transient (retryable) or terminal.

    Works on any structured error exposing ``code`` and/or ``status``
    (or ``response.status_code``), not only on :class:`BackendError`.
    """
    code = getattr(exc, "code", None)
    if code in TRANSIENT_CODES:
        return True
    status = getattr(exc, "status", None)
    if status is None:
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
    return isinstance(status, int) and 500 <= status <= 599
