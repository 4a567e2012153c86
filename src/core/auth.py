"""HTTP Basic authentication for the proxy endpoints.

Workflow and UI callers authenticate with a single technical user
configured through ``PROXY_USERNAME`` / ``PROXY_PASSWORD``.
"""

from __future__ import annotations

import logging
import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from src.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

REALM = "S4 Proxy API"

# auto_error=False so a missing header gets the same 401 as bad credentials
basic_scheme = HTTPBasic(auto_error=False, realm=REALM)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": f'Basic realm="{REALM}"'},
    )


def verify_credentials(credentials: HTTPBasicCredentials, settings: Settings) -> bool:
    """Constant-time comparison against the configured proxy user."""
    username_ok = secrets.compare_digest(
        credentials.username.encode("utf-8"),
        settings.proxy_username.encode("utf-8"),
    )
    password_ok = secrets.compare_digest(
        credentials.password.encode("utf-8"),
        settings.proxy_password.get_secret_value().encode("utf-8"),
    )
    return username_ok and password_ok


async def require_basic_auth(
    credentials: HTTPBasicCredentials | None = Depends(basic_scheme),
    settings: Settings = Depends(get_settings),
) -> str:
    """FastAPI dependency that rejects requests without valid credentials.

    Returns:
        The authenticated username.
    """
    if credentials is None:
        raise _unauthorized("Authentication required")
    if not verify_credentials(credentials, settings):
        logger.warning("Rejected credentials for user %s", credentials.username)
        raise _unauthorized("Invalid credentials")
    return credentials.username
