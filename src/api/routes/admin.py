"""Administrative endpoints.

Lets operators drop cached CSRF tokens, for example after the backend
session store was reset.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from src.api.deps import get_s4_client
from src.core.auth import require_basic_auth
from src.integrations.s4hana.client import S4Client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/admin", tags=["admin"], dependencies=[Depends(require_basic_auth)])


class InvalidateTokenRequest(BaseModel):
    """Omit ``service_path`` to drop every cached token."""

    service_path: str | None = None


@router.post("/csrf/invalidate")
async def invalidate_csrf_tokens(
    body: InvalidateTokenRequest | None = None,
    s4: S4Client = Depends(get_s4_client),
) -> dict[str, Any]:
    service_path = body.service_path if body else None
    if service_path:
        invalidated = [service_path] if s4.csrf_cache.invalidate(service_path) else []
    else:
        invalidated = s4.csrf_cache.invalidate_all()
    logger.info("Invalidated CSRF tokens: %s", invalidated)
    return {"invalidated": invalidated, "cached": s4.csrf_cache.cached_keys()}
