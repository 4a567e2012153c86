"""Health and readiness endpoints.

Health reports process uptime and the current load on the S/4HANA
request dispatcher. Neither endpoint calls the backend.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request

from src.api.version import API_VERSION

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """Report liveness.

    Returns:
        JSON object:
        {
            "status": "UP",
            "timestamp": "<ISO 8601>",
            "uptime": <seconds>,
            "version": "1.0.0",
            "dispatcher": {"max_concurrent": 5, "running": 0, "waiting": 0}
        }
    """
    started_at = getattr(request.app.state, "started_at", None)
    uptime = time.monotonic() - started_at if started_at is not None else 0.0
    s4_client = getattr(request.app.state, "s4_client", None)
    return {
        "status": "UP",
        "timestamp": datetime.now(UTC).isoformat(),
        "uptime": round(uptime, 3),
        "version": API_VERSION,
        "dispatcher": s4_client.dispatcher.stats() if s4_client is not None else None,
    }


@router.get("/ready")
async def readiness_check() -> dict[str, bool]:
    return {"ready": True}
