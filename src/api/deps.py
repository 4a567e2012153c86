"""Shared FastAPI dependencies.

The S/4HANA client and the workflow client are built once in the
application lifespan and stored on ``app.state``; handlers reach them
through these dependencies.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from src.integrations.s4hana.client import S4Client
from src.integrations.workflow import WorkflowClient


def get_s4_client(request: Request) -> S4Client:
    """Get the S/4HANA client from app state."""
    client = getattr(request.app.state, "s4_client", None)
    if client is None:
        raise HTTPException(status_code=503, detail="S/4HANA client is not available")
    return client


def get_workflow_client(request: Request) -> WorkflowClient | None:
    """Get the workflow client, or None when the workflow API is not configured."""
    return getattr(request.app.state, "workflow_client", None)
