"""Purchase requisition endpoints.

Generates PR numbers and looks up a requisition together with the
values captured when its approval workflow started.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from fastapi import APIRouter, Body, Depends, HTTPException, status

from src.api.deps import get_s4_client, get_workflow_client
from src.core.auth import require_basic_auth
from src.core.config import Settings, get_settings
from src.integrations.s4hana.client import S4Client
from src.integrations.s4hana.odata import build_query, first_result, unwrap_entity
from src.integrations.workflow import WorkflowAPIError, WorkflowClient
from src.procurement.requisition import (
    PR_NUMBER_ENTITY_SET,
    PRPO_ENTITY_SET,
    build_pr_filter,
    derive_role,
    extract_pr_number,
    merge_workflow_context,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["requisitions"], dependencies=[Depends(require_basic_auth)])


@router.post("/odata/v4/pr/generate", status_code=status.HTTP_201_CREATED)
async def generate_pr_number(
    payload: dict[str, Any] | None = Body(default=None),
    s4: S4Client = Depends(get_s4_client),
) -> dict[str, Any]:
    """Draw the next purchase requisition number."""
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid payload. Request body is required.",
        )
    created = unwrap_entity(await s4.write("POST", PR_NUMBER_ENTITY_SET, json=payload))
    pr_number = extract_pr_number(created)
    logger.info("PR number generated: %s", pr_number)
    return {
        "success": True,
        "message": f"PR Number {pr_number} generated successfully.",
        "prNumber": pr_number,
        "data": created,
    }


@router.post("/http/Get/pr")
async def get_requisition(
    payload: dict[str, Any] | None = Body(default=None),
    s4: S4Client = Depends(get_s4_client),
    workflow: WorkflowClient | None = Depends(get_workflow_client),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """Look up a requisition by number and enrich it with workflow context."""
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body with filter parameters is required.",
        )
    params = build_query(filter_expr=build_pr_filter(payload), top=settings.s4_default_top)
    record = first_result(await s4.read(PRPO_ENTITY_SET, params=params))
    if record is None:
        logger.info("[S4 Proxy PR] No requisition found for %s", payload.get("prnum"))
        return {"prdata": None}

    pr_data = {**record, "Role": derive_role(record.get("prstat"))}

    workflow_id = record.get("workflowid")
    if workflow_id and workflow is not None:
        try:
            context = await workflow.get_context(workflow_id)
        except (WorkflowAPIError, httpx.HTTPError, ValueError) as exc:
            logger.error("Workflow context fetch failed for %s: %s", workflow_id, exc)
        else:
            pr_data = merge_workflow_context(pr_data, context)

    return {"prdata": pr_data}
