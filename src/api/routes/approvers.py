"""Approver determination endpoints used by the BPA workflow.

Provides the approval-limit lookup, delegate lookup, approval link
generation and delegate registration.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from src.api.deps import get_s4_client
from src.core.auth import require_basic_auth
from src.core.config import Settings, get_settings
from src.integrations.s4hana.client import S4Client
from src.integrations.s4hana.odata import build_query, unwrap_entity, unwrap_results
from src.procurement.approvers import (
    DELEGATE_ENTITY_SET,
    DELEGATE_UPDATE_ENTITY_SET,
    FAL_ENTITY_SET,
    build_approver_link,
    build_delegate_filter,
    build_fal_filter,
    join_delegate_emails,
    map_approvers,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["approvers"], dependencies=[Depends(require_basic_auth)])


def _require_body(payload: dict[str, Any] | None) -> dict[str, Any]:
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body with filter parameters is required.",
        )
    return payload


@router.post("/http/Get/FALSet")
async def get_fal_approvers(
    payload: dict[str, Any] | None = Body(default=None),
    s4: S4Client = Depends(get_s4_client),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """Resolve the approvers for levels 1-8 from the approval-limit table."""
    criteria = _require_body(payload)
    params = build_query(filter_expr=build_fal_filter(criteria), top=settings.s4_default_top)
    records = unwrap_results(await s4.read(FAL_ENTITY_SET, params=params))
    if not isinstance(records, list):
        records = []
    logger.info("[S4 Proxy FAL] FALSet fetch success. Records: %d", len(records))
    return {"Approvers": map_approvers(records)}


@router.post("/http/Get/Delegates")
async def get_delegates(
    payload: dict[str, Any] | None = Body(default=None),
    s4: S4Client = Depends(get_s4_client),
    settings: Settings = Depends(get_settings),
) -> dict[str, str]:
    """Return the delegates registered for a principal approver."""
    criteria = _require_body(payload)
    params = build_query(filter_expr=build_delegate_filter(criteria), top=settings.s4_default_top)
    records = unwrap_results(await s4.read(DELEGATE_ENTITY_SET, params=params))
    return {"delegateapproveremail": join_delegate_emails(records)}


@router.post("/http/get/Approverlink")
async def get_approver_link(
    payload: dict[str, Any] | None = Body(default=None),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """Build the review link sent to an approver."""
    body = payload or {}
    role, email, workflow_id = body.get("Role"), body.get("email"), body.get("Workflow_id")
    if not role or not email or not workflow_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields. Required: Role, email, Workflow_id",
        )
    url = build_approver_link(
        settings.approver_link_base_url,
        str(role),
        str(email),
        str(workflow_id),
        body.get("DelegateApprover"),
    )
    return {"response": {"url": url}}


@router.post("/odata/v4/proxy/postdeligate", status_code=status.HTTP_201_CREATED)
async def post_delegate(
    payload: dict[str, Any] | None = Body(default=None),
    s4: S4Client = Depends(get_s4_client),
) -> dict[str, Any]:
    """Register a delegate approver in S/4HANA."""
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid payload. Request body is required for delegation.",
        )
    posted = await s4.write("POST", DELEGATE_UPDATE_ENTITY_SET, json=payload)
    logger.info("[S4 Proxy] Delegate approver record posted")
    return {
        "success": True,
        "message": "Delegate Approver record posted successfully.",
        "data": unwrap_entity(posted),
    }
