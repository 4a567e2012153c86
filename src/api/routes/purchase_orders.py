"""Purchase order endpoints used by the BPA workflow.

Creates purchase orders from approved requisitions, applies updates and
cancellations item by item, and exposes the PO read used to decide
whether further approval is required.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status

from src.api.deps import get_s4_client
from src.core.auth import require_basic_auth
from src.integrations.s4hana.client import S4Client
from src.integrations.s4hana.errors import S4Error
from src.integrations.s4hana.odata import build_query, first_result, quote_literal, unwrap_entity
from src.procurement.purchase_order import (
    PO_ENTITY_SET,
    PO_SERVICE,
    account_assignment_path,
    build_account_assignment_update,
    build_header_update,
    build_item_update,
    build_pricing_update,
    build_purchase_order,
    build_schedule_line_update,
    item_path,
    pricing_element_path,
    purchase_order_path,
    schedule_line_path,
    transform_purchase_order,
)
from src.procurement.rules import item_number

logger = logging.getLogger(__name__)

router = APIRouter(tags=["purchase-orders"], dependencies=[Depends(require_basic_auth)])

APPROVAL_EXPAND = "to_PurchaseOrderItem/to_AccountAssignment"
METADATA_CSRF_KEY = f"{PO_SERVICE}/$metadata"


def _requisition_inputs(payload: dict[str, Any] | None) -> dict[str, Any]:
    """Return ``context.prRequisitionInputs`` or reject the request."""
    inputs = ((payload or {}).get("context") or {}).get("prRequisitionInputs")
    if not isinstance(inputs, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid payload. Expecting context.prRequisitionInputs.",
        )
    return inputs


@router.post("/http/post/data", status_code=status.HTTP_201_CREATED)
async def create_purchase_order(
    payload: dict[str, Any] | None = Body(default=None),
    s4: S4Client = Depends(get_s4_client),
) -> dict[str, Any]:
    """Create a purchase order from the approved requisition inputs."""
    source = _requisition_inputs(payload)
    body = build_purchase_order(source)
    created = unwrap_entity(await s4.write("POST", PO_ENTITY_SET, json=body))
    if not isinstance(created, dict):
        created = {}
    po_number = created.get("PurchaseOrder") or "Unknown"
    logger.info("PO created: %s", po_number)
    return transform_purchase_order(created, po_number)


async def _update_item(s4: S4Client, po_number: str, index: int, item: dict[str, Any], source: dict[str, Any]) -> None:
    number = item_number(index)
    await s4.write("PATCH", item_path(po_number, number), json=build_item_update(item))
    await s4.write("PATCH", schedule_line_path(po_number, number), json=build_schedule_line_update(item))
    await s4.write("PATCH", account_assignment_path(po_number, number), json=build_account_assignment_update(item))

    pricing = build_pricing_update(item, source)
    if pricing is not None:
        try:
            await s4.write("PATCH", pricing_element_path(po_number, number), json=pricing)
        except S4Error as exc:
            logger.warning("Pricing element update skipped for item %s: %s", number, exc)


@router.post("/http/PRPO/Update")
async def update_purchase_order(
    payload: dict[str, Any] | None = Body(default=None),
    s4: S4Client = Depends(get_s4_client),
) -> dict[str, Any]:
    """Update or cancel an existing purchase order.

    The header is patched first; each item is then patched on its own
    (item, schedule line, account assignment, pricing). A failing item is
    reported in ``itemUpdateResults`` and does not stop the others.
    """
    source = _requisition_inputs(payload)
    po_number = source.get("PO_number")
    if not po_number:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing Purchase Order number (PO_number) required for update operation.",
        )
    po_number = str(po_number)

    await s4.write("PATCH", purchase_order_path(po_number), json=build_header_update(source))
    logger.info("PO header updated: %s", po_number)

    results: list[dict[str, Any]] = []
    for index, item in enumerate(source.get("Item") or []):
        number = item_number(index)
        try:
            await _update_item(s4, po_number, index, item, source)
        except Exception as exc:
            logger.error("Error updating item %s of PO %s: %s", number, po_number, exc)
            results.append({"itemNumber": number, "success": False, "error": str(exc)})
        else:
            results.append({"itemNumber": number, "success": True, "message": "Item updated successfully"})

    current = unwrap_entity(await s4.read(purchase_order_path(po_number)))
    response = transform_purchase_order(current if isinstance(current, dict) else {}, po_number)
    response["itemUpdateResults"] = results
    return response


@router.post("/http/PRPO/ApproverRequired")
async def get_approval_data(
    payload: dict[str, Any] | None = Body(default=None),
    s4: S4Client = Depends(get_s4_client),
) -> dict[str, Any]:
    """Return the PO with its items and account assignments."""
    source = (((payload or {}).get("context") or {}).get("prRequisitionInputs")) or {}
    po_number = source.get("PO_number")
    if not po_number:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required field: context.prRequisitionInputs.PO_number",
        )
    params = build_query(
        filter_expr=f"PurchaseOrder eq {quote_literal(po_number)}",
        top=1,
        expand=APPROVAL_EXPAND,
    )
    po_data = first_result(await s4.read(PO_ENTITY_SET, params=params))
    logger.info("[S4 Proxy PO Approver] Records: %d", 1 if po_data else 0)
    return {"poData": po_data}


@router.post("/odata/v4/approval/postPRPOCreation", status_code=status.HTTP_201_CREATED)
async def post_prpo_creation(
    payload: dict[str, Any] | None = Body(default=None),
    s4: S4Client = Depends(get_s4_client),
) -> dict[str, Any]:
    """Post a ready-made ``A_PurchaseOrder`` body as-is."""
    wrapper = (payload or {}).get("payload") or {}
    body = wrapper.get("A_PurchaseOrderType") if isinstance(wrapper, dict) else None
    if not body:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid payload structure: Missing A_PurchaseOrderType wrapper.",
        )
    posted = await s4.write("POST", PO_ENTITY_SET, json=body, csrf_key=METADATA_CSRF_KEY)
    return {
        "success": True,
        "message": "Successfully posted data to S/4HANA Entity Set: A_PurchaseOrder",
        "data": unwrap_entity(posted),
    }
