"""Approval routing helpers.

Builds the FAL (financial approval limit) and delegate lookups and maps
their results into the flags and e-mail lists the workflow consumes.
"""

from __future__ import annotations

import base64
from typing import Any

from src.integrations.s4hana.odata import quote_literal

FAL_ENTITY_SET = "/sap/opu/odata/sap/ZAPI_001_PO_FAL_SRV/FALSet"
DELEGATE_ENTITY_SET = "/sap/opu/odata/sap/Z_SAP_SUBSTITUT_CDS/Z_SAP_SUBSTITUT"
DELEGATE_UPDATE_SERVICE = "/sap/opu/odata/sap/ZAPI_DEL_APPROVER_SRV"
DELEGATE_UPDATE_ENTITY_SET = f"{DELEGATE_UPDATE_SERVICE}/UpdateReqSet"

APPROVAL_LEVELS = 8


def build_fal_filter(criteria: dict[str, Any]) -> str:
    """OData filter for the approval-limit table from request criteria."""
    parts: list[str] = []
    if criteria.get("Currency"):
        parts.append(f"Waers eq {quote_literal(criteria['Currency'])}")
    if criteria.get("CompanyCode"):
        parts.append(f"Bukrs eq {quote_literal(criteria['CompanyCode'])}")
    if criteria.get("PurchasingGroup"):
        parts.append(f"Ekgrp eq {quote_literal(criteria['PurchasingGroup'])}")
    if criteria.get("Amount"):
        amount = float(criteria["Amount"])
        parts.append(f"Netwr eq {int(amount) if amount.is_integer() else amount}")
    return " and ".join(parts)


def map_approvers(records: list[dict[str, Any]]) -> dict[str, str]:
    """Map approval steps to ``L<n>Exist`` / ``L<n>email`` pairs for levels 1-8."""
    by_step: dict[str, dict[str, Any]] = {}
    for record in records:
        step = str(record.get("Stepn", ""))
        by_step.setdefault(step, record)

    approvers: dict[str, str] = {}
    for level in range(1, APPROVAL_LEVELS + 1):
        record = by_step.get(str(level))
        approvers[f"L{level}Exist"] = "true" if record else "false"
        approvers[f"L{level}email"] = (record.get("SmtpAddr") or "").lower() if record else ""
    return approvers


def build_delegate_filter(criteria: dict[str, Any]) -> str:
    if criteria.get("smtp_addr_p"):
        return f"smtp_addr_p eq {quote_literal(str(criteria['smtp_addr_p']).upper())}"
    return ""


def join_delegate_emails(records: Any) -> str:
    """Comma-separated, lower-cased delegate addresses."""
    if not isinstance(records, list):
        return ""
    return ",".join(str(record.get("smtp_addr_r") or "") for record in records).lower()


def build_approver_link(
    base_url: str,
    role: str,
    email: str,
    workflow_id: str,
    delegate_approver: str | None = None,
) -> str:
    """Link to the approval review UI with the context base64-encoded."""
    combined = f"workflowid={workflow_id}&role={role}&email={email}"
    if delegate_approver and delegate_approver.strip():
        combined += f"&delegateapprover={delegate_approver}"
    encoded = base64.b64encode(combined.encode("utf-8")).decode("ascii")
    return f"{base_url}(value='{encoded}')"
