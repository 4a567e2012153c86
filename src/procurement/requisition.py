"""Purchase requisition helpers."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from src.integrations.s4hana.odata import quote_literal

PRPO_ENTITY_SET = "/sap/opu/odata/sap/ZAPI_PRPO_CDS/ZAPI_PRPO"
PR_NUMBER_ENTITY_SET = "/sap/opu/odata/sap/ZAPI_001_K2_PR_NUMBER_SRV_01/ZAPIS_K2PR_NUMSet"

_EMPTY_DATE = "00000000"


def build_pr_filter(criteria: dict[str, Any]) -> str:
    if criteria.get("prnum"):
        return f"prnum eq {quote_literal(criteria['prnum'])}"
    return ""


def extract_pr_number(created: Any) -> str:
    """Number assigned by the PR-number service, whichever field carries it."""
    if isinstance(created, dict):
        for key in ("PRNumber", "PurchaseRequisition", "Number"):
            if created.get(key):
                return str(created[key])
    return "Unknown Generated Number"


def derive_role(pr_status: Any) -> str | None:
    """The approver role is the second word of ``prstat`` (e.g. ``"Pending L2 ..."``)."""
    if not pr_status:
        return None
    words = str(pr_status).split(" ")
    return words[1] if len(words) > 1 else None


def merge_workflow_context(record: dict[str, Any], context: dict[str, Any]) -> dict[str, Any]:
    """Copy start-event values from the workflow context onto the PR record."""
    inputs = (context.get("startEvent") or {}).get("prRequisitionInputs") or {}
    merged = dict(record)
    if inputs.get("ProjectDescription"):
        merged["ProjectDescription"] = inputs["ProjectDescription"]
    if inputs.get("TotalAmount") is not None:
        merged["TotalAmount"] = inputs["TotalAmount"]
    return merged


def _document_date(record: dict[str, Any]) -> datetime:
    value = record.get("badat")
    if not value or value == _EMPTY_DATE:
        return datetime.min
    text = str(value)
    for fmt in ("%Y-%m-%d", "%Y%m%d"):
        try:
            return datetime.strptime(text[:10] if fmt == "%Y-%m-%d" else text[:8], fmt)
        except ValueError:
            continue
    return datetime.min


def sort_by_document_date(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Oldest document date first; empty dates sort before everything else."""
    return sorted(records, key=_document_date)
