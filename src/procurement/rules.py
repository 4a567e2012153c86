"""Business rules for purchase order derivation.

Company-specific determinations applied while translating BPA
requisition inputs into S/4HANA purchase order fields.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, timedelta
from typing import Any

logger = logging.getLogger(__name__)

_BUDGETED_VALUES = frozenset({"YES", "Y", "TRUE"})

# Company code -> (budgeted PO type, non-budgeted PO type)
PO_TYPES_BY_COMPANY: dict[str, tuple[str, str]] = {
    "ZB01": ("ZINA", "ZINB"),
    "ZP01": ("ZINA", "ZINB"),
    "ZP03": ("ZINA", "ZINB"),
    "ZC01": ("ZINA", "ZINB"),
    "ZA01": ("ZINF", "ZING"),
    "ZA02": ("ZINF", "ZING"),
}

PURCHASING_ORG_BY_COMPANY: dict[str, str] = {
    "ZB01": "ZB01",
    "ZC01": "ZC01",
    "ZP01": "ZP01",
    "ZP03": "ZP01",
    "ZA01": "ZA01",
    "ZA02": "ZA01",
}

# RA00/RB00 are item discounts (percent/amount), HA00/HB00 header lump sums.
CONDITION_TYPES = ("RA00", "RB00", "HA00", "HB00")


def as_text(value: Any, default: str = "") -> str:
    """Render a loosely typed input value as an OData string field.

    Falsy values give ``default``; integral floats drop their ``.0``.
    """
    if value is None or value == "" or value is False or value == 0:
        return default
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _normalise(value: Any) -> str:
    return str(value).strip().upper() if value is not None else ""


def determine_purchase_order_type(company_id: Any, budgeted: Any) -> str:
    """Return the PO document type for a company and budget flag."""
    company = _normalise(company_id)
    if not company or not budgeted:
        return ""
    types = PO_TYPES_BY_COMPANY.get(company)
    if types is None:
        return ""
    is_budgeted = _normalise(budgeted) in _BUDGETED_VALUES
    return types[0] if is_budgeted else types[1]


def determine_purchasing_organisation(company_id: Any) -> str:
    """Return the purchasing organisation responsible for a company."""
    return PURCHASING_ORG_BY_COMPANY.get(_normalise(company_id), "")


def determine_condition_rate_value(
    condition_type: Any,
    discount: Any,
    discount_amt: Any,
    lumpsum_discount: Any,
    lumpsum_discount_amt: Any,
) -> str:
    """Pick the rate for a pricing condition; ``"0"`` means no condition."""
    values = {
        "RA00": discount,
        "RB00": discount_amt,
        "HA00": lumpsum_discount,
        "HB00": lumpsum_discount_amt,
    }
    condition = _normalise(condition_type)
    if condition not in values:
        return "0"
    return as_text(values[condition], "0")


def item_number(index: int) -> str:
    """Zero-based position -> S/4 item number (``00010``, ``00020``, ...)."""
    return str((index + 1) * 10).zfill(5)


def account_assignment_category(value: Any) -> str:
    """Asset items use category ``A``; everything else is cost-centre ``K``."""
    return "A" if _normalise(value) == "A" else "K"


def valid_future_date(value: Any, today: date | None = None) -> str:
    """Return a delivery date S/4 will accept for a schedule line update.

    Missing dates become today + 30 days, past dates become tomorrow,
    anything else is returned unchanged as text.
    """
    today = today or datetime.now(UTC).date()
    text = "" if value is None else str(value).strip()
    if not text:
        return (today + timedelta(days=30)).isoformat()
    try:
        requested = datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        logger.warning("Unparseable delivery date %r, using tomorrow", value)
        return (today + timedelta(days=1)).isoformat()
    if requested < today:
        logger.warning("Date %s is in the past, setting to tomorrow", text)
        return (today + timedelta(days=1)).isoformat()
    return text
