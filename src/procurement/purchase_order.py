"""Purchase order payload mapping.

Translates the BPA ``prRequisitionInputs`` document into
``API_PURCHASEORDER_PROCESS_SRV`` payloads and maps the verbose
``A_PurchaseOrder`` entity back into the flat contract the workflow
expects.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any

from src.integrations.s4hana.odata import odata_date_to_iso, quote_literal, to_odata_date
from src.procurement.rules import (
    account_assignment_category,
    as_text,
    determine_condition_rate_value,
    determine_purchase_order_type,
    determine_purchasing_organisation,
    item_number,
    valid_future_date,
)

PO_SERVICE = "/sap/opu/odata/sap/API_PURCHASEORDER_PROCESS_SRV"
PO_ENTITY_SET = f"{PO_SERVICE}/A_PurchaseOrder"

DEFAULT_LANGUAGE = "EN"
DEFAULT_PAYMENT_TERMS = "0030"
CANCEL_REQUEST = "2"

# (field, default) for fields copied as-is; falsy source values take the default.
_RESPONSE_TEXT_FIELDS: tuple[tuple[str, str], ...] = (
    ("CreatedByUser", ""),
    ("IsEndOfPurposeBlocked", ""),
    ("CashDiscount1Days", "0"),
    ("PurchaseOrderType", ""),
    ("PurchasingOrganization", ""),
    ("PurchasingDocumentDeletionCode", ""),
    ("NetPaymentDays", "0"),
    ("ManualSupplierAddressID", ""),
    ("IncotermsVersion", ""),
    ("AddressRegion", ""),
    ("PurchasingGroup", ""),
    ("IncotermsClassification", ""),
    ("AddressName", ""),
    ("InvoicingParty", ""),
    ("SupplyingPlant", ""),
    ("PurchasingDocumentOrigin", ""),
    ("AddressCityName", ""),
    ("AddressStreetName", ""),
    ("CashDiscount2Percent", "0.000"),
    ("ExchangeRate", "0.00000"),
    ("SupplyingSupplier", ""),
    ("PaymentTerms", ""),
    ("AddressCountry", ""),
    ("AddressPostalCode", ""),
    ("PurchaseOrderSubtype", ""),
    ("Language", ""),
    ("SupplierRespSalesPersonName", ""),
    ("SupplierQuotationExternalID", ""),
    ("Supplier", ""),
    ("IncotermsLocation2", ""),
    ("IncotermsLocation1", ""),
    ("AddressFaxNumber", ""),
    ("AddressPhoneNumber", ""),
    ("AddressCorrespondenceLanguage", ""),
    ("DocumentCurrency", ""),
    ("PurchasingProcessingStatus", ""),
    ("SupplierPhoneNumber", ""),
    ("CashDiscount2Days", "0"),
    ("CompanyCode", ""),
    ("CashDiscount1Percent", "0.000"),
    ("AddressHouseNumber", ""),
)
_RESPONSE_DATE_FIELDS = (
    "CreationDate",
    "ValidityStartDate",
    "ValidityEndDate",
    "PurchaseOrderDate",
    "LastChangeDateTime",
)
_RESPONSE_FLAG_FIELDS = ("PurchasingCompletenessStatus", "ReleaseIsNotCompleted")


# ---------------------------------------------------------------------------
# Entity paths
# ---------------------------------------------------------------------------


def purchase_order_path(po_number: str) -> str:
    return f"{PO_SERVICE}/A_PurchaseOrder({quote_literal(po_number)})"


def item_path(po_number: str, item: str) -> str:
    return (
        f"{PO_SERVICE}/A_PurchaseOrderItem("
        f"PurchaseOrder={quote_literal(po_number)},PurchaseOrderItem={quote_literal(item)})"
    )


def schedule_line_path(po_number: str, item: str, schedule_line: str = "0001") -> str:
    return (
        f"{PO_SERVICE}/A_PurOrdScheduleLine(PurchaseOrder={quote_literal(po_number)},"
        f"PurchaseOrderItem={quote_literal(item)},ScheduleLine={quote_literal(schedule_line)})"
    )


def account_assignment_path(po_number: str, item: str, assignment: str = "01") -> str:
    return (
        f"{PO_SERVICE}/A_PurOrdAccountAssignment(PurchaseOrder={quote_literal(po_number)},"
        f"PurchaseOrderItem={quote_literal(item)},AccountAssignmentNumber={quote_literal(assignment)})"
    )


def pricing_element_path(po_number: str, item: str) -> str:
    return (
        f"{PO_SERVICE}/A_PurOrdPricingElement(PurchaseOrder={quote_literal(po_number)},"
        f"PurchaseOrderItem={quote_literal(item)},PricingDocument='',PricingDocumentItem='',"
        "PricingProcedureStep='',PricingProcedureCounter='')"
    )


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------


def _item_condition(item: dict[str, Any], source: dict[str, Any]) -> tuple[str, str]:
    condition_type = item.get("ConditionType") or ""
    rate = determine_condition_rate_value(
        condition_type,
        item.get("Discount"),
        item.get("DiscountAmt"),
        source.get("LumpsumDiscount"),
        source.get("LumpsumDiscountAmt"),
    )
    return condition_type, rate


def build_item(index: int, item: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    """Build one ``to_PurchaseOrderItem`` entry with its deep-insert children."""
    number = item_number(index)
    quantity = as_text(item.get("Quantity"), "0")
    payload: dict[str, Any] = {
        "PurchaseOrder": "",
        "PurchaseOrderItem": number,
        "Plant": source.get("CompanyId") or "",
        "ProductType": "1",
        "MaterialGroup": item.get("MaterialGroup") or "",
        "OrderQuantity": quantity,
        "NetPriceAmount": as_text(item.get("UnitPrice"), "0"),
        "OrderPriceUnit": "EA",
        "DocumentCurrency": source.get("Currency_Code") or "",
        "NetPriceQuantity": "1",
        "RequisitionerName": source.get("RequestorName") or "",
        "PurchaseOrderItemText": item.get("ItemDescription") or "",
        "AccountAssignmentCategory": account_assignment_category(item.get("AssetAccountAssignmentCategory")),
        "GoodsReceiptIsNonValuated": True,
        "PurchaseOrderItemCategory": "0",
        "PurchaseOrderQuantityUnit": "EA",
        "OrderPriceUnitToOrderUnitNmrtr": "1",
        "OrdPriceUnitToOrderUnitDnmntr": "1",
        "GoodsReceiptIsExpected": True,
        "ReferenceDeliveryAddressID": source.get("Delivery_Address") or "",
        "InvoiceIsGoodsReceiptBased": True,
        "to_AccountAssignment": {
            "results": [
                {
                    "PurchaseOrder": "",
                    "PurchaseOrderItem": number,
                    "AccountAssignmentNumber": "1",
                    **build_account_assignment_update(item),
                }
            ]
        },
    }

    condition_type, rate = _item_condition(item, source)
    if condition_type and rate != "0":
        payload["to_PurchaseOrderPricingElement"] = {
            "results": [{"ConditionType": condition_type, "ConditionRateValue": rate}]
        }

    payload["to_ScheduleLine"] = {
        "results": [{"ScheduleLineDeliveryDate": to_odata_date(item.get("LineEstDelivDate"))}]
    }
    return payload


def build_purchase_order(source: dict[str, Any], now: datetime | None = None) -> dict[str, Any]:
    """Build the deep-insert ``A_PurchaseOrder`` body from requisition inputs."""
    now = now or datetime.now(UTC)
    items = source.get("Item") or []
    return {
        "PurchaseOrder": "",
        "PurchaseOrderType": determine_purchase_order_type(source.get("CompanyId"), source.get("Budgeted")),
        "CompanyCode": source.get("CompanyId") or "",
        "Supplier": source.get("Vendor_Recommendation") or "",
        "Language": DEFAULT_LANGUAGE,
        "PaymentTerms": DEFAULT_PAYMENT_TERMS,
        "PurchasingGroup": source.get("PurchasingGroup") or "",
        "DocumentCurrency": source.get("Currency_Code") or "",
        "PurchaseOrderDate": to_odata_date(now),
        "PurchasingOrganization": determine_purchasing_organisation(source.get("CompanyId")),
        "PurchasingDocumentOrigin": "9",
        "SupplierRespSalesPersonName": f"{source.get('PRNumber') or ''} - Created",
        "to_PurchaseOrderItem": {"results": [build_item(i, item, source) for i, item in enumerate(items)]},
        "ReleaseIsNotCompleted": True,
        "PurchasingCompletenessStatus": False,
    }


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------


def build_header_update(source: dict[str, Any]) -> dict[str, Any]:
    """Header fields changed by an update or cancel request."""
    suffix = "Cancel" if str(source.get("PO_Request") or "") == CANCEL_REQUEST else "PO Updated"
    return {
        "PurchasingGroup": source.get("PurchasingGroup") or "",
        "DocumentCurrency": source.get("Currency_Code") or "",
        "SupplierRespSalesPersonName": f"{source.get('PRNumber') or ''} - {suffix}",
    }


def build_item_update(item: dict[str, Any]) -> dict[str, Any]:
    return {
        "OrderQuantity": as_text(item.get("Quantity"), "0"),
        "NetPriceAmount": as_text(item.get("UnitPrice"), "0"),
        "PurchaseOrderItemText": item.get("ItemDescription") or "",
        "MaterialGroup": item.get("MaterialGroup") or "",
    }


def build_schedule_line_update(item: dict[str, Any], today: date | None = None) -> dict[str, Any]:
    return {"ScheduleLineDeliveryDate": to_odata_date(valid_future_date(item.get("LineEstDelivDate"), today))}


def build_account_assignment_update(item: dict[str, Any]) -> dict[str, Any]:
    return {
        "Quantity": as_text(item.get("Quantity"), "0"),
        "GLAccount": item.get("GLaccount") or "",
        "CostCenter": item.get("CostCenter") or "",
        "MasterFixedAsset": item.get("AssetCode") or "",
        "OrderID": item.get("NominalCode") or "",
    }


def build_pricing_update(item: dict[str, Any], source: dict[str, Any]) -> dict[str, Any] | None:
    """Pricing change for an item, or None when it carries no condition."""
    condition_type, rate = _item_condition(item, source)
    if not condition_type or rate == "0":
        return None
    return {"ConditionRateValue": rate}


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------


def transform_purchase_order(entity: dict[str, Any], po_number: str) -> dict[str, Any]:
    """Flatten an ``A_PurchaseOrder`` entity into the workflow response shape."""
    target: dict[str, Any] = {}
    for field_name, default in _RESPONSE_TEXT_FIELDS:
        target[field_name] = entity.get(field_name) or default
    for field_name in _RESPONSE_DATE_FIELDS:
        target[field_name] = odata_date_to_iso(entity.get(field_name))
    for field_name in _RESPONSE_FLAG_FIELDS:
        value = entity.get(field_name) or False
        target[field_name] = str(value).lower() if isinstance(value, bool) else str(value)
    target["PurchaseOrder"] = po_number
    return {"A_PurchaseOrder": {"A_PurchaseOrderType": target}}
