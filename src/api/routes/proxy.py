"""Read-only OData proxy endpoints.

Each resource name maps to an S/4HANA entity set. Callers pass simple
query parameters (``filter``, ``top``, ``skip``, ``select``) which are
translated into OData system query options.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from src.api.deps import get_s4_client
from src.core.auth import require_basic_auth
from src.core.config import Settings, get_settings
from src.integrations.s4hana.client import S4Client
from src.integrations.s4hana.odata import build_query, unwrap_results
from src.procurement.requisition import sort_by_document_date

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/odata/v4/proxy", tags=["proxy"], dependencies=[Depends(require_basic_auth)])

# resource name -> (entity set path, entity label)
RESOURCES: dict[str, tuple[str, str]] = {
    "getcompanycode": ("/sap/opu/odata/sap/ZAPI_COMPCODE_CDS/ZAPI_COMPCODE", "ZAPI_COMPCODE"),
    "getsupplier": ("/sap/opu/odata/sap/ZAPI_SUPPLIER_CDS/ZAPI_SUPPLIER", "ZAPI_SUPPLIER"),
    "getglaccount": ("/sap/opu/odata/sap/ZAPI_GLACCOUNT_CDS/ZAPI_GLACCOUNT", "ZAPI_GLACCOUNT"),
    "getcostcenter": ("/sap/opu/odata/sap/ZAPI_COSTCENTER_CDS/ZAPI_COSTCENTER", "ZAPI_COSTCENTER"),
    "getassetnumber": ("/sap/opu/odata/sap/ZAPI_ASSET_NUM_CDS/ZAPI_ASSET_NUM", "ZAPI_ASSET_NUM"),
    "getinternalorder": ("/sap/opu/odata/sap/ZAPI_INT_ORDER_CDS/ZAPI_INT_ORDER", "ZAPI_INT_ORDER"),
    "getprpodata": ("/sap/opu/odata/sap/ZAPI_PRPO_CDS/ZAPI_PRPO", "ZAPI_PRPO"),
    "getcurrency": ("/sap/opu/odata/sap/ZAPI_CURRENCY_CDS/ZAPI_CURRENCY", "ZAPI_CURRENCY"),
    "getbtp1251data": ("/sap/opu/odata/sap/ZAPIT_BTP_1251_SRV/ZAPIT_BTP_1251Set", "ZAPIT_BTP_1251Set"),
    "getpofaldata": ("/sap/opu/odata/sap/ZAPI_001_PO_FAL_SRV/FALSet", "FALSet"),
    "getthrshld": ("/sap/opu/odata/sap/ZAPI_PO_THRSHLD_CDS/ZAPI_PO_THRSHLD", "ZAPI_PO_THRSHLD"),
    "getcclreas": ("/sap/opu/odata/sap/ZAPI_PO_CCLREAS_CDS/ZAPI_PO_CCLREAS", "ZAPI_PO_CCLREAS"),
    "getglNc": ("/sap/opu/odata/sap/ZAPI_PO_GL_NC_CDS/ZAPI_PO_GL_NC", "ZAPI_PO_GL_NC"),
    "getdelapprover": ("/sap/opu/odata/sap/Z_SAP_SUBSTITUT_CDS/Z_SAP_SUBSTITUT", "Z_SAP_SUBSTITUT"),
    "getpurchaseorder": (
        "/sap/opu/odata/sap/API_PURCHASEORDER_PROCESS_SRV/A_POSubcontractingComponent",
        "A_POSubcontractingComponent",
    ),
    "getpofal": ("/sap/opu/odata/sap/ZAPI_002_PO_FAL_SRV/FALSet", "FALSet"),
    "getmtrldocument": (
        "/sap/opu/odata/sap/API_MATERIAL_DOCUMENT_SRV/A_MaterialDocumentHeader",
        "A_MaterialDocumentHeader",
    ),
    "getdeliveryaddr": ("/sap/opu/odata/sap/ZAPI_PO_DELV_AD_CDS/ZAPI_PO_DELV_AD", "ZAPI_PO_DELV_AD"),
    "getMaterialGroup": ("/sap/opu/odata/sap/ZAPI_MATKL_GL_CDS/ZAPI_MATKL_GL", "ZAPI_MATKL_GL"),
    "getmrdata": ("/sap/opu/odata/sap/ZAPI_SMR_MR_HDR_CDS/ZAPI_SMR_MR_HDR", "ZAPI_SMR_MR_HDR"),
}

# Resources whose records are returned sorted by document date.
SORTED_BY_DOCUMENT_DATE = frozenset({"getprpodata"})


def query_from_request(request: Request, default_top: int) -> dict[str, str]:
    """Translate caller query parameters into OData options."""
    args = request.query_params
    return build_query(
        filter_expr=args.get("filter") or args.get("$filter"),
        top=args.get("top") or args.get("limit") or default_top,
        skip=args.get("skip"),
        select=args.get("select"),
    )


@router.get("/{resource}")
async def fetch_resource(
    resource: str,
    request: Request,
    s4: S4Client = Depends(get_s4_client),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """Fetch records of a catalogued entity set."""
    if resource not in RESOURCES:
        raise HTTPException(status_code=404, detail=f"Unknown resource: {resource}")
    path, entity = RESOURCES[resource]

    params = query_from_request(request, settings.s4_default_top)
    payload = await s4.read(path, params=params)
    records = unwrap_results(payload)
    if resource in SORTED_BY_DOCUMENT_DATE and isinstance(records, list):
        records = sort_by_document_date(records)

    count = len(records) if isinstance(records, list) else "Unknown"
    logger.info("[S4 Proxy] %s fetch success. Records: %s", entity, count)
    return {
        "success": True,
        "message": f"Fetched {entity} data successfully",
        "entity": entity,
        "data": records,
    }
