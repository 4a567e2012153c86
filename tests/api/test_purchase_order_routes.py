"""Tests for the purchase order routes."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest
from httpx import AsyncClient

from src.integrations.s4hana.errors import TerminalBackendError
from src.procurement.purchase_order import (
    PO_ENTITY_SET,
    PO_SERVICE,
    item_path,
    pricing_element_path,
    purchase_order_path,
)

PO_NUMBER = "4500000042"


def _inputs(**overrides: Any) -> dict[str, Any]:
    inputs: dict[str, Any] = {
        "PRNumber": "PR-0042",
        "CompanyId": "ZB01",
        "Budgeted": "Yes",
        "PurchasingGroup": "P01",
        "Currency_Code": "GBP",
        "Item": [
            {"Quantity": 1, "UnitPrice": 10, "ConditionType": "RA00", "Discount": 5, "LineEstDelivDate": "2099-01-01"},
            {"Quantity": 2, "UnitPrice": 20, "LineEstDelivDate": "2099-01-01"},
        ],
    }
    inputs.update(overrides)
    return {"context": {"prRequisitionInputs": inputs}}


def _written_paths(mock_s4_client: MagicMock) -> list[str]:
    return [call.args[1] for call in mock_s4_client.write.await_args_list]


class TestCreatePurchaseOrder:
    """Tests for POST /http/post/data."""

    @pytest.mark.asyncio
    async def test_creates_and_maps_response(self, client: AsyncClient, mock_s4_client: MagicMock) -> None:
        mock_s4_client.write.return_value = {
            "d": {"PurchaseOrder": PO_NUMBER, "CompanyCode": "ZB01", "CreationDate": "/Date(1736899200000)/"}
        }

        response = await client.post("/http/post/data", json=_inputs())

        assert response.status_code == 201
        po = response.json()["A_PurchaseOrder"]["A_PurchaseOrderType"]
        assert po["PurchaseOrder"] == PO_NUMBER
        assert po["CompanyCode"] == "ZB01"
        assert po["CreationDate"] == "2025-01-15T00:00:00.000"

        method, path = mock_s4_client.write.call_args.args
        body = mock_s4_client.write.call_args.kwargs["json"]
        assert (method, path) == ("POST", PO_ENTITY_SET)
        assert body["PurchaseOrderType"] == "ZINA"
        assert len(body["to_PurchaseOrderItem"]["results"]) == 2

    @pytest.mark.asyncio
    async def test_missing_inputs(self, client: AsyncClient, mock_s4_client: MagicMock) -> None:
        response = await client.post("/http/post/data", json={"context": {}})

        assert response.status_code == 400
        mock_s4_client.write.assert_not_called()

    @pytest.mark.asyncio
    async def test_backend_rejection(self, client: AsyncClient, mock_s4_client: MagicMock) -> None:
        mock_s4_client.write.side_effect = TerminalBackendError(
            "POST failed", status=400, body={"error": {"code": "06/017"}}
        )

        response = await client.post("/http/post/data", json=_inputs())

        assert response.status_code == 400
        assert response.json()["error"] == {"error": {"code": "06/017"}}


class TestUpdatePurchaseOrder:
    """Tests for POST /http/PRPO/Update."""

    @pytest.mark.asyncio
    async def test_patches_header_then_items(self, client: AsyncClient, mock_s4_client: MagicMock) -> None:
        mock_s4_client.read.return_value = {"d": {"PurchaseOrder": PO_NUMBER, "PurchasingGroup": "P01"}}

        response = await client.post("/http/PRPO/Update", json=_inputs(PO_number=PO_NUMBER))

        assert response.status_code == 200
        body = response.json()
        assert body["A_PurchaseOrder"]["A_PurchaseOrderType"]["PurchaseOrder"] == PO_NUMBER
        assert body["itemUpdateResults"] == [
            {"itemNumber": "00010", "success": True, "message": "Item updated successfully"},
            {"itemNumber": "00020", "success": True, "message": "Item updated successfully"},
        ]
        paths = _written_paths(mock_s4_client)
        assert paths[0] == purchase_order_path(PO_NUMBER)
        # Item 10 has a discount, item 20 does not.
        assert pricing_element_path(PO_NUMBER, "00010") in paths
        assert pricing_element_path(PO_NUMBER, "00020") not in paths
        assert len(paths) == 1 + 4 + 3
        header = mock_s4_client.write.await_args_list[0].kwargs["json"]
        assert header["SupplierRespSalesPersonName"] == "PR-0042 - PO Updated"

    @pytest.mark.asyncio
    async def test_failed_item_does_not_stop_others(self, client: AsyncClient, mock_s4_client: MagicMock) -> None:
        failing_path = item_path(PO_NUMBER, "00010")

        def write(method: str, path: str, **kwargs: Any) -> None:
            if path == failing_path:
                raise TerminalBackendError("PATCH failed", status=400)
            return None

        mock_s4_client.write.side_effect = write
        mock_s4_client.read.return_value = {"d": {"PurchaseOrder": PO_NUMBER}}

        response = await client.post("/http/PRPO/Update", json=_inputs(PO_number=PO_NUMBER))

        results = response.json()["itemUpdateResults"]
        assert results[0]["success"] is False
        assert results[0]["error"] == "PATCH failed"
        assert results[1]["success"] is True

    @pytest.mark.asyncio
    async def test_numeric_delivery_date(self, client: AsyncClient, mock_s4_client: MagicMock) -> None:
        mock_s4_client.read.return_value = {"d": {"PurchaseOrder": PO_NUMBER}}
        items = [{"Quantity": 1, "UnitPrice": 10, "LineEstDelivDate": 20990101}]

        response = await client.post("/http/PRPO/Update", json=_inputs(PO_number=PO_NUMBER, Item=items))

        assert response.status_code == 200
        assert response.json()["itemUpdateResults"] == [
            {"itemNumber": "00010", "success": True, "message": "Item updated successfully"},
        ]
        schedule_lines = [
            call.kwargs["json"]
            for call in mock_s4_client.write.await_args_list
            if "ScheduleLineDeliveryDate" in call.kwargs["json"]
        ]
        assert schedule_lines == [{"ScheduleLineDeliveryDate": "/Date(4070908800000)/"}]

    @pytest.mark.asyncio
    async def test_unexpected_item_error_is_reported(self, client: AsyncClient, mock_s4_client: MagicMock) -> None:
        failing_path = item_path(PO_NUMBER, "00010")

        def write(method: str, path: str, **kwargs: Any) -> None:
            if path == failing_path:
                raise TypeError("bad item payload")
            return None

        mock_s4_client.write.side_effect = write
        mock_s4_client.read.return_value = {"d": {"PurchaseOrder": PO_NUMBER}}

        response = await client.post("/http/PRPO/Update", json=_inputs(PO_number=PO_NUMBER))

        assert response.status_code == 200
        results = response.json()["itemUpdateResults"]
        assert results[0] == {"itemNumber": "00010", "success": False, "error": "bad item payload"}
        assert results[1]["success"] is True

    @pytest.mark.asyncio
    async def test_pricing_failure_is_not_an_item_failure(
        self, client: AsyncClient, mock_s4_client: MagicMock
    ) -> None:
        pricing_path = pricing_element_path(PO_NUMBER, "00010")

        def write(method: str, path: str, **kwargs: Any) -> None:
            if path == pricing_path:
                raise TerminalBackendError("no pricing element", status=404)
            return None

        mock_s4_client.write.side_effect = write
        mock_s4_client.read.return_value = {"d": {"PurchaseOrder": PO_NUMBER}}

        response = await client.post("/http/PRPO/Update", json=_inputs(PO_number=PO_NUMBER))

        assert all(result["success"] for result in response.json()["itemUpdateResults"])

    @pytest.mark.asyncio
    async def test_cancel_request(self, client: AsyncClient, mock_s4_client: MagicMock) -> None:
        mock_s4_client.read.return_value = {"d": {"PurchaseOrder": PO_NUMBER}}

        await client.post("/http/PRPO/Update", json=_inputs(PO_number=PO_NUMBER, PO_Request="2", Item=[]))

        header = mock_s4_client.write.await_args_list[0].kwargs["json"]
        assert header["SupplierRespSalesPersonName"] == "PR-0042 - Cancel"
        assert mock_s4_client.write.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_po_number(self, client: AsyncClient, mock_s4_client: MagicMock) -> None:
        response = await client.post("/http/PRPO/Update", json=_inputs())

        assert response.status_code == 400
        assert "PO_number" in response.json()["detail"]
        mock_s4_client.write.assert_not_called()


class TestApproverRequired:
    """Tests for POST /http/PRPO/ApproverRequired."""

    @pytest.mark.asyncio
    async def test_reads_po_with_expansion(self, client: AsyncClient, mock_s4_client: MagicMock) -> None:
        record = {"PurchaseOrder": PO_NUMBER, "to_PurchaseOrderItem": {"results": []}}
        mock_s4_client.read.return_value = {"d": {"results": [record]}}

        response = await client.post("/http/PRPO/ApproverRequired", json=_inputs(PO_number=PO_NUMBER))

        assert response.json() == {"poData": record}
        assert mock_s4_client.read.call_args.kwargs["params"] == {
            "$filter": f"PurchaseOrder eq '{PO_NUMBER}'",
            "$top": "1",
            "$expand": "to_PurchaseOrderItem/to_AccountAssignment",
        }

    @pytest.mark.asyncio
    async def test_no_match(self, client: AsyncClient, mock_s4_client: MagicMock) -> None:
        mock_s4_client.read.return_value = {"d": {"results": []}}

        response = await client.post("/http/PRPO/ApproverRequired", json=_inputs(PO_number=PO_NUMBER))

        assert response.json() == {"poData": None}

    @pytest.mark.asyncio
    async def test_missing_po_number(self, client: AsyncClient) -> None:
        response = await client.post("/http/PRPO/ApproverRequired", json={})
        assert response.status_code == 400


class TestPostPRPOCreation:
    """Tests for POST /odata/v4/approval/postPRPOCreation."""

    @pytest.mark.asyncio
    async def test_posts_body_as_is(self, client: AsyncClient, mock_s4_client: MagicMock) -> None:
        body = {"CompanyCode": "ZB01", "PurchaseOrderType": "ZINA"}
        mock_s4_client.write.return_value = {"d": {"PurchaseOrder": PO_NUMBER}}

        response = await client.post(
            "/odata/v4/approval/postPRPOCreation",
            json={"payload": {"A_PurchaseOrderType": body}},
        )

        assert response.status_code == 201
        assert response.json()["data"] == {"PurchaseOrder": PO_NUMBER}
        mock_s4_client.write.assert_awaited_once_with(
            "POST", PO_ENTITY_SET, json=body, csrf_key=f"{PO_SERVICE}/$metadata"
        )

    @pytest.mark.asyncio
    async def test_missing_wrapper(self, client: AsyncClient) -> None:
        response = await client.post("/odata/v4/approval/postPRPOCreation", json={"payload": {}})

        assert response.status_code == 400
        assert "A_PurchaseOrderType" in response.json()["detail"]
