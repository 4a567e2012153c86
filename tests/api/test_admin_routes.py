"""Tests for the admin routes."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from httpx import AsyncClient

SERVICE = "/sap/opu/odata/sap/API_PURCHASEORDER_PROCESS_SRV"


class TestInvalidateCSRFTokens:
    """Tests for POST /api/v1/admin/csrf/invalidate."""

    @pytest.mark.asyncio
    async def test_single_service(self, client: AsyncClient, mock_s4_client: MagicMock) -> None:
        mock_s4_client.csrf_cache.cached_keys.return_value = ["/sap/opu/odata/sap/ZAPI_DEL_APPROVER_SRV"]

        response = await client.post("/api/v1/admin/csrf/invalidate", json={"service_path": SERVICE})

        assert response.status_code == 200
        assert response.json() == {
            "invalidated": [SERVICE],
            "cached": ["/sap/opu/odata/sap/ZAPI_DEL_APPROVER_SRV"],
        }
        mock_s4_client.csrf_cache.invalidate.assert_called_once_with(SERVICE)

    @pytest.mark.asyncio
    async def test_unknown_service(self, client: AsyncClient, mock_s4_client: MagicMock) -> None:
        mock_s4_client.csrf_cache.invalidate.return_value = False

        response = await client.post("/api/v1/admin/csrf/invalidate", json={"service_path": SERVICE})

        assert response.json()["invalidated"] == []

    @pytest.mark.asyncio
    async def test_all_services(self, client: AsyncClient, mock_s4_client: MagicMock) -> None:
        mock_s4_client.csrf_cache.invalidate_all.return_value = [SERVICE]

        response = await client.post("/api/v1/admin/csrf/invalidate")

        assert response.json() == {"invalidated": [SERVICE], "cached": []}
        mock_s4_client.csrf_cache.invalidate.assert_not_called()

    @pytest.mark.asyncio
    async def test_requires_credentials(self, anonymous_client: AsyncClient, mock_s4_client: MagicMock) -> None:
        response = await anonymous_client.post("/api/v1/admin/csrf/invalidate")

        assert response.status_code == 401
        mock_s4_client.csrf_cache.invalidate_all.assert_not_called()

    @pytest.mark.asyncio
    async def test_backend_client_unavailable(self, client: AsyncClient, test_app: object) -> None:
        test_app.state.s4_client = None  # type: ignore[attr-defined]

        response = await client.post("/api/v1/admin/csrf/invalidate")

        assert response.status_code == 503
