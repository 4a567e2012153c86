"""BPA workflow REST API client.

Reads workflow instance context for purchase requisitions so that values
captured at workflow start (project description, total amount) can be
merged into the S/4HANA requisition record. Authenticates with the
OAuth2 client-credentials grant.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class WorkflowAPIError(Exception):
    """The workflow API or its token endpoint returned an error."""


class WorkflowClient:
    """Async client for the workflow instance API."""

    def __init__(
        self,
        token_url: str,
        client_id: str,
        client_secret: str,
        api_url: str,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.token_url = token_url
        self.api_url = api_url.rstrip("/")
        self._client_id = client_id
        self._client_secret = client_secret
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def get_access_token(self) -> str:
        """Obtain an access token via the client-credentials grant."""
        async with self._client() as client:
            response = await client.post(
                self.token_url,
                data={"grant_type": "client_credentials"},
                auth=httpx.BasicAuth(self._client_id, self._client_secret),
            )
        if response.is_error:
            raise WorkflowAPIError(f"OAuth token request failed: {response.status_code} {response.reason_phrase}")
        token = response.json().get("access_token")
        if not token:
            raise WorkflowAPIError("OAuth token response carried no access_token")
        return token

    async def get_context(self, workflow_id: str) -> dict[str, Any]:
        """Return the context document of a workflow instance."""
        access_token = await self.get_access_token()
        async with self._client() as client:
            response = await client.get(
                f"{self.api_url}/workflow-instances/{workflow_id}/context",
                headers={"Accept": "application/json", "Authorization": f"Bearer {access_token}"},
            )
        if response.is_error:
            raise WorkflowAPIError(
                f"Workflow context request failed: {response.status_code} {response.reason_phrase}"
            )
        return response.json()
