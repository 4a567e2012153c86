"""Shared test fixtures for the S/4HANA proxy test suite.

Provides test settings, a mocked S/4HANA client, and a FastAPI test
client whose lifespan is replaced so no backend is contacted.
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from src.core.config import Settings, get_settings
from src.integrations.s4hana.dispatcher import RequestDispatcher

TEST_USERNAME = "proxy-test"
TEST_PASSWORD = "test-password"


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings that don't connect to real services."""
    return Settings(
        app_env="testing",
        debug=False,
        s4_base_url="https://s4.example.com",
        s4_username="s4user",
        s4_password="s4pass",
        proxy_username=TEST_USERNAME,
        proxy_password=TEST_PASSWORD,
        approver_link_base_url="https://review.example.com/odata/v4/Catalog/prreview",
        cors_origins=["http://localhost:3000"],
    )


@pytest.fixture
def mock_s4_client() -> MagicMock:
    """Create a mock S/4HANA client.

    ``read`` and ``write`` are AsyncMocks returning None by default; the
    dispatcher is real so the health endpoint can report its stats.
    """
    client = MagicMock()
    client.read = AsyncMock(return_value=None)
    client.write = AsyncMock(return_value=None)
    client.aclose = AsyncMock()
    client.dispatcher = RequestDispatcher(5)
    client.csrf_cache = MagicMock()
    client.csrf_cache.invalidate = MagicMock(return_value=True)
    client.csrf_cache.invalidate_all = MagicMock(return_value=[])
    client.csrf_cache.cached_keys = MagicMock(return_value=[])
    return client


@pytest.fixture
async def test_app(test_settings: Settings, mock_s4_client: MagicMock) -> AsyncGenerator[Any, None]:
    """Create a test FastAPI application with mocked dependencies.

    The lifespan is skipped; instead, we manually set app.state
    with mock objects.
    """
    from fastapi import FastAPI

    from src.api.main import register_exception_handlers
    from src.api.middleware.security import (
        RequestIDMiddleware,
        RequestLoggingMiddleware,
        SecurityHeadersMiddleware,
    )
    from src.api.routes import (
        admin,
        approvers,
        attachments,
        health,
        proxy,
        purchase_orders,
        requisitions,
    )

    @asynccontextmanager
    async def test_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        yield

    app = FastAPI(lifespan=test_lifespan)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.include_router(health.router)
    app.include_router(proxy.router)
    app.include_router(approvers.router)
    app.include_router(requisitions.router)
    app.include_router(purchase_orders.router)
    app.include_router(attachments.router)
    app.include_router(admin.router)
    register_exception_handlers(app)

    app.dependency_overrides[get_settings] = lambda: test_settings

    app.state.started_at = time.monotonic()
    app.state.s4_client = mock_s4_client
    app.state.workflow_client = None

    yield app


@pytest.fixture
async def client(test_app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client authenticated as the proxy user."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        auth=(TEST_USERNAME, TEST_PASSWORD),
    ) as ac:
        yield ac


@pytest.fixture
async def anonymous_client(test_app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client without credentials."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
