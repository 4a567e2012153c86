"""S/4HANA procurement proxy FastAPI application entry point.

Configures the FastAPI app with:
- CORS middleware (exposing the CSRF token header)
- Lifespan events building the S/4HANA execution stack and workflow client
- Route registration (health, OData read proxy, approvers, requisitions,
  purchase orders, attachments, admin)
- Error handlers mapping backend failures to HTTP responses
- OpenAPI documentation at /docs (debug mode only)
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

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
from src.api.version import API_VERSION
from src.core.config import get_settings
from src.core.logging_config import configure_logging
from src.integrations.s4hana.client import S4Client
from src.integrations.s4hana.errors import BackendError, S4Error, TokenFetchError
from src.integrations.workflow import WorkflowClient

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown.

    On startup: build the S/4HANA client (transport, dispatcher, CSRF
    cache, executor) and the optional workflow client.
    On shutdown: close the backend connection pool.
    """
    settings = get_settings()
    app.state.started_at = time.monotonic()

    # -- S/4HANA ---
    s4_client = S4Client.from_settings(settings)
    app.state.s4_client = s4_client
    logger.info(
        "S/4HANA client initialized for %s (max %d concurrent requests)",
        settings.s4_base_url,
        settings.s4_max_concurrent,
    )

    # -- Workflow API ---
    if settings.workflow_enabled:
        app.state.workflow_client = WorkflowClient(
            settings.workflow_token_url,
            settings.workflow_client_id,
            settings.workflow_client_secret.get_secret_value(),
            settings.workflow_api_url,
        )
        logger.info("Workflow API client initialized")
    else:
        app.state.workflow_client = None
        logger.warning("Workflow API is not configured; PR lookups skip context enrichment")

    yield

    await s4_client.aclose()
    logger.info("All connections closed")


def _error_status(exc: S4Error) -> int:
    status = getattr(exc, "status", None)
    if isinstance(status, int) and 400 <= status <= 599:
        return status
    return 502


def register_exception_handlers(app: FastAPI) -> None:
    """Map backend and unexpected errors to JSON responses."""

    @app.exception_handler(S4Error)
    async def s4_error_handler(request: Request, exc: S4Error) -> JSONResponse:
        request_id = getattr(request.state, "request_id", "unknown")
        status_code = _error_status(exc)
        if isinstance(exc, BackendError):
            detail = exc.body if exc.body not in (None, "") else exc.message
        else:
            detail = str(exc)
        label = "CSRF token unavailable" if isinstance(exc, TokenFetchError) else "S/4HANA request failed"
        logger.error("%s [%s] %s %s: %s", label, request_id, request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status_code,
            content={
                "success": False,
                "message": f"{label}: {exc}",
                "error": detail,
                "request_id": request_id,
            },
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning("Validation error [%s]: %s", request_id, exc)
        return JSONResponse(
            status_code=422,
            content={"detail": str(exc), "request_id": request_id},
        )

    @app.exception_handler(Exception)  # Intentionally broad: top-level global error handler
    async def generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        request_id = getattr(request.state, "request_id", "unknown")
        logger.exception("Unhandled error [%s]: %s", request_id, exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "request_id": request_id},
        )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Proxy between SAP BPA workflows and S/4HANA procurement OData services",
        version=API_VERSION,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    # Note: middleware is applied in reverse order (last added = first executed).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID", "Accept", "X-CSRF-Token", "Slug"],
        expose_headers=["x-csrf-token"],
    )
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

    return app


# Application instance used by uvicorn
app = create_app()
