"""Application configuration using Pydantic Settings v2.

Loads configuration from environment variables with .env file support.
All settings are validated at startup and available as typed attributes.
"""

from __future__ import annotations

import functools
import json
from typing import Any

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """S/4 proxy settings.

    Configuration is loaded from environment variables.
    A .env file in the project root is also read if present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────────
    app_name: str = "S4 Procurement Proxy"
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # ── Backend ──────────────────────────────────────────────────
    backend_host: str = "0.0.0.0"  # noqa: S104 - intentional for container deployments  # nosec B104
    backend_port: int = 8000
    cors_origins: list[str] = ["*"]

    # ── S/4HANA OData backend ────────────────────────────────────
    s4_base_url: str = "http://localhost:50000"
    s4_username: str = ""
    s4_password: SecretStr = SecretStr("")
    s4_sap_client: str = "100"
    s4_verify_ssl: bool = True

    # ── Request execution layer ──────────────────────────────────
    s4_max_concurrent: int = 5
    s4_csrf_ttl_seconds: float = 300.0
    s4_retry_attempts: int = 2
    s4_retry_backoff_seconds: float = 1.0
    s4_token_timeout: float = 30.0
    s4_read_timeout: float = 120.0
    s4_write_timeout: float = 90.0
    s4_default_top: int = 3000

    # ── Proxy Basic auth ─────────────────────────────────────────
    proxy_username: str = "proxy"
    proxy_password: SecretStr = SecretStr("dev-proxy-password-change-in-production")

    # ── BPA workflow API ─────────────────────────────────────────
    workflow_token_url: str = ""
    workflow_client_id: str = ""
    workflow_client_secret: SecretStr = SecretStr("")
    workflow_api_url: str = ""

    # ── Approval links ───────────────────────────────────────────
    approver_link_base_url: str = "http://localhost:4004/odata/v4/Catalog/prreview"

    # ── Attachments ──────────────────────────────────────────────
    attachment_max_files: int = 10
    attachment_max_bytes: int = 50 * 1024 * 1024

    @property
    def workflow_enabled(self) -> bool:
        """Whether enough workflow API settings are present to call it."""
        return bool(
            self.workflow_token_url
            and self.workflow_client_id
            and self.workflow_client_secret.get_secret_value()
            and self.workflow_api_url
        )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> list[str]:
        """Parse CORS origins from JSON string or list."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return [str(item) for item in parsed]
            except (json.JSONDecodeError, TypeError):
                return [origin.strip() for origin in v.split(",") if origin.strip()]
        if isinstance(v, list):
            return [str(item) for item in v]
        return ["*"]

    @field_validator("s4_max_concurrent", "s4_retry_attempts")
    @classmethod
    def require_positive(cls, v: int) -> int:
        """Concurrency and attempt counts must allow at least one call."""
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("s4_csrf_ttl_seconds", "s4_token_timeout", "s4_read_timeout", "s4_write_timeout")
    @classmethod
    def require_positive_seconds(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v


@functools.lru_cache
def get_settings() -> Settings:
    """Return cached application settings instance."""
    return Settings()
