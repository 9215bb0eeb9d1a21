"""Application configuration and environment helpers."""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_JSON_STORE = "db.json"
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./stockfolio.db"
YAHOO_CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart"


class AppSettings(BaseSettings):
    """Configuration options for the Stockfolio service."""

    app_name: str = Field(default="Stockfolio")
    api_prefix: str = Field(default="/api")

    storage_backend: Literal["json", "sql"] = Field(default="json")
    json_store_path: str = Field(default=DEFAULT_JSON_STORE)
    database_url: str = Field(
        default=DEFAULT_DATABASE_URL,
        description="SQLAlchemy database URL used when storage_backend is 'sql'.",
    )

    oversell_policy: Literal["REPORT", "RAISE"] = Field(default="REPORT")
    strict_validation: bool = Field(
        default=False,
        description="Reject non-numeric or negative fields instead of coercing them to zero.",
    )

    price_provider_url: str = Field(default=YAHOO_CHART_URL)
    price_refresh_interval_seconds: float = Field(
        default=30.0,
        ge=0.0,
        description="Background quote polling interval; 0 disables polling.",
    )
    price_request_timeout_seconds: float = Field(default=10.0)
    default_usd_twd_rate: Decimal = Field(default=Decimal("31.5"))

    internal_auth_token: str | None = Field(
        default=None,
        description="Optional shared secret expected in the X-Internal-Token header",
    )
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        description="Comma-separated list of browser origins allowed to call the API",
    )

    telemetry_enabled: bool = Field(default=False)
    telemetry_service_name: str = Field(default="stockfolio")
    telemetry_otlp_endpoint: str | None = Field(default=None)
    telemetry_otlp_insecure: bool = Field(default=True)
    telemetry_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a sanitized dict for logging purposes."""

        hidden = {"internal_auth_token"}
        return {k: ("***" if k in hidden and v else v) for k, v in self.model_dump().items()}


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> AppSettings:
    """Return cached application settings with optional overrides."""

    if overrides:
        return AppSettings(**overrides)
    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_DATABASE_URL",
    "DEFAULT_JSON_STORE",
    "YAHOO_CHART_URL",
    "get_settings",
]
