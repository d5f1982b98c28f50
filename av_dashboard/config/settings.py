"""Application configuration and environment helpers."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings

DEFAULT_BASE_URL = "https://www.alphavantage.co/query"
DEFAULT_KEY_STORE_PATH = "~/.av_dashboard/keys.json"


class AppSettings(BaseSettings):
    """Configuration options for the dashboard proxy."""

    app_name: str = Field(default="Alpha Vantage Dashboard")

    alpha_vantage_api_key: str | None = Field(
        default=None,
        description="Server-side key; read from ALPHA_VANTAGE_API_KEY.",
    )
    alpha_vantage_base_url: str = Field(default=DEFAULT_BASE_URL)
    alpha_vantage_timeout_seconds: float | None = Field(
        default=None,
        description="Outbound timeout; the httpx default applies when unset.",
    )

    key_store_mode: Literal["session", "persistent"] = Field(default="session")
    key_store_path: str = Field(default=DEFAULT_KEY_STORE_PATH)

    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"]
    )
    log_level: str = Field(default="INFO")

    telemetry_enabled: bool = Field(default=False)
    telemetry_service_name: str = Field(default="av-dashboard")
    telemetry_otlp_endpoint: str | None = Field(default=None)
    telemetry_otlp_insecure: bool = Field(default=True)
    telemetry_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    def dict_for_logging(self) -> dict[str, Any]:
        """Return a sanitized dict for logging purposes."""

        hidden = {"alpha_vantage_api_key"}
        return {k: ("***" if k in hidden and v else v) for k, v in self.model_dump().items()}


@lru_cache(maxsize=1)
def get_settings(**overrides: Any) -> AppSettings:
    """Return cached application settings with optional overrides."""

    if overrides:
        return AppSettings(**overrides)
    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_BASE_URL",
    "DEFAULT_KEY_STORE_PATH",
    "get_settings",
]
