from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "sqlite+aiosqlite:///./vauntico.db"
    database_auto_create: bool = True
    tracing_enabled: bool = False
    port: int = 5000

    # Internal API security
    service_api_key: str = ""
    webhook_secret: str = ""

    # Fulfillment metrics log
    metrics_store_backend: Literal["database", "file", "memory"] = "database"
    metrics_log_path: str = "fulfillment_metrics.json"
    metrics_log_key: str = "fulfillment_accuracy"
    metrics_history_cap: int = Field(default=100, ge=1)
    metrics_store_max_retries: int = Field(default=5, ge=1)
    metrics_green_threshold: float = 95.0
    metrics_amber_threshold: float = 80.0

    # Product catalog
    catalog_backend: Literal["airtable", "static"] = "airtable"
    airtable_api_key: str | None = None
    airtable_base_id: str | None = None
    airtable_table_name: str | None = None
    airtable_api_url: str = "https://api.airtable.com/v0"
    catalog_timeout_seconds: float = 10.0

    # Email delivery
    mailer_backend: Literal["resend", "smtp", "memory"] = "resend"
    sender_email: str | None = None
    resend_api_key: str | None = None
    resend_api_url: str = "https://api.resend.com"
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    mailer_timeout_seconds: float = 15.0

    def secret_values(self) -> list[str]:
        """Configured credentials that must never leak into responses or logs."""

        candidates = [
            self.service_api_key,
            self.webhook_secret,
            self.airtable_api_key,
            self.resend_api_key,
            self.smtp_password,
        ]
        return [value for value in candidates if value]


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
