"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from slideshow_ingest.adapters.google_photos_picker_client import PICKER_API_BASE
from slideshow_ingest.domain.picker import (
    DEFAULT_LONG_POLL_TIMEOUT_MS,
    DEFAULT_POLL_INTERVAL_MS,
    PollingConfig,
)

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    supabase_bucket: str = "images"
    admin_token: str
    processor_auth_token: str | None = None
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str | None = "low"
    openai_store: bool = False
    picker_api_base: str = PICKER_API_BASE
    picker_poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    picker_long_poll_timeout_ms: int = DEFAULT_LONG_POLL_TIMEOUT_MS
    http_timeout_seconds: float = 20.0
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def default_polling(self) -> PollingConfig:
        return PollingConfig(
            poll_interval_ms=self.picker_poll_interval_ms,
            long_poll_timeout_ms=self.picker_long_poll_timeout_ms,
        )
