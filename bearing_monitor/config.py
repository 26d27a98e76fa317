"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "bearing-monitor"
    log_level: str = "INFO"

    # Remote simulation server
    api_base_url: str = "http://localhost:3001/api"
    request_timeout_seconds: float = 10.0

    # Run presentation
    log_capacity: int = 100
    status_preview_chars: int = 50

    model_config = {"env_prefix": "BEARING_MONITOR_"}


settings = Settings()
