"""Application settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration for the workflow webhook service."""

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_WEBHOOKS_", env_file=".env", env_file_encoding="utf-8"
    )

    app_name: str = "workflow-webhooks"
    log_level: str = "INFO"
    log_format: Literal["kv", "json"] = "kv"

    webhook_user_agent: str = "Workflow-Webhook/1.0"
    webhook_request_timeout_seconds: float = 10.0


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
