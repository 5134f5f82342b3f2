"""Application configuration."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Store settings loaded from environment variables."""

    database_path: Path = Path("nutrition_store.db")
    backup_dir: Path | None = None
    cache_retention_days: int = Field(default=30, ge=0)
    validate_records: bool = True
    busy_timeout_seconds: float = Field(default=5.0, gt=0)
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )
