"""Runtime configuration loaded from ``COMMERCE_*`` environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):

    data_dir: Path = Field(default=Path("data"), description="Directory holding the JSON stores")
    log_level: str = Field(default="INFO", description="Minimum level that gets logged")
    log_json: bool = Field(default=False, description="Render logs as JSON lines")
    conflict_retry_attempts: int = Field(
        default=3, ge=1, description="Attempts per optimistic-concurrency retry loop"
    )
    default_low_stock_threshold: int = Field(
        default=10, ge=0, description="Threshold given to newly opened stock entries"
    )

    model_config = SettingsConfigDict(
        env_prefix="COMMERCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if v.upper() not in _LOG_LEVELS:
            raise ValueError(f"Invalid log level. Must be one of: {', '.join(_LOG_LEVELS)}")
        return v.upper()


@lru_cache()
def get_settings() -> Settings:
    """Cached settings; call ``get_settings.cache_clear()`` after changing the environment."""
    return Settings()
