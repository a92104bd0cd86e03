"""
Configuration Management for Receipt Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: Only the composition root reads settings.
Storage classes take explicit constructor arguments, so tests and
embedding applications can build them without touching the environment.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local storage and logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RECEIPT_TRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    database_path: Path = Field(
        default=Path("receiptTracker.db"),
        description="Path of the SQLite file holding all tables"
    )
    default_page_size: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Page size used by list operations when no limit is given"
    )
    journal_mode: str = Field(
        default="WAL",
        description="SQLite journal mode (WAL lets readers run during writes)"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Minimum level for storage event logs"
    )
    json_logs: bool = Field(
        default=True,
        description="Render logs as JSON lines instead of console output"
    )

    @field_validator('journal_mode')
    @classmethod
    def validate_journal_mode(cls, v: str) -> str:
        allowed = {"DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF"}
        mode = v.strip().upper()
        if mode not in allowed:
            raise ValueError(f"Unsupported journal mode: {v}. Allowed: {sorted(allowed)}")
        return mode

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache()
def get_settings() -> StorageSettings:
    """
    Get storage settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return StorageSettings()
