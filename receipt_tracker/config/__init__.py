"""Configuration package."""

from receipt_tracker.config.settings import (
    StorageSettings,
    get_settings,
)

__all__ = [
    "StorageSettings",
    "get_settings",
]
