"""Storage event logging package."""

from receipt_tracker.audit.logger import StorageEventLogger, configure_logging

__all__ = ["StorageEventLogger", "configure_logging"]
