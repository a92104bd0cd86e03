"""
Composition Root for the Receipt Tracker Data Layer

This module ties together the storage client, the repositories and the
statistics engine. The application builds ONE DataLayer at startup,
awaits initialize(), and passes the DataLayer (or its parts) to
whatever needs data.

DESIGN DECISION: There is no module-level database handle.
Every component receives the client it uses through its constructor.
"""

from pathlib import Path
from typing import Optional, Union

from receipt_tracker.audit import StorageEventLogger, configure_logging
from receipt_tracker.config import StorageSettings, get_settings
from receipt_tracker.queries import SpendingStatistics
from receipt_tracker.services.storage import (
    SQLiteBudgetStorage,
    SQLiteClient,
    SQLiteIncomeStorage,
    SQLiteReceiptStorage,
)


class DataLayer:
    """
    Everything the UI needs from local storage.

    Attributes:
        schema: the storage client (initialize / reset / close)
        receipts: receipt and item repository
        incomes: income repository
        budgets: monthly and category budget repository
        statistics: spending aggregates
    """

    def __init__(self, client: SQLiteClient):
        self.schema = client
        self.receipts = SQLiteReceiptStorage(client)
        self.incomes = SQLiteIncomeStorage(client)
        self.budgets = SQLiteBudgetStorage(client)
        self.statistics = SpendingStatistics(client)

    @property
    def is_ready(self) -> bool:
        return self.schema.is_ready

    async def initialize(self) -> None:
        """Create the schema if needed. Await this before any other call."""
        await self.schema.initialize()

    async def reset(self) -> None:
        """Erase all data and recreate the empty schema."""
        await self.schema.reset()

    async def close(self) -> None:
        await self.schema.close()


def create_data_layer(
    settings: Optional[StorageSettings] = None,
    database_path: Optional[Union[str, Path]] = None,
    setup_logging: bool = True,
) -> DataLayer:
    """
    Factory function to create the data layer.

    Args:
        settings: Storage settings. Loaded from the environment if None.
        database_path: Overrides settings.database_path (useful in tests).
        setup_logging: Whether to configure structlog from the settings.

    Returns:
        An uninitialized DataLayer. Call `await layer.initialize()` next.
    """
    settings = settings or get_settings()

    if setup_logging:
        configure_logging(level=settings.log_level, json_logs=settings.json_logs)

    client = SQLiteClient(
        database_path=database_path or settings.database_path,
        journal_mode=settings.journal_mode,
        page_size=settings.default_page_size,
        event_logger=StorageEventLogger(),
    )
    return DataLayer(client)
