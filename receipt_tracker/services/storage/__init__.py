"""
Storage Services Package

Provides abstract interfaces and the SQLite implementation for local data.
"""

from receipt_tracker.services.storage.interface import (
    DEFAULT_PAGE_SIZE,
    BudgetStorageInterface,
    DuplicateError,
    IncomeStorageInterface,
    NotFoundError,
    ReceiptStorageInterface,
    ReferentialIntegrityError,
    StorageError,
    StorageInitError,
    StorageNotReadyError,
)
from receipt_tracker.services.storage.sqlite import (
    SQLiteBudgetStorage,
    SQLiteClient,
    SQLiteIncomeStorage,
    SQLiteReceiptStorage,
)

__all__ = [
    "DEFAULT_PAGE_SIZE",
    # Interfaces
    "BudgetStorageInterface",
    "IncomeStorageInterface",
    "ReceiptStorageInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "ReferentialIntegrityError",
    "StorageError",
    "StorageInitError",
    "StorageNotReadyError",
    # SQLite implementation
    "SQLiteBudgetStorage",
    "SQLiteClient",
    "SQLiteIncomeStorage",
    "SQLiteReceiptStorage",
]
