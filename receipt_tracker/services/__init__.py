"""Services package."""

from receipt_tracker.services.storage import (
    BudgetStorageInterface,
    DuplicateError,
    IncomeStorageInterface,
    NotFoundError,
    ReceiptStorageInterface,
    ReferentialIntegrityError,
    SQLiteBudgetStorage,
    SQLiteClient,
    SQLiteIncomeStorage,
    SQLiteReceiptStorage,
    StorageError,
    StorageInitError,
    StorageNotReadyError,
)

__all__ = [
    # Storage services
    "BudgetStorageInterface",
    "DuplicateError",
    "IncomeStorageInterface",
    "NotFoundError",
    "ReceiptStorageInterface",
    "ReferentialIntegrityError",
    "SQLiteBudgetStorage",
    "SQLiteClient",
    "SQLiteIncomeStorage",
    "SQLiteReceiptStorage",
    "StorageError",
    "StorageInitError",
    "StorageNotReadyError",
]
