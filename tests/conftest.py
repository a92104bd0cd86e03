"""
Shared pytest fixtures for Receipt Tracker tests.

Every test gets its own SQLite file under pytest's tmp_path.
Coroutines are driven with asyncio.run, the same way sync callers
drive the data layer.
"""

import asyncio
from decimal import Decimal

import pytest

from receipt_tracker.config import StorageSettings
from receipt_tracker.models import Category, NewReceipt, NewReceiptItem
from receipt_tracker.orchestrator import create_data_layer
from receipt_tracker.services.storage import SQLiteClient


def _run(coro):
    return asyncio.run(coro)


@pytest.fixture
def run():
    """Run a coroutine to completion."""
    return _run


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "receipts.db"


@pytest.fixture
def client(db_path):
    """An initialized storage client."""
    storage = SQLiteClient(db_path)
    _run(storage.initialize())
    yield storage
    _run(storage.close())


@pytest.fixture
def layer(db_path):
    """An initialized data layer built through the composition root."""
    settings = StorageSettings(json_logs=False)
    data_layer = create_data_layer(settings, database_path=db_path, setup_logging=False)
    _run(data_layer.initialize())
    yield data_layer
    _run(data_layer.close())


@pytest.fixture
def market_receipt():
    """The receipt from the March 2024 shopping scenario."""
    return NewReceipt(date="2024-03-05", store="Market", total=Decimal("42.50"))


@pytest.fixture
def market_items():
    return [
        NewReceiptItem(
            name="Apples",
            price=Decimal("12.00"),
            category=Category.VEGETABLES,
            necessary=True,
        ),
        NewReceiptItem(
            name="Soda",
            price=Decimal("5.50"),
            category=Category.BEVERAGES,
            necessary=False,
        ),
    ]
