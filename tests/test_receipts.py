"""Tests for receipt and item storage."""

import asyncio
import sqlite3
from datetime import date
from decimal import Decimal
from unittest.mock import patch

import pytest

from receipt_tracker.models import Category, NewItem, NewReceipt, NewReceiptItem
from receipt_tracker.services.storage import (
    ReferentialIntegrityError,
    SQLiteReceiptStorage,
)


def count_items(layer, run):
    return run(layer.schema.run(
        lambda conn: conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]
    ))


class TestInsertAndGet:
    """Tests for inserting and reading back receipts."""

    def test_round_trip(self, layer, run, market_receipt):
        receipt_id = run(layer.receipts.insert_receipt(market_receipt))
        stored = run(layer.receipts.get_receipt_by_id(receipt_id))

        assert stored.id == receipt_id
        assert stored.date == date(2024, 3, 5)
        assert stored.store == "Market"
        assert stored.total == Decimal("42.50")
        assert stored.created_at is not None
        assert stored.created_at == stored.updated_at
        assert stored.model_dump(exclude={"id", "created_at", "updated_at"}) == market_receipt.model_dump()

    def test_missing_receipt_is_none(self, layer, run):
        assert run(layer.receipts.get_receipt_by_id("does-not-exist")) is None

    def test_items_round_trip_flag_and_category(self, layer, run, market_receipt, market_items):
        receipt_id = run(layer.receipts.insert_receipt_with_items(market_receipt, market_items))
        items = run(layer.receipts.get_items_by_receipt_id(receipt_id))

        assert [(i.name, i.price, i.category, i.necessary) for i in items] == [
            ("Apples", Decimal("12.00"), Category.VEGETABLES, True),
            ("Soda", Decimal("5.50"), Category.BEVERAGES, False),
        ]
        assert all(item.receipt_id == receipt_id for item in items)
        assert all(item.necessary is True or item.necessary is False for item in items)

    def test_necessary_flag_is_stored_as_integer(self, layer, run, market_receipt, market_items):
        run(layer.receipts.insert_receipt_with_items(market_receipt, market_items))
        stored = run(layer.schema.run(
            lambda conn: [row[0] for row in conn.execute("SELECT necessary FROM items ORDER BY rowid")]
        ))
        assert stored == [1, 0]

    def test_items_keep_insertion_order(self, layer, run, market_receipt):
        """Test items come back in insertion order, not by price or name."""
        names = ["Zucchini", "Apples", "Milk", "Bread"]
        prices = ["1.00", "9.00", "3.00", "5.00"]
        items = [
            NewReceiptItem(name=name, price=Decimal(price))
            for name, price in zip(names, prices)
        ]
        receipt_id = run(layer.receipts.insert_receipt_with_items(market_receipt, items))

        stored = run(layer.receipts.get_items_by_receipt_id(receipt_id))
        assert [item.name for item in stored] == names

    def test_insert_single_item(self, layer, run, market_receipt):
        receipt_id = run(layer.receipts.insert_receipt(market_receipt))
        item_id = run(layer.receipts.insert_item(
            NewItem(receipt_id=receipt_id, name="Chocolate", price=Decimal("3.10"), category="sweets")
        ))

        items = run(layer.receipts.get_items_by_receipt_id(receipt_id))
        assert [item.id for item in items] == [item_id]
        assert items[0].category == Category.SWEETS

    def test_item_for_missing_receipt_is_rejected(self, layer, run):
        with pytest.raises(ReferentialIntegrityError):
            run(layer.receipts.insert_item(
                NewItem(receipt_id="ghost", name="Chocolate", price=Decimal("3.10"))
            ))
        assert count_items(layer, run) == 0

    def test_total_is_not_reconciled_with_items(self, layer, run, market_items):
        """Test the caller's total is kept even when items add up differently."""
        receipt = NewReceipt(date="2024-03-05", store="Market", total=Decimal("99.99"))
        receipt_id = run(layer.receipts.insert_receipt_with_items(receipt, market_items))

        stored = run(layer.receipts.get_receipt_by_id(receipt_id))
        assert stored.total == Decimal("99.99")

    def test_get_receipt_with_items(self, layer, run, market_receipt, market_items):
        receipt_id = run(layer.receipts.insert_receipt_with_items(market_receipt, market_items))

        detail = run(layer.receipts.get_receipt_with_items(receipt_id))
        assert detail.id == receipt_id
        assert detail.store == "Market"
        assert [item.name for item in detail.items] == ["Apples", "Soda"]

        assert run(layer.receipts.get_receipt_with_items("missing")) is None


class TestListReceipts:
    """Tests for paging through receipts."""

    def _insert_dates(self, layer, run, dates):
        for index, day in enumerate(dates):
            run(layer.receipts.insert_receipt(
                NewReceipt(date=day, store=f"Store {index}", total=Decimal("1.00"))
            ))

    def test_newest_date_first(self, layer, run):
        self._insert_dates(layer, run, ["2024-01-10", "2024-03-01", "2023-12-31", "2024-02-15"])

        receipts = run(layer.receipts.list_receipts())
        assert [r.date.isoformat() for r in receipts] == [
            "2024-03-01", "2024-02-15", "2024-01-10", "2023-12-31",
        ]

    def test_limit_and_offset(self, layer, run):
        self._insert_dates(layer, run, [f"2024-01-{day:02d}" for day in range(1, 11)])

        first_page = run(layer.receipts.list_receipts(limit=4))
        second_page = run(layer.receipts.list_receipts(limit=4, offset=4))

        assert [r.date.day for r in first_page] == [10, 9, 8, 7]
        assert [r.date.day for r in second_page] == [6, 5, 4, 3]

    def test_default_page_is_bounded(self, layer, run):
        self._insert_dates(layer, run, ["2024-01-01"] * 55)
        assert len(run(layer.receipts.list_receipts())) == 50

    @pytest.mark.parametrize("limit,offset", [(0, 0), (-1, 0), (10, -1)])
    def test_rejects_unbounded_or_negative_pages(self, layer, run, limit, offset):
        with pytest.raises(ValueError):
            run(layer.receipts.list_receipts(limit=limit, offset=offset))


class TestDeleteReceipt:
    """Tests for deleting receipts and cascading to items."""

    def test_delete_cascades_to_items(self, layer, run, market_receipt, market_items):
        receipt_id = run(layer.receipts.insert_receipt_with_items(market_receipt, market_items))
        other_id = run(layer.receipts.insert_receipt_with_items(market_receipt, market_items[:1]))

        assert run(layer.receipts.delete_receipt(receipt_id)) is True

        assert run(layer.receipts.get_receipt_by_id(receipt_id)) is None
        assert run(layer.receipts.get_items_by_receipt_id(receipt_id)) == []
        assert len(run(layer.receipts.get_items_by_receipt_id(other_id))) == 1

    def test_delete_missing_is_noop(self, layer, run, market_receipt):
        run(layer.receipts.insert_receipt(market_receipt))
        assert run(layer.receipts.delete_receipt("does-not-exist")) is False
        assert len(run(layer.receipts.list_receipts())) == 1


class TestInsertReceiptWithItems:
    """Tests for the atomic receipt + items insert."""

    def test_failure_before_last_item_leaves_nothing(self, layer, run, market_receipt, market_items):
        """Test a crash after the receipt insert rolls back receipt and items."""
        original = SQLiteReceiptStorage._write_item
        written = []

        def failing_write(self, conn, item_id, receipt_id, item):
            written.append(item.name)
            if len(written) == len(market_items):
                raise sqlite3.OperationalError("disk I/O error")
            return original(self, conn, item_id, receipt_id, item)

        with patch.object(SQLiteReceiptStorage, "_write_item", failing_write):
            with pytest.raises(sqlite3.OperationalError, match="disk I/O error"):
                run(layer.receipts.insert_receipt_with_items(market_receipt, market_items))

        assert written == ["Apples", "Soda"]
        assert run(layer.receipts.list_receipts()) == []
        assert count_items(layer, run) == 0

    def test_store_is_usable_after_rollback(self, layer, run, market_receipt, market_items):
        with patch.object(SQLiteReceiptStorage, "_write_item", side_effect=sqlite3.OperationalError("boom")):
            with pytest.raises(sqlite3.OperationalError):
                run(layer.receipts.insert_receipt_with_items(market_receipt, market_items))

        receipt_id = run(layer.receipts.insert_receipt_with_items(market_receipt, market_items))
        assert len(run(layer.receipts.get_items_by_receipt_id(receipt_id))) == 2

    def test_receipt_without_items(self, layer, run, market_receipt):
        receipt_id = run(layer.receipts.insert_receipt_with_items(market_receipt, []))
        assert run(layer.receipts.get_receipt_by_id(receipt_id)) is not None
        assert run(layer.receipts.get_items_by_receipt_id(receipt_id)) == []

    def test_readers_never_see_partial_item_sets(self, layer, run, market_receipt):
        items = [NewReceiptItem(name=f"Item {n}", price=Decimal("1.00")) for n in range(25)]

        async def scenario():
            counts = []

            async def poll():
                for _ in range(20):
                    counts.append(await layer.schema.run(
                        lambda conn: conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]
                    ))
                    await asyncio.sleep(0)

            await asyncio.gather(
                poll(),
                layer.receipts.insert_receipt_with_items(market_receipt, items),
                poll(),
            )
            return counts

        assert set(run(scenario())) <= {0, 25}


class TestConcurrentInserts:

    def test_concurrent_inserts_get_distinct_ids(self, layer, run, market_receipt):
        async def scenario():
            return await asyncio.gather(
                *(layer.receipts.insert_receipt(market_receipt) for _ in range(50))
            )

        ids = run(scenario())
        assert len(set(ids)) == 50
        assert len(run(layer.receipts.list_receipts(limit=100))) == 50
