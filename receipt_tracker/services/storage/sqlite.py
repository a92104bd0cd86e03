"""
SQLite Storage Implementation

DESIGN DECISION: SQLite is the storage backend because:
1. It is a single local file per installation, no server to run
2. Foreign keys give us cascading deletes for owned rows
3. DDL is transactional, so schema changes apply all-or-nothing
4. WAL journaling lets readers proceed while a write is in progress

TRADEOFFS:
- One connection serves the whole application. All work on it is
  funnelled through a single worker thread, which serializes access
  and keeps every transaction whole with respect to other operations.
- Failed driver calls are never retried. A local file that fails
  once is more likely corrupt than busy.

The repositories follow the abstract interfaces, so callers never
see SQL.
"""

import asyncio
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Optional, TypeVar, Union

from receipt_tracker.audit import StorageEventLogger
from receipt_tracker.models import (
    Category,
    CategoryBudget,
    Income,
    Item,
    MonthlyBudget,
    MonthlyBudgetPatch,
    NewCategoryBudget,
    NewIncome,
    NewItem,
    NewMonthlyBudget,
    NewReceipt,
    NewReceiptItem,
    Receipt,
    ReceiptWithItems,
)
from receipt_tracker.services.storage.codec import (
    IdGenerator,
    bool_from_db,
    bool_to_db,
    from_minor_units,
    from_timestamp,
    to_iso_date,
    to_minor_units,
    to_timestamp,
    utc_now,
)
from receipt_tracker.services.storage.interface import (
    DEFAULT_PAGE_SIZE,
    BudgetStorageInterface,
    DuplicateError,
    IncomeStorageInterface,
    NotFoundError,
    ReceiptStorageInterface,
    ReferentialIntegrityError,
    StorageInitError,
    StorageNotReadyError,
)


T = TypeVar("T")

_CATEGORY_VALUES = ", ".join(f"'{category.value}'" for category in Category)

# Amount columns hold integer minor units (cents).
SCHEMA_STATEMENTS = (
    """CREATE TABLE IF NOT EXISTS receipts (
        id          TEXT    PRIMARY KEY NOT NULL,
        date        TEXT    NOT NULL,
        store       TEXT    NOT NULL,
        total       INTEGER NOT NULL,
        created_at  TEXT    NOT NULL,
        updated_at  TEXT    NOT NULL
    )""",
    f"""CREATE TABLE IF NOT EXISTS items (
        id          TEXT    PRIMARY KEY NOT NULL,
        receipt_id  TEXT    NOT NULL REFERENCES receipts(id) ON DELETE CASCADE,
        name        TEXT    NOT NULL,
        price       INTEGER NOT NULL,
        category    TEXT    NOT NULL CHECK(category IN ({_CATEGORY_VALUES})),
        necessary   INTEGER NOT NULL DEFAULT 1 CHECK(necessary IN (0, 1)),
        created_at  TEXT    NOT NULL
    )""",
    """CREATE TABLE IF NOT EXISTS incomes (
        id          TEXT    PRIMARY KEY NOT NULL,
        amount      INTEGER NOT NULL,
        date        TEXT    NOT NULL,
        source      TEXT    NOT NULL,
        created_at  TEXT    NOT NULL
    )""",
    """CREATE TABLE IF NOT EXISTS monthly_budgets (
        id              TEXT    PRIMARY KEY NOT NULL,
        month           TEXT    NOT NULL UNIQUE,
        income          INTEGER NOT NULL,
        fixed_expenses  INTEGER NOT NULL,
        savings_goal    INTEGER NOT NULL,
        created_at      TEXT    NOT NULL,
        updated_at      TEXT    NOT NULL
    )""",
    f"""CREATE TABLE IF NOT EXISTS category_budgets (
        id                 TEXT    PRIMARY KEY NOT NULL,
        monthly_budget_id  TEXT    NOT NULL REFERENCES monthly_budgets(id) ON DELETE CASCADE,
        category           TEXT    NOT NULL CHECK(category IN ({_CATEGORY_VALUES})),
        allocated_amount   INTEGER NOT NULL
    )""",
    "CREATE INDEX IF NOT EXISTS idx_items_receipt_id ON items(receipt_id)",
    "CREATE INDEX IF NOT EXISTS idx_receipts_date ON receipts(date)",
    "CREATE INDEX IF NOT EXISTS idx_incomes_date ON incomes(date)",
    "CREATE INDEX IF NOT EXISTS idx_category_budgets_monthly_budget_id "
    "ON category_budgets(monthly_budget_id)",
)

# Children first so no cascade work happens during the drop.
TABLES = ("items", "category_budgets", "receipts", "incomes", "monthly_budgets")
DROP_STATEMENTS = tuple(f"DROP TABLE IF EXISTS {table}" for table in TABLES)


class SQLiteClient:
    """
    Owner of the single SQLite connection.

    Handles schema creation and reset, and runs every repository
    operation on one worker thread so that access is serialized.
    Construct one per application and pass it to the repositories.
    """

    def __init__(
        self,
        database_path: Union[str, Path],
        journal_mode: str = "WAL",
        page_size: int = DEFAULT_PAGE_SIZE,
        event_logger: Optional[StorageEventLogger] = None,
        id_generator: Optional[IdGenerator] = None,
    ):
        self._database_path = str(database_path)
        self._journal_mode = journal_mode
        self._page_size = page_size
        self._events = event_logger or StorageEventLogger()
        self._ids = id_generator or IdGenerator()
        self._conn: Optional[sqlite3.Connection] = None
        self._worker: Optional[ThreadPoolExecutor] = None
        self._ready = False

    @property
    def database_path(self) -> str:
        return self._database_path

    @property
    def is_ready(self) -> bool:
        return self._ready

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def events(self) -> StorageEventLogger:
        return self._events

    def new_id(self) -> str:
        return self._ids.new_id()

    # -------------------------------------------------------------------
    # Schema management
    # -------------------------------------------------------------------

    async def initialize(self) -> None:
        """
        Create all tables and indexes if they are missing.

        Safe to call on an already initialized store: existing
        data is left untouched.

        Raises:
            StorageInitError: If the schema could not be created.
                Nothing is left half-created.
        """
        await self._submit(self._initialize_sync)

    async def reset(self) -> None:
        """
        Drop every table and recreate the empty schema.

        Irreversible. Drop and create run in one transaction, so a
        failure leaves the previous data in place.

        Raises:
            StorageNotReadyError: If initialize() has not completed
            StorageInitError: If the schema could not be rebuilt
        """
        await self._submit(self._reset_sync)

    async def close(self) -> None:
        """Close the connection. initialize() may be called again later."""
        if self._worker is None:
            return
        await self._submit(self._close_sync)
        self._worker.shutdown(wait=False)
        self._worker = None

    def _initialize_sync(self) -> None:
        try:
            conn = self._connect()
            # Neither pragma takes effect inside a transaction.
            conn.execute("PRAGMA foreign_keys = ON")
            mode = conn.execute(f"PRAGMA journal_mode = {self._journal_mode}").fetchone()[0]
            self._apply_schema(conn, SCHEMA_STATEMENTS)
        except sqlite3.Error as e:
            self._events.schema_failed("initialize", e)
            raise StorageInitError(f"Failed to initialize storage: {e}") from e

        self._ready = True
        self._events.store_initialized(self._database_path, journal_mode=str(mode))

    def _reset_sync(self) -> None:
        conn = self._require_connection()
        try:
            self._apply_schema(conn, DROP_STATEMENTS + SCHEMA_STATEMENTS)
        except sqlite3.Error as e:
            self._events.schema_failed("reset", e)
            raise StorageInitError(f"Failed to reset storage: {e}") from e
        self._events.store_reset(self._database_path)

    def _close_sync(self) -> None:
        self._ready = False
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._events.store_closed(self._database_path)

    def _apply_schema(self, conn: sqlite3.Connection, statements: tuple) -> None:
        conn.execute("BEGIN IMMEDIATE")
        try:
            for statement in statements:
                conn.execute(statement)
            conn.execute("COMMIT")
        except BaseException:
            if conn.in_transaction:
                conn.rollback()
            raise

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            # Autocommit mode; transactions are opened explicitly.
            conn = sqlite3.connect(
                self._database_path,
                check_same_thread=False,
                isolation_level=None,
            )
            conn.row_factory = sqlite3.Row
            self._conn = conn
        return self._conn

    def _require_connection(self) -> sqlite3.Connection:
        if not self._ready or self._conn is None:
            raise StorageNotReadyError(
                "Storage is not initialized. Await initialize() before using it."
            )
        return self._conn

    # -------------------------------------------------------------------
    # Operation execution
    # -------------------------------------------------------------------

    async def run(self, operation: Callable[[sqlite3.Connection], T]) -> T:
        """
        Run a read or single-statement write on the storage thread.

        Raises:
            StorageNotReadyError: If initialize() has not completed
        """
        if not self._ready:
            raise StorageNotReadyError(
                "Storage is not initialized. Await initialize() before using it."
            )
        return await self._submit(lambda: operation(self._require_connection()))

    async def run_in_transaction(
        self,
        operation: Callable[[sqlite3.Connection], T],
        name: str,
    ) -> T:
        """
        Run several statements as one transaction.

        Any exception rolls back everything the operation wrote
        and is re-raised unchanged.
        """
        if not self._ready:
            raise StorageNotReadyError(
                "Storage is not initialized. Await initialize() before using it."
            )
        return await self._submit(lambda: self._transaction_sync(operation, name))

    def _transaction_sync(self, operation: Callable[[sqlite3.Connection], T], name: str) -> T:
        conn = self._require_connection()
        conn.execute("BEGIN IMMEDIATE")
        try:
            result = operation(conn)
            conn.execute("COMMIT")
        except BaseException as e:
            if conn.in_transaction:
                conn.rollback()
            self._events.transaction_rolled_back(name, e)
            raise
        return result

    async def _submit(self, func: Callable[[], T]) -> T:
        if self._worker is None:
            self._worker = ThreadPoolExecutor(
                max_workers=1,
                thread_name_prefix="receipt-tracker-storage",
            )
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._worker, func)


@contextmanager
def integrity_errors(events: StorageEventLogger, table: str, parent_id: Optional[str] = None):
    """Translate SQLite constraint failures into storage exceptions."""
    try:
        yield
    except sqlite3.IntegrityError as e:
        message = str(e)
        if "FOREIGN KEY" in message:
            events.integrity_violation(table, message, parent_id=parent_id)
            raise ReferentialIntegrityError(
                f"Cannot insert into {table}: parent {parent_id!r} does not exist"
            ) from e
        if "UNIQUE" in message:
            events.integrity_violation(table, message)
            raise DuplicateError(f"Duplicate row in {table}: {message}") from e
        raise


def _check_page(limit: int, offset: int) -> None:
    # SQLite treats a negative LIMIT as "no limit".
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")
    if offset < 0:
        raise ValueError(f"offset cannot be negative, got {offset}")


class SQLiteReceiptStorage(ReceiptStorageInterface):
    """
    SQLite implementation of receipt and item storage.

    Items are removed with their receipt by the ON DELETE CASCADE
    foreign key, not by application code.
    """

    def __init__(self, client: SQLiteClient):
        self._client = client
        self._events = client.events

    def _row_to_receipt(self, row: sqlite3.Row) -> Receipt:
        return Receipt(
            id=row["id"],
            date=row["date"],
            store=row["store"],
            total=from_minor_units(row["total"]),
            created_at=from_timestamp(row["created_at"]),
            updated_at=from_timestamp(row["updated_at"]),
        )

    def _row_to_item(self, row: sqlite3.Row) -> Item:
        return Item(
            id=row["id"],
            receipt_id=row["receipt_id"],
            name=row["name"],
            price=from_minor_units(row["price"]),
            category=Category(row["category"]),
            necessary=bool_from_db(row["necessary"]),
            created_at=from_timestamp(row["created_at"]),
        )

    def _write_receipt(self, conn: sqlite3.Connection, receipt_id: str, receipt: NewReceipt) -> None:
        now = to_timestamp(utc_now())
        conn.execute(
            """INSERT INTO receipts (id, date, store, total, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                receipt_id,
                to_iso_date(receipt.date),
                receipt.store,
                to_minor_units(receipt.total),
                now,
                now,
            ),
        )

    def _write_item(
        self,
        conn: sqlite3.Connection,
        item_id: str,
        receipt_id: str,
        item: NewReceiptItem,
    ) -> None:
        with integrity_errors(self._events, "items", parent_id=receipt_id):
            conn.execute(
                """INSERT INTO items (id, receipt_id, name, price, category, necessary, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    item_id,
                    receipt_id,
                    item.name,
                    to_minor_units(item.price),
                    item.category.value,
                    bool_to_db(item.necessary),
                    to_timestamp(utc_now()),
                ),
            )

    def _select_items(self, conn: sqlite3.Connection, receipt_id: str) -> list[Item]:
        # rowid follows insertion order; created_at can tie within a batch.
        rows = conn.execute(
            "SELECT * FROM items WHERE receipt_id = ? ORDER BY rowid",
            (receipt_id,),
        ).fetchall()
        return [self._row_to_item(row) for row in rows]

    async def insert_receipt(self, receipt: NewReceipt) -> str:
        receipt_id = self._client.new_id()
        await self._client.run(lambda conn: self._write_receipt(conn, receipt_id, receipt))
        self._events.receipt_saved(receipt_id, receipt.store, receipt.total)
        return receipt_id

    async def get_receipt_by_id(self, receipt_id: str) -> Optional[Receipt]:
        row = await self._client.run(
            lambda conn: conn.execute(
                "SELECT * FROM receipts WHERE id = ?", (receipt_id,)
            ).fetchone()
        )
        return self._row_to_receipt(row) if row else None

    async def list_receipts(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Receipt]:
        limit = self._client.page_size if limit is None else limit
        _check_page(limit, offset)
        rows = await self._client.run(
            lambda conn: conn.execute(
                """SELECT * FROM receipts
                   ORDER BY date DESC, created_at DESC, rowid DESC
                   LIMIT ? OFFSET ?""",
                (limit, offset),
            ).fetchall()
        )
        return [self._row_to_receipt(row) for row in rows]

    async def delete_receipt(self, receipt_id: str) -> bool:
        cursor = await self._client.run(
            lambda conn: conn.execute("DELETE FROM receipts WHERE id = ?", (receipt_id,))
        )
        deleted = cursor.rowcount > 0
        self._events.receipt_deleted(receipt_id, deleted)
        return deleted

    async def insert_item(self, item: NewItem) -> str:
        item_id = self._client.new_id()
        await self._client.run(
            lambda conn: self._write_item(conn, item_id, item.receipt_id, item)
        )
        self._events.item_saved(item_id, item.receipt_id)
        return item_id

    async def get_items_by_receipt_id(self, receipt_id: str) -> list[Item]:
        return await self._client.run(lambda conn: self._select_items(conn, receipt_id))

    async def insert_receipt_with_items(
        self,
        receipt: NewReceipt,
        items: list[NewReceiptItem],
    ) -> str:
        receipt_id = self._client.new_id()
        item_ids = [self._client.new_id() for _ in items]

        def write(conn: sqlite3.Connection) -> None:
            self._write_receipt(conn, receipt_id, receipt)
            for item_id, item in zip(item_ids, items):
                self._write_item(conn, item_id, receipt_id, item)

        await self._client.run_in_transaction(write, name="insert_receipt_with_items")
        self._events.receipt_saved(receipt_id, receipt.store, receipt.total, item_count=len(items))
        return receipt_id

    async def get_receipt_with_items(self, receipt_id: str) -> Optional[ReceiptWithItems]:
        def read(conn: sqlite3.Connection) -> Optional[ReceiptWithItems]:
            row = conn.execute("SELECT * FROM receipts WHERE id = ?", (receipt_id,)).fetchone()
            if row is None:
                return None
            receipt = self._row_to_receipt(row)
            return ReceiptWithItems(
                **receipt.model_dump(),
                items=self._select_items(conn, receipt_id),
            )

        return await self._client.run(read)


class SQLiteIncomeStorage(IncomeStorageInterface):
    """SQLite implementation of income storage."""

    def __init__(self, client: SQLiteClient):
        self._client = client
        self._events = client.events

    def _row_to_income(self, row: sqlite3.Row) -> Income:
        return Income(
            id=row["id"],
            amount=from_minor_units(row["amount"]),
            date=row["date"],
            source=row["source"],
            created_at=from_timestamp(row["created_at"]),
        )

    async def insert_income(self, income: NewIncome) -> str:
        income_id = self._client.new_id()
        await self._client.run(
            lambda conn: conn.execute(
                """INSERT INTO incomes (id, amount, date, source, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    income_id,
                    to_minor_units(income.amount),
                    to_iso_date(income.date),
                    income.source,
                    to_timestamp(utc_now()),
                ),
            )
        )
        self._events.income_saved(income_id, income.amount)
        return income_id

    async def get_income_by_id(self, income_id: str) -> Optional[Income]:
        row = await self._client.run(
            lambda conn: conn.execute(
                "SELECT * FROM incomes WHERE id = ?", (income_id,)
            ).fetchone()
        )
        return self._row_to_income(row) if row else None

    async def list_incomes(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Income]:
        limit = self._client.page_size if limit is None else limit
        _check_page(limit, offset)
        rows = await self._client.run(
            lambda conn: conn.execute(
                """SELECT * FROM incomes
                   ORDER BY date DESC, created_at DESC, rowid DESC
                   LIMIT ? OFFSET ?""",
                (limit, offset),
            ).fetchall()
        )
        return [self._row_to_income(row) for row in rows]

    async def delete_income(self, income_id: str) -> bool:
        cursor = await self._client.run(
            lambda conn: conn.execute("DELETE FROM incomes WHERE id = ?", (income_id,))
        )
        deleted = cursor.rowcount > 0
        self._events.income_deleted(income_id, deleted)
        return deleted


class SQLiteBudgetStorage(BudgetStorageInterface):
    """
    SQLite implementation of monthly and category budget storage.

    Category budgets are removed with their monthly budget by the
    ON DELETE CASCADE foreign key.
    """

    def __init__(self, client: SQLiteClient):
        self._client = client
        self._events = client.events

    def _row_to_monthly_budget(self, row: sqlite3.Row) -> MonthlyBudget:
        return MonthlyBudget(
            id=row["id"],
            month=row["month"],
            income=from_minor_units(row["income"]),
            fixed_expenses=from_minor_units(row["fixed_expenses"]),
            savings_goal=from_minor_units(row["savings_goal"]),
            created_at=from_timestamp(row["created_at"]),
            updated_at=from_timestamp(row["updated_at"]),
        )

    def _row_to_category_budget(self, row: sqlite3.Row) -> CategoryBudget:
        return CategoryBudget(
            id=row["id"],
            monthly_budget_id=row["monthly_budget_id"],
            category=Category(row["category"]),
            allocated_amount=from_minor_units(row["allocated_amount"]),
        )

    async def insert_monthly_budget(self, budget: NewMonthlyBudget) -> str:
        budget_id = self._client.new_id()
        now = to_timestamp(utc_now())

        def write(conn: sqlite3.Connection) -> None:
            with integrity_errors(self._events, "monthly_budgets"):
                conn.execute(
                    """INSERT INTO monthly_budgets
                       (id, month, income, fixed_expenses, savings_goal, created_at, updated_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?)""",
                    (
                        budget_id,
                        budget.month,
                        to_minor_units(budget.income),
                        to_minor_units(budget.fixed_expenses),
                        to_minor_units(budget.savings_goal),
                        now,
                        now,
                    ),
                )

        await self._client.run(write)
        self._events.monthly_budget_saved(budget_id, budget.month)
        return budget_id

    async def get_monthly_budget_by_id(self, budget_id: str) -> Optional[MonthlyBudget]:
        row = await self._client.run(
            lambda conn: conn.execute(
                "SELECT * FROM monthly_budgets WHERE id = ?", (budget_id,)
            ).fetchone()
        )
        return self._row_to_monthly_budget(row) if row else None

    async def get_monthly_budget(self, month: str) -> Optional[MonthlyBudget]:
        row = await self._client.run(
            lambda conn: conn.execute(
                "SELECT * FROM monthly_budgets WHERE month = ?", (month,)
            ).fetchone()
        )
        return self._row_to_monthly_budget(row) if row else None

    async def update_monthly_budget(self, budget_id: str, patch: MonthlyBudgetPatch) -> bool:
        if patch.is_empty:
            return False

        fields: list[str] = []
        values: list = []
        if patch.month is not None:
            fields.append("month")
            values.append(patch.month)
        if patch.income is not None:
            fields.append("income")
            values.append(to_minor_units(patch.income))
        if patch.fixed_expenses is not None:
            fields.append("fixed_expenses")
            values.append(to_minor_units(patch.fixed_expenses))
        if patch.savings_goal is not None:
            fields.append("savings_goal")
            values.append(to_minor_units(patch.savings_goal))

        assignments = ", ".join(f"{field} = ?" for field in [*fields, "updated_at"])
        values.append(to_timestamp(utc_now()))
        sql = f"UPDATE monthly_budgets SET {assignments} WHERE id = ?"

        def write(conn: sqlite3.Connection) -> int:
            with integrity_errors(self._events, "monthly_budgets"):
                return conn.execute(sql, (*values, budget_id)).rowcount

        if await self._client.run(write) == 0:
            raise NotFoundError(f"Monthly budget not found: {budget_id}")

        self._events.monthly_budget_updated(budget_id, fields)
        return True

    async def delete_monthly_budget(self, budget_id: str) -> bool:
        cursor = await self._client.run(
            lambda conn: conn.execute("DELETE FROM monthly_budgets WHERE id = ?", (budget_id,))
        )
        deleted = cursor.rowcount > 0
        self._events.monthly_budget_deleted(budget_id, deleted)
        return deleted

    async def insert_category_budget(self, budget: NewCategoryBudget) -> str:
        budget_id = self._client.new_id()

        def write(conn: sqlite3.Connection) -> None:
            with integrity_errors(self._events, "category_budgets", parent_id=budget.monthly_budget_id):
                conn.execute(
                    """INSERT INTO category_budgets (id, monthly_budget_id, category, allocated_amount)
                       VALUES (?, ?, ?, ?)""",
                    (
                        budget_id,
                        budget.monthly_budget_id,
                        budget.category.value,
                        to_minor_units(budget.allocated_amount),
                    ),
                )

        await self._client.run(write)
        self._events.category_budget_saved(budget_id, budget.monthly_budget_id)
        return budget_id

    async def get_category_budgets(self, monthly_budget_id: str) -> list[CategoryBudget]:
        rows = await self._client.run(
            lambda conn: conn.execute(
                "SELECT * FROM category_budgets WHERE monthly_budget_id = ? ORDER BY rowid",
                (monthly_budget_id,),
            ).fetchall()
        )
        return [self._row_to_category_budget(row) for row in rows]

    async def delete_category_budget(self, budget_id: str) -> bool:
        cursor = await self._client.run(
            lambda conn: conn.execute("DELETE FROM category_budgets WHERE id = ?", (budget_id,))
        )
        deleted = cursor.rowcount > 0
        self._events.category_budget_deleted(budget_id, deleted)
        return deleted
