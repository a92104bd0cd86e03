"""
Spending Statistics Engine

DESIGN DECISION: Aggregation happens in SQL, not in Python.
Callers never load rows just to add them up.

Amounts are stored as integer cents, so SUM is exact integer
arithmetic and the results convert to Decimal without drift.

Receipt totals and item prices are summed independently. A receipt's
total is what the caller entered; it is never recomputed from its
items, and the two figures are allowed to disagree.
"""

import calendar
import datetime as dt
import re
import sqlite3
from decimal import Decimal
from typing import Union

from receipt_tracker.models import Category, SpendingSummary
from receipt_tracker.models.budget import MONTH_PATTERN
from receipt_tracker.services.storage import SQLiteClient
from receipt_tracker.services.storage.codec import from_minor_units, to_iso_date


DateLike = Union[dt.date, str]


def month_bounds(month: str) -> tuple[dt.date, dt.date]:
    """
    First and last calendar day of a YYYY-MM month.

    >>> month_bounds("2024-02")
    (datetime.date(2024, 2, 1), datetime.date(2024, 2, 29))

    Raises:
        ValueError: If month is not a valid YYYY-MM string
    """
    if not isinstance(month, str) or not re.fullmatch(MONTH_PATTERN, month):
        raise ValueError(f"Month must be YYYY-MM, got {month!r}")
    year, month_number = (int(part) for part in month.split("-"))
    if year < dt.MINYEAR:
        raise ValueError(f"Month must be YYYY-MM, got {month!r}")
    last_day = calendar.monthrange(year, month_number)[1]
    return dt.date(year, month_number, 1), dt.date(year, month_number, last_day)


class SpendingStatistics:
    """
    Date-range spending aggregates for dashboard and statistics views.

    GUARANTEES:
    - Ranges are inclusive at both ends
    - An empty range yields zero, never None
    - Per-category results always contain every category
    """

    def __init__(self, client: SQLiteClient):
        self._client = client

    async def total_spent(self, start_date: DateLike, end_date: DateLike) -> Decimal:
        """Sum of receipt totals dated within [start_date, end_date]."""
        start, end = to_iso_date(start_date), to_iso_date(end_date)
        cents = await self._client.run(lambda conn: self._total_cents(conn, start, end))
        return from_minor_units(cents)

    async def total_spent_by_category(
        self,
        start_date: DateLike,
        end_date: DateLike,
    ) -> dict[Category, Decimal]:
        """
        Sum of item prices per category, for items whose receipt is
        dated within [start_date, end_date].
        """
        start, end = to_iso_date(start_date), to_iso_date(end_date)
        return await self._client.run(lambda conn: self._category_totals(conn, start, end))

    async def spending_summary(self, start_date: DateLike, end_date: DateLike) -> SpendingSummary:
        """Both aggregates, read together so they describe the same data."""
        start, end = to_iso_date(start_date), to_iso_date(end_date)

        def read(conn: sqlite3.Connection) -> SpendingSummary:
            return SpendingSummary(
                start_date=start,
                end_date=end,
                total=from_minor_units(self._total_cents(conn, start, end)),
                by_category=self._category_totals(conn, start, end),
            )

        return await self._client.run(read)

    async def month_summary(self, month: str) -> SpendingSummary:
        """Spending summary for one YYYY-MM calendar month."""
        first_day, last_day = month_bounds(month)
        return await self.spending_summary(first_day, last_day)

    def _total_cents(self, conn: sqlite3.Connection, start: str, end: str) -> int:
        row = conn.execute(
            """SELECT COALESCE(SUM(total), 0) AS total
               FROM receipts
               WHERE date >= ? AND date <= ?""",
            (start, end),
        ).fetchone()
        return row["total"]

    def _category_totals(
        self,
        conn: sqlite3.Connection,
        start: str,
        end: str,
    ) -> dict[Category, Decimal]:
        rows = conn.execute(
            """SELECT i.category AS category, SUM(i.price) AS total
               FROM items i
               JOIN receipts r ON i.receipt_id = r.id
               WHERE r.date >= ? AND r.date <= ?
               GROUP BY i.category""",
            (start, end),
        ).fetchall()

        totals = {category: from_minor_units(0) for category in Category}
        for row in rows:
            totals[Category(row["category"])] = from_minor_units(row["total"])
        return totals
