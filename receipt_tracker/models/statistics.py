"""Result models for spending statistics."""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field

from receipt_tracker.models.receipt import Category


class SpendingSummary(BaseModel):
    """
    Spending figures for one inclusive date range.

    total comes from receipt totals, by_category from item prices.
    The two are computed independently and may differ.
    """

    start_date: dt.date
    end_date: dt.date
    total: Decimal = Field(
        ...,
        description="Sum of receipt totals in range"
    )
    by_category: dict[Category, Decimal] = Field(
        ...,
        description="Sum of item prices per category, every category present"
    )

    @property
    def itemized_total(self) -> Decimal:
        """Sum of all item prices in range."""
        return sum(self.by_category.values(), Decimal("0.00"))
