"""
Income and Budget Models

Incomes are independent entries. A monthly budget holds the plan for one
calendar month and may be broken down into per-category allocations.
"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from receipt_tracker.models.receipt import Category, Money


MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


class NewIncome(BaseModel):
    """An income entry as supplied by the caller."""
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Money
    date: dt.date
    source: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Where the money came from"
    )


class Income(NewIncome):
    id: str
    created_at: dt.datetime


class NewMonthlyBudget(BaseModel):
    """
    Budget plan for one calendar month.

    The month is a YYYY-MM key and is unique across all budgets.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    month: str = Field(
        ...,
        pattern=MONTH_PATTERN,
        description="Month key in YYYY-MM format"
    )
    income: Money
    fixed_expenses: Money
    savings_goal: Money


class MonthlyBudget(NewMonthlyBudget):
    id: str
    created_at: dt.datetime
    updated_at: dt.datetime


class MonthlyBudgetPatch(BaseModel):
    """
    Partial update for a monthly budget.

    Every updatable field is listed here. Anything else (id, created_at,
    updated_at or a typo) fails validation instead of being written.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    month: Optional[str] = Field(
        default=None,
        pattern=MONTH_PATTERN
    )
    income: Optional[Money] = None
    fixed_expenses: Optional[Money] = None
    savings_goal: Optional[Money] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.month is None
            and self.income is None
            and self.fixed_expenses is None
            and self.savings_goal is None
        )


class NewCategoryBudget(BaseModel):
    """Amount allocated to one category within a monthly budget."""

    monthly_budget_id: str = Field(
        ...,
        min_length=1,
        description="Owning monthly budget"
    )
    category: Category
    allocated_amount: Money


class CategoryBudget(NewCategoryBudget):
    id: str
