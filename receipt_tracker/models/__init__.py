"""
Data Models Package

This package contains all Pydantic models used by the Receipt Tracker data layer.
All data flowing in and out of storage must conform to these schemas.
"""

from receipt_tracker.models.receipt import (
    Category,
    Item,
    MAX_AMOUNT,
    Money,
    SignedMoney,
    NewItem,
    NewReceipt,
    NewReceiptItem,
    Receipt,
    ReceiptWithItems,
)
from receipt_tracker.models.budget import (
    CategoryBudget,
    Income,
    MonthlyBudget,
    MonthlyBudgetPatch,
    NewCategoryBudget,
    NewIncome,
    NewMonthlyBudget,
)
from receipt_tracker.models.statistics import SpendingSummary

__all__ = [
    # Receipt models
    "Category",
    "Item",
    "MAX_AMOUNT",
    "Money",
    "SignedMoney",
    "NewItem",
    "NewReceipt",
    "NewReceiptItem",
    "Receipt",
    "ReceiptWithItems",
    # Income and budget models
    "CategoryBudget",
    "Income",
    "MonthlyBudget",
    "MonthlyBudgetPatch",
    "NewCategoryBudget",
    "NewIncome",
    "NewMonthlyBudget",
    # Statistics
    "SpendingSummary",
]
