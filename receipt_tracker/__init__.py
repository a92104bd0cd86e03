"""
Receipt Tracker - Local Data Layer

Persistent storage for a personal expense-tracking app: receipts with
categorized line items, incomes, monthly and per-category budgets, and
the spending statistics shown on the dashboard.

DESIGN PRINCIPLES:
1. One storage handle, built once and passed explicitly
2. Fail early, fail visibly: errors are never swallowed or retried
3. No silent corrections: receipt totals are stored as entered
4. Money is Decimal end to end
"""

from receipt_tracker.orchestrator import DataLayer, create_data_layer

__version__ = "1.0.0"
__author__ = "Receipt Tracker Team"

__all__ = ["DataLayer", "create_data_layer"]
