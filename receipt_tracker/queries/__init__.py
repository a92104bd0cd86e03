"""Spending statistics package."""

from receipt_tracker.queries.statistics import SpendingStatistics, month_bounds

__all__ = ["SpendingStatistics", "month_bounds"]
