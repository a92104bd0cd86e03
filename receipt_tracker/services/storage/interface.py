"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep statistics and UI code decoupled from SQL
2. Use another backend for testing if ever needed
3. Document the error contract in one place

The interface is intentionally simple - we're not building a full ORM.
Just the operations the receipt, income and budget screens need.
"""

from abc import ABC, abstractmethod
from typing import Optional

from receipt_tracker.models import (
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


DEFAULT_PAGE_SIZE = 50


class ReceiptStorageInterface(ABC):
    """
    Abstract interface for receipt and item storage.

    Receipts own their items: deleting a receipt deletes its items.
    """

    @abstractmethod
    async def insert_receipt(self, receipt: NewReceipt) -> str:
        """
        Save a new receipt.

        Args:
            receipt: Receipt fields supplied by the caller

        Returns:
            The id assigned to the receipt
        """
        pass

    @abstractmethod
    async def get_receipt_by_id(self, receipt_id: str) -> Optional[Receipt]:
        """
        Retrieve a receipt by its id.

        Returns:
            The receipt if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_receipts(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Receipt]:
        """
        List one page of receipts, newest date first.

        Args:
            limit: Maximum number of results (default: DEFAULT_PAGE_SIZE)
            offset: Number of results to skip
        """
        pass

    @abstractmethod
    async def delete_receipt(self, receipt_id: str) -> bool:
        """
        Delete a receipt and all of its items.

        Returns:
            True if a receipt was deleted, False if it did not exist
        """
        pass

    @abstractmethod
    async def insert_item(self, item: NewItem) -> str:
        """
        Save a single item against an existing receipt.

        Raises:
            ReferentialIntegrityError: If the receipt does not exist
        """
        pass

    @abstractmethod
    async def get_items_by_receipt_id(self, receipt_id: str) -> list[Item]:
        """Get the items of a receipt in the order they were inserted."""
        pass

    @abstractmethod
    async def insert_receipt_with_items(
        self,
        receipt: NewReceipt,
        items: list[NewReceiptItem],
    ) -> str:
        """
        Save a receipt and its items atomically.

        Either the receipt and every item are stored, or nothing is.

        Returns:
            The id assigned to the receipt
        """
        pass

    @abstractmethod
    async def get_receipt_with_items(self, receipt_id: str) -> Optional[ReceiptWithItems]:
        """Retrieve a receipt together with its items, or None."""
        pass


class IncomeStorageInterface(ABC):
    """Abstract interface for income storage."""

    @abstractmethod
    async def insert_income(self, income: NewIncome) -> str:
        pass

    @abstractmethod
    async def get_income_by_id(self, income_id: str) -> Optional[Income]:
        pass

    @abstractmethod
    async def list_incomes(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Income]:
        """List one page of incomes, newest date first."""
        pass

    @abstractmethod
    async def delete_income(self, income_id: str) -> bool:
        pass


class BudgetStorageInterface(ABC):
    """
    Abstract interface for monthly and category budgets.

    Monthly budgets own their category budgets.
    """

    @abstractmethod
    async def insert_monthly_budget(self, budget: NewMonthlyBudget) -> str:
        """
        Save a monthly budget.

        Raises:
            DuplicateError: If a budget for the month already exists
        """
        pass

    @abstractmethod
    async def get_monthly_budget_by_id(self, budget_id: str) -> Optional[MonthlyBudget]:
        pass

    @abstractmethod
    async def get_monthly_budget(self, month: str) -> Optional[MonthlyBudget]:
        """Retrieve the budget for a YYYY-MM month, or None."""
        pass

    @abstractmethod
    async def update_monthly_budget(self, budget_id: str, patch: MonthlyBudgetPatch) -> bool:
        """
        Apply a partial update to a monthly budget.

        Only fields set on the patch are written. An empty patch
        writes nothing, not even updated_at.

        Returns:
            True if a row was updated, False for an empty patch

        Raises:
            NotFoundError: If the budget doesn't exist
            DuplicateError: If the new month is already taken
        """
        pass

    @abstractmethod
    async def delete_monthly_budget(self, budget_id: str) -> bool:
        """Delete a monthly budget and all of its category budgets."""
        pass

    @abstractmethod
    async def insert_category_budget(self, budget: NewCategoryBudget) -> str:
        """
        Save a category allocation.

        Raises:
            ReferentialIntegrityError: If the monthly budget does not exist
        """
        pass

    @abstractmethod
    async def get_category_budgets(self, monthly_budget_id: str) -> list[CategoryBudget]:
        pass

    @abstractmethod
    async def delete_category_budget(self, budget_id: str) -> bool:
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageInitError(StorageError):
    """Schema creation or reset failed. The schema was rolled back."""
    pass


class StorageNotReadyError(StorageError):
    """Storage was used before initialize() completed, or after close()."""
    pass


class ReferentialIntegrityError(StorageError):
    """A row referenced a parent that does not exist."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass
