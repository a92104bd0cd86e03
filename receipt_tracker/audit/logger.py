"""
Storage Event Logger

DESIGN DECISION: Every change to stored data is logged locally.
This provides:
1. Traceability of what was written and when
2. Debugging capability when a transaction is rolled back

The event logger:
- Only observes; it never raises or replaces a storage error
- Logs identifiers and amounts, never whole rows
"""

import logging
from decimal import Decimal
from typing import Optional

import structlog


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure structlog for local logging.

    Safe to call more than once; the last call wins.
    """
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))
    logging.getLogger("receipt_tracker").setLevel(getattr(logging, level.upper()))

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class StorageEventLogger:
    """
    Central logging for storage events.

    One instance is shared by the client and every repository built on it.
    """

    def __init__(self, name: str = "receipt_tracker.storage"):
        self._logger = structlog.get_logger(name)

    # -- schema lifecycle --------------------------------------------------

    def store_initialized(self, database: str, journal_mode: str) -> None:
        self._logger.info(
            "store_initialized",
            database=database,
            journal_mode=journal_mode,
        )

    def store_reset(self, database: str) -> None:
        self._logger.warning("store_reset", database=database)

    def store_closed(self, database: str) -> None:
        self._logger.info("store_closed", database=database)

    def schema_failed(self, operation: str, error: Exception) -> None:
        self._logger.error(
            "schema_failed",
            operation=operation,
            error_type=type(error).__name__,
            error=str(error),
        )

    def transaction_rolled_back(self, operation: str, error: BaseException) -> None:
        self._logger.warning(
            "transaction_rolled_back",
            operation=operation,
            error_type=type(error).__name__,
            error=str(error),
        )

    # -- entity changes ----------------------------------------------------

    def receipt_saved(self, receipt_id: str, store: str, total: Decimal, item_count: int = 0) -> None:
        self._logger.info(
            "receipt_saved",
            receipt_id=receipt_id,
            store=store,
            total=str(total),
            item_count=item_count,
        )

    def receipt_deleted(self, receipt_id: str, deleted: bool) -> None:
        self._logger.info("receipt_deleted", receipt_id=receipt_id, deleted=deleted)

    def item_saved(self, item_id: str, receipt_id: str) -> None:
        self._logger.debug("item_saved", item_id=item_id, receipt_id=receipt_id)

    def income_saved(self, income_id: str, amount: Decimal) -> None:
        self._logger.info("income_saved", income_id=income_id, amount=str(amount))

    def income_deleted(self, income_id: str, deleted: bool) -> None:
        self._logger.info("income_deleted", income_id=income_id, deleted=deleted)

    def monthly_budget_saved(self, budget_id: str, month: str) -> None:
        self._logger.info("monthly_budget_saved", budget_id=budget_id, month=month)

    def monthly_budget_updated(self, budget_id: str, fields: list[str]) -> None:
        self._logger.info("monthly_budget_updated", budget_id=budget_id, fields=fields)

    def monthly_budget_deleted(self, budget_id: str, deleted: bool) -> None:
        self._logger.info("monthly_budget_deleted", budget_id=budget_id, deleted=deleted)

    def category_budget_saved(self, budget_id: str, monthly_budget_id: str) -> None:
        self._logger.debug(
            "category_budget_saved",
            budget_id=budget_id,
            monthly_budget_id=monthly_budget_id,
        )

    def category_budget_deleted(self, budget_id: str, deleted: bool) -> None:
        self._logger.info("category_budget_deleted", budget_id=budget_id, deleted=deleted)

    def integrity_violation(self, table: str, detail: str, parent_id: Optional[str] = None) -> None:
        self._logger.warning(
            "integrity_violation",
            table=table,
            detail=detail,
            parent_id=parent_id,
        )
