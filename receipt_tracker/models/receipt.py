"""
Receipt Models for Receipt Tracker

These models define the strict schemas for purchase data:
1. Caller-supplied input shapes (no id, no timestamps)
2. Stored entities as read back from the database
3. The closed category set used for statistics

DESIGN DECISION: Monetary amounts are Decimal with at most two places.
They are never carried as floats anywhere in the data layer.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Category(str, Enum):
    """
    Item categories used to bucket spending.

    Declaration order is the order statistics are reported in.
    """
    SWEETS = "sweets"
    BEVERAGES = "beverages"
    FOOD = "food"
    VEGETABLES = "vegetables"
    FUEL = "fuel"
    HOUSEHOLD = "household"
    OTHER = "other"


# Twelve digits keeps a row's cents, and the SUM over millions of rows,
# inside SQLite's 64-bit INTEGER.
MAX_AMOUNT = Decimal("9999999999.99")

Money = Annotated[
    Decimal,
    Field(
        ge=0,
        max_digits=12,
        decimal_places=2,
        description="Non-negative currency amount, two decimal places at most"
    )
]

# Receipt totals and item prices may be negative for refunds and corrections.
SignedMoney = Annotated[
    Decimal,
    Field(
        ge=-MAX_AMOUNT,
        le=MAX_AMOUNT,
        max_digits=12,
        decimal_places=2,
        description="Currency amount, negative for refunds, two decimal places at most"
    )
]


# =============================================================================
# INPUT MODELS
# =============================================================================

class NewReceipt(BaseModel):
    """A receipt as supplied by the caller, before it has an id."""
    model_config = ConfigDict(str_strip_whitespace=True)

    date: dt.date = Field(
        ...,
        description="Purchase date"
    )
    store: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Store name"
    )
    # Not derived from items, and not checked against them.
    total: SignedMoney


class NewReceiptItem(BaseModel):
    """
    One line of a receipt being inserted together with its receipt.

    The receipt id is filled in by the storage layer.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Item name as printed on the receipt"
    )
    price: SignedMoney
    category: Category = Field(
        default=Category.OTHER,
        description="Spending category"
    )
    necessary: bool = Field(
        default=True,
        description="Was this a necessary purchase?"
    )


class NewItem(NewReceiptItem):
    """An item inserted on its own against an existing receipt."""

    receipt_id: str = Field(
        ...,
        min_length=1,
        description="Owning receipt"
    )


# =============================================================================
# STORED ENTITIES
# =============================================================================

class Receipt(NewReceipt):
    """A persisted receipt."""

    id: str
    created_at: dt.datetime
    updated_at: dt.datetime


class Item(NewItem):
    """A persisted receipt line."""

    id: str
    created_at: dt.datetime


class ReceiptWithItems(Receipt):
    """A receipt together with its items in insertion order."""

    items: list[Item] = Field(default_factory=list)
