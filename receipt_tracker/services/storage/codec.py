"""
Storage Boundary Conversions

Everything that changes representation between the domain models and
SQLite columns lives here:

- booleans are stored as INTEGER 0/1
- money is stored as INTEGER minor units (cents), so SQL SUM is exact
- dates are ISO text, so lexical order equals chronological order
- timestamps are ISO 8601 text in UTC
"""

import datetime as dt
import itertools
import secrets
import threading
import time
from decimal import ROUND_HALF_UP, Decimal
from typing import Union


MINOR_UNITS = 100
CENT = Decimal("0.01")


def bool_to_db(value: bool) -> int:
    """Encode a flag for an INTEGER column."""
    if not isinstance(value, bool):
        raise TypeError(f"Expected bool, got {type(value).__name__}")
    return 1 if value else 0


def bool_from_db(value: int) -> bool:
    """Decode a flag read from an INTEGER column."""
    if value not in (0, 1):
        raise ValueError(f"Stored flag must be 0 or 1, got {value!r}")
    return value == 1


def to_minor_units(amount: Decimal) -> int:
    """
    Convert a currency amount to integer cents.

    Amounts reaching storage are already validated to two places,
    so quantizing never changes their value.
    """
    return int(Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP) * MINOR_UNITS)


def from_minor_units(value: int) -> Decimal:
    """Convert integer cents back to a two-place Decimal."""
    return Decimal(int(value)).scaleb(-2).quantize(CENT)


def to_iso_date(value: Union[dt.date, str]) -> str:
    """Normalize a date or ISO date string to YYYY-MM-DD."""
    if isinstance(value, dt.datetime):
        value = value.date()
    if isinstance(value, dt.date):
        return value.isoformat()
    return dt.date.fromisoformat(value).isoformat()


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def to_timestamp(value: dt.datetime) -> str:
    return value.isoformat()


def from_timestamp(value: str) -> dt.datetime:
    return dt.datetime.fromisoformat(value)


class IdGenerator:
    """
    Generates opaque, never-repeating row identifiers.

    Format: <13-digit epoch millis>-<6-digit counter>-<8 hex random>.
    The counter is shared by all calls in the process, so two ids
    generated in the same millisecond still differ.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._counter = itertools.count()
        self._last_millis = 0

    def new_id(self) -> str:
        with self._lock:
            # Never step backwards if the wall clock does.
            millis = max(int(time.time() * 1000), self._last_millis)
            self._last_millis = millis
            sequence = next(self._counter) % 1_000_000
        return f"{millis:013d}-{sequence:06d}-{secrets.token_hex(4)}"
