"""General utilities for StepSave

Contents
--------
- Money helpers (round_money, format_currency)
- Calendar-day helpers (as_day, parse_date, add_days, day_diff, monday_start)
- Index helpers (clamp, coerce_index, valid_indices)
- Timestamp helpers (parse_timestamp, format_timestamp)
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, List, Optional, Union

from .constants import DEFAULT_CURRENCY

__all__ = [
    # Money
    "round_money",
    "format_currency",
    # Calendar days
    "DateLike",
    "as_day",
    "parse_date",
    "add_days",
    "day_diff",
    "monday_start",
    # Indices
    "clamp",
    "coerce_index",
    "valid_indices",
    # Timestamps
    "parse_timestamp",
    "format_timestamp",
]

_CENT = Decimal("0.01")

DateLike = Union[date, datetime, str]


# ---------------------------------------------------------------------------
# Money helpers
# ---------------------------------------------------------------------------

def round_money(amount: Optional[float]) -> float:
    """Round to cents, half away from zero.

    None, NaN and infinities map to 0.0. Uses the shortest decimal repr of
    the float so that 2.675 rounds to 2.68.
    """
    if amount is None:
        return 0.0
    try:
        value = float(amount)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value):
        return 0.0
    try:
        quantized = Decimal(repr(value)).quantize(_CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return 0.0
    return float(quantized) + 0.0  # normalizes -0.0


def format_currency(amount: Optional[float], symbol: str = DEFAULT_CURRENCY) -> str:
    """
    Format a money value for display.

    Examples
    --------
    >>> format_currency(66795)
    'GHS 66,795.00'
    >>> format_currency(-12.5, symbol="$")
    '$-12.50'
    """
    return f"{symbol}{round_money(amount):,.2f}"


# ---------------------------------------------------------------------------
# Calendar-day helpers
# ---------------------------------------------------------------------------

def as_day(value: DateLike) -> date:
    """Drop the time-of-day component.

    Accepts a date, a datetime (its local calendar date is used) or an
    ISO string (``YYYY-MM-DD`` optionally followed by a time).
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_date(value)


def parse_date(value: str) -> date:
    """Parse ``YYYY-MM-DD`` (or a full ISO timestamp) into a date.

    Raises ValueError on anything else.
    """
    text = str(value).strip()
    if len(text) > 10 and text[10] in ("T", " "):
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    return date.fromisoformat(text)


def add_days(day: date, days: int) -> date:
    return day + timedelta(days=int(days))


def day_diff(left: DateLike, right: DateLike) -> int:
    """Whole calendar days from *right* to *left*.

    Computed on date components, so daylight-saving shifts in the inputs
    never produce off-by-one results.
    """
    return as_day(left).toordinal() - as_day(right).toordinal()


def monday_start(value: DateLike) -> date:
    """Monday of the ISO week containing *value*."""
    day = as_day(value)
    return day - timedelta(days=day.weekday())


# ---------------------------------------------------------------------------
# Index helpers
# ---------------------------------------------------------------------------

def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def coerce_index(value: object) -> Optional[int]:
    """Return *value* as an int index, or None if it is not integral.

    Accepts ints, integral floats and numeric strings ("12", "12.0").
    Booleans are rejected.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number != int(number):
        return None
    return int(number)


def valid_indices(values: Iterable[object], total_days: int) -> List[int]:
    """Sorted distinct integer indices within ``[1, total_days]``."""
    found = set()
    for value in values:
        index = coerce_index(value)
        if index is not None and 1 <= index <= total_days:
            found.add(index)
    return sorted(found)


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------

def parse_timestamp(value: object) -> Optional[datetime]:
    """Parse an ISO timestamp into an aware datetime (naive means UTC).

    Returns None for missing or unparseable values.
    """
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        try:
            moment = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC timestamp with a ``Z`` suffix and millisecond precision."""
    aware = moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)
    return aware.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
