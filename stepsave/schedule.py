"""
Schedule calculator for StepSave plans.

Purpose
-------
Pure index ↔ date and index → amount formulas for every plan mode.

Formulas
--------
Due date of entry i (1-indexed):
    daily modes:  start_date + (i - 1) days
    weekly mode:  start_date + 7 (i - 1) days

Amount of entry i:
    simple mode:  fixed_daily_amount
    otherwise:    round(i · multiplier, 2)

Target (closed form of Σ amount(i), i = 1..N):
    simple mode:  round(N · fixed_daily_amount, 2)
    otherwise:    round(N (N + 1) · multiplier / 2, 2)

All rounding is to cents, half away from zero. Date arithmetic uses
calendar-day ordinals, never raw timestamps.

Example
-------
>>> plan = Plan(id="w", name="Weekly", start_date=date(2024, 1, 1), mode="weekly")
>>> date_for_index(plan, 5)
datetime.date(2024, 1, 29)
>>> index_for_date(plan, date(2024, 1, 30)) is None
True
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Optional

import numpy as np

from .constants import DAYS_PER_WEEK
from .utils import DateLike, add_days, as_day, day_diff, round_money

if TYPE_CHECKING:
    from .plan import Plan

__all__ = [
    "date_for_index",
    "index_for_date",
    "amount_for_index",
    "entry_amounts",
    "arithmetic_total",
    "target_amount",
    "target_amount_for",
    "current_index",
]


def _step_days(plan: Plan) -> int:
    return DAYS_PER_WEEK if plan.is_weekly else 1


# ---------------------------------------------------------------------------
# Index ↔ date
# ---------------------------------------------------------------------------

def date_for_index(plan: Plan, index: int) -> date:
    """Due date of entry *index*."""
    return add_days(plan.start_date, (int(index) - 1) * _step_days(plan))


def index_for_date(plan: Plan, day: DateLike) -> Optional[int]:
    """
    Inverse of date_for_index.

    Returns None when *day* precedes the start date, when (weekly mode) it
    does not fall on a weekly due date, or when the index would exceed
    total_days.
    """
    distance = day_diff(day, plan.start_date)
    if distance < 0:
        return None
    step = _step_days(plan)
    if distance % step != 0:
        return None
    index = distance // step + 1
    return index if index <= plan.total_days else None


def current_index(plan: Plan, now: DateLike) -> int:
    """
    Entry index in effect at *now*, counted in whole days (or weeks) plus one.

    Returns 0 before the start date; may exceed total_days after the end.
    """
    distance = day_diff(now, plan.start_date)
    if distance < 0:
        return 0
    return distance // _step_days(plan) + 1


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

def amount_for_index(plan: Plan, index: int) -> float:
    """Deposit amount for entry *index*."""
    if plan.mode == "simple":
        return round_money(plan.fixed_daily_amount)
    return round_money(int(index) * plan.increment_multiplier)


def entry_amounts(plan: Plan) -> np.ndarray:
    """Amounts of entries 1..total_days as a float array (position i-1 → entry i)."""
    return np.array(
        [amount_for_index(plan, index) for index in range(1, plan.total_days + 1)],
        dtype=float,
    )


def arithmetic_total(total_days: int, multiplier: float) -> float:
    """Closed-form Σ_{i=1..N} i · multiplier, rounded to cents."""
    n = int(total_days)
    return round_money(n * (n + 1) * float(multiplier) / 2)


def target_amount(
    mode: str,
    total_days: int,
    multiplier: float,
    fixed_daily_amount: Optional[float] = None,
) -> float:
    """Canonical target for a parameter set.

    Simple mode with no usable fixed amount counts 1.00 per entry.
    """
    if mode == "simple":
        fixed = fixed_daily_amount if fixed_daily_amount and fixed_daily_amount > 0 else 1.0
        return round_money(int(total_days) * round_money(fixed))
    return arithmetic_total(total_days, multiplier)


def target_amount_for(plan: Plan) -> float:
    return target_amount(
        plan.mode,
        plan.total_days,
        plan.increment_multiplier,
        plan.fixed_daily_amount,
    )
