"""
Metrics engine for StepSave plans.

Purpose
-------
Computes progress, streak, backlog and projection-by-now for one plan at one
reference instant. Every function here is a pure function of ``(plan, now)``
and is total: out-of-range or non-integral completed indices are ignored,
limits are clamped, nothing raises for malformed indices.

Definitions
-----------
current_index     whole days (weeks, for weekly plans) since start, plus one;
                  0 before the start date
due_through_today clamp(current_index, 0, total_days)
projected_by_now  Σ amount(i) for i ≤ due_through_today (closed form)
variance_by_now   completed_amount − projected_by_now
progress_percent  min(100, completed_amount / target_amount · 100)

Example
-------
>>> plan = Plan(id="p", name="Daily", start_date=date(2024, 1, 1), mode="full",
...             completed_days={1, 2, 3})
>>> m = compute_metrics(plan, date(2024, 1, 3))
>>> m.streak, m.completed_amount, m.variance_by_now
(3, 6.0, 0.0)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

import numpy as np

from .constants import DAYS_PER_WEEK
from .plan import Plan
from .schedule import amount_for_index, arithmetic_total, current_index
from .utils import DateLike, as_day, clamp, coerce_index, day_diff, round_money, valid_indices

__all__ = [
    "PlanMetrics",
    "compute_metrics",
    "empty_metrics",
    "completed_count",
    "completed_amount",
    "projected_amount_by_index",
    "compute_streak",
    "overdue_upcoming",
    "next_due_index",
    "progress_percent",
]


@dataclass(frozen=True)
class PlanMetrics:
    """Snapshot of a plan's progress at ``as_of``."""
    as_of: date
    current_index: int
    due_through_today: int
    in_range: bool
    completed_count: int
    completed_amount: float
    projected_by_now: float
    variance_by_now: float
    progress_percent: float
    overdue: int
    upcoming: int
    streak: int
    next_due_index: Optional[int]

    @property
    def ahead(self) -> bool:
        return self.variance_by_now >= 0


def empty_metrics(as_of: DateLike) -> PlanMetrics:
    """All-zero metrics used when no plan is selected."""
    return PlanMetrics(
        as_of=as_day(as_of),
        current_index=0,
        due_through_today=0,
        in_range=False,
        completed_count=0,
        completed_amount=0.0,
        projected_by_now=0.0,
        variance_by_now=0.0,
        progress_percent=0.0,
        overdue=0,
        upcoming=0,
        streak=0,
        next_due_index=None,
    )


# ---------------------------------------------------------------------------
# Completion aggregates
# ---------------------------------------------------------------------------

def completed_count(plan: Plan) -> int:
    """Number of completed entries within ``[1, total_days]``."""
    return len(valid_indices(plan.completed_days, plan.total_days))


def completed_amount(plan: Plan) -> float:
    """Sum of amounts of completed entries within ``[1, total_days]``."""
    return round_money(
        sum(amount_for_index(plan, index)
            for index in valid_indices(plan.completed_days, plan.total_days))
    )


def projected_amount_by_index(plan: Plan, limit: object) -> float:
    """
    Amount due through entry *limit*.

    *limit* is clamped to ``[0, total_days]``; non-numeric limits count as 0.
    """
    raw = coerce_index(limit)
    safe_limit = int(clamp(raw if raw is not None else 0, 0, plan.total_days))
    if plan.mode == "simple":
        return round_money(safe_limit * amount_for_index(plan, 1))
    return arithmetic_total(safe_limit, plan.increment_multiplier)


def progress_percent(plan: Plan, saved: Optional[float] = None) -> float:
    target = plan.target_amount
    if target <= 0:
        return 0.0
    if saved is None:
        saved = completed_amount(plan)
    return float(min(100.0, saved / target * 100.0))


# ---------------------------------------------------------------------------
# Streak and backlog
# ---------------------------------------------------------------------------

def compute_streak(plan: Plan, today_index: int) -> int:
    """
    Consecutive completed entries ending at ``min(today_index, total_days)``.

    Stops at the first gap; 0 if today_index < 1.
    """
    if today_index < 1:
        return 0
    streak = 0
    index = min(today_index, plan.total_days)
    while index >= 1 and index in plan.completed_days:
        streak += 1
        index -= 1
    return streak


def overdue_upcoming(plan: Plan, today: DateLike) -> Tuple[int, int]:
    """
    Count incomplete entries due before and after *today*.

    An incomplete entry due exactly today counts in neither bucket.
    """
    indices = np.arange(1, plan.total_days + 1)
    step = DAYS_PER_WEEK if plan.is_weekly else 1
    due_offsets = (indices - 1) * step
    today_offset = day_diff(today, plan.start_date)
    pending = ~np.isin(indices, list(plan.completed_days))
    overdue = int(np.count_nonzero(pending & (due_offsets < today_offset)))
    upcoming = int(np.count_nonzero(pending & (due_offsets > today_offset)))
    return overdue, upcoming


def next_due_index(plan: Plan, today_index: int) -> Optional[int]:
    """
    First incomplete entry at or after the current one.

    Wraps to the first incomplete entry from 1 so that missed early entries
    can be caught up after later ones were completed. None when everything
    is completed.
    """
    start = int(clamp(today_index or 1, 1, plan.total_days))
    for index in range(start, plan.total_days + 1):
        if index not in plan.completed_days:
            return index
    for index in range(1, start):
        if index not in plan.completed_days:
            return index
    return None


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------

def compute_metrics(plan: Optional[Plan], now: DateLike) -> PlanMetrics:
    """
    Compute every metric for *plan* at *now*.

    Parameters
    ----------
    plan : Plan or None
        Plan to evaluate. None yields empty_metrics(now).
    now : date, datetime or ISO string
        Reference instant; only its calendar date is used.
    """
    today = as_day(now)
    if plan is None:
        return empty_metrics(today)

    raw_index = current_index(plan, today)
    due_through = int(clamp(raw_index, 0, plan.total_days))
    saved = completed_amount(plan)
    projected = projected_amount_by_index(plan, due_through)
    overdue, upcoming = overdue_upcoming(plan, today)

    return PlanMetrics(
        as_of=today,
        current_index=raw_index,
        due_through_today=due_through,
        in_range=1 <= raw_index <= plan.total_days,
        completed_count=completed_count(plan),
        completed_amount=saved,
        projected_by_now=projected,
        variance_by_now=round_money(saved - projected),
        progress_percent=progress_percent(plan, saved),
        overdue=overdue,
        upcoming=upcoming,
        streak=compute_streak(plan, raw_index),
        next_due_index=next_due_index(plan, raw_index),
    )
