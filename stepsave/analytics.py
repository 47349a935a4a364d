"""
Analytics series builder for StepSave plans.

Purpose
-------
Turns a plan and its metrics into chart-ready series. Each series is a set
of parallel sequences (labels plus one or more value sequences) and can be
exported as a pandas DataFrame for plotting, CSV or reporting.

Series
------
cumulative  running actual vs running target over entries 1..N
weekly      completed amounts in the last 10 Monday-anchored weeks
streak      completed/pending flags for the 30 entries ending at today
rolling     % completed in the trailing 7-entry window, per entry
projection  actual, target and velocity-based projection up to a horizon
            of at most 3N entries

Undefined points (actual beyond today, projection before today) are None.

Example
-------
>>> metrics = compute_metrics(plan, date(2024, 1, 10))
>>> bundle = build_analytics(plan, metrics)
>>> bundle.streak.labels[-1]
'10'
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from .constants import PROJECTION_HORIZON_FACTOR, ROLLING_WINDOW, STREAK_WINDOW, WEEKLY_BUCKETS
from .metrics import PlanMetrics
from .plan import Plan
from .schedule import date_for_index, entry_amounts
from .utils import clamp, monday_start, round_money, valid_indices

__all__ = [
    "CumulativeSeries",
    "WeeklySeries",
    "StreakSeries",
    "RollingSeries",
    "ProjectionSeries",
    "SeriesBundle",
    "cumulative_series",
    "weekly_series",
    "streak_series",
    "rolling_series",
    "projection_series",
    "build_analytics",
]


# ---------------------------------------------------------------------------
# Series containers
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class CumulativeSeries:
    labels: List[str]
    actual: List[float]
    target: List[float]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {"actual": self.actual, "target": self.target},
            index=pd.Index(self.labels, name="entry"),
        )


@dataclass(frozen=True)
class WeeklySeries:
    labels: List[str]
    week_starts: List[date]
    values: List[float]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {"label": self.labels, "deposits": self.values},
            index=pd.DatetimeIndex(self.week_starts, name="week_start"),
        )


@dataclass(frozen=True)
class StreakSeries:
    labels: List[str]
    values: List[int]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"completed": self.values}, index=pd.Index(self.labels, name="entry"))


@dataclass(frozen=True)
class RollingSeries:
    labels: List[str]
    values: List[int]

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"rolling_pct": self.values}, index=pd.Index(self.labels, name="entry"))


@dataclass(frozen=True)
class ProjectionSeries:
    labels: List[str]
    actual: List[Optional[float]]
    target: List[float]
    projected: List[Optional[float]]
    finish_index: Optional[int] = None
    finish_date: Optional[date] = None

    @property
    def horizon(self) -> int:
        return len(self.labels)

    def to_frame(self) -> pd.DataFrame:
        """Frame with NaN where a series is undefined."""
        def undefined_as_nan(values):
            return [np.nan if v is None else v for v in values]

        return pd.DataFrame(
            {
                "actual": undefined_as_nan(self.actual),
                "target": self.target,
                "projected": undefined_as_nan(self.projected),
            },
            index=pd.Index(self.labels, name="entry"),
            dtype=float,
        )


@dataclass(frozen=True)
class SeriesBundle:
    cumulative: CumulativeSeries
    weekly: WeeklySeries
    streak: StreakSeries
    rolling: RollingSeries
    projection: ProjectionSeries

    def to_frames(self) -> Dict[str, pd.DataFrame]:
        return {
            "cumulative": self.cumulative.to_frame(),
            "weekly": self.weekly.to_frame(),
            "streak": self.streak.to_frame(),
            "rolling": self.rolling.to_frame(),
            "projection": self.projection.to_frame(),
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _completed_mask(plan: Plan) -> np.ndarray:
    """Boolean array, position i-1 → entry i completed."""
    mask = np.zeros(plan.total_days, dtype=bool)
    for index in valid_indices(plan.completed_days, plan.total_days):
        mask[index - 1] = True
    return mask


def _labels(count: int, start: int = 1) -> List[str]:
    return [str(index) for index in range(start, start + count)]


def _week_label(day: date) -> str:
    return f"{day:%b} {day.day}"


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

def cumulative_series(plan: Plan) -> CumulativeSeries:
    """Running actual (completed only) and running target over 1..N."""
    amounts = entry_amounts(plan)
    mask = _completed_mask(plan)
    actual = np.cumsum(np.where(mask, amounts, 0.0))
    target = np.cumsum(amounts)
    return CumulativeSeries(
        labels=_labels(plan.total_days),
        actual=[round_money(v) for v in actual],
        target=[round_money(v) for v in target],
    )


def weekly_series(plan: Plan, today: date, weeks: int = WEEKLY_BUCKETS) -> WeeklySeries:
    """
    Completed amounts bucketed by the Monday of each entry's due date.

    Covers the last *weeks* weeks up to and including the week of *today*;
    completions due outside that window are not counted.
    """
    current_monday = monday_start(today)
    week_starts = [current_monday - timedelta(weeks=offset) for offset in range(weeks - 1, -1, -1)]

    completed = valid_indices(plan.completed_days, plan.total_days)
    amounts = entry_amounts(plan)
    deposits = pd.Series(
        [amounts[index - 1] for index in completed],
        index=[monday_start(date_for_index(plan, index)) for index in completed],
        dtype=float,
    )
    totals = deposits.groupby(level=0).sum().reindex(week_starts, fill_value=0.0)

    return WeeklySeries(
        labels=[_week_label(day) for day in week_starts],
        week_starts=week_starts,
        values=[round_money(v) for v in totals.to_numpy()],
    )


def streak_series(plan: Plan, metrics: PlanMetrics, window: int = STREAK_WINDOW) -> StreakSeries:
    """Completed (1) / pending (0) flags for up to *window* entries ending at today."""
    anchor = int(clamp(metrics.current_index or 1, 1, plan.total_days))
    start = max(1, anchor - window + 1)
    mask = _completed_mask(plan)
    return StreakSeries(
        labels=_labels(anchor - start + 1, start),
        values=[int(flag) for flag in mask[start - 1:anchor]],
    )


def rolling_series(plan: Plan, window: int = ROLLING_WINDOW) -> RollingSeries:
    """
    Percentage of completed entries in the trailing *window* entries.

    Near the start the window is left-clamped, so entry i uses entries
    max(1, i - window + 1)..i. Values are rounded to whole percent.
    """
    flags = pd.Series(_completed_mask(plan).astype(float))
    rate = flags.rolling(window, min_periods=1).mean() * 100.0
    return RollingSeries(
        labels=_labels(plan.total_days),
        values=[int(v) for v in np.floor(rate.to_numpy() + 0.5)],
    )


def projection_series(plan: Plan, metrics: PlanMetrics) -> ProjectionSeries:
    """
    Velocity-based projection of when the target is reached.

    velocity  = completed_amount / max(1, elapsed)
    finish    = elapsed (or N if elapsed is 0) when nothing remains,
                elapsed + ceil(remaining / velocity) when velocity > 0,
                otherwise no projection
    horizon   = min(max(N, finish), 3N)

    The projected series runs linearly from the completed amount at
    ``elapsed`` to the target at ``finish``, then holds at the target.
    """
    total = plan.total_days
    target_amount = plan.target_amount
    saved = metrics.completed_amount
    elapsed = int(clamp(metrics.current_index, 0, total))
    velocity = saved / max(1, elapsed)
    remaining = max(0.0, target_amount - saved)

    finish: Optional[int] = None
    if remaining <= 0:
        finish = elapsed or total
    elif velocity > 0:
        finish = elapsed + math.ceil(remaining / velocity)

    horizon = min(max(total, finish or elapsed or total), total * PROJECTION_HORIZON_FACTOR)

    amounts = entry_amounts(plan)
    mask = _completed_mask(plan)
    running_actual = np.cumsum(np.where(mask, amounts, 0.0))
    running_target = np.cumsum(amounts)

    actual: List[Optional[float]] = []
    target: List[float] = []
    projected: List[Optional[float]] = []
    for index in range(1, horizon + 1):
        actual.append(round_money(running_actual[index - 1]) if index <= elapsed else None)
        target.append(round_money(running_target[min(index, total) - 1]))

        if finish is None or velocity <= 0 or index < elapsed:
            projected.append(None)
        elif finish == elapsed or index > finish:
            projected.append(round_money(target_amount))
        else:
            ratio = (index - elapsed) / max(1, finish - elapsed)
            projected.append(round_money(saved + ratio * (target_amount - saved)))

    return ProjectionSeries(
        labels=_labels(horizon),
        actual=actual,
        target=target,
        projected=projected,
        finish_index=finish,
        finish_date=date_for_index(plan, min(finish, total)) if finish else None,
    )


def build_analytics(plan: Plan, metrics: PlanMetrics) -> SeriesBundle:
    """Build every series for *plan* from its metrics snapshot."""
    return SeriesBundle(
        cumulative=cumulative_series(plan),
        weekly=weekly_series(plan, metrics.as_of),
        streak=streak_series(plan, metrics),
        rolling=rolling_series(plan),
        projection=projection_series(plan, metrics),
    )
