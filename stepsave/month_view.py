"""
Month view of a plan's entries.

Purpose
-------
Lays a plan's entries out for one calendar month, classifies each entry
(done, due today, overdue, upcoming) and applies a status filter. Renderers
draw the result; this module only decides what goes where.

Daily plans get a 6 × 7 Monday-first grid (42 cells, including leading and
trailing days of adjacent months). Weekly plans get the list of weekly
entries due within the month.

Example
-------
>>> view = month_view(plan, 2024, 2, today=date(2024, 2, 10), status_filter="overdue")
>>> view.monthly_items, view.visible_items
(29, 9)
"""

from __future__ import annotations

import calendar as _calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Tuple

from .plan import Plan
from .schedule import amount_for_index, date_for_index, index_for_date
from .utils import DateLike, as_day

__all__ = [
    "STATUS_FILTERS",
    "CalendarEntry",
    "CalendarCell",
    "MonthView",
    "classify_entry",
    "month_view",
    "shift_month",
]

STATUS_FILTERS: Tuple[str, ...] = ("all", "done", "overdue", "upcoming")

GRID_CELLS = 42


@dataclass(frozen=True)
class CalendarEntry:
    """One due entry and its status relative to today."""
    index: int
    day: date
    amount: float
    done: bool
    today: bool
    overdue: bool
    upcoming: bool

    def matches(self, status_filter: str) -> bool:
        """Unknown filters match everything, like "all"."""
        if status_filter == "done":
            return self.done
        if status_filter == "overdue":
            return self.overdue
        if status_filter == "upcoming":
            return self.upcoming
        return True


@dataclass(frozen=True)
class CalendarCell:
    day: date
    in_month: bool
    entry: Optional[CalendarEntry]
    visible: bool


@dataclass(frozen=True)
class MonthView:
    year: int
    month: int
    mode: str                          # "daily" or "weekly"
    status_filter: str
    cells: Tuple[CalendarCell, ...]    # daily plans only
    entries: Tuple[CalendarEntry, ...]  # entries due within the month
    monthly_items: int
    visible_items: int

    @property
    def is_empty(self) -> bool:
        """Nothing due this month, or nothing left after filtering."""
        return self.monthly_items == 0 or (self.status_filter != "all" and self.visible_items == 0)

    @property
    def weeks(self) -> List[Tuple[CalendarCell, ...]]:
        return [self.cells[row:row + 7] for row in range(0, len(self.cells), 7)]


def classify_entry(plan: Plan, index: int, today: DateLike) -> CalendarEntry:
    day = date_for_index(plan, index)
    current = as_day(today)
    done = index in plan.completed_days
    return CalendarEntry(
        index=index,
        day=day,
        amount=amount_for_index(plan, index),
        done=done,
        today=day == current,
        overdue=day < current and not done,
        upcoming=day > current and not done,
    )


def shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    """Move *delta* months from (year, month)."""
    offset = year * 12 + (month - 1) + delta
    return offset // 12, offset % 12 + 1


def _month_entries(plan: Plan, first: date, last: date, today: date) -> List[CalendarEntry]:
    entries = []
    for index in range(1, plan.total_days + 1):
        day = date_for_index(plan, index)
        if day > last:
            break
        if day >= first:
            entries.append(classify_entry(plan, index, today))
    return entries


def month_view(
    plan: Plan,
    year: int,
    month: int,
    today: DateLike,
    status_filter: str = "all",
) -> MonthView:
    """
    Build the month view of *plan* for (year, month).

    Parameters
    ----------
    status_filter : str
        One of STATUS_FILTERS; anything else behaves like "all".
    """
    current = as_day(today)
    status_filter = str(status_filter or "all").lower()
    first = date(year, month, 1)
    last = date(year, month, _calendar.monthrange(year, month)[1])
    entries = _month_entries(plan, first, last, current)
    visible_items = sum(1 for entry in entries if entry.matches(status_filter))

    cells: List[CalendarCell] = []
    if not plan.is_weekly:
        grid_start = first - timedelta(days=first.weekday())
        for offset in range(GRID_CELLS):
            day = grid_start + timedelta(days=offset)
            index = index_for_date(plan, day)
            entry = classify_entry(plan, index, current) if index is not None else None
            cells.append(CalendarCell(
                day=day,
                in_month=day.month == month,
                entry=entry,
                visible=entry is not None and entry.matches(status_filter),
            ))

    return MonthView(
        year=year,
        month=month,
        mode="weekly" if plan.is_weekly else "daily",
        status_filter=status_filter,
        cells=tuple(cells),
        entries=tuple(entries),
        monthly_items=len(entries),
        visible_items=visible_items,
    )
