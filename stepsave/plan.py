# stepsave/plan.py
"""
Plan, user and session entities.

Purpose
-------
Immutable domain records shared by the schedule, metrics, analytics and
persistence layers. Entities carry invariants only; all behaviour lives in
the engine modules, which take a plan and a reference instant explicitly.

Plan Invariants
---------------
- mode ∈ {full, half, quarter, simple, weekly}
- total_days ≥ 1
- simple mode:  fixed_daily_amount > 0
- other modes:  increment_multiplier > 0, fixed_daily_amount is None
- target_amount is derived from the closed-form sum on every access and
  is never stored

completed_days may contain out-of-range integers when a plan is built
directly; every engine function ignores them.

Example
-------
>>> from datetime import date
>>> plan = Plan(id="p1", name="Daily", start_date=date(2024, 1, 1), mode="full")
>>> plan.total_days, plan.increment_multiplier
(365, 1.0)
>>> plan.target_amount
66795.0
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import FrozenSet, Iterable, Optional, Tuple

from .constants import (
    DEFAULT_COLOR_THEME,
    DEFAULT_MODE,
    MODES,
    MODE_DAYS,
    MODE_LABELS,
    MODE_MULTIPLIERS,
)

__all__ = [
    "PlanMode",
    "Plan",
    "User",
    "Session",
    "mode_defaults",
    "mode_label",
    "utc_now",
]

PlanMode = str


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def mode_defaults(mode: str) -> Tuple[int, float]:
    """Default ``(total_days, increment_multiplier)`` for *mode*.

    Unknown modes fall back to the full-mode table entry.
    """
    key = mode if mode in MODE_DAYS else DEFAULT_MODE
    return MODE_DAYS[key], MODE_MULTIPLIERS[key]


def mode_label(mode: str) -> str:
    return MODE_LABELS.get(mode, MODE_LABELS[DEFAULT_MODE])


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Plan:
    """
    Savings schedule with indexed deposit entries ``1..total_days``.

    Parameters
    ----------
    id : str
        Opaque unique token.
    name : str
        Display name (non-empty).
    start_date : datetime.date
        Due date of entry 1.
    mode : str
        One of full, half, quarter, simple, weekly.
    total_days : int, optional
        Entry count. Defaults to 365 for daily modes and 52 for weekly.
    increment_multiplier : float, optional
        Amount-per-index scale. Defaults to the mode's multiplier.
    fixed_daily_amount : float, optional
        Constant per-entry amount. Required (> 0) for simple mode only.
    completed_days : iterable of int
        Completed indices. Stored as a frozenset.
    color_theme : str
        Display colour.
    milestones_hit : iterable of str
        Milestone tags already reached ("30", "60", ..., "final").
    created_at : datetime
        Creation timestamp.
    """
    id: str
    name: str
    start_date: date
    mode: PlanMode
    total_days: Optional[int] = None
    increment_multiplier: Optional[float] = None
    fixed_daily_amount: Optional[float] = None
    completed_days: FrozenSet[int] = field(default_factory=frozenset)
    color_theme: str = DEFAULT_COLOR_THEME
    milestones_hit: FrozenSet[str] = field(default_factory=frozenset)
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        """Fill mode defaults and validate the per-mode field set."""
        if self.mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}, got {self.mode!r}")
        if not self.id:
            raise ValueError("Plan id must be non-empty")
        if not str(self.name).strip():
            raise ValueError("Plan name must be non-empty")
        if isinstance(self.start_date, datetime) or not isinstance(self.start_date, date):
            raise ValueError(f"start_date must be a date, got {self.start_date!r}")

        default_days, default_multiplier = mode_defaults(self.mode)
        if self.total_days is None:
            object.__setattr__(self, "total_days", default_days)
        if self.increment_multiplier is None:
            object.__setattr__(self, "increment_multiplier", default_multiplier)

        if int(self.total_days) < 1:
            raise ValueError(f"total_days must be ≥ 1, got {self.total_days}")
        object.__setattr__(self, "total_days", int(self.total_days))

        if not self.increment_multiplier > 0:
            raise ValueError(
                f"increment_multiplier must be > 0, got {self.increment_multiplier}"
            )
        object.__setattr__(self, "increment_multiplier", float(self.increment_multiplier))

        if self.mode == "simple":
            if self.fixed_daily_amount is None or not self.fixed_daily_amount > 0:
                raise ValueError(
                    f"simple mode requires fixed_daily_amount > 0, got {self.fixed_daily_amount}"
                )
            object.__setattr__(self, "fixed_daily_amount", float(self.fixed_daily_amount))
        elif self.fixed_daily_amount is not None:
            raise ValueError(
                f"fixed_daily_amount only applies to simple mode (mode={self.mode!r})"
            )

        object.__setattr__(self, "completed_days", frozenset(int(i) for i in self.completed_days))
        object.__setattr__(self, "milestones_hit", frozenset(str(m) for m in self.milestones_hit))

    @property
    def target_amount(self) -> float:
        """Closed-form sum of every entry amount, recomputed on each access."""
        from .schedule import target_amount_for
        return target_amount_for(self)

    @property
    def label(self) -> str:
        return mode_label(self.mode)

    @property
    def is_weekly(self) -> bool:
        return self.mode == "weekly"

    def is_completed(self, index: int) -> bool:
        return index in self.completed_days

    def with_completed(self, completed_days: Iterable[int]) -> "Plan":
        """Copy with a new completion set."""
        return replace(self, completed_days=frozenset(completed_days))

    def with_milestones(self, milestones_hit: Iterable[str]) -> "Plan":
        """Copy with a new milestone set."""
        return replace(self, milestones_hit=frozenset(milestones_hit))

    def __repr__(self) -> str:
        return (
            f"Plan(id={self.id!r}, name={self.name!r}, mode={self.mode}, "
            f"start={self.start_date.isoformat()}, entries={self.total_days}, "
            f"completed={len(self.completed_days)})"
        )


# ---------------------------------------------------------------------------
# Users and sessions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class User:
    """Registered account. Usernames are unique and case-sensitive."""
    username: str
    password_hash: str
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        if not self.username:
            raise ValueError("username must be non-empty")
        if not self.password_hash:
            raise ValueError("password_hash must be non-empty")


@dataclass(frozen=True)
class Session:
    """Login session with a fixed expiry."""
    token: str
    username: str
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at
