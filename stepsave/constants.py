"""
Global constants for StepSave.

Purpose
-------
Centralizes the mode table, milestone thresholds, window sizes and other
fixed values used across the schedule, metrics, analytics and persistence
modules.

Categories
----------
- Modes: entry counts, multipliers and labels per mode
- Milestones: completed-count thresholds
- Analytics: window sizes and horizon bounds
- Sessions: TTL and password rules
- Display: default colour theme and currency prefix
"""

from datetime import timedelta
from typing import Dict, Tuple

__all__ = [
    # Modes
    "MODES",
    "DAILY_MODES",
    "MODE_DAYS",
    "MODE_MULTIPLIERS",
    "MODE_LABELS",
    "DEFAULT_MODE",
    "LEGACY_MODE_DAYS",
    "MAX_TOTAL_DAYS",
    # Milestones
    "MILESTONES",
    "FINAL_MILESTONE",
    # Analytics
    "WEEKLY_BUCKETS",
    "STREAK_WINDOW",
    "ROLLING_WINDOW",
    "PROJECTION_HORIZON_FACTOR",
    "DAYS_PER_WEEK",
    # Sessions
    "SESSION_TTL",
    "MIN_PASSWORD_LENGTH",
    # Display
    "DEFAULT_COLOR_THEME",
    "DEFAULT_CURRENCY",
]


# =============================================================================
# Modes
# =============================================================================

MODES: Tuple[str, ...] = ("full", "half", "quarter", "simple", "weekly")
"""All supported plan modes."""

DAILY_MODES: Tuple[str, ...] = ("full", "half", "quarter", "simple")
"""Modes with one entry per calendar day."""

MODE_DAYS: Dict[str, int] = {
    "full": 365,
    "half": 365,
    "quarter": 365,
    "simple": 365,
    "weekly": 52,
}
"""Default entry count per mode."""

MODE_MULTIPLIERS: Dict[str, float] = {
    "full": 1.0,
    "half": 0.5,
    "quarter": 0.25,
    "simple": 1.0,
    "weekly": 1.0,
}
"""Default amount-per-index scale per mode."""

MODE_LABELS: Dict[str, str] = {
    "full": "Full daily (1.0x)",
    "half": "Half daily (0.5x)",
    "quarter": "Quarter daily (0.25x)",
    "simple": "Simple daily (fixed amount)",
    "weekly": "Weekly",
}
"""Human-readable mode labels."""

DEFAULT_MODE: str = "full"
"""Mode used when a lookup names an unknown mode."""

LEGACY_MODE_DAYS: Dict[str, int] = {
    "half": 182,
    "quarter": 91,
}
"""Deprecated entry counts once used by half/quarter plans.

Plans stored with these counts (and no explicit multiplier) are upgraded
to the 365-day daily variant on load.
"""

MAX_TOTAL_DAYS: int = 3660
"""Largest entry count accepted from stored or imported records.

Records above it fall back to the mode default.
"""


# =============================================================================
# Milestones
# =============================================================================

MILESTONES: Tuple[int, ...] = (30, 60, 100, 200)
"""Completed-entry thresholds that trigger a one-time milestone event."""

FINAL_MILESTONE: str = "final"
"""Milestone tag recorded when every entry of a plan is completed."""


# =============================================================================
# Analytics
# =============================================================================

WEEKLY_BUCKETS: int = 10
"""Number of Monday-anchored weeks in the weekly deposits series."""

STREAK_WINDOW: int = 30
"""Number of indices shown in the streak timeline."""

ROLLING_WINDOW: int = 7
"""Trailing window (in entries) for the rolling completion rate."""

PROJECTION_HORIZON_FACTOR: int = 3
"""Projection horizon is capped at this multiple of totalDays."""

DAYS_PER_WEEK: int = 7
"""Calendar days between consecutive weekly entries."""


# =============================================================================
# Sessions
# =============================================================================

SESSION_TTL: timedelta = timedelta(hours=24)
"""Fixed session validity from issuance."""

MIN_PASSWORD_LENGTH: int = 6
"""Minimum password length accepted at registration."""


# =============================================================================
# Display
# =============================================================================

DEFAULT_COLOR_THEME: str = "#7c5cff"
"""Colour theme assigned to plans that do not specify one."""

DEFAULT_CURRENCY: str = "GHS "
"""Currency prefix used by format_currency."""
