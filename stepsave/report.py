"""
Multi-plan summary report.

Purpose
-------
Tabulates every plan of a user at one instant: saved, projected by now,
target, progress, backlog and variance. The frame feeds the CLI table and
CSV export; page layout is left to the renderer.
"""

from __future__ import annotations

from typing import Dict, Iterable

import pandas as pd

from .metrics import compute_metrics
from .plan import Plan
from .utils import DateLike, format_currency, round_money

__all__ = [
    "REPORT_COLUMNS",
    "build_report",
    "report_totals",
    "variance_text",
]

REPORT_COLUMNS = [
    "name",
    "mode",
    "start_date",
    "saved",
    "projected_by_now",
    "target",
    "progress_pct",
    "overdue",
    "upcoming",
    "variance",
]


def variance_text(variance: float, symbol: str = "GHS ") -> str:
    """'Ahead by …' for non-negative variance, 'Behind by …' otherwise."""
    prefix = "Ahead by " if variance >= 0 else "Behind by "
    return prefix + format_currency(abs(variance), symbol=symbol)


def build_report(plans: Iterable[Plan], now: DateLike) -> pd.DataFrame:
    """
    One row per plan, indexed by plan id.

    Examples
    --------
    >>> frame = build_report(state.plans, date.today())
    >>> frame[["name", "saved", "target"]]
    """
    rows = []
    for plan in plans:
        metrics = compute_metrics(plan, now)
        rows.append({
            "id": plan.id,
            "name": plan.name,
            "mode": plan.label,
            "start_date": plan.start_date,
            "saved": metrics.completed_amount,
            "projected_by_now": metrics.projected_by_now,
            "target": plan.target_amount,
            "progress_pct": round(metrics.progress_percent, 1),
            "overdue": metrics.overdue,
            "upcoming": metrics.upcoming,
            "variance": metrics.variance_by_now,
        })
    if not rows:
        return pd.DataFrame(columns=REPORT_COLUMNS, index=pd.Index([], name="id"))
    return pd.DataFrame(rows).set_index("id")[REPORT_COLUMNS]


def report_totals(frame: pd.DataFrame) -> Dict[str, float]:
    """Totals across plans: plan count, saved, target and open overdue entries."""
    if frame.empty:
        return {"plans": 0, "saved": 0.0, "target": 0.0, "overdue": 0}
    return {
        "plans": int(len(frame)),
        "saved": round_money(frame["saved"].sum()),
        "target": round_money(frame["target"].sum()),
        "overdue": int(frame["overdue"].sum()),
    }
