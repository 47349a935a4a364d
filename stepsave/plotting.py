"""
Plotting utilities for savings-plan analytics.

Purpose
-------
Renders a SeriesBundle as a four-panel matplotlib figure:

- Cumulative saved vs cumulative target
- Projection to completion (actual, target, dashed projection)
- Weekly saved totals (bar chart)
- Rolling completion rate (percent)

The streak series is drawn as a strip under the weekly panel. Figures are
built lazily; matplotlib is imported inside the function so the engine can
be used without a display backend.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .analytics import SeriesBundle

__all__ = ["plot_analytics"]


def _undefined_as_nan(values) -> np.ndarray:
    return np.array([np.nan if v is None else v for v in values], dtype=float)


def plot_analytics(
    bundle: SeriesBundle,
    *,
    figsize: Optional[tuple] = None,
    title: Optional[str] = None,
    color: str = "#7c5cff",
    save_path: Optional[str] = None,
    return_fig_ax: bool = False,
):
    """
    Draw the analytics panels for one plan.

    Parameters
    ----------
    bundle : SeriesBundle
        Output of ``build_analytics``.
    figsize : tuple, optional
        Figure size (width, height). Defaults to (14, 9).
    title : str, optional
        Main figure title.
    color : str, default "#7c5cff"
        Accent color, usually the plan's color theme.
    save_path : str, optional
        Path to save the figure (PNG, 150 dpi).
    return_fig_ax : bool, default False
        If True, returns the figure and a dict of axes.

    Examples
    --------
    >>> bundle = build_analytics(plan, compute_metrics(plan, date.today()))
    >>> plot_analytics(bundle, title=plan.name, save_path="plan.png")
    """
    from matplotlib import pyplot as plt

    figsize = figsize or (14, 9)
    fig, axes = plt.subplots(2, 2, figsize=figsize)
    ax_cumulative, ax_projection = axes[0]
    ax_weekly, ax_rolling = axes[1]

    # Panel 1: cumulative actual vs target
    cumulative = bundle.cumulative
    x = np.arange(1, len(cumulative.labels) + 1)
    ax_cumulative.plot(x, cumulative.actual, color=color, linewidth=2, label="Saved")
    ax_cumulative.plot(x, cumulative.target, color="gray", linestyle="--", linewidth=1.5, label="Target")
    ax_cumulative.set_title("Cumulative Progress", fontsize=12, fontweight="bold")
    ax_cumulative.set_xlabel("Entry")
    ax_cumulative.set_ylabel("Amount")
    ax_cumulative.legend(loc="upper left", fontsize=9)
    ax_cumulative.grid(True, alpha=0.3)

    # Panel 2: projection to completion
    projection = bundle.projection
    x_proj = np.arange(1, len(projection.labels) + 1)
    ax_projection.plot(x_proj, _undefined_as_nan(projection.actual), color=color, linewidth=2, label="Actual")
    ax_projection.plot(x_proj, projection.target, color="gray", linestyle="--", linewidth=1.5, label="Target")
    ax_projection.plot(
        x_proj, _undefined_as_nan(projection.projected),
        color="darkorange", linestyle=":", linewidth=2, label="Projected",
    )
    if projection.finish_index is not None:
        ax_projection.axvline(projection.finish_index, color="darkorange", alpha=0.4)
    ax_projection.set_title("Projection", fontsize=12, fontweight="bold")
    ax_projection.set_xlabel("Entry")
    ax_projection.legend(loc="upper left", fontsize=9)
    ax_projection.grid(True, alpha=0.3)

    # Panel 3: weekly totals with streak strip
    weekly = bundle.weekly
    ax_weekly.bar(weekly.labels, weekly.values, color=color, alpha=0.8)
    ax_weekly.set_title("Weekly Saved", fontsize=12, fontweight="bold")
    ax_weekly.tick_params(axis="x", rotation=45)
    ax_weekly.grid(True, alpha=0.3, axis="y")
    streak = bundle.streak
    if streak.values:
        inset = ax_weekly.inset_axes([0.0, 1.02, 1.0, 0.06])
        inset.imshow(np.array([streak.values]), aspect="auto", cmap="Greens", vmin=0, vmax=1)
        inset.set_axis_off()

    # Panel 4: rolling completion rate
    rolling = bundle.rolling
    x_roll = np.arange(1, len(rolling.labels) + 1)
    ax_rolling.plot(x_roll, rolling.values, color=color, linewidth=2)
    ax_rolling.set_ylim(0, 105)
    ax_rolling.set_title("Rolling Completion Rate (%)", fontsize=12, fontweight="bold")
    ax_rolling.set_xlabel("Entry")
    ax_rolling.grid(True, alpha=0.3)

    if title:
        fig.suptitle(title, fontsize=14, fontweight="bold")
    fig.tight_layout()

    if save_path:
        fig.savefig(save_path, bbox_inches="tight", dpi=150)

    if return_fig_ax:
        return fig, {
            "cumulative": ax_cumulative,
            "projection": ax_projection,
            "weekly": ax_weekly,
            "rolling": ax_rolling,
        }
    plt.close(fig)
