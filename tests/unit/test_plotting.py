"""
Unit tests for plotting.py module.

Rendering runs on the Agg backend (set in conftest).
"""

from datetime import date

import matplotlib.pyplot as plt

from stepsave.analytics import build_analytics
from stepsave.metrics import compute_metrics
from stepsave.plotting import plot_analytics


def _bundle(plan, today=date(2024, 1, 20)):
    return build_analytics(plan, compute_metrics(plan, today))


class TestPlotAnalytics:
    """Test the four-panel analytics figure."""

    def test_returns_axes(self, full_plan):
        plan = full_plan.with_completed(range(1, 15))
        fig, axes = plot_analytics(_bundle(plan), title="Full", return_fig_ax=True)
        assert set(axes) == {"cumulative", "projection", "weekly", "rolling"}
        assert axes["cumulative"].get_title() == "Cumulative Progress"
        assert fig._suptitle.get_text() == "Full"
        plt.close(fig)

    def test_saves_png(self, short_plan, tmp_path):
        path = tmp_path / "plan.png"
        result = plot_analytics(_bundle(short_plan.with_completed({1, 2})), save_path=str(path))
        assert result is None
        assert path.exists()
        assert path.stat().st_size > 0

    def test_plan_without_history(self, weekly_plan):
        fig, axes = plot_analytics(_bundle(weekly_plan, date(2023, 12, 1)), return_fig_ax=True)
        assert len(axes["weekly"].patches) == 10
        plt.close(fig)
