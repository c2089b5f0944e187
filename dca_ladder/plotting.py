"""Charts for the daily portfolio frame produced by ``report.snapshots_to_frame``."""

from __future__ import annotations

import math
from typing import Optional

import matplotlib.pyplot as plt
import pandas as pd

from .stats import Summary


def monthly_snapshots(frame: pd.DataFrame) -> pd.DataFrame:
    """Keep the last row of every calendar month (dates of the kept rows are preserved)."""

    if frame.empty:
        return frame
    months = pd.DatetimeIndex(frame.index).to_period("M")
    return frame.groupby(months, sort=False).tail(1)


def _title(summary: Optional[Summary]) -> str:
    if summary is None:
        return "Ladder Strategy Portfolio"
    sharpe = "n/a" if math.isnan(summary.sharpe_ratio) else f"{summary.sharpe_ratio:.2f}"
    return (
        f"Ladder Strategy Portfolio (CAGR {summary.annual_return * 100.0:.2f}%, "
        f"max DD {summary.max_drawdown * 100.0:.2f}%, Sharpe {sharpe})"
    )


def plot_portfolio(
    frame: pd.DataFrame,
    summary: Optional[Summary] = None,
    *,
    save_plot: Optional[str] = None,
    no_show: bool = False,
):
    """Plot holding value, cashed-out value, total value and invested principal."""

    monthly = monthly_snapshots(frame)

    fig, ax = plt.subplots(figsize=(11, 6))
    ax.plot(monthly.index, monthly["portfolio_value"], label="Holding value", color="#1f77b4")
    ax.plot(monthly.index, monthly["cash_value"], label="Cashed out (sold)", color="orange")
    ax.plot(monthly.index, monthly["total_value"], label="Total value (holding + cashed out)", color="green")
    ax.plot(monthly.index, monthly["cumulative_invested"], label="Cumulative invested", color="gray", linestyle=":")

    ax.set_title(_title(summary))
    ax.set_xlabel("Date")
    ax.set_ylabel("Value ($)")
    ax.grid(True, linestyle=":", alpha=0.4)
    ax.legend(loc="upper left")
    fig.tight_layout()

    if save_plot:
        fig.savefig(save_plot, dpi=150)
    if not no_show:
        plt.show()
    return fig


__all__ = ["monthly_snapshots", "plot_portfolio"]
