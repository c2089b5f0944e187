"""Performance statistics over the daily portfolio snapshots."""

from __future__ import annotations

import datetime as _dt
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import numpy as np

from .engine import PortfolioSnapshot

_DAYS_PER_YEAR = 365.25
TRADING_DAYS = 252


class StatisticsError(RuntimeError):
    """Base class for snapshot sequences that cannot produce a sound summary."""


class InsufficientDataError(StatisticsError):
    pass


class NoValidStartError(StatisticsError):
    pass


class NoValidEndError(StatisticsError):
    pass


class InvalidRangeError(StatisticsError):
    pass


@dataclass(frozen=True)
class Summary:
    final_value: float
    annual_return: float
    best_year: float
    worst_year: float
    max_drawdown: float
    sharpe_ratio: float
    start_date: _dt.date
    end_date: _dt.date
    num_years: float
    yearly_returns: Dict[int, float] = field(default_factory=dict)


def _daily_returns(points: Sequence[PortfolioSnapshot]) -> np.ndarray:
    returns: List[float] = []
    for prev, curr in zip(points, points[1:]):
        if prev.total_value == 0:
            continue
        returns.append((curr.total_value - prev.total_value) / prev.total_value)
    return np.asarray(returns, dtype=float)


def sharpe_ratio(daily_returns: np.ndarray, trading_days: int = TRADING_DAYS) -> float:
    """Annualised Sharpe (zero risk-free rate); ``nan`` when mean or std is zero."""

    if daily_returns.size == 0:
        return float("nan")
    mean = float(np.mean(daily_returns))
    std = float(np.std(daily_returns))  # population (ddof=0)
    if mean == 0 or std == 0:
        return float("nan")
    return mean / std * math.sqrt(trading_days)


def max_drawdown(values: Sequence[float]) -> float:
    """Most negative ``(value - running_peak) / running_peak``; 0 if never below peak."""

    peak = 0.0
    worst = 0.0
    for value in values:
        if value > peak:
            peak = value
        if peak <= 0:
            continue
        drawdown = (value - peak) / peak
        if drawdown < worst:
            worst = drawdown
    return worst


def yearly_returns(points: Sequence[PortfolioSnapshot]) -> Dict[int, float]:
    """Calendar-year returns keyed by year.

    A year starts from the value just before its first snapshot and ends at
    its last snapshot. Years starting from zero are omitted.
    """

    bounds: Dict[int, List[float]] = {}
    for prev, curr in zip(points, points[1:]):
        year = curr.date.year
        if year not in bounds:
            bounds[year] = [prev.total_value, curr.total_value]
        else:
            bounds[year][1] = curr.total_value
    return {
        year: (end - start) / start
        for year, (start, end) in bounds.items()
        if start != 0
    }


def summarize(snapshots: Sequence[PortfolioSnapshot], end_date: Optional[_dt.date] = None) -> Summary:
    """Compute CAGR, Sharpe, max drawdown and best/worst year up to ``end_date``."""

    if len(snapshots) < 2:
        raise InsufficientDataError("Not enough data to calculate stats.")

    initial = next((s for s in snapshots if s.total_value > 0), None)
    if initial is None:
        raise NoValidStartError("Portfolio never held a nonzero value.")

    final = next((s for s in reversed(snapshots) if end_date is None or s.date <= end_date), None)
    if final is None:
        raise NoValidEndError(f"No valid data up to {end_date}.")

    num_years = (final.date - initial.date).days / _DAYS_PER_YEAR
    if initial.total_value == 0 or num_years <= 0:
        raise InvalidRangeError("Invalid initial value or number of years.")

    bounded = [s for s in snapshots if s.date <= final.date]

    annual_return = (final.total_value / initial.total_value) ** (1.0 / num_years) - 1.0
    sharpe = sharpe_ratio(_daily_returns(bounded))
    drawdown = max_drawdown([s.total_value for s in bounded])
    by_year = yearly_returns(bounded)
    best_year = max(by_year.values()) if by_year else float("nan")
    worst_year = min(by_year.values()) if by_year else float("nan")

    return Summary(
        final_value=final.total_value,
        annual_return=annual_return,
        best_year=best_year,
        worst_year=worst_year,
        max_drawdown=drawdown,
        sharpe_ratio=sharpe,
        start_date=initial.date,
        end_date=final.date,
        num_years=num_years,
        yearly_returns=by_year,
    )


__all__ = [
    "InsufficientDataError",
    "InvalidRangeError",
    "NoValidEndError",
    "NoValidStartError",
    "StatisticsError",
    "Summary",
    "max_drawdown",
    "sharpe_ratio",
    "summarize",
    "yearly_returns",
]
