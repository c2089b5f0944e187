"""Synthetic leveraged-ETF price paths built from an underlying index."""

from __future__ import annotations

import numpy as np
import pandas as pd


def simulate_leveraged_series(
    underlying: pd.DataFrame,
    *,
    leverage: float = 3.0,
    expense_ratio: float = 0.0095,
    annual_drag: float = 0.08,
    trading_days: int = 252,
    initial_price: float = 85.0,
    close_column: str = "close",
) -> pd.DataFrame:
    """Simulate a daily-rebalanced leveraged close series.

    Each day after the first:

      lev_ret_t = leverage * pct_change_t - (expense_ratio + annual_drag) / trading_days
      close_t   = close_{t-1} * (1 + lev_ret_t)

    ``annual_drag`` covers borrowing and swap costs. The first underlying row
    only seeds the first return, so the output starts one day later with the
    path's first step away from ``initial_price``.

    Rows whose close is missing or non-numeric are dropped before returns are
    taken, so the return across such a gap is measured between the closes on
    either side of it and compounded as a single day. Neither neighbouring
    return is skipped.
    """

    if close_column not in underlying.columns:
        raise ValueError(f"Underlying dataframe must include a '{close_column}' column")
    if trading_days <= 0:
        raise ValueError("trading_days must be positive")

    base = underlying[[close_column]].copy()
    base[close_column] = pd.to_numeric(base[close_column], errors="coerce")
    base = base[np.isfinite(base[close_column])]
    base = base.sort_index()

    closes = base[close_column].to_numpy(dtype=float)
    if len(closes) < 2:
        raise ValueError("Need at least two underlying closes to simulate a leveraged path")

    rets = closes[1:] / closes[:-1] - 1.0
    daily_fee = (expense_ratio + annual_drag) / float(trading_days)
    lev_rets = leverage * rets - daily_fee

    sim = np.empty_like(lev_rets, dtype=float)
    prev = float(initial_price)
    for i in range(len(lev_rets)):
        prev = prev * (1.0 + lev_rets[i])
        sim[i] = prev

    out = pd.DataFrame(
        {"close": sim, "change_pct": lev_rets * 100.0},
        index=base.index[1:],
    )
    out.index.name = "date"
    return out


__all__ = ["simulate_leveraged_series"]
