"""
Synthetic leveraged ETF (TQQQ-style) series from an underlying index

Overview
--------
Builds a daily close series for a leveraged ETF before its inception (or for a
symbol that has none) by compounding the leveraged daily return of an
underlying index such as QQQ.

Model
-----
  lev_ret_t = leverage * pct_change_t - (expense_ratio + annual_drag) / trading_days
  close_t   = close_{t-1} * (1 + lev_ret_t)

Defaults:
- leverage = 3.0
- expense_ratio = 0.0095 (0.95%)
- annual_drag = 0.08 (leverage cost + swap fees)
- trading_days = 252
- initial_price = 85 (chosen so the 1999-2010 path lands near TQQQ's launch price)

Output
------
CSV with ``date,close,change_pct`` that backtest_ladder.py reads directly, plus
an optional log-scale plot of the underlying and simulated paths.

CLI
---
python simulate_leveraged.py (--csv QQQ.csv | --symbol QQQ) --out TQQQ_sim.csv [--leverage 3.0] \
  [--expense-ratio 0.0095] [--annual-drag 0.08] [--trading-days 252] [--initial-price 85] \
  [--save-plot sim.png] [--no-show]
"""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from dca_ladder import download_price_history, load_price_series, simulate_leveraged_series


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Simulate a leveraged ETF close series from an underlying index")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--csv", default=None, help="Underlying CSV with Date/Close columns")
    source.add_argument("--symbol", default=None, help="Download the underlying from Yahoo Finance")
    parser.add_argument("--out", required=True, help="Path of the simulated CSV to write")
    parser.add_argument("--leverage", type=float, default=3.0, help="Leverage multiple (default 3.0)")
    parser.add_argument("--expense-ratio", type=float, default=0.0095, help="Annual expense ratio (default 0.0095)")
    parser.add_argument("--annual-drag", type=float, default=0.08, help="Annual leverage/swap cost (default 0.08)")
    parser.add_argument("--trading-days", type=int, default=252, help="Trading days per year (default 252)")
    parser.add_argument("--initial-price", type=float, default=85.0, help="Starting simulated price (default 85)")
    parser.add_argument("--save-plot", default=None, help="If set, saves a comparison plot PNG here")
    parser.add_argument("--no-show", action="store_true", help="Do not display the plot")
    args = parser.parse_args(argv)

    if args.csv:
        underlying = load_price_series(args.csv).to_frame()
    else:
        underlying = download_price_history(args.symbol.upper())

    simulated = simulate_leveraged_series(
        underlying,
        leverage=args.leverage,
        expense_ratio=args.expense_ratio,
        annual_drag=args.annual_drag,
        trading_days=args.trading_days,
        initial_price=args.initial_price,
    )

    out = simulated.copy()
    out.index = out.index.date
    out.index.name = "date"
    out.round({"close": 4, "change_pct": 4}).to_csv(args.out)
    print(f"Simulated {len(simulated)} days: {out.index[0]} → {out.index[-1]}")
    print(f"  Start close: {simulated['close'].iloc[0]:.4f}")
    print(f"  End close:   {simulated['close'].iloc[-1]:.4f}")
    print(f"Saved simulated series to {args.out}")

    if args.save_plot or not args.no_show:
        import matplotlib.pyplot as plt

        fig, ax = plt.subplots(figsize=(10, 5))
        ax.semilogy(underlying.index, underlying["close"], label="Underlying", color="#1f77b4")
        ax.semilogy(simulated.index, simulated["close"], label=f"Simulated {args.leverage:g}x", color="#d62728")
        ax.set_title("Underlying vs Simulated Leveraged Series")
        ax.set_xlabel("Date")
        ax.set_ylabel("Close (log scale)")
        ax.grid(True, which="both", linestyle=":", alpha=0.4)
        ax.legend(loc="upper left")
        fig.tight_layout()
        if args.save_plot:
            fig.savefig(args.save_plot, dpi=150)
        if not args.no_show:
            plt.show()
    return 0


if __name__ == "__main__":
    sys.exit(main())
