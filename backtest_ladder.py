"""
Staged-buy / staged-sell ladder backtest

Overview
--------
Replays a daily close series (typically a leveraged ETF such as TQQQ, real or
simulated with simulate_leveraged.py) through a dollar-cost-averaging ladder:

- Enter a cycle when the close falls ``drop_levels[0]`` below the peak; that
  first buy anchors the sell ladder.
- Buy again at each deeper drop level, growing each buy by ``buy_multiple``.
- When the close recovers to the cycle peak the buy ladder resets.
- After a recovery, sell ``sell_fraction`` of holdings each time the close
  reaches ``anchor * sell_multipliers[i]``; a gap may hit several targets.

Outputs
-------
- Rules banner, the full transaction log, final summary and statistics (CAGR,
  best/worst year, max drawdown, Sharpe) on stdout.
- Optional daily portfolio CSV, transaction CSV, markdown summary and chart.

Run
---
python backtest_ladder.py [--csv TQQQ.csv | --symbol TQQQ] [--preset halving] [--config params.json] \
  [--start 2007-10-31] [--end 2025-04-22] [--initial-buy 10000] [--buy-multiple 2] [--sell-fraction 0.2] \
  [--drop-levels 0.25 0.5 ...] [--sell-multipliers 2 4 ...] [--save-csv portfolio.csv] \
  [--save-transactions trades.csv] [--save-summary summary.md] [--save-plot ladder.png] [--no-show] [--verbose]
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

from dca_ladder import (
    ConfigError,
    NoDataError,
    PriceDataError,
    StatisticsError,
    download_price_history,
    finalize,
    frame_to_series,
    get_preset,
    load_config,
    load_price_series,
    simulate,
    summarize,
)
from dca_ladder.report import (
    format_final_summary,
    format_rules,
    format_statistics,
    format_transaction,
    snapshots_to_frame,
    transactions_to_frame,
    write_summary_markdown,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Backtest the staged-buy / staged-sell DCA ladder")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--csv", default=None, help="CSV with Date/Close columns")
    source.add_argument("--symbol", default=None, help="Download auto-adjusted closes for this ticker via Yahoo Finance")
    parser.add_argument("--preset", default="halving", help="Named parameter preset (halving, golden, deep)")
    parser.add_argument("--config", default=None, help="JSON file with parameter overrides")
    parser.add_argument("--start", default=None, help="Start date (YYYY-MM-DD) inclusive")
    parser.add_argument("--end", default=None, help="End date (YYYY-MM-DD) inclusive")
    parser.add_argument("--initial-buy", type=float, default=None, help="Dollar size of the first buy in a cycle")
    parser.add_argument("--buy-multiple", type=float, default=None, help="Growth factor for each deeper buy")
    parser.add_argument("--sell-fraction", type=float, default=None, help="Fraction of holdings sold per target")
    parser.add_argument("--drop-levels", type=float, nargs="*", default=None, help="Drawdown levels triggering buys")
    parser.add_argument("--sell-multipliers", type=float, nargs="*", default=None, help="Anchor multiples triggering sells")
    parser.add_argument("--save-csv", default=None, help="If set, save the daily portfolio CSV here")
    parser.add_argument("--save-transactions", default=None, help="If set, save the transaction log CSV here")
    parser.add_argument("--save-summary", default=None, help="If set, write a markdown summary here")
    parser.add_argument("--save-plot", default=None, help="If set, save the portfolio chart PNG here")
    parser.add_argument("--no-show", action="store_true", help="Do not display the chart")
    parser.add_argument("--verbose", action="store_true", help="Log every engine decision")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = get_preset(args.preset)
        if args.config:
            config = load_config(args.config, base=config)
        config = config.with_overrides(
            initial_buy_amount=args.initial_buy,
            buy_multiple=args.buy_multiple,
            sell_fraction=args.sell_fraction,
            drop_levels=tuple(args.drop_levels) if args.drop_levels is not None else None,
            sell_multipliers=tuple(args.sell_multipliers) if args.sell_multipliers is not None else None,
            start_date=args.start,
            end_date=args.end,
        )
    except ConfigError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    try:
        if args.csv:
            series = load_price_series(args.csv)
        else:
            series = frame_to_series(download_price_history(args.symbol.upper()))
    except (PriceDataError, RuntimeError, FileNotFoundError) as exc:
        print(f"Failed to load prices: {exc}", file=sys.stderr)
        return 1
    if series.skipped:
        print(f"Skipped {series.skipped} malformed row(s)")

    print("=" * 30 + " RULES " + "=" * 30)
    print(format_rules(config))
    print()
    print("=" * 26 + " TRANSACTIONS " + "=" * 27)

    state, transactions, snapshots = simulate(series, config)
    if transactions:
        for tx in transactions:
            print(format_transaction(tx))
    else:
        print("No trades were executed in the specified range.")

    if args.save_transactions:
        transactions_to_frame(transactions).to_csv(args.save_transactions, index=False)

    frame = snapshots_to_frame(snapshots)
    if args.save_csv:
        out = frame.copy()
        out.index = out.index.date
        out.index.name = "date"
        out.to_csv(args.save_csv)

    try:
        final = finalize(series, state, transactions, config.end_date)
    except NoDataError as exc:
        print(f"\n{exc}", file=sys.stderr)
        return 1

    print()
    print("=" * 30 + " SUMMARY " + "=" * 28)
    print(format_final_summary(final))

    summary = None
    try:
        summary = summarize(snapshots, config.end_date)
    except StatisticsError as exc:
        print(f"\nStatistics unavailable: {exc}")
    else:
        print()
        print(format_statistics(summary))

    if args.save_summary:
        write_summary_markdown(args.save_summary, config, final, summary, n_transactions=len(transactions))

    if args.save_plot or not args.no_show:
        from dca_ladder.plotting import plot_portfolio

        plot_portfolio(frame, summary, save_plot=args.save_plot, no_show=args.no_show)
    return 0


if __name__ == "__main__":
    sys.exit(main())
