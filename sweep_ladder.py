#!/usr/bin/env python3
"""Grid-search ladder parameters over a single price series.

Every combination of ``--buy-multiples`` and ``--sell-fractions`` (optionally
across several presets) is replayed with its own engine state. Results are
ranked by CAGR or by multiple on investment, printed as a table, and the best
configuration is printed as a JSON payload that ``backtest_ladder.py --config``
accepts.
"""

from __future__ import annotations

import argparse
import itertools
import json
import math
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import pandas as pd

from dca_ladder import (
    ConfigError,
    NoDataError,
    PriceSeries,
    StatisticsError,
    StrategyConfig,
    get_preset,
    load_price_series,
    run_strategy,
    summarize,
)


@dataclass
class SweepResult:
    preset: str
    config: StrategyConfig
    trades: int
    multiple: float
    cagr: float
    max_drawdown: float
    sharpe: float


def evaluate(series: PriceSeries, preset: str, config: StrategyConfig) -> Optional[SweepResult]:
    try:
        result = run_strategy(series, config)
    except NoDataError:
        return None
    try:
        summary = summarize(result.snapshots, config.end_date)
        cagr, max_dd, sharpe = summary.annual_return, summary.max_drawdown, summary.sharpe_ratio
    except StatisticsError:
        cagr = max_dd = sharpe = float("nan")
    return SweepResult(
        preset=preset,
        config=config,
        trades=len(result.transactions),
        multiple=result.final.multiple,
        cagr=cagr,
        max_drawdown=max_dd,
        sharpe=sharpe,
    )


def sweep(
    series: PriceSeries,
    presets: Sequence[str],
    buy_multiples: Sequence[float],
    sell_fractions: Sequence[float],
    *,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> List[SweepResult]:
    results: List[SweepResult] = []
    for preset, buy_multiple, sell_fraction in itertools.product(presets, buy_multiples, sell_fractions):
        try:
            config = get_preset(preset).with_overrides(
                buy_multiple=buy_multiple,
                sell_fraction=sell_fraction,
                start_date=start,
                end_date=end,
            )
        except ConfigError as exc:
            print(f"Skipping {preset} x{buy_multiple:g} / {sell_fraction:g}: {exc}")
            continue
        outcome = evaluate(series, preset, config)
        if outcome is not None:
            results.append(outcome)
    return results


def rank(results: Sequence[SweepResult], key: str) -> List[SweepResult]:
    def score(item: SweepResult) -> float:
        value = item.cagr if key == "cagr" else item.multiple
        return -math.inf if math.isnan(value) else value

    return sorted(results, key=score, reverse=True)


def results_frame(results: Sequence[SweepResult]) -> pd.DataFrame:
    rows: List[Dict[str, object]] = []
    for item in results:
        rows.append({
            "preset": item.preset,
            "buy_multiple": item.config.buy_multiple,
            "sell_fraction": item.config.sell_fraction,
            "trades": item.trades,
            "multiple": item.multiple,
            "cagr_pct": item.cagr * 100.0,
            "max_dd_pct": item.max_drawdown * 100.0,
            "sharpe": item.sharpe,
        })
    return pd.DataFrame(rows)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Grid-search DCA ladder parameters")
    parser.add_argument("--csv", required=True, help="CSV with Date/Close columns")
    parser.add_argument("--presets", nargs="+", default=["halving"], help="Presets supplying the ladders")
    parser.add_argument("--buy-multiples", type=float, nargs="+", default=[1.5, 1.618, 2.0])
    parser.add_argument("--sell-fractions", type=float, nargs="+", default=[0.146, 0.2, 0.236, 0.382])
    parser.add_argument("--start", default=None, help="Start date (YYYY-MM-DD) inclusive")
    parser.add_argument("--end", default=None, help="End date (YYYY-MM-DD) inclusive")
    parser.add_argument("--rank-by", choices=["cagr", "multiple"], default="cagr")
    parser.add_argument("--top", type=int, default=10, help="Number of rows to print")
    args = parser.parse_args(argv)

    series = load_price_series(args.csv)
    results = rank(
        sweep(series, args.presets, args.buy_multiples, args.sell_fractions, start=args.start, end=args.end),
        args.rank_by,
    )
    if not results:
        print("No configuration produced a result.")
        return 1

    table = results_frame(results[: args.top])
    print(table.to_string(index=False, float_format=lambda v: f"{v:.2f}"))

    best = results[0]
    print("\nBest configuration:")
    print(json.dumps(best.config.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
