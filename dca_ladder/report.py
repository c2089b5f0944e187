"""Text and tabular renderings of backtest results."""

from __future__ import annotations

import math
from typing import List, Optional, Sequence

import pandas as pd

from .config import StrategyConfig
from .engine import FinalSummary, PortfolioSnapshot, Transaction, TransactionType
from .stats import Summary


def _fmt_pct(value: float) -> str:
    if value is None or math.isnan(value):
        return "n/a"
    return f"{value * 100.0:.2f}%"


def _fmt_ratio(value: float) -> str:
    if value is None or math.isnan(value):
        return "n/a"
    return f"{value:.2f}"


def _fmt_levels(values: Sequence[float]) -> str:
    return ", ".join(f"{v:g}" for v in values) if values else "(none)"


def format_rules(config: StrategyConfig) -> str:
    start = config.start_date.isoformat() if config.start_date else "start"
    end = config.end_date.isoformat() if config.end_date else "end"
    lines = [
        f"Span                             : {start} -> {end}",
        f"Initial buy amount               : ${config.initial_buy_amount:,.2f}",
        f"Buy triggers (drawdown levels)   : {_fmt_levels(config.drop_levels)}",
        f"Buy amount growth factor         : {config.buy_multiple:g}x",
        f"Sell targets (price multipliers) : {_fmt_levels(config.sell_multipliers)}",
        f"Sell fraction per target         : {config.sell_fraction:g}",
    ]
    return "\n".join(lines)


def format_transaction(tx: Transaction) -> str:
    verb = "Buy " if tx.type is TransactionType.BUY else "Sell"
    return f"{tx.date}  {verb} {tx.shares:12.4f} shares at ${tx.price:10.2f}  (${tx.amount:,.2f})"


def format_final_summary(final: FinalSummary) -> str:
    lines = [
        f"Final price ({final.final_date}): ${final.final_close:.2f}",
        f"Total invested: ${final.total_invested:,.2f}",
        f"Total sold (cashed out): ${final.total_sold:,.2f}",
        f"Final holding value: ${final.final_holding_value:,.2f}",
        f"Net profit: ${final.net_profit:,.2f}",
        f"Total value: ${final.total_value:,.2f} (sold + holding)",
        f"Multiple on investment: {final.multiple:.2f}x",
    ]
    return "\n".join(lines)


def format_statistics(summary: Summary) -> str:
    lines = [
        f"Stats span: {summary.start_date} -> {summary.end_date} ({summary.num_years:.2f} years)",
        f"CAGR: {_fmt_pct(summary.annual_return)}",
        f"Best year: {_fmt_pct(summary.best_year)}",
        f"Worst year: {_fmt_pct(summary.worst_year)}",
        f"Max drawdown: {_fmt_pct(summary.max_drawdown)}",
        f"Sharpe ratio: {_fmt_ratio(summary.sharpe_ratio)}",
    ]
    return "\n".join(lines)


def snapshots_to_frame(snapshots: Sequence[PortfolioSnapshot]) -> pd.DataFrame:
    columns = ["portfolio_value", "cash_value", "total_value", "cumulative_invested"]
    frame = pd.DataFrame(
        [[getattr(s, col) for col in columns] for s in snapshots],
        columns=columns,
        index=pd.DatetimeIndex([pd.Timestamp(s.date) for s in snapshots], name="date"),
        dtype=float,
    )
    return frame


def transactions_to_frame(transactions: Sequence[Transaction]) -> pd.DataFrame:
    rows = [
        {
            "date": tx.date.isoformat(),
            "type": tx.type.value,
            "price": tx.price,
            "shares": tx.shares,
            "amount": tx.amount,
        }
        for tx in transactions
    ]
    return pd.DataFrame(rows, columns=["date", "type", "price", "shares", "amount"])


def write_summary_markdown(
    path: str,
    config: StrategyConfig,
    final: FinalSummary,
    summary: Optional[Summary],
    *,
    title: str = "Ladder Strategy Summary",
    n_transactions: Optional[int] = None,
) -> None:
    lines: List[str] = [f"# {title}", ""]
    lines.append(f"- **Drop levels**: {_fmt_levels(config.drop_levels)}")
    lines.append(f"- **Sell multipliers**: {_fmt_levels(config.sell_multipliers)}")
    lines.append(f"- **Buy multiple / sell fraction**: {config.buy_multiple:g}x / {config.sell_fraction:g}")
    if n_transactions is not None:
        lines.append(f"- **Transactions**: {n_transactions}")
    lines.append(f"- **Total invested**: ${final.total_invested:,.2f}")
    lines.append(f"- **Total value**: ${final.total_value:,.2f}")
    lines.append(f"- **Multiple on investment**: {final.multiple:.2f}x")
    if summary is not None:
        lines.append(f"- **Span**: {summary.start_date} → {summary.end_date} ({summary.num_years:.2f} years)")
        lines.append(f"- **CAGR**: {_fmt_pct(summary.annual_return)}")
        lines.append(f"- **Best / worst year**: {_fmt_pct(summary.best_year)} / {_fmt_pct(summary.worst_year)}")
        lines.append(f"- **Max drawdown**: {_fmt_pct(summary.max_drawdown)}")
        lines.append(f"- **Sharpe ratio**: {_fmt_ratio(summary.sharpe_ratio)}")
    else:
        lines.append("- **Statistics**: unavailable")
    with open(path, "w", encoding="utf-8") as fh:
        fh.write("\n".join(lines) + "\n")


__all__ = [
    "format_final_summary",
    "format_rules",
    "format_statistics",
    "format_transaction",
    "snapshots_to_frame",
    "transactions_to_frame",
    "write_summary_markdown",
]
