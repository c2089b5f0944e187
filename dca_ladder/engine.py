"""Day-by-day simulation of the staged-buy / staged-sell ladder.

State machine
-------------
The strategy is either FLAT or IN_CYCLE.

- FLAT -> IN_CYCLE when the close falls ``drop_levels[0]`` below the cycle
  peak. The entry buy anchors the sell ladder at its execution price.
- IN_CYCLE -> IN_CYCLE on each deeper drop level (one staged buy per day,
  sized ``initial_buy_amount * buy_multiple ** level``).
- IN_CYCLE -> FLAT when the close recovers to the cycle peak. Only the buy
  ladder resets; the sell ladder keeps chasing the same anchor.
- Sells fire once the price has recovered at least once since the last entry,
  never on a day with a buy, and may fire several times on one day when the
  close jumps across more than one target.

Per-day order: peak update, entry check, staged buy, sell loop, recovery,
snapshot. ``advance_one_day`` applies that order to a copy of the state, so a
single transition can be inspected in isolation and independent runs (for
example a parameter sweep) never share state.
"""

from __future__ import annotations

import dataclasses
import datetime as _dt
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple

from .config import StrategyConfig
from .dataset import DailyRecord, PriceSeries

logger = logging.getLogger(__name__)


class NoDataError(RuntimeError):
    """Raised when no price exists on or before the requested end date."""


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class Transaction:
    type: TransactionType
    date: _dt.date
    price: float
    shares: float

    @property
    def amount(self) -> float:
        """Dollar value of the trade (cost for buys, proceeds for sells)."""

        return self.price * self.shares


@dataclass(frozen=True)
class PortfolioSnapshot:
    date: _dt.date
    portfolio_value: float
    cash_value: float
    total_value: float
    cumulative_invested: float


@dataclass
class EngineState:
    global_peak_price: float = 0.0
    cycle_peak_price: float = 0.0
    in_cycle: bool = False
    has_recovered: bool = False
    current_drop_level: int = 0
    next_sell_index: int = 0
    anchored_sell_price: Optional[float] = None
    holding_shares: float = 0.0
    cumulative_invested: float = 0.0
    cumulative_sold: float = 0.0

    def copy(self) -> "EngineState":
        return dataclasses.replace(self)

    @property
    def phase(self) -> str:
        return "IN_CYCLE" if self.in_cycle else "FLAT"


@dataclass(frozen=True)
class DayEvents:
    """Everything a single trading day produced."""

    date: _dt.date
    close: float
    transactions: Tuple[Transaction, ...]
    entered_cycle: bool
    recovered: bool
    snapshot: PortfolioSnapshot

    @property
    def bought(self) -> bool:
        return any(tx.type is TransactionType.BUY for tx in self.transactions)


@dataclass(frozen=True)
class FinalSummary:
    total_invested: float
    total_sold: float
    final_holding_value: float
    net_profit: float
    total_value: float
    multiple: float
    final_date: _dt.date
    final_close: float


@dataclass
class BacktestResult:
    transactions: List[Transaction]
    snapshots: List[PortfolioSnapshot]
    final: FinalSummary
    state: EngineState = field(default_factory=EngineState)

    def __iter__(self) -> Iterator[object]:
        # Unpacks as (transactions, snapshots, final).
        return iter((self.transactions, self.snapshots, self.final))


def _buy(state: EngineState, config: StrategyConfig, price: float, date: _dt.date) -> Transaction:
    if state.current_drop_level == 0:
        state.anchored_sell_price = price
        state.next_sell_index = 0

    amount = config.initial_buy_amount * config.buy_multiple ** state.current_drop_level
    shares = amount / price
    tx = Transaction(TransactionType.BUY, date, price, shares)

    state.holding_shares += shares
    state.cumulative_invested += amount
    state.current_drop_level += 1

    if logger.isEnabledFor(logging.DEBUG):
        drop_pct = (state.cycle_peak_price - price) / state.cycle_peak_price * 100.0
        logger.debug(
            "Buy %.2f shares at $%.2f on %s for $%.2f (price drop: %.2f%% from $%.2f)",
            shares, price, date, amount, drop_pct, state.cycle_peak_price,
        )
    return tx


def _sell(state: EngineState, config: StrategyConfig, price: float, date: _dt.date) -> Transaction:
    shares = state.holding_shares * config.sell_fraction
    tx = Transaction(TransactionType.SELL, date, price, shares)

    target = config.sell_multipliers[state.next_sell_index]
    state.holding_shares *= 1.0 - config.sell_fraction
    state.cumulative_sold += shares * price
    state.next_sell_index += 1

    logger.debug(
        "Sell %.1f%% (%.2f shares) at $%.2f on %s for $%.2f (sell target multiple %s of %.2f)",
        config.sell_fraction * 100.0, shares, price, date, shares * price, target, state.anchored_sell_price,
    )
    return tx


def _snapshot(state: EngineState, record: DailyRecord) -> PortfolioSnapshot:
    portfolio_value = state.holding_shares * record.close
    cash_value = state.cumulative_sold
    return PortfolioSnapshot(
        date=record.date,
        portfolio_value=portfolio_value,
        cash_value=cash_value,
        total_value=portfolio_value + cash_value,
        cumulative_invested=state.cumulative_invested,
    )


def advance_one_day(
    state: EngineState,
    record: DailyRecord,
    config: StrategyConfig,
) -> Tuple[EngineState, DayEvents]:
    """Apply one trading day to ``state`` and return the new state plus what happened.

    The input ``state`` is left untouched.
    """

    state = state.copy()
    close = record.close
    date = record.date
    trades: List[Transaction] = []
    entered = False
    recovered = False

    if close > state.global_peak_price:
        state.global_peak_price = close
        if not state.in_cycle:
            state.cycle_peak_price = state.global_peak_price

    if config.can_trade:
        drop_levels = config.drop_levels
        sell_multipliers = config.sell_multipliers
        bought_today = False

        if not state.in_cycle and close <= state.cycle_peak_price * (1.0 - drop_levels[0]):
            trades.append(_buy(state, config, close, date))
            state.in_cycle = True
            state.has_recovered = False
            bought_today = True
            entered = True

        if state.in_cycle and state.current_drop_level < len(drop_levels):
            drop_from_peak = (state.cycle_peak_price - close) / state.cycle_peak_price
            if drop_from_peak >= drop_levels[state.current_drop_level]:
                trades.append(_buy(state, config, close, date))
                bought_today = True

        if state.has_recovered and state.holding_shares > 0 and not bought_today:
            while state.next_sell_index < len(sell_multipliers):
                target = state.anchored_sell_price * sell_multipliers[state.next_sell_index]
                if close < target:
                    break
                trades.append(_sell(state, config, close, date))

        if state.in_cycle and close >= state.cycle_peak_price:
            logger.debug("Recovered to cycle peak on %s ($%.2f), resetting buy ladder", date, close)
            state.in_cycle = False
            state.has_recovered = True
            state.current_drop_level = 0
            state.cycle_peak_price = state.global_peak_price
            recovered = True

    events = DayEvents(
        date=date,
        close=close,
        transactions=tuple(trades),
        entered_cycle=entered,
        recovered=recovered,
        snapshot=_snapshot(state, record),
    )
    return state, events


def simulate(
    series: Sequence[DailyRecord],
    config: StrategyConfig,
) -> Tuple[EngineState, List[Transaction], List[PortfolioSnapshot]]:
    """Replay ``series`` and return the final state, trade log and daily snapshots.

    Records outside the config's inclusive date window are skipped entirely.
    """

    state = EngineState()
    transactions: List[Transaction] = []
    snapshots: List[PortfolioSnapshot] = []
    for record in series:
        if not config.in_range(record.date):
            continue
        state, events = advance_one_day(state, record, config)
        transactions.extend(events.transactions)
        snapshots.append(events.snapshot)
    return state, transactions, snapshots


def finalize(
    series: Sequence[DailyRecord],
    state: EngineState,
    transactions: Sequence[Transaction],
    end_date: Optional[_dt.date] = None,
) -> FinalSummary:
    """Value the remaining holdings at the last close on/before ``end_date``."""

    if isinstance(series, PriceSeries):
        last = series.last_on_or_before(end_date)
    else:
        last = next((r for r in reversed(series) if end_date is None or r.date <= end_date), None)
    if last is None:
        raise NoDataError(f"No price found on or before {end_date}")

    final_holding_value = state.holding_shares * last.close if state.holding_shares > 0 else 0.0
    total_invested = sum(tx.amount for tx in transactions if tx.type is TransactionType.BUY)
    total_sold = sum(tx.amount for tx in transactions if tx.type is TransactionType.SELL)
    total_value = final_holding_value + total_sold
    multiple = total_value / total_invested if total_invested > 0 else 0.0

    return FinalSummary(
        total_invested=total_invested,
        total_sold=total_sold,
        final_holding_value=final_holding_value,
        net_profit=total_value - total_invested,
        total_value=total_value,
        multiple=multiple,
        final_date=last.date,
        final_close=last.close,
    )


def run_strategy(series: Sequence[DailyRecord], config: StrategyConfig) -> BacktestResult:
    """Run the full backtest: simulate every in-range day, then finalize."""

    state, transactions, snapshots = simulate(series, config)
    final = finalize(series, state, transactions, config.end_date)
    return BacktestResult(transactions=transactions, snapshots=snapshots, final=final, state=state)


__all__ = [
    "BacktestResult",
    "DayEvents",
    "EngineState",
    "FinalSummary",
    "NoDataError",
    "PortfolioSnapshot",
    "Transaction",
    "TransactionType",
    "advance_one_day",
    "finalize",
    "run_strategy",
    "simulate",
]
