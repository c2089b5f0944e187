"""Shared utilities for the DCA ladder backtester."""

from .config import PRESETS, ConfigError, StrategyConfig, config_from_mapping, get_preset, load_config
from .dataset import (
    DailyRecord,
    DataParseError,
    PriceDataError,
    PriceSeries,
    download_price_history,
    frame_to_series,
    load_price_series,
    parse_daily_record,
)
from .engine import (
    BacktestResult,
    DayEvents,
    EngineState,
    FinalSummary,
    NoDataError,
    PortfolioSnapshot,
    Transaction,
    TransactionType,
    advance_one_day,
    finalize,
    run_strategy,
    simulate,
)
from .simulation import simulate_leveraged_series
from .stats import (
    InsufficientDataError,
    InvalidRangeError,
    NoValidEndError,
    NoValidStartError,
    StatisticsError,
    Summary,
    summarize,
)

__all__ = [
    "PRESETS",
    "ConfigError",
    "StrategyConfig",
    "config_from_mapping",
    "get_preset",
    "load_config",
    "DailyRecord",
    "DataParseError",
    "PriceDataError",
    "PriceSeries",
    "download_price_history",
    "frame_to_series",
    "load_price_series",
    "parse_daily_record",
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
    "simulate_leveraged_series",
    "InsufficientDataError",
    "InvalidRangeError",
    "NoValidEndError",
    "NoValidStartError",
    "StatisticsError",
    "Summary",
    "summarize",
]
