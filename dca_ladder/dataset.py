"""Utilities for loading the daily price series replayed by the backtester."""

from __future__ import annotations

import datetime as _dt
import math
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import pandas as pd


class PriceDataError(RuntimeError):
    """Raised when an expected price-series CSV is malformed."""


class DataParseError(ValueError):
    """Raised for a single row whose date or close cannot be used.

    Callers that iterate rows treat this as "skip the row": no trading logic
    and no snapshot for that day.
    """


@dataclass(frozen=True)
class DailyRecord:
    date: _dt.date
    close: float


def _parse_date(value: object) -> _dt.date:
    if value is None or value is pd.NaT:
        raise DataParseError("missing date")
    if isinstance(value, _dt.datetime):
        return value.date()
    if isinstance(value, _dt.date):
        return value
    if not isinstance(value, str):
        raise DataParseError(f"unparseable date: {value!r}")
    # The whole field must be an ISO date or datetime; no trailing text.
    try:
        return _dt.datetime.fromisoformat(value.strip()).date()
    except ValueError as exc:
        raise DataParseError(f"unparseable date: {value!r}") from exc


def _parse_close(value: object) -> float:
    if isinstance(value, bool):
        raise DataParseError(f"non-numeric close: {value!r}")
    try:
        close = float(value.strip()) if isinstance(value, str) else float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise DataParseError(f"non-numeric close: {value!r}") from exc
    if not math.isfinite(close) or close <= 0:
        raise DataParseError(f"close must be a finite positive number, got {value!r}")
    return close


def parse_daily_record(date_value: object, close_value: object) -> DailyRecord:
    """Parse one ``(date, close)`` pair, raising :class:`DataParseError` on bad input."""

    return DailyRecord(date=_parse_date(date_value), close=_parse_close(close_value))


class PriceSeries(Sequence[DailyRecord]):
    """Immutable, strictly date-ordered sequence of daily closes."""

    def __init__(self, records: Iterable[DailyRecord], *, skipped: int = 0):
        self._records: Tuple[DailyRecord, ...] = tuple(records)
        for prev, curr in zip(self._records, self._records[1:]):
            if curr.date <= prev.date:
                raise PriceDataError(
                    f"Price series must be strictly ordered by date ({prev.date} then {curr.date})"
                )
        self.skipped = skipped

    @classmethod
    def from_rows(cls, rows: Iterable[Tuple[object, object]]) -> "PriceSeries":
        """Build a series from raw ``(date, close)`` pairs, dropping malformed rows."""

        records: List[DailyRecord] = []
        skipped = 0
        for date_value, close_value in rows:
            try:
                records.append(parse_daily_record(date_value, close_value))
            except DataParseError:
                skipped += 1
        return cls(records, skipped=skipped)

    def __getitem__(self, index):  # type: ignore[override]
        if isinstance(index, slice):
            return PriceSeries(self._records[index])
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[DailyRecord]:
        return iter(self._records)

    def __repr__(self) -> str:
        if not self._records:
            return "PriceSeries([])"
        return f"PriceSeries({len(self)} days, {self._records[0].date} -> {self._records[-1].date})"

    def last_on_or_before(self, date: Optional[_dt.date]) -> Optional[DailyRecord]:
        """Return the last record dated on/before ``date`` (the last record when ``date`` is None)."""

        for record in reversed(self._records):
            if date is None or record.date <= date:
                return record
        return None

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame(
            {"close": [r.close for r in self._records]},
            index=pd.DatetimeIndex([pd.Timestamp(r.date) for r in self._records], name="date"),
        )
        return frame


def _find_column(df: pd.DataFrame, name: str) -> Optional[str]:
    for col in df.columns:
        if str(col).strip().lower() == name:
            return col
    return None


def load_price_series(path: str) -> PriceSeries:
    """Load a CSV containing ``Date``/``Close`` columns (header case is ignored).

    Auxiliary columns such as ``Peak Price`` or ``Drawdown %`` are ignored.
    Rows whose date or close does not parse are skipped; the count is kept on
    the returned series as ``skipped``. Rows are sorted by date and duplicate
    dates keep their first occurrence.
    """

    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    date_col = _find_column(df, "date")
    close_col = _find_column(df, "close")
    missing = [name for name, col in (("date", date_col), ("close", close_col)) if col is None]
    if missing:
        joined = ", ".join(missing)
        raise PriceDataError(f"Missing required column(s): {joined}")

    records: List[DailyRecord] = []
    skipped = 0
    for date_value, close_value in zip(df[date_col], df[close_col]):
        try:
            records.append(parse_daily_record(date_value, close_value))
        except DataParseError:
            skipped += 1

    records.sort(key=lambda r: r.date)
    unique: List[DailyRecord] = []
    for record in records:
        if unique and unique[-1].date == record.date:
            continue
        unique.append(record)

    if not unique:
        raise PriceDataError("No rows remain after cleaning price data")
    return PriceSeries(unique, skipped=skipped)


def frame_to_series(frame: pd.DataFrame) -> PriceSeries:
    """Convert a date-indexed frame with a ``close`` column into a :class:`PriceSeries`."""

    if "close" not in frame.columns:
        raise PriceDataError("Missing required column(s): close")
    frame = frame.sort_index()
    frame = frame[~frame.index.duplicated(keep="first")]
    return PriceSeries.from_rows(zip(pd.to_datetime(frame.index), frame["close"]))


def _close_column(data: pd.DataFrame) -> Optional[pd.Series]:
    """Pick the close column from a yfinance frame, flat or ``(field, ticker)`` columns."""

    for key in ("Adj Close", "Close"):
        if isinstance(data.columns, pd.MultiIndex):
            if key not in data.columns.get_level_values(0):
                continue
            picked = data.xs(key, axis=1, level=0)
            return picked.iloc[:, 0] if isinstance(picked, pd.DataFrame) else picked
        if key in data.columns:
            return data[key]
    return None


def download_price_history(symbol: str) -> pd.DataFrame:
    """Download auto-adjusted daily closes for ``symbol`` from Yahoo Finance.

    Returns a frame indexed by naive ``date`` with one ``close`` column, ready
    for :func:`frame_to_series`.
    """

    try:
        import yfinance as yf  # type: ignore
    except ImportError as exc:  # pragma: no cover - exercised via runtime usage
        raise RuntimeError("yfinance is required to download price history") from exc

    data = yf.download(symbol, period="max", auto_adjust=True, progress=False, threads=False)
    if data is None or data.empty:
        raise RuntimeError(f"No price data returned for symbol {symbol}")

    close = _close_column(data)
    if close is None:
        raise RuntimeError(f"Downloaded data for {symbol} does not contain Close/Adj Close columns")

    index = pd.DatetimeIndex(pd.to_datetime(close.index))
    if index.tz is not None:
        index = index.tz_localize(None)
    frame = pd.DataFrame({"close": pd.to_numeric(close, errors="coerce").to_numpy()}, index=index)
    frame.index.name = "date"
    frame = frame[frame["close"] > 0]
    if frame.empty:
        raise RuntimeError(f"No valid price rows for symbol {symbol}")
    return frame.sort_index()


__all__ = [
    "DailyRecord",
    "DataParseError",
    "PriceDataError",
    "PriceSeries",
    "download_price_history",
    "frame_to_series",
    "load_price_series",
    "parse_daily_record",
]
