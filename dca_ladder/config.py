"""Strategy parameters for the staged-buy / staged-sell ladder."""

from __future__ import annotations

import dataclasses
import datetime as _dt
import json
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

DateLike = Union[str, _dt.date, None]


class ConfigError(ValueError):
    """Raised when strategy parameters are out of range."""


def _coerce_date(value: DateLike, name: str) -> Optional[_dt.date]:
    if value is None or value == "":
        return None
    if isinstance(value, _dt.datetime):
        return value.date()
    if isinstance(value, _dt.date):
        return value
    try:
        return _dt.date.fromisoformat(str(value))
    except ValueError as exc:
        raise ConfigError(f"{name} must be an ISO date (YYYY-MM-DD), got {value!r}") from exc


def _strictly_increasing(values: Sequence[float]) -> bool:
    return all(b > a for a, b in zip(values, values[1:]))


@dataclass(frozen=True)
class StrategyConfig:
    """Ladder parameters plus the optional inclusive date window.

    ``drop_levels`` are fractional drawdowns from the cycle peak; the first
    one opens a cycle. ``sell_multipliers`` are multiples of the cycle's
    anchor price (its first buy).
    """

    initial_buy_amount: float = 10000.0
    buy_multiple: float = 2.0
    sell_fraction: float = 0.2
    drop_levels: Tuple[float, ...] = (0.25, 0.5, 0.75, 0.875, 0.9375, 0.96875, 0.984375, 0.9921875)
    sell_multipliers: Tuple[float, ...] = (2.0, 4.0, 8.0, 16.0, 32.0, 64.0, 128.0, 256.0)
    start_date: Optional[_dt.date] = None
    end_date: Optional[_dt.date] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "drop_levels", tuple(float(v) for v in self.drop_levels))
        object.__setattr__(self, "sell_multipliers", tuple(float(v) for v in self.sell_multipliers))
        object.__setattr__(self, "start_date", _coerce_date(self.start_date, "start_date"))
        object.__setattr__(self, "end_date", _coerce_date(self.end_date, "end_date"))
        self.validate()

    def validate(self) -> None:
        if not (math.isfinite(self.initial_buy_amount) and self.initial_buy_amount > 0):
            raise ConfigError(f"initial_buy_amount must be positive, got {self.initial_buy_amount}")
        if not (math.isfinite(self.buy_multiple) and self.buy_multiple > 1):
            raise ConfigError(f"buy_multiple must be > 1, got {self.buy_multiple}")
        if not 0 < self.sell_fraction < 1:
            raise ConfigError(f"sell_fraction must be in (0, 1), got {self.sell_fraction}")
        if any(not 0 < level < 1 for level in self.drop_levels):
            raise ConfigError("drop_levels must lie in (0, 1)")
        if not _strictly_increasing(self.drop_levels):
            raise ConfigError("drop_levels must be strictly increasing")
        if any(not (math.isfinite(m) and m > 1) for m in self.sell_multipliers):
            raise ConfigError("sell_multipliers must be > 1")
        if not _strictly_increasing(self.sell_multipliers):
            raise ConfigError("sell_multipliers must be strictly increasing")
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ConfigError("start_date must be <= end_date")

    @property
    def can_trade(self) -> bool:
        """False when either ladder is empty; such runs execute no trades."""

        return bool(self.drop_levels) and bool(self.sell_multipliers)

    def in_range(self, date: _dt.date) -> bool:
        if self.start_date is not None and date < self.start_date:
            return False
        if self.end_date is not None and date > self.end_date:
            return False
        return True

    def with_overrides(self, **overrides: Any) -> "StrategyConfig":
        """Return a copy with every non-None override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, object]:
        return {
            "initial_buy_amount": float(self.initial_buy_amount),
            "buy_multiple": float(self.buy_multiple),
            "sell_fraction": float(self.sell_fraction),
            "drop_levels": list(self.drop_levels),
            "sell_multipliers": list(self.sell_multipliers),
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }


PRESETS: Dict[str, StrategyConfig] = {
    # Halve the remaining distance to zero at each buy, double each buy, sell a
    # fifth of holdings at every doubling of the anchor.
    "halving": StrategyConfig(),
    # Fibonacci retracement ladder.
    "golden": StrategyConfig(
        buy_multiple=1.618,
        sell_fraction=0.382,
        drop_levels=(0.382, 0.5, 0.618, 0.786, 0.886, 0.941),
        sell_multipliers=(1.618, 2.618, 4.236, 6.854, 11.089, 17.944, 29.032, 46.769, 75.706, 122.429),
    ),
    # Halving ladder that waits for a 50% drawdown before the first buy.
    "deep": StrategyConfig(
        drop_levels=(0.5, 0.75, 0.875, 0.9375, 0.96875, 0.984375, 0.9921875),
    ),
}

_FIELD_NAMES = {f.name for f in dataclasses.fields(StrategyConfig)}


def get_preset(name: str) -> StrategyConfig:
    try:
        return PRESETS[name.lower()]
    except KeyError:
        known = ", ".join(sorted(PRESETS))
        raise ConfigError(f"Unknown preset '{name}' (known: {known})") from None


def config_from_mapping(payload: Mapping[str, object], base: Optional[StrategyConfig] = None) -> StrategyConfig:
    """Build a config from a JSON-style mapping.

    A ``preset`` key in the payload replaces ``base``; otherwise the payload
    is applied on top of ``base`` (defaults when None).
    """

    unknown = sorted(set(payload) - _FIELD_NAMES - {"preset"})
    if unknown:
        raise ConfigError(f"Unknown config key(s): {', '.join(unknown)}")

    preset = payload.get("preset")
    if preset:
        base = get_preset(str(preset))
    elif base is None:
        base = StrategyConfig()

    changes: Dict[str, Any] = {}
    for key, value in payload.items():
        if key == "preset":
            continue
        if key in ("drop_levels", "sell_multipliers"):
            if not isinstance(value, (list, tuple)):
                raise ConfigError(f"{key} must be a list of numbers")
            changes[key] = tuple(float(v) for v in value)
        elif key in ("start_date", "end_date"):
            changes[key] = value
        else:
            try:
                changes[key] = float(value)  # type: ignore[arg-type]
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"{key} must be a number, got {value!r}") from exc
    return dataclasses.replace(base, **changes)


def load_config(path: str, base: Optional[StrategyConfig] = None) -> StrategyConfig:
    with open(path, "r", encoding="utf-8") as fh:
        payload = json.load(fh)
    if not isinstance(payload, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object")
    return config_from_mapping(payload, base=base)


__all__ = [
    "ConfigError",
    "PRESETS",
    "StrategyConfig",
    "config_from_mapping",
    "get_preset",
    "load_config",
]
