import datetime as dt
import json

import pytest

from dca_ladder.config import (
    PRESETS,
    ConfigError,
    StrategyConfig,
    config_from_mapping,
    get_preset,
    load_config,
)


def test_defaults_match_halving_preset():
    config = StrategyConfig()
    assert config == PRESETS["halving"]
    assert config.drop_levels[0] == 0.25
    assert config.sell_multipliers[-1] == 256.0
    assert config.can_trade


@pytest.mark.parametrize(
    "overrides",
    [
        {"initial_buy_amount": 0.0},
        {"buy_multiple": 1.0},
        {"sell_fraction": 1.0},
        {"sell_fraction": 0.0},
        {"drop_levels": (0.5, 0.25)},
        {"drop_levels": (0.5, 1.0)},
        {"sell_multipliers": (1.0, 2.0)},
        {"sell_multipliers": (4.0, 2.0)},
        {"start_date": "2021-01-01", "end_date": "2020-01-01"},
        {"start_date": "01/02/2020"},
    ],
)
def test_invalid_parameters_raise(overrides):
    with pytest.raises(ConfigError):
        StrategyConfig(**overrides)


def test_empty_ladders_are_allowed_but_cannot_trade():
    assert not StrategyConfig(drop_levels=()).can_trade
    assert not StrategyConfig(sell_multipliers=[]).can_trade


def test_dates_and_range():
    config = StrategyConfig(start_date="2020-01-02", end_date=dt.date(2020, 1, 4))
    assert config.start_date == dt.date(2020, 1, 2)
    assert not config.in_range(dt.date(2020, 1, 1))
    assert config.in_range(dt.date(2020, 1, 2))
    assert config.in_range(dt.date(2020, 1, 4))
    assert not config.in_range(dt.date(2020, 1, 5))


def test_with_overrides_ignores_none():
    config = get_preset("golden").with_overrides(buy_multiple=None, sell_fraction=0.25)
    assert config.buy_multiple == 1.618
    assert config.sell_fraction == 0.25


def test_unknown_preset():
    with pytest.raises(ConfigError):
        get_preset("moonshot")


def test_config_from_mapping_uses_preset_and_rejects_unknown_keys():
    config = config_from_mapping({"preset": "deep", "initial_buy_amount": 500, "end_date": "2024-12-31"})
    assert config.drop_levels[0] == 0.5
    assert config.initial_buy_amount == 500.0
    assert config.end_date == dt.date(2024, 12, 31)

    with pytest.raises(ConfigError):
        config_from_mapping({"drop_level": [0.1]})


def test_config_preset_key_replaces_base(tmp_path):
    path = tmp_path / "params.json"
    path.write_text(json.dumps({"preset": "golden", "initial_buy_amount": 250}))

    config = load_config(str(path), base=get_preset("halving"))

    assert config.drop_levels == PRESETS["golden"].drop_levels
    assert config.buy_multiple == 1.618
    assert config.initial_buy_amount == 250.0

    # Without a preset key the payload layers over the given base.
    layered = config_from_mapping({"sell_fraction": 0.3}, base=get_preset("deep"))
    assert layered.drop_levels == PRESETS["deep"].drop_levels
    assert layered.sell_fraction == 0.3


def test_load_config_round_trips_to_dict(tmp_path):
    params = StrategyConfig(buy_multiple=1.5, drop_levels=(0.3, 0.6), start_date="2010-02-11")
    path = tmp_path / "params.json"
    path.write_text(json.dumps(params.to_dict()))

    assert load_config(str(path)) == params


def test_load_config_requires_object(tmp_path):
    path = tmp_path / "params.json"
    path.write_text("[1, 2]")
    with pytest.raises(ConfigError):
        load_config(str(path))
