import datetime as dt
import math

import pytest

np = pytest.importorskip("numpy")

from dca_ladder.engine import PortfolioSnapshot
from dca_ladder.stats import (
    InsufficientDataError,
    InvalidRangeError,
    NoValidEndError,
    NoValidStartError,
    StatisticsError,
    max_drawdown,
    summarize,
    yearly_returns,
)


def snap(date, total):
    return PortfolioSnapshot(
        date=dt.date.fromisoformat(date),
        portfolio_value=total,
        cash_value=0.0,
        total_value=total,
        cumulative_invested=0.0,
    )


def daily(values, start="2020-01-01"):
    first = dt.date.fromisoformat(start)
    return [snap((first + dt.timedelta(days=i)).isoformat(), v) for i, v in enumerate(values)]


def test_constant_value_has_zero_return_and_undefined_sharpe():
    summary = summarize(daily([100.0] * 800))

    assert summary.annual_return == 0.0
    assert summary.max_drawdown == 0.0
    assert math.isnan(summary.sharpe_ratio)
    assert summary.final_value == 100.0


def test_requires_two_snapshots():
    with pytest.raises(InsufficientDataError):
        summarize(daily([100.0]))


def test_requires_a_nonzero_value():
    with pytest.raises(NoValidStartError):
        summarize(daily([0.0, 0.0, 0.0]))


def test_requires_a_snapshot_before_end_date():
    with pytest.raises(NoValidEndError):
        summarize(daily([100.0, 110.0]), end_date=dt.date(2019, 12, 31))


def test_zero_length_span_is_invalid():
    with pytest.raises(InvalidRangeError):
        summarize(daily([0.0, 0.0, 100.0]))


def test_errors_share_a_base_class():
    assert issubclass(InvalidRangeError, StatisticsError)
    assert issubclass(StatisticsError, RuntimeError)


def test_cagr_uses_first_nonzero_value_and_calendar_years():
    snapshots = [
        snap("2019-06-01", 0.0),
        snap("2020-01-01", 100.0),
        snap("2021-01-01", 110.0),
        snap("2022-01-01", 121.0),
    ]
    summary = summarize(snapshots)

    years = (dt.date(2022, 1, 1) - dt.date(2020, 1, 1)).days / 365.25
    assert summary.start_date == dt.date(2020, 1, 1)
    assert summary.num_years == pytest.approx(years)
    assert summary.annual_return == pytest.approx(1.21 ** (1.0 / years) - 1.0)


def test_sharpe_uses_population_std_and_skips_zero_bases():
    values = [0.0, 100.0, 110.0, 121.0, 114.95]
    summary = summarize(daily(values))

    rets = np.array([0.1, 0.1, -0.05])
    expected = rets.mean() / rets.std(ddof=0) * math.sqrt(252)
    assert summary.sharpe_ratio == pytest.approx(expected)


def test_max_drawdown_tracks_running_peak():
    assert max_drawdown([100.0, 120.0, 60.0, 130.0, 117.0]) == pytest.approx(-0.5)
    assert max_drawdown([0.0, 0.0, 50.0, 60.0]) == 0.0


def test_yearly_returns_start_from_prior_value():
    snapshots = [
        snap("2020-12-30", 100.0),
        snap("2020-12-31", 110.0),
        snap("2021-01-04", 121.0),
        snap("2021-12-31", 99.0),
    ]
    assert yearly_returns(snapshots) == {2020: pytest.approx(0.1), 2021: pytest.approx(-0.1)}

    summary = summarize(snapshots)
    assert summary.best_year == pytest.approx(0.1)
    assert summary.worst_year == pytest.approx(-0.1)


def test_years_starting_from_zero_are_excluded():
    snapshots = [
        snap("2020-12-31", 0.0),
        snap("2021-01-04", 100.0),
        snap("2021-12-31", 150.0),
        snap("2022-06-30", 120.0),
    ]
    by_year = yearly_returns(snapshots)
    assert 2021 not in by_year
    assert by_year[2022] == pytest.approx(-0.2)


def test_end_date_bounds_every_statistic():
    snapshots = daily([100.0, 120.0, 60.0, 200.0, 10.0])
    summary = summarize(snapshots, end_date=dt.date(2020, 1, 4))

    assert summary.end_date == dt.date(2020, 1, 4)
    assert summary.final_value == 200.0
    assert summary.max_drawdown == pytest.approx(-0.5)
