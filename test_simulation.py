import pytest

pd = pytest.importorskip("pandas")

from dca_ladder.simulation import simulate_leveraged_series


def test_simulate_leveraged_series_basic_growth():
    index = pd.date_range("2020-01-01", periods=3, freq="D")
    underlying = pd.DataFrame({"close": [100.0, 110.0, 99.0]}, index=index)

    result = simulate_leveraged_series(
        underlying,
        leverage=2.0,
        expense_ratio=0.0,
        annual_drag=0.0,
        initial_price=50.0,
    )

    assert list(result.index) == list(index[1:])
    assert result["close"].tolist() == pytest.approx([60.0, 48.0])
    assert result["change_pct"].tolist() == pytest.approx([20.0, -20.0])


def test_simulate_leveraged_series_applies_daily_fees():
    index = pd.date_range("2020-01-01", periods=3, freq="D")
    underlying = pd.DataFrame({"close": [100.0, 100.0, 100.0]}, index=index)

    result = simulate_leveraged_series(underlying)

    fee = (0.0095 + 0.08) / 252
    assert result["close"].tolist() == pytest.approx([85.0 * (1 - fee), 85.0 * (1 - fee) ** 2])


def test_simulate_leveraged_series_drops_missing_closes():
    index = pd.date_range("2020-01-01", periods=4, freq="D")
    underlying = pd.DataFrame({"close": [100.0, float("nan"), 110.0, 121.0]}, index=index)

    result = simulate_leveraged_series(underlying, leverage=1.0, expense_ratio=0.0, annual_drag=0.0, initial_price=10.0)

    assert list(result.index) == [index[2], index[3]]
    assert result["close"].tolist() == pytest.approx([11.0, 12.1])


def test_simulate_leveraged_series_requires_close_column():
    frame = pd.DataFrame({"price": [1.0, 2.0]})
    with pytest.raises(ValueError):
        simulate_leveraged_series(frame)
