import datetime as dt
import json

import pytest

pd = pytest.importorskip("pandas")
matplotlib = pytest.importorskip("matplotlib")
matplotlib.use("Agg")

import backtest_ladder
import simulate_leveraged
import sweep_ladder
from dca_ladder.engine import PortfolioSnapshot
from dca_ladder.plotting import monthly_snapshots, plot_portfolio
from dca_ladder.report import snapshots_to_frame


def write_prices(path, closes, start="2020-01-01"):
    dates = pd.date_range(start, periods=len(closes), freq="D")
    lines = ["Date,Close"] + [f"{d.date()},{c}" for d, c in zip(dates, closes)]
    path.write_text("\n".join(lines) + "\n")
    return path


def cycle_closes():
    # Peak, crash through two buy levels, recover, then rally through two sell targets.
    return [100.0] * 5 + [80.0, 60.0, 45.0, 70.0, 100.0, 120.0, 150.0, 190.0, 260.0] + [250.0] * 400


def test_backtest_cli_prints_transactions_and_stats(tmp_path, capsys):
    csv = write_prices(tmp_path / "prices.csv", cycle_closes())
    portfolio_csv = tmp_path / "portfolio.csv"
    trades_csv = tmp_path / "trades.csv"
    summary_md = tmp_path / "summary.md"

    code = backtest_ladder.main([
        "--csv", str(csv),
        "--drop-levels", "0.2", "0.5",
        "--sell-multipliers", "1.5", "2", "10",
        "--sell-fraction", "0.25",
        "--save-csv", str(portfolio_csv),
        "--save-transactions", str(trades_csv),
        "--save-summary", str(summary_md),
        "--no-show",
    ])

    out = capsys.readouterr().out
    assert code == 0
    assert "Buy" in out and "Sell" in out
    assert "CAGR:" in out
    assert "Multiple on investment" in out

    trades = pd.read_csv(trades_csv)
    assert list(trades["type"]) == ["BUY", "BUY", "SELL", "SELL"]
    portfolio = pd.read_csv(portfolio_csv)
    assert len(portfolio) == len(cycle_closes())
    assert "**CAGR**" in summary_md.read_text()


def test_backtest_cli_survives_statistics_failure(tmp_path, capsys):
    csv = write_prices(tmp_path / "flat.csv", [100.0] * 10)

    code = backtest_ladder.main(["--csv", str(csv), "--no-show"])

    out = capsys.readouterr().out
    assert code == 0
    assert "No trades were executed" in out
    assert "Statistics unavailable" in out


def test_backtest_cli_reports_missing_end_price(tmp_path, capsys):
    csv = write_prices(tmp_path / "late.csv", [100.0] * 3, start="2021-01-01")

    code = backtest_ladder.main(["--csv", str(csv), "--end", "2020-12-31", "--no-show"])

    assert code == 1
    assert "No price found" in capsys.readouterr().err


def test_backtest_cli_rejects_bad_config(tmp_path, capsys):
    csv = write_prices(tmp_path / "prices.csv", [100.0] * 3)
    code = backtest_ladder.main(["--csv", str(csv), "--sell-fraction", "1.5", "--no-show"])
    assert code == 2


def test_backtest_cli_reads_config_file_and_saves_plot(tmp_path):
    csv = write_prices(tmp_path / "prices.csv", cycle_closes())
    params = tmp_path / "params.json"
    params.write_text(json.dumps({"drop_levels": [0.2, 0.5], "sell_multipliers": [1.5, 2.0]}))
    plot = tmp_path / "ladder.png"

    code = backtest_ladder.main(["--csv", str(csv), "--config", str(params), "--save-plot", str(plot), "--no-show"])

    assert code == 0
    assert plot.exists()


def test_backtest_cli_config_preset_overrides_default_preset(tmp_path, capsys):
    csv = write_prices(tmp_path / "prices.csv", [100.0] * 3)
    params = tmp_path / "params.json"
    params.write_text(json.dumps({"preset": "golden"}))

    code = backtest_ladder.main(["--csv", str(csv), "--config", str(params), "--no-show"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Buy amount growth factor         : 1.618x" in out
    assert "Buy triggers (drawdown levels)   : 0.382, 0.5, 0.618" in out


def test_simulate_leveraged_cli_writes_series(tmp_path):
    csv = write_prices(tmp_path / "qqq.csv", [100.0, 101.0, 99.0, 102.0])
    out = tmp_path / "tqqq.csv"

    code = simulate_leveraged.main(["--csv", str(csv), "--out", str(out), "--no-show"])

    assert code == 0
    frame = pd.read_csv(out)
    assert list(frame.columns) == ["date", "close", "change_pct"]
    assert len(frame) == 3


def test_sweep_cli_prints_best_config(tmp_path, capsys):
    csv = write_prices(tmp_path / "prices.csv", cycle_closes())

    code = sweep_ladder.main([
        "--csv", str(csv),
        "--presets", "halving", "golden",
        "--buy-multiples", "1.5", "2",
        "--sell-fractions", "0.2", "0.5",
        "--rank-by", "multiple",
    ])

    out = capsys.readouterr().out
    assert code == 0
    payload = json.loads(out.split("Best configuration:\n", 1)[1])
    assert set(payload) >= {"buy_multiple", "sell_fraction", "drop_levels"}


def test_monthly_snapshots_keep_last_point_of_each_month():
    snaps = [
        PortfolioSnapshot(dt.date(2020, 1, 1), 1.0, 0.0, 1.0, 1.0),
        PortfolioSnapshot(dt.date(2020, 1, 31), 2.0, 0.0, 2.0, 1.0),
        PortfolioSnapshot(dt.date(2020, 2, 3), 3.0, 0.0, 3.0, 1.0),
    ]
    monthly = monthly_snapshots(snapshots_to_frame(snaps))

    assert list(monthly["total_value"]) == [2.0, 3.0]
    fig = plot_portfolio(snapshots_to_frame(snaps), no_show=True)
    assert len(fig.axes[0].lines) == 4
