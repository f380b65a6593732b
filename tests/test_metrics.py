import math

import numpy as np
import pytest

import metrics
from accumulator import accumulate
from trades import TradeRecord


def _state(pnls):
    return accumulate([TradeRecord(id=str(i), date=None, pnl=p) for i, p in enumerate(pnls)])


def test_core_ratios():
    state = _state([100, -50, -50])

    assert metrics.win_rate(state) == pytest.approx(100 / 3)
    assert metrics.avg_win(state) == 100
    assert metrics.avg_loss(state) == 50
    assert metrics.risk_reward(state) == 2
    assert metrics.profit_factor(state) == 1
    assert metrics.expectancy(state) == pytest.approx(0, abs=1e-9)
    assert metrics.expectancy_r(state) == pytest.approx(0, abs=1e-9)


def test_no_losses_gives_infinite_ratios():
    state = _state([100, 50])

    assert metrics.profit_factor(state) == math.inf
    assert metrics.risk_reward(state) == math.inf
    assert metrics.expectancy(state) == 75
    assert metrics.expectancy_r(state) == math.inf


def test_all_break_even_gives_zero_ratios():
    state = _state([0, 0])

    assert metrics.profit_factor(state) == 0
    assert metrics.risk_reward(state) == 0
    assert metrics.win_rate(state) == 0
    assert metrics.expectancy_r(state) == 0


def test_zero_trades_are_neutral():
    state = _state([])

    assert metrics.win_rate(state) == 0
    assert metrics.avg_win(state) == 0
    assert metrics.avg_loss(state) == 0
    assert metrics.profit_factor(state) == 0
    assert metrics.expectancy(state) == 0
    assert metrics.kelly_fraction(state) == 0
    assert metrics.consecutive_loss_probability(state, 3) == 0


def test_kelly_is_mean_over_sample_variance():
    pnls = [10, 20, 30, -5]
    expected = np.mean(pnls) / np.var(pnls, ddof=1)

    assert metrics.kelly_fraction(_state(pnls)) == pytest.approx(expected)


def test_kelly_is_clamped():
    assert metrics.kelly_fraction(_state([100, 101])) == 1.0
    assert metrics.kelly_fraction(_state([-100, 50, -80])) == 0.0
    assert metrics.kelly_fraction(_state([5, 5, 5])) == 0.0


def test_sharpe_matches_formula():
    daily = [100, -50, 200, 0]
    expected = np.mean(daily) / np.std(daily, ddof=1) * math.sqrt(4)

    assert metrics.sharpe_ratio(daily) == pytest.approx(expected)


def test_sharpe_subtracts_daily_risk_free_rate():
    daily = [100, -50, 200, 0]
    rf = 0.0252
    expected = (np.mean(daily) - rf / 252) / np.std(daily, ddof=1) * 2

    assert metrics.sharpe_ratio(daily, rf) == pytest.approx(expected)


def test_sharpe_annualisation_caps_at_252_days():
    daily = [100, -40] * 200
    expected = np.mean(daily) / np.std(daily, ddof=1) * math.sqrt(252)

    assert metrics.sharpe_ratio(daily) == pytest.approx(expected)


def test_sharpe_flat_or_short_series_is_zero():
    assert metrics.sharpe_ratio([50, 50, 50]) == 0
    assert metrics.sharpe_ratio([50]) == 0
    assert metrics.sharpe_ratio([]) == 0


def test_sortino_uses_downside_days_only():
    daily = [100, -50, 200, -100]
    down_dev = math.sqrt((50 ** 2 + 100 ** 2) / 2)
    expected = np.mean(daily) / down_dev * 2

    assert metrics.sortino_ratio(daily) == pytest.approx(expected)


def test_sortino_needs_two_downside_days():
    assert metrics.sortino_ratio([100, -50, 200]) == 0
    assert metrics.sortino_ratio([]) == 0


def test_equity_curve_and_drawdown():
    curve = metrics.equity_curve({
        "2024-01-03": 2500,
        "2024-01-01": 10000,
        "2024-01-02": -5000,
    })

    assert [p.date for p in curve] == ["2024-01-01", "2024-01-02", "2024-01-03"]
    assert [p.pnl for p in curve] == [100, 50, 75]
    assert [p.daily for p in curve] == [100, -50, 25]
    assert [p.drawdown for p in curve] == [0, 50, 25]
    assert metrics.max_drawdown_pct(curve) == 50


def test_drawdown_guarded_when_peak_not_positive():
    curve = metrics.equity_curve({"2024-01-01": -1000, "2024-01-02": -2000})

    assert all(p.drawdown == 0 for p in curve)
    assert metrics.max_drawdown_pct(curve) == 0
    assert metrics.max_drawdown_pct([]) == 0


def test_equity_curve_ends_at_total():
    daily = {f"2024-02-{d:02d}": c for d, c in zip(range(1, 29), range(-1400, 1400, 100))}
    curve = metrics.equity_curve(daily)

    assert curve[-1].pnl == pytest.approx(sum(daily.values()) / 100)


def test_daily_series_is_chronological_dollars():
    assert metrics.daily_series({"2024-01-02": -150, "2024-01-01": 1234}) == [
        ("2024-01-01", 12.34),
        ("2024-01-02", -1.5),
    ]


def test_consecutive_loss_probability():
    state = _state([100, -50, -50])

    assert metrics.consecutive_loss_probability(state, 3) == pytest.approx((2 / 3) ** 3 * 100)
    assert metrics.consecutive_loss_probability(state, 5) == pytest.approx((2 / 3) ** 5 * 100)


def test_sample_warnings():
    flagged = {w.metric for w in metrics.sample_warnings(5, 5)}
    assert flagged == {"kelly", "sharpe", "sortino"}

    assert metrics.sample_warnings(10, 20) == []
