"""
Derived performance metrics.

Pure functions over an AccumulatorState or a chronological daily series.
Every function is total: zero trades, zero losses or a flat series give a
defined 0 or +inf, never NaN or an exception.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

import numpy as np

from accumulator import AccumulatorState
from money import from_cents


TRADING_DAYS_PER_YEAR = 252

# Below these sample sizes a metric is still returned but flagged
MIN_SAMPLES = {
    'kelly': 10,
    'sharpe': 20,
    'sortino': 20,
    'monte_carlo': 30,
}


@dataclass
class MetricWarning:
    """Non-fatal low-confidence flag attached to a metric"""
    metric: str
    message: str


@dataclass
class EquityPoint:
    """One day on the cumulative equity curve"""
    date: str
    pnl: float          # cumulative P&L after this day
    daily: float        # this day's P&L
    drawdown: float     # % below the running peak


def _ratio(numerator: float, denominator: float) -> float:
    """numerator/denominator with the 0 / +inf fallback for empty denominators"""
    if denominator > 0:
        return numerator / denominator
    return math.inf if numerator > 0 else 0.0


def win_rate(state: AccumulatorState) -> float:
    if state.trade_count == 0:
        return 0.0
    return state.win_count / state.trade_count * 100


def avg_win(state: AccumulatorState) -> float:
    if state.win_count == 0:
        return 0.0
    return from_cents(state.win_sum_cents) / state.win_count


def avg_loss(state: AccumulatorState) -> float:
    """Average losing trade as a positive dollar amount"""
    if state.loss_count == 0:
        return 0.0
    return abs(from_cents(state.loss_sum_cents)) / state.loss_count


def risk_reward(state: AccumulatorState) -> float:
    return _ratio(avg_win(state), avg_loss(state))


def profit_factor(state: AccumulatorState) -> float:
    return _ratio(from_cents(state.win_sum_cents), abs(from_cents(state.loss_sum_cents)))


def expectancy(state: AccumulatorState) -> float:
    """Probability-weighted dollars per trade"""
    if state.trade_count == 0:
        return 0.0
    win_p = state.win_count / state.trade_count
    loss_p = 1 - win_p
    return win_p * avg_win(state) - loss_p * avg_loss(state)


def expectancy_r(state: AccumulatorState) -> float:
    """Expectancy expressed in units of the average loss"""
    loss = avg_loss(state)
    exp = expectancy(state)
    if loss > 0:
        return exp / loss
    return math.inf if exp > 0 else 0.0


def kelly_fraction(state: AccumulatorState) -> float:
    """
    Continuous Kelly approximation f* = mean / variance, clamped to [0, 1].

    Mean and sample variance are taken over per-trade dollar P&L. The
    variance comes from integer sums of cents so it is exact.
    """
    n = state.trade_count
    if n < 2:
        return 0.0
    s1 = state.total_pnl_cents
    s2 = state.sum_sq_cents
    var_cents = (n * s2 - s1 * s1) / (n * (n - 1))
    if var_cents <= 0:
        return 0.0
    mean = from_cents(s1) / n
    variance = var_cents / 10000
    return max(0.0, min(1.0, mean / variance))


def daily_series(daily_cents: Dict[str, int]) -> List[Tuple[str, float]]:
    """Daily cents map -> chronological (date, dollars) pairs"""
    return [(day, from_cents(cents)) for day, cents in sorted(daily_cents.items())]


def _daily_std(daily: np.ndarray) -> float:
    if len(daily) < 2:
        return 0.0
    return float(np.std(daily, ddof=1))


def sharpe_ratio(daily: Sequence[float], risk_free_rate: float = 0.0) -> float:
    """
    Sharpe ratio of daily P&L scaled by sqrt(min(252, days)).

    Args:
        daily: Daily P&L in dollars, chronological
        risk_free_rate: Annual rate, spread evenly over 252 trading days

    Returns:
        Sharpe ratio, 0 when the series has no dispersion
    """
    values = np.asarray(daily, dtype=float)
    n = len(values)
    std = _daily_std(values)
    if std <= 0:
        return 0.0
    daily_rf = risk_free_rate / TRADING_DAYS_PER_YEAR
    return float((values.mean() - daily_rf) / std * math.sqrt(min(TRADING_DAYS_PER_YEAR, n)))


def sortino_ratio(daily: Sequence[float], risk_free_rate: float = 0.0) -> float:
    """Sortino ratio: like Sharpe but the deviation only counts days below the risk-free return"""
    values = np.asarray(daily, dtype=float)
    n = len(values)
    if n == 0:
        return 0.0
    daily_rf = risk_free_rate / TRADING_DAYS_PER_YEAR
    downside = values[values < daily_rf] - daily_rf
    if len(downside) < 2:
        return 0.0
    down_dev = math.sqrt(float(np.sum(downside ** 2)) / len(downside))
    if down_dev <= 0:
        return 0.0
    return float((values.mean() - daily_rf) / down_dev * math.sqrt(min(TRADING_DAYS_PER_YEAR, n)))


def equity_curve(daily_cents: Dict[str, int]) -> List[EquityPoint]:
    """Cumulative P&L walk over days in chronological order"""
    points = []
    cum_cents = 0
    peak = 0.0
    for day, cents in sorted(daily_cents.items()):
        cum_cents += cents
        cum = from_cents(cum_cents)
        peak = max(peak, cum)
        dd = (peak - cum) / peak * 100 if peak > 0 else 0.0
        points.append(EquityPoint(date=day, pnl=cum, daily=from_cents(cents), drawdown=dd))
    return points


def max_drawdown_pct(curve: List[EquityPoint]) -> float:
    """Largest peak-to-trough drop as a percent of the peak cumulative P&L"""
    return max((p.drawdown for p in curve), default=0.0)


def consecutive_loss_probability(state: AccumulatorState, streak: int) -> float:
    """
    Chance (%) of `streak` losses in a row.

    Assumes trades are independent and uses the overall loss rate, so it is
    lossRate ** streak rather than anything measured from the history.
    """
    if state.trade_count == 0:
        return 0.0
    loss_p = 1 - state.win_count / state.trade_count
    return loss_p ** streak * 100


def sample_warnings(trade_count: int, num_days: int) -> List[MetricWarning]:
    """Low-sample warnings for the Kelly and daily-ratio metrics"""
    warnings = []
    if trade_count < MIN_SAMPLES['kelly']:
        warnings.append(MetricWarning(
            'kelly',
            f"Kelly based on {trade_count} trades ({MIN_SAMPLES['kelly']}+ recommended for reliability)",
        ))
    if num_days < MIN_SAMPLES['sharpe']:
        warnings.append(MetricWarning(
            'sharpe',
            f"Sharpe based on {num_days} trading days ({MIN_SAMPLES['sharpe']}+ recommended)",
        ))
    if num_days < MIN_SAMPLES['sortino']:
        warnings.append(MetricWarning(
            'sortino',
            f"Sortino based on {num_days} trading days ({MIN_SAMPLES['sortino']}+ recommended)",
        ))
    return warnings
