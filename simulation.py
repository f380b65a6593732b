"""
Monte Carlo Simulation Engine
Bootstrap risk-of-ruin from per-trade P&L and pass/fail projection of a
running prop firm evaluation from historical daily P&L.
"""

from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from evaluation import ACTIVE, FAILED, PASSED, EvaluationProfile, EvaluationState
from metrics import MIN_SAMPLES, MetricWarning
from money import from_cents, to_cents


MIN_CAPITAL_PROXY = 1000.0
CAPITAL_PROXY_LOSS_MULTIPLE = 20

# Fixed simplification: any simulated calendar day has a trade with this probability
TRADING_DAY_PROBABILITY = 0.3
DEFAULT_HORIZON_DAYS = 60
MIN_PREDICTION_SAMPLES = 3

PERCENTILES = (10, 25, 50, 75, 90)


@dataclass
class MonteCarloResult:
    """Aggregate results of the risk-of-ruin simulation"""
    risk_of_ruin: float = 0.0
    runs: int = 0
    ruin_count: int = 0
    sequence_length: int = 0
    ruin_threshold: float = 0.0
    starting_capital: float = 0.0
    p10: float = 0.0
    p25: float = 0.0
    median: float = 0.0
    p75: float = 0.0
    p90: float = 0.0
    confidence: str = 'low'
    warnings: List[MetricWarning] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class PredictionResult:
    """Projected outcome of the remaining evaluation period"""
    pass_rate: float = 0.0
    fail_rate: float = 0.0
    active_rate: float = 0.0
    runs: int = 0
    avg_days_to_pass: float = 0.0
    p10: float = 0.0
    p25: float = 0.0
    median: float = 0.0
    p75: float = 0.0
    p90: float = 0.0
    pnl_distribution: List[float] = field(default_factory=list)
    confidence: str = 'low'
    insufficient: bool = False

    def to_dict(self) -> Dict:
        return asdict(self)


def _percentiles(values: Sequence[float]) -> Dict[str, float]:
    p10, p25, p50, p75, p90 = np.percentile(np.asarray(values, dtype=float), PERCENTILES)
    return {'p10': float(p10), 'p25': float(p25), 'median': float(p50),
            'p75': float(p75), 'p90': float(p90)}


def starting_capital_proxy(pnls: Sequence[float]) -> float:
    """
    Stand-in account size when none is supplied: max(1000, |total| + 20 x avg loss).

    This is a heuristic, not a measured account balance; risk-of-ruin numbers
    built on it are only comparable between runs that use the same proxy.
    """
    cents = [to_cents(p) for p in pnls]
    losses = [c for c in cents if c < 0]
    avg_loss = abs(from_cents(sum(losses))) / len(losses) if losses else 0.0
    return max(MIN_CAPITAL_PROXY, abs(from_cents(sum(cents))) + avg_loss * CAPITAL_PROXY_LOSS_MULTIPLE)


def run_single_ruin_path(
    pnls: np.ndarray,
    starting_capital: float,
    sequence_length: int,
    ruin_threshold: float,
    rng: np.random.Generator
) -> Tuple[bool, float]:
    """
    Run a single bootstrap path of resampled trades.

    Returns:
        (ruined, final equity). The path stops at the first trade that takes
        equity to zero or drops it `ruin_threshold` below its running peak.
    """
    draws = rng.choice(pnls, size=sequence_length, replace=True).tolist()

    equity = starting_capital
    peak = starting_capital
    for pnl in draws:
        equity += pnl
        if equity > peak:
            peak = equity
        if equity <= 0 or (peak > 0 and (peak - equity) / peak >= ruin_threshold):
            return True, equity
    return False, equity


def simulate_risk_of_ruin(
    pnls: Sequence[float],
    runs: int = 2000,
    sequence_length: int = 100,
    ruin_threshold: float = 0.30,
    starting_capital: Optional[float] = None,
    rng: Optional[np.random.Generator] = None
) -> MonteCarloResult:
    """
    Estimate the probability of ruin by bootstrapping historical trade P&L.

    Args:
        pnls: Per-trade P&L in dollars (not daily aggregated)
        runs: Number of simulated paths
        sequence_length: Trades drawn per path
        ruin_threshold: Drawdown from peak (fraction) that counts as ruin
        starting_capital: Account size; the heuristic proxy is used when omitted
        rng: Random generator, for reproducible runs

    Returns:
        MonteCarloResult; with fewer than 30 trades a warning is attached
    """
    n = len(pnls)
    warnings = []
    if n < MIN_SAMPLES['monte_carlo']:
        warnings.append(MetricWarning(
            'monte_carlo',
            f"Monte Carlo based on {n} trades ({MIN_SAMPLES['monte_carlo']}+ recommended)",
        ))

    capital = starting_capital if starting_capital is not None else starting_capital_proxy(pnls)
    confidence = 'high' if n >= 100 else 'medium' if n >= MIN_SAMPLES['monte_carlo'] else 'low'

    result = MonteCarloResult(
        runs=runs,
        sequence_length=sequence_length,
        ruin_threshold=ruin_threshold,
        starting_capital=capital,
        confidence=confidence,
        warnings=warnings,
    )
    if n == 0 or runs <= 0:
        return result

    rng = rng if rng is not None else np.random.default_rng()
    samples = np.asarray(pnls, dtype=float)

    ruin_count = 0
    final_equity = []
    for _ in range(runs):
        ruined, equity = run_single_ruin_path(samples, capital, sequence_length, ruin_threshold, rng)
        if ruined:
            ruin_count += 1
        final_equity.append(equity)

    result.ruin_count = ruin_count
    result.risk_of_ruin = ruin_count / runs * 100
    for name, value in _percentiles(final_equity).items():
        setattr(result, name, value)

    logger.debug(
        f"Risk of ruin: {ruin_count}/{runs} paths ruined "
        f"(capital ${capital:,.0f}, {sequence_length} trades, {ruin_threshold:.0%} DD)"
    )
    return result


def run_single_projection(
    history_cents: np.ndarray,
    state: EvaluationState,
    profile: EvaluationProfile,
    horizon: int,
    rng: np.random.Generator
) -> Tuple[str, int, int]:
    """
    Simulate the rest of an evaluation from its current state.

    Returns:
        (outcome, days elapsed when passed, final cumulative P&L in cents)
    """
    trading_days = rng.random(horizon) < TRADING_DAY_PROBABILITY
    picks = rng.integers(0, len(history_cents), size=horizon)

    acct_c = to_cents(profile.account_size)
    daily_limit_c = to_cents(profile.daily_limit_abs)
    max_dd_c = to_cents(profile.max_dd_abs)
    target_c = to_cents(profile.target_abs)

    sim_pnl = to_cents(state.cum_pnl)
    sim_equity = to_cents(state.current_equity) or acct_c
    sim_high = max(to_cents(state.equity_high) or acct_c, sim_equity)
    sim_days = state.days_traded

    for day in range(horizon):
        if not trading_days[day]:
            continue

        day_c = int(history_cents[picks[day]])
        sim_pnl += day_c
        sim_equity += day_c
        sim_days += 1
        if sim_equity > sim_high:
            sim_high = sim_equity

        # Check daily loss breach
        if daily_limit_c > 0 and day_c < 0 and -day_c >= daily_limit_c:
            return FAILED, 0, sim_pnl

        # Check drawdown breach
        dd = sim_high - sim_equity if profile.trailing_dd else acct_c - sim_equity
        if max_dd_c > 0 and dd >= max_dd_c:
            return FAILED, 0, sim_pnl

        # Check if profit target reached
        if target_c > 0 and sim_pnl >= target_c and sim_days >= profile.min_trading_days:
            return PASSED, day + 1, sim_pnl

    return ACTIVE, 0, sim_pnl


def predict_evaluation_outcome(
    daily_pnls: Sequence[float],
    state: EvaluationState,
    profile: EvaluationProfile,
    runs: int = 5000,
    rng: Optional[np.random.Generator] = None
) -> PredictionResult:
    """
    Project pass/fail odds for the remaining evaluation period.

    Each run starts from the current evaluation state and walks up to the
    remaining calendar days (60 when the evaluation is unlimited). A day
    holds a trade with fixed probability 0.3; trading days resample one
    historical non-zero daily P&L.

    Args:
        daily_pnls: Historical daily P&L in dollars
        state: Current EvaluationState
        profile: Evaluation rules
        runs: Number of simulated continuations
        rng: Random generator, for reproducible runs

    Returns:
        PredictionResult; flagged insufficient with fewer than 3 non-zero days,
        empty but not flagged when runs is 0
    """
    history = [p for p in (daily_pnls or []) if p is not None and to_cents(p) != 0]
    if len(history) < MIN_PREDICTION_SAMPLES or state is None or profile is None:
        return PredictionResult(insufficient=True)
    if runs <= 0:
        return PredictionResult()

    if profile.evaluation_days > 0:
        horizon = max(1, profile.evaluation_days - state.calendar_days)
    else:
        horizon = DEFAULT_HORIZON_DAYS

    rng = rng if rng is not None else np.random.default_rng()
    history_cents = np.array([to_cents(p) for p in history], dtype=np.int64)

    outcomes = {PASSED: 0, FAILED: 0, ACTIVE: 0}
    days_to_pass = []
    final_pnls = []
    for _ in range(runs):
        outcome, days, final_c = run_single_projection(history_cents, state, profile, horizon, rng)
        outcomes[outcome] += 1
        if outcome == PASSED:
            days_to_pass.append(days)
        final_pnls.append(from_cents(final_c))

    ordered = sorted(final_pnls)
    deciles = [ordered[int(i / 10 * len(ordered))] for i in range(10)]

    n = len(history)
    result = PredictionResult(
        pass_rate=outcomes[PASSED] / runs * 100,
        fail_rate=outcomes[FAILED] / runs * 100,
        active_rate=outcomes[ACTIVE] / runs * 100,
        runs=runs,
        avg_days_to_pass=float(np.mean(days_to_pass)) if days_to_pass else 0.0,
        pnl_distribution=deciles,
        confidence='high' if n >= 30 else 'medium' if n >= 15 else 'low',
        **_percentiles(final_pnls),
    )

    logger.debug(
        f"Evaluation projection over {horizon} days: pass {result.pass_rate:.1f}% "
        f"fail {result.fail_rate:.1f}% active {result.active_rate:.1f}%"
    )
    return result
