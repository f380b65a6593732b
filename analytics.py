"""
Trading performance analytics.

Entry points used by the journal:

    compute_statistics(trades, settings)           -> StatisticsResult
    evaluate_profile(trades, profile)              -> EvaluationState
    predict_outcome(daily_pnls, state, profile)    -> PredictionResult

Everything is computed fresh from an immutable snapshot of trades; no
state survives between calls.
"""

import math
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Union

import numpy as np
from loguru import logger

import breakdowns
import evaluation
import metrics
from accumulator import accumulate
from breakdowns import BucketSummary, DurationStats, RollingWindow
from evaluation import EvaluationProfile, EvaluationState
from metrics import EquityPoint, MetricWarning
from money import from_cents
from settings import AnalyticsSettings, get_settings
from simulation import MonteCarloResult, PredictionResult, predict_evaluation_outcome, simulate_risk_of_ruin
from trades import normalize_trades


SettingsLike = Union[AnalyticsSettings, Mapping, None]


@dataclass
class StatisticsResult:
    """Aggregate performance statistics for a set of trades"""
    trade_count: int = 0
    skipped_count: int = 0
    win_count: int = 0
    loss_count: int = 0
    zero_count: int = 0
    total_pnl: float = 0.0
    total_fees: float = 0.0
    win_rate: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0
    risk_reward: float = 0.0
    profit_factor: float = 0.0
    expectancy: float = 0.0
    expectancy_r: float = 0.0
    kelly: float = 0.0
    kelly_suggested: float = 0.0
    sharpe: float = 0.0
    sortino: float = 0.0
    max_drawdown_pct: float = 0.0
    best_trade: float = 0.0
    worst_trade: float = 0.0
    avg_r: float = 0.0
    rule_breaks: int = 0
    best_streak: int = 0
    worst_streak: int = 0
    current_streak: int = 0
    consecutive_loss_3: float = 0.0
    consecutive_loss_5: float = 0.0
    risk_of_ruin: float = 0.0
    monte_carlo: MonteCarloResult = field(default_factory=MonteCarloResult)
    equity_curve: List[EquityPoint] = field(default_factory=list)
    daily_pnl: Dict[str, float] = field(default_factory=dict)
    by_day: List[BucketSummary] = field(default_factory=list)
    by_hour: List[BucketSummary] = field(default_factory=list)
    by_strategy: Dict[str, BucketSummary] = field(default_factory=dict)
    by_emotion: Dict[str, BucketSummary] = field(default_factory=dict)
    by_symbol: Dict[str, BucketSummary] = field(default_factory=dict)
    by_asset_class: Dict[str, BucketSummary] = field(default_factory=dict)
    duration: DurationStats = field(default_factory=DurationStats)
    rolling: Dict[str, RollingWindow] = field(default_factory=dict)
    playbook_day_matrix: Dict[str, Dict[str, BucketSummary]] = field(default_factory=dict)
    warnings: List[MetricWarning] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return asdict(self)


def resolve_settings(settings: SettingsLike = None) -> AnalyticsSettings:
    """Accept an AnalyticsSettings, a plain mapping of its fields, or None"""
    if isinstance(settings, AnalyticsSettings):
        return settings
    if settings is None:
        return get_settings()
    return AnalyticsSettings(**dict(settings))


def _rng(settings: AnalyticsSettings, rng: Optional[np.random.Generator]) -> np.random.Generator:
    if rng is not None:
        return rng
    return np.random.default_rng(settings.random_seed)


def compute_statistics(
    trades: Iterable,
    settings: SettingsLike = None,
    rng: Optional[np.random.Generator] = None
) -> StatisticsResult:
    """
    Compute performance statistics, breakdowns and risk of ruin.

    Args:
        trades: TradeRecords or raw trade dicts
        settings: AnalyticsSettings or mapping of its fields
        rng: Random generator for the Monte Carlo part

    Returns:
        StatisticsResult; an empty trade list gives the all-zero result
    """
    cfg = resolve_settings(settings)
    records = normalize_trades(trades)
    state = accumulate(records)

    if state.skipped_count:
        logger.warning(f"Skipped {state.skipped_count} trades with no P&L")

    if state.trade_count == 0:
        return StatisticsResult(
            skipped_count=state.skipped_count,
            by_day=breakdowns.by_day_of_week(state),
            by_hour=breakdowns.by_hour(state),
            duration=breakdowns.duration_stats(state),
            rolling=breakdowns.rolling_windows([]),
        )

    daily = metrics.daily_series(state.daily_cents)
    daily_values = [pnl for _, pnl in daily]
    curve = metrics.equity_curve(state.daily_cents)
    kelly = metrics.kelly_fraction(state)

    trade_pnls = [from_cents(c) for c in state.pnl_cents]
    monte_carlo = simulate_risk_of_ruin(
        trade_pnls,
        runs=cfg.monte_carlo_runs,
        sequence_length=cfg.monte_carlo_sequence_length,
        ruin_threshold=cfg.ruin_drawdown_threshold,
        rng=_rng(cfg, rng),
    )

    warnings = metrics.sample_warnings(state.trade_count, len(daily)) + monte_carlo.warnings
    for w in warnings:
        logger.debug(f"{w.metric}: {w.message}")

    logger.debug(
        f"Computed statistics for {state.trade_count} trades over {len(daily)} trading days"
    )

    return StatisticsResult(
        trade_count=state.trade_count,
        skipped_count=state.skipped_count,
        win_count=state.win_count,
        loss_count=state.loss_count,
        zero_count=state.zero_count,
        total_pnl=from_cents(state.total_pnl_cents),
        total_fees=from_cents(state.total_fees_cents),
        win_rate=metrics.win_rate(state),
        avg_win=metrics.avg_win(state),
        avg_loss=metrics.avg_loss(state),
        risk_reward=metrics.risk_reward(state),
        profit_factor=metrics.profit_factor(state),
        expectancy=metrics.expectancy(state),
        expectancy_r=metrics.expectancy_r(state),
        kelly=kelly,
        kelly_suggested=kelly * cfg.kelly_multiplier,
        sharpe=metrics.sharpe_ratio(daily_values, cfg.risk_free_rate),
        sortino=metrics.sortino_ratio(daily_values, cfg.risk_free_rate),
        max_drawdown_pct=metrics.max_drawdown_pct(curve),
        best_trade=from_cents(state.best_trade_cents or 0),
        worst_trade=from_cents(state.worst_trade_cents or 0),
        avg_r=math.fsum(state.r_values) / len(state.r_values) if state.r_values else 0.0,
        rule_breaks=state.rule_breaks,
        best_streak=state.best_streak,
        worst_streak=state.worst_streak,
        current_streak=state.current_streak,
        consecutive_loss_3=metrics.consecutive_loss_probability(state, 3),
        consecutive_loss_5=metrics.consecutive_loss_probability(state, 5),
        risk_of_ruin=monte_carlo.risk_of_ruin,
        monte_carlo=monte_carlo,
        equity_curve=curve,
        daily_pnl=dict(daily),
        by_day=breakdowns.by_day_of_week(state),
        by_hour=breakdowns.by_hour(state),
        by_strategy=breakdowns.by_key(state.by_strategy),
        by_emotion=breakdowns.by_key(state.by_emotion),
        by_symbol=breakdowns.by_key(state.by_symbol),
        by_asset_class=breakdowns.by_key(state.by_asset_class),
        duration=breakdowns.duration_stats(state),
        rolling=breakdowns.rolling_windows(daily),
        playbook_day_matrix=breakdowns.playbook_day_matrix(state),
        warnings=warnings,
    )


def evaluate_profile(
    trades: Iterable,
    profile: Union[EvaluationProfile, Mapping, None],
    now: Optional[datetime] = None
) -> EvaluationState:
    """Evaluate trades against a prop firm profile (profile may be a journal dict)"""
    if profile is not None and not isinstance(profile, EvaluationProfile):
        profile = EvaluationProfile.from_dict(dict(profile))
    return evaluation.evaluate_profile(normalize_trades(trades), profile, now=now)


def predict_outcome(
    daily_pnls: Iterable[float],
    state: EvaluationState,
    profile: Union[EvaluationProfile, Mapping],
    runs: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
    settings: SettingsLike = None
) -> PredictionResult:
    """Monte Carlo projection of the remaining evaluation period"""
    cfg = resolve_settings(settings)
    if profile is not None and not isinstance(profile, EvaluationProfile):
        profile = EvaluationProfile.from_dict(dict(profile))
    return predict_evaluation_outcome(
        list(daily_pnls or []),
        state,
        profile,
        runs=runs if runs is not None else cfg.prediction_runs,
        rng=_rng(cfg, rng),
    )
