"""
Per-dimension breakdowns built from the accumulator buckets.

Bucket totals stay in cents until they are summarised here. Day and hour
breakdowns always return every slot (7 and 24) so callers can chart them
without filling gaps.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Tuple

import numpy as np

from accumulator import DAY_NAMES, DURATION_BINS, AccumulatorState, Bucket
from money import from_cents
from metrics import TRADING_DAYS_PER_YEAR


ROLLING_PERIODS = {'7d': 7, '30d': 30, '90d': 90}

MIN_CORRELATION_SAMPLES = 5


@dataclass
class BucketSummary:
    """Performance of one breakdown key"""
    name: str
    pnl: float
    count: int
    wins: int
    win_rate: float
    avg_r: float = 0.0
    avg_pnl: float = 0.0


@dataclass
class DurationStats:
    """Hold-time analysis for trades with both open and close timestamps"""
    count: int = 0
    avg_minutes: float = 0.0
    median_minutes: float = 0.0
    correlation: float = 0.0
    buckets: List[BucketSummary] = field(default_factory=list)


@dataclass
class RollingWindow:
    """Metrics over the most recent N trading days"""
    pnl: float = 0.0
    win_rate: float = 0.0
    expectancy: float = 0.0
    sharpe: float = 0.0
    days: int = 0


def summarize_bucket(name: str, bucket: Bucket) -> BucketSummary:
    pnl = from_cents(bucket.pnl_cents)
    return BucketSummary(
        name=name,
        pnl=pnl,
        count=bucket.count,
        wins=bucket.wins,
        win_rate=bucket.wins / bucket.count * 100 if bucket.count else 0.0,
        avg_r=bucket.avg_r,
        avg_pnl=pnl / bucket.count if bucket.count else 0.0,
    )


def by_day_of_week(state: AccumulatorState) -> List[BucketSummary]:
    """Sunday-first list of seven day-of-week summaries"""
    return [summarize_bucket(DAY_NAMES[i], b) for i, b in enumerate(state.by_day)]


def by_hour(state: AccumulatorState) -> List[BucketSummary]:
    return [summarize_bucket(f"{h}:00", b) for h, b in enumerate(state.by_hour)]


def by_key(buckets: Dict[str, Bucket]) -> Dict[str, BucketSummary]:
    """Summaries for an open-ended dimension, keys in sorted order"""
    return {key: summarize_bucket(key, buckets[key]) for key in sorted(buckets)}


def duration_stats(state: AccumulatorState) -> DurationStats:
    """
    Hold-time statistics.

    Args:
        state: Accumulator state holding (minutes, pnl cents) pairs

    Returns:
        DurationStats; the Pearson correlation between hold time and P&L is
        only computed with 5+ samples and is 0 otherwise
    """
    pairs = state.durations
    n = len(pairs)
    if n == 0:
        return DurationStats(
            buckets=[summarize_bucket(label, Bucket()) for label, _, _ in DURATION_BINS],
        )

    minutes = np.array([m for m, _ in pairs], dtype=float)
    pnls = np.array([from_cents(c) for _, c in pairs], dtype=float)

    return DurationStats(
        count=n,
        avg_minutes=math.fsum(minutes) / n,
        median_minutes=float(np.median(minutes)),
        correlation=pearson(minutes, pnls) if n >= MIN_CORRELATION_SAMPLES else 0.0,
        buckets=[
            summarize_bucket(label, state.by_duration[i])
            for i, (label, _, _) in enumerate(DURATION_BINS)
        ],
    )


def pearson(xs: np.ndarray, ys: np.ndarray) -> float:
    dx = xs - xs.mean()
    dy = ys - ys.mean()
    denom = math.sqrt(float(np.sum(dx * dx)) * float(np.sum(dy * dy)))
    if denom <= 0:
        return 0.0
    return float(np.sum(dx * dy)) / denom


def window_metrics(values: Sequence[float]) -> RollingWindow:
    """Win rate, expectancy and period Sharpe for a slice of daily P&L"""
    n = len(values)
    if n == 0:
        return RollingWindow()

    arr = np.asarray(values, dtype=float)
    wins = arr[arr > 0]
    losses = -arr[arr < 0]

    avg_win = float(wins.mean()) if len(wins) else 0.0
    avg_loss = float(losses.mean()) if len(losses) else 0.0
    std = float(np.std(arr, ddof=1)) if n > 1 else 0.0
    mean = float(arr.mean())

    return RollingWindow(
        pnl=math.fsum(values),
        win_rate=len(wins) / n * 100,
        expectancy=len(wins) / n * avg_win - len(losses) / n * avg_loss,
        sharpe=mean / std * math.sqrt(min(TRADING_DAYS_PER_YEAR, n)) if std > 0 else 0.0,
        days=n,
    )


def rolling_windows(daily: List[Tuple[str, float]]) -> Dict[str, RollingWindow]:
    """
    7/30/90-day windows over the last N daily entries.

    Args:
        daily: Chronological (date, dollars) pairs

    Returns:
        {'7d': RollingWindow, '30d': ..., '90d': ...}; all zero with fewer
        than two days of history
    """
    values = [pnl for _, pnl in daily]
    windows = {}
    for label, days in ROLLING_PERIODS.items():
        if len(values) < 2:
            windows[label] = RollingWindow()
        else:
            windows[label] = window_metrics(values[-days:])
    return windows


def playbook_day_matrix(state: AccumulatorState) -> Dict[str, Dict[str, BucketSummary]]:
    """Nested {playbook: {day name: summary}} with all seven days present"""
    matrix = {}
    for playbook in sorted(state.playbook_day):
        cells = state.playbook_day[playbook]
        matrix[playbook] = {
            DAY_NAMES[d]: summarize_bucket(DAY_NAMES[d], cells[d]) for d in range(7)
        }
    return matrix
