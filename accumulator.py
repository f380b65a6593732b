"""
Single-pass trade accumulator.

One O(n) loop over the trades fills every integer-cent sum, count,
extreme and breakdown bucket at once. Streaks need chronological order and
are computed in a separate sorted pass. Nothing in here depends on the
order of the input list.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from money import to_cents
from trades import TradeRecord


DAY_NAMES = ['Sun', 'Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat']

# (label, lower bound minutes inclusive, upper bound minutes exclusive)
DURATION_BINS = [
    ('< 5m', 0, 5),
    ('5-15m', 5, 15),
    ('15-30m', 15, 30),
    ('30-60m', 30, 60),
    ('1-4h', 60, 240),
    ('4h-1d', 240, 1440),
    ('1d+', 1440, float('inf')),
]

UNTAGGED = 'untagged'


@dataclass
class Bucket:
    """Running totals for one breakdown key"""
    pnl_cents: int = 0
    count: int = 0
    wins: int = 0
    r_values: List[float] = field(default_factory=list)

    def add(self, pnl_cents: int, r_multiple: Optional[float] = None) -> None:
        self.pnl_cents += pnl_cents
        self.count += 1
        if pnl_cents > 0:
            self.wins += 1
        if r_multiple is not None:
            self.r_values.append(r_multiple)

    @property
    def avg_r(self) -> float:
        # fsum is exactly rounded, so the mean does not depend on add order
        return math.fsum(self.r_values) / len(self.r_values) if self.r_values else 0.0


@dataclass
class AccumulatorState:
    """Everything the derived metrics and breakdowns are computed from"""
    trade_count: int = 0
    skipped_count: int = 0
    total_pnl_cents: int = 0
    total_fees_cents: int = 0
    sum_sq_cents: int = 0
    win_count: int = 0
    loss_count: int = 0
    zero_count: int = 0
    win_sum_cents: int = 0
    loss_sum_cents: int = 0  # negative or zero
    best_trade_cents: Optional[int] = None
    worst_trade_cents: Optional[int] = None
    r_values: List[float] = field(default_factory=list)
    rule_breaks: int = 0

    # Per-trade P&L in cents, sorted so sampling does not depend on input order
    pnl_cents: List[int] = field(default_factory=list)
    daily_cents: Dict[str, int] = field(default_factory=dict)

    # Bounded dimensions are fixed arrays, open-ended ones are dicts
    by_day: List[Bucket] = field(default_factory=lambda: [Bucket() for _ in range(7)])
    by_hour: List[Bucket] = field(default_factory=lambda: [Bucket() for _ in range(24)])
    by_strategy: Dict[str, Bucket] = field(default_factory=dict)
    by_emotion: Dict[str, Bucket] = field(default_factory=dict)
    by_symbol: Dict[str, Bucket] = field(default_factory=dict)
    by_asset_class: Dict[str, Bucket] = field(default_factory=dict)
    by_duration: List[Bucket] = field(
        default_factory=lambda: [Bucket() for _ in range(len(DURATION_BINS))]
    )
    playbook_day: Dict[str, List[Bucket]] = field(default_factory=dict)

    # (hold minutes, pnl cents) pairs for duration statistics
    durations: List[Tuple[float, int]] = field(default_factory=list)

    best_streak: int = 0
    worst_streak: int = 0
    current_streak: int = 0


def day_index(ts) -> int:
    """Day of week with Sunday = 0"""
    return (ts.weekday() + 1) % 7


def day_key(ts) -> str:
    return ts.date().isoformat()


def duration_bin(minutes: float) -> int:
    for i, (_, low, high) in enumerate(DURATION_BINS):
        if low <= minutes < high:
            return i
    return len(DURATION_BINS) - 1


def _bucket(mapping: Dict[str, Bucket], key: str) -> Bucket:
    bucket = mapping.get(key)
    if bucket is None:
        bucket = mapping[key] = Bucket()
    return bucket


def accumulate(trades: Iterable[TradeRecord]) -> AccumulatorState:
    """
    Accumulate trades into integer-cent sums and breakdown buckets.

    Trades with no P&L are skipped entirely. Trades with no date still count
    toward totals but are left out of every date-keyed breakdown.

    Args:
        trades: Normalized trade records, in any order

    Returns:
        AccumulatorState with streaks already filled in
    """
    state = AccumulatorState()
    dated = []

    for t in trades:
        if t.pnl is None:
            state.skipped_count += 1
            continue

        pnl_c = to_cents(t.pnl)
        r = t.r_multiple

        state.trade_count += 1
        state.total_pnl_cents += pnl_c
        state.total_fees_cents += to_cents(t.fees)
        state.sum_sq_cents += pnl_c * pnl_c
        state.pnl_cents.append(pnl_c)

        if pnl_c > 0:
            state.win_count += 1
            state.win_sum_cents += pnl_c
            if state.best_trade_cents is None or pnl_c > state.best_trade_cents:
                state.best_trade_cents = pnl_c
        elif pnl_c < 0:
            state.loss_count += 1
            state.loss_sum_cents += pnl_c
            if state.worst_trade_cents is None or pnl_c < state.worst_trade_cents:
                state.worst_trade_cents = pnl_c
        else:
            state.zero_count += 1

        if r is not None:
            state.r_values.append(r)

        if not t.followed_rules:
            state.rule_breaks += 1

        playbook = t.playbook or UNTAGGED
        _bucket(state.by_strategy, playbook).add(pnl_c, r)
        _bucket(state.by_emotion, t.emotion or UNTAGGED).add(pnl_c, r)
        _bucket(state.by_symbol, (t.symbol or 'unknown').upper()).add(pnl_c, r)
        _bucket(state.by_asset_class, t.asset_class or UNTAGGED).add(pnl_c, r)

        if t.date is None:
            continue

        # Date-keyed breakdowns
        dated.append(t)
        key = day_key(t.date)
        state.daily_cents[key] = state.daily_cents.get(key, 0) + pnl_c

        dow = day_index(t.date)
        state.by_day[dow].add(pnl_c, r)
        state.by_hour[t.date.hour].add(pnl_c, r)

        cells = state.playbook_day.get(playbook)
        if cells is None:
            cells = state.playbook_day[playbook] = [Bucket() for _ in range(7)]
        cells[dow].add(pnl_c, r)

        if t.close_date is not None and t.close_date > t.date:
            minutes = (t.close_date - t.date).total_seconds() / 60
            state.durations.append((minutes, pnl_c))
            state.by_duration[duration_bin(minutes)].add(pnl_c, r)

    state.pnl_cents.sort()
    state.durations.sort()
    state.best_streak, state.worst_streak, state.current_streak = compute_streaks(dated)
    return state


def compute_streaks(trades: List[TradeRecord]) -> Tuple[int, int, int]:
    """
    Win/loss streaks over trades in date order.

    Break-even trades end both runs. Trades sharing a timestamp are ordered
    by id and then P&L so the result does not depend on input order.

    Returns:
        (best win streak, worst loss streak, current streak) where the current
        streak is positive for wins and negative for losses
    """
    ordered = sorted(
        (t for t in trades if t.date is not None and t.pnl is not None),
        key=lambda t: (t.date, t.id, to_cents(t.pnl)),
    )

    best = worst = 0
    cur_win = cur_loss = 0
    for t in ordered:
        pnl_c = to_cents(t.pnl)
        if pnl_c > 0:
            cur_win += 1
            cur_loss = 0
            best = max(best, cur_win)
        elif pnl_c < 0:
            cur_loss += 1
            cur_win = 0
            worst = max(worst, cur_loss)
        else:
            cur_win = cur_loss = 0

    current = cur_win if cur_win else -cur_loss
    return best, worst, current
