"""
Prop firm evaluation tracking.

Walks a trader's daily P&L against a funded-account rule profile (daily
loss limit, trailing or static max drawdown, profit target, day counts)
and derives whether the evaluation is active, passed or failed.
"""

import json
from dataclasses import dataclass, field, asdict
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from loguru import logger

from accumulator import day_key
from errors import ProfileError, UnknownPresetError
from money import from_cents, to_cents
from trades import TradeRecord, parse_timestamp


PRESETS_PATH = Path(__file__).parent / "prop_firms.json"

LIMIT_UNITS = ('pct', 'abs')

ACTIVE = 'active'
PASSED = 'passed'
FAILED = 'failed'

# journal camelCase profile keys -> EvaluationProfile fields
PROFILE_ALIASES = {
    'accountSize': 'account_size',
    'dailyLossLimit': 'daily_loss_limit',
    'dailyLossType': 'daily_loss_type',
    'maxDrawdown': 'max_drawdown',
    'maxDrawdownType': 'max_drawdown_type',
    'profitTarget': 'profit_target',
    'profitTargetType': 'profit_target_type',
    'evaluationDays': 'evaluation_days',
    'minTradingDays': 'min_trading_days',
    'startDate': 'start_date',
    'trailingDD': 'trailing_dd',
    'firmId': 'firm_id',
}


@dataclass
class EvaluationProfile:
    """Rule set of a funded-account challenge"""
    account_size: float
    daily_loss_limit: float = 0.0
    daily_loss_type: str = 'abs'
    max_drawdown: float = 0.0
    max_drawdown_type: str = 'abs'
    profit_target: float = 0.0
    profit_target_type: str = 'abs'
    evaluation_days: int = 0          # 0 = unlimited
    min_trading_days: int = 0
    start_date: Optional[datetime] = None
    trailing_dd: bool = False         # True = drawdown trails the equity high
    name: str = 'Custom Evaluation'
    firm_id: str = 'custom'
    rules: List[str] = field(default_factory=list)

    def __post_init__(self):
        for unit_field in ('daily_loss_type', 'max_drawdown_type', 'profit_target_type'):
            unit = getattr(self, unit_field)
            if unit not in LIMIT_UNITS:
                raise ProfileError(f"{unit_field}: '{unit}' must be one of {', '.join(LIMIT_UNITS)}")
        self.start_date = parse_timestamp(self.start_date)

    def resolve(self, value: float, unit: str) -> float:
        """Convert a pct-of-account limit to dollars"""
        if unit == 'pct':
            return self.account_size * (value / 100)
        return value

    @property
    def daily_limit_abs(self) -> float:
        return self.resolve(self.daily_loss_limit, self.daily_loss_type)

    @property
    def max_dd_abs(self) -> float:
        return self.resolve(self.max_drawdown, self.max_drawdown_type)

    @property
    def target_abs(self) -> float:
        return self.resolve(self.profit_target, self.profit_target_type)

    @classmethod
    def from_dict(cls, data: Dict, strict: bool = False) -> 'EvaluationProfile':
        """
        Build a profile from a journal or preset mapping.

        Args:
            data: Profile mapping, camelCase or snake_case keys
            strict: Reject profiles without a positive account size

        Returns:
            EvaluationProfile
        """
        known = set(cls.__dataclass_fields__)
        values = {}
        for key, value in data.items():
            name = PROFILE_ALIASES.get(key, key)
            if name in known and value is not None:
                values[name] = value

        account_size = float(values.get('account_size') or 0)
        if strict and account_size <= 0:
            raise ProfileError(f"account_size must be positive, got {account_size}")
        values['account_size'] = account_size

        for name in ('daily_loss_limit', 'max_drawdown', 'profit_target'):
            if name in values:
                values[name] = float(values[name])
        for name in ('evaluation_days', 'min_trading_days'):
            if name in values:
                values[name] = int(values[name])
        if 'rules' in values:
            values['rules'] = list(values['rules'])
        return cls(**values)


@dataclass
class EvaluationDay:
    """One step of the evaluation walk"""
    date: str
    pnl: float
    equity: float
    equity_high: float
    drawdown: float


@dataclass
class EvaluationState:
    """Where an evaluation stands after replaying the trade history"""
    cum_pnl: float = 0.0
    daily_pnl: float = 0.0              # today's P&L
    trailing_dd: float = 0.0            # drawdown after the last traded day
    max_trailing_dd: float = 0.0
    equity_high: float = 0.0            # only moves with a trailing drawdown
    current_equity: float = 0.0
    days_traded: int = 0
    calendar_days: int = 0
    daily_breached: bool = False
    drawdown_breached: bool = False
    target_reached: bool = False
    min_days_met: bool = False
    period_expired: bool = False
    status: str = ACTIVE
    fail_reason: Optional[str] = None
    daily_progress: float = 0.0
    dd_progress: float = 0.0
    target_progress: float = 0.0
    daily_limit_abs: float = 0.0
    max_dd_abs: float = 0.0
    target_abs: float = 0.0
    daily_pnl_by_date: Dict[str, float] = field(default_factory=dict)
    walk: List[EvaluationDay] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return asdict(self)


def _progress(value: float, limit: float) -> float:
    """Percent of limit used, clamped to [0, 100]"""
    if limit <= 0:
        return 0.0
    return min(100.0, max(0.0, value / limit * 100))


def _calendar_days(start: Optional[datetime], days: List[str], now: datetime) -> int:
    if start is not None:
        return max(0, (now - start).days + 1)
    if not days:
        return 0
    first = datetime.fromisoformat(days[0])
    last = datetime.fromisoformat(days[-1])
    return (last - first).days + 1


def evaluate_profile(
    trades: Iterable[TradeRecord],
    profile: Optional[EvaluationProfile],
    now: Optional[datetime] = None
) -> EvaluationState:
    """
    Replay trades day by day against an evaluation profile.

    A breach is recorded the first time it happens but the walk keeps going
    so max_trailing_dd covers the whole history. Status is decided after
    the walk: failed on any breach, then passed if the target and minimum
    days are met, then failed if the period ran out, otherwise active.

    Args:
        trades: Normalized trades; only those on/after profile.start_date count
        profile: Evaluation rules
        now: Clock used for calendar days and today's P&L (defaults to now)

    Returns:
        EvaluationState
    """
    trades = list(trades or [])
    if not trades or profile is None:
        account = profile.account_size if profile is not None else 0.0
        return EvaluationState(equity_high=account, current_equity=account)

    now = (now or datetime.now()).replace(tzinfo=None)
    start = profile.start_date

    acct_c = to_cents(profile.account_size)
    daily_limit_c = to_cents(profile.daily_limit_abs)
    max_dd_c = to_cents(profile.max_dd_abs)
    target_c = to_cents(profile.target_abs)

    # Daily P&L aggregation (integer cents)
    daily_cents = {}
    for t in trades:
        if t.pnl is None or t.date is None:
            continue
        if start is not None and t.date < start:
            continue
        key = day_key(t.date)
        daily_cents[key] = daily_cents.get(key, 0) + to_cents(t.pnl)

    days = sorted(daily_cents)

    equity = acct_c
    equity_high = acct_c
    current_dd = 0
    max_dd = 0
    daily_breached = False
    drawdown_breached = False
    fail_reason = None
    walk = []

    for day in days:
        day_c = daily_cents[day]
        equity += day_c

        if profile.trailing_dd:
            equity_high = max(equity_high, equity)
            current_dd = equity_high - equity
        else:
            # Static drawdown: measured from the starting balance
            current_dd = acct_c - equity
        max_dd = max(max_dd, current_dd)

        if daily_limit_c > 0 and day_c < 0 and -day_c >= daily_limit_c:
            daily_breached = True
            if fail_reason is None:
                fail_reason = (
                    f"Daily loss limit breached on {day}: "
                    f"-${from_cents(-day_c):,.2f} vs -${from_cents(daily_limit_c):,.2f} limit"
                )

        if max_dd_c > 0 and current_dd >= max_dd_c:
            drawdown_breached = True
            if fail_reason is None:
                fail_reason = (
                    f"Max drawdown breached on {day}: "
                    f"${from_cents(current_dd):,.2f} vs ${from_cents(max_dd_c):,.2f} limit"
                )

        walk.append(EvaluationDay(
            date=day,
            pnl=from_cents(day_c),
            equity=from_cents(equity),
            equity_high=from_cents(equity_high),
            drawdown=from_cents(current_dd),
        ))

    cum_c = equity - acct_c
    calendar_days = _calendar_days(start, days, now)
    days_traded = len(days)
    target_reached = target_c > 0 and cum_c >= target_c
    min_days_met = days_traded >= profile.min_trading_days
    period_expired = profile.evaluation_days > 0 and calendar_days > profile.evaluation_days

    status = ACTIVE
    if daily_breached or drawdown_breached:
        status = FAILED
    elif target_reached and min_days_met:
        status = PASSED
    elif period_expired and not target_reached:
        status = FAILED
        fail_reason = (
            f"Evaluation period expired without reaching target "
            f"({calendar_days}/{profile.evaluation_days} days)"
        )

    today_c = daily_cents.get(now.date().isoformat(), 0)

    if status != ACTIVE:
        logger.info(f"Evaluation '{profile.name}' {status}: {fail_reason or 'target reached'}")
    else:
        logger.debug(f"Evaluation '{profile.name}' active after {days_traded} trading days")

    return EvaluationState(
        cum_pnl=from_cents(cum_c),
        daily_pnl=from_cents(today_c),
        trailing_dd=from_cents(current_dd),
        max_trailing_dd=from_cents(max_dd),
        equity_high=from_cents(equity_high),
        current_equity=from_cents(equity),
        days_traded=days_traded,
        calendar_days=calendar_days,
        daily_breached=daily_breached,
        drawdown_breached=drawdown_breached,
        target_reached=target_reached,
        min_days_met=min_days_met,
        period_expired=period_expired,
        status=status,
        fail_reason=fail_reason,
        daily_progress=_progress(from_cents(max(0, -today_c)), profile.daily_limit_abs),
        dd_progress=_progress(from_cents(current_dd), profile.max_dd_abs),
        target_progress=_progress(from_cents(max(0, cum_c)), profile.target_abs),
        daily_limit_abs=profile.daily_limit_abs,
        max_dd_abs=profile.max_dd_abs,
        target_abs=profile.target_abs,
        daily_pnl_by_date={day: from_cents(daily_cents[day]) for day in days},
        walk=walk,
    )


def load_prop_firms(path: Optional[Path] = None) -> Dict[str, Dict]:
    """Load prop firm presets from JSON file"""
    json_path = path or PRESETS_PATH
    with open(json_path, 'r') as f:
        data = json.load(f)
    return data['presets']


def profile_from_preset(
    preset_id: str,
    start_date: Optional[datetime] = None,
    presets: Optional[Dict[str, Dict]] = None
) -> EvaluationProfile:
    """
    Create an evaluation profile from a named preset.

    Args:
        preset_id: Key in prop_firms.json, e.g. 'topstep_50k'
        start_date: When the evaluation started (defaults to now)
        presets: Preset mapping, loaded from the presets file when omitted

    Returns:
        EvaluationProfile
    """
    presets = presets if presets is not None else load_prop_firms()
    if preset_id not in presets:
        raise UnknownPresetError(preset_id, sorted(presets))

    data = dict(presets[preset_id])
    data['start_date'] = start_date or datetime.now()
    return EvaluationProfile.from_dict(data, strict=True)
