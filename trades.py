"""
Trade records and the ingestion boundary.

Raw trades arrive loosely typed (journal dicts, DataFrame rows, broker
exports with currency strings). They are validated and normalized once
here into `TradeRecord`, so the accumulation loop never re-checks fields.
"""

import hashlib
import json
import math
from dataclasses import dataclass, asdict, replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional

import pandas as pd
from loguru import logger

from errors import TradeValidationError
from money import parse_currency


SIDES = ('long', 'short')
ASSET_CLASSES = ('futures', 'stocks', 'crypto', 'forex', 'options', 'etf', 'other')

# camelCase journal keys -> TradeRecord attribute names
FIELD_ALIASES = {
    'rMultiple': 'r_multiple',
    'assetClass': 'asset_class',
    'closeDate': 'close_date',
    'followedRules': 'followed_rules',
    'ruleBreak': 'rule_break',
}


@dataclass(frozen=True)
class TradeRecord:
    """A single closed trade, validated at the ingestion boundary"""
    id: str
    date: Optional[datetime]
    symbol: str = ''
    side: str = 'long'
    pnl: Optional[float] = None
    fees: float = 0.0
    r_multiple: Optional[float] = None
    playbook: str = ''
    emotion: str = ''
    asset_class: str = 'futures'
    close_date: Optional[datetime] = None
    followed_rules: bool = True

    def to_dict(self) -> Dict:
        return asdict(self)


def parse_timestamp(value) -> Optional[datetime]:
    """Parse a timestamp, returning None when missing or invalid"""
    if value is None or (isinstance(value, str) and value.strip() == ''):
        return None
    if isinstance(value, datetime) and not isinstance(value, pd.Timestamp):
        # Keep the trader's wall clock; hour-of-day buckets depend on it
        return value.replace(tzinfo=None)
    try:
        ts = pd.to_datetime(value, errors='coerce')
    except (TypeError, ValueError):
        return None
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_localize(None)
    return ts.to_pydatetime()


def content_id(record: TradeRecord) -> str:
    """Stable id derived from the trade's fields, for trades imported without one"""
    fields = {k: v for k, v in record.to_dict().items() if k != 'id'}
    payload = json.dumps(fields, sort_keys=True, default=str)
    return hashlib.sha1(payload.encode('utf-8')).hexdigest()[:12]


def _parse_number(value) -> Optional[float]:
    if value is None or value == '':
        return None
    return parse_currency(value)


def _parse_bool(value, default: bool) -> bool:
    if value is None or value == '':
        return default
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes', 'y')
    if isinstance(value, float) and math.isnan(value):
        return default
    return bool(value)


def _clean_str(value) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and math.isnan(value):
        return ''
    return str(value).strip()


def _canonical_keys(raw: Dict) -> Dict:
    out = {}
    for key, value in raw.items():
        out[FIELD_ALIASES.get(key, key)] = value
    return out


def validate_trade(raw: Dict) -> List[str]:
    """
    Check a raw trade dict against the trade schema.

    Args:
        raw: Trade mapping from the journal, an import, or a DataFrame row

    Returns:
        List of problems; empty when the trade is valid
    """
    if not isinstance(raw, dict):
        return ['Trade must be a mapping']

    trade = _canonical_keys(raw)
    errors = []

    pnl = trade.get('pnl')
    if pnl is None or pnl == '':
        errors.append('Missing required field: pnl')
    elif _parse_number(pnl) is None:
        errors.append(f"pnl: expected number, got {pnl!r}")

    for field in ('fees', 'r_multiple'):
        value = trade.get(field)
        if value not in (None, '') and _parse_number(value) is None:
            errors.append(f"{field}: expected number, got {value!r}")

    if trade.get('date') in (None, ''):
        errors.append('Missing required field: date')
    elif parse_timestamp(trade.get('date')) is None:
        errors.append(f"date: {trade.get('date')!r} is not a valid date")

    close_date = trade.get('close_date')
    if close_date not in (None, '') and parse_timestamp(close_date) is None:
        errors.append(f"close_date: {close_date!r} is not a valid date")

    side = trade.get('side')
    if side not in (None, '') and str(side).strip().lower() not in SIDES:
        errors.append(f"side: {side!r} not in allowed values [{', '.join(SIDES)}]")

    asset_class = trade.get('asset_class')
    if asset_class not in (None, '') and str(asset_class).strip().lower() not in ASSET_CLASSES:
        errors.append(
            f"asset_class: {asset_class!r} not in allowed values [{', '.join(ASSET_CLASSES)}]"
        )

    return errors


def normalize_trade(raw: Dict, strict: bool = False) -> TradeRecord:
    """
    Normalize a raw trade into a TradeRecord.

    Missing or malformed fields degrade to None/defaults. A trade with an
    unparseable P&L keeps pnl=None and is skipped by the accumulator.
    A trade without an id gets one derived from its fields, so the same
    input always normalizes to the same records.

    Args:
        raw: Trade mapping (camelCase or snake_case keys)
        strict: Raise TradeValidationError instead of degrading

    Returns:
        TradeRecord
    """
    if strict:
        errors = validate_trade(raw)
        if errors:
            raise TradeValidationError(errors)

    trade = _canonical_keys(raw)

    side = _clean_str(trade.get('side')).lower()
    if side not in SIDES:
        side = 'long'

    asset_class = _clean_str(trade.get('asset_class')).lower()
    if asset_class not in ASSET_CLASSES:
        asset_class = 'futures'

    fees = _parse_number(trade.get('fees'))

    if 'followed_rules' in trade:
        followed_rules = _parse_bool(trade.get('followed_rules'), True)
    else:
        followed_rules = not _parse_bool(trade.get('rule_break'), False)

    record = TradeRecord(
        id=_clean_str(trade.get('id')),
        date=parse_timestamp(trade.get('date')),
        symbol=_clean_str(trade.get('symbol')),
        side=side,
        pnl=_parse_number(trade.get('pnl')),
        fees=fees if fees is not None else 0.0,
        r_multiple=_parse_number(trade.get('r_multiple')),
        playbook=_clean_str(trade.get('playbook')),
        emotion=_clean_str(trade.get('emotion')),
        asset_class=asset_class,
        close_date=parse_timestamp(trade.get('close_date')),
        followed_rules=followed_rules,
    )
    if not record.id:
        record = replace(record, id=content_id(record))
    return record


def normalize_trades(raw_trades: Iterable, strict: bool = False) -> List[TradeRecord]:
    """Normalize a collection of raw trades, passing TradeRecords through"""
    trades = []
    skipped = 0
    for raw in raw_trades or []:
        if isinstance(raw, TradeRecord):
            trades.append(raw)
        elif isinstance(raw, dict):
            trades.append(normalize_trade(raw, strict=strict))
        else:
            skipped += 1

    if skipped:
        logger.warning(f"Skipped {skipped} trade entries that were not mappings")
    return trades


def trades_from_dataframe(df: pd.DataFrame, strict: bool = False) -> List[TradeRecord]:
    """Convert a DataFrame with one row per trade into TradeRecords"""
    if df is None or df.empty:
        return []
    records = df.to_dict(orient='records')
    # NaN cells become missing values
    cleaned = [
        {k: (None if pd.api.types.is_scalar(v) and pd.isna(v) else v) for k, v in row.items()}
        for row in records
    ]
    return normalize_trades(cleaned, strict=strict)
