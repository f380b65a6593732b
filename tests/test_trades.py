from datetime import datetime

import pandas as pd
import pytest

from errors import TradeValidationError
from trades import TradeRecord, normalize_trade, normalize_trades, trades_from_dataframe, validate_trade


def test_normalize_camel_case_journal_trade():
    trade = normalize_trade({
        "id": "abc",
        "date": "2024-03-05T14:30:00",
        "closeDate": "2024-03-05T15:00:00",
        "symbol": " nq ",
        "side": "SHORT",
        "pnl": "$1,250.00",
        "fees": "4.20",
        "rMultiple": "1.5",
        "assetClass": "Stocks",
        "followedRules": "false",
    })

    assert trade.id == "abc"
    assert trade.date == datetime(2024, 3, 5, 14, 30)
    assert trade.close_date == datetime(2024, 3, 5, 15, 0)
    assert trade.symbol == "nq"
    assert trade.side == "short"
    assert trade.pnl == 1250.0
    assert trade.fees == 4.2
    assert trade.r_multiple == 1.5
    assert trade.asset_class == "stocks"
    assert trade.followed_rules is False


def test_normalize_degrades_malformed_fields():
    trade = normalize_trade({
        "date": "not a date",
        "pnl": "n/a",
        "side": "sideways",
        "assetClass": "baseball cards",
        "rMultiple": "",
    })

    assert trade.date is None
    assert trade.pnl is None
    assert trade.side == "long"
    assert trade.asset_class == "futures"
    assert trade.r_multiple is None
    assert trade.fees == 0.0
    assert trade.followed_rules is True
    assert trade.id


def test_rule_break_flag_maps_to_followed_rules():
    assert normalize_trade({"pnl": 1, "ruleBreak": True}).followed_rules is False
    assert normalize_trade({"pnl": 1, "ruleBreak": False}).followed_rules is True


def test_timezone_aware_dates_keep_wall_clock():
    trade = normalize_trade({"pnl": 1, "date": "2024-01-02T10:00:00Z"})
    assert trade.date.tzinfo is None
    assert trade.date.hour == 10


def test_validate_trade_reports_problems():
    errors = validate_trade({"date": "garbage", "side": "up", "fees": "x"})

    assert "Missing required field: pnl" in errors
    assert any(e.startswith("date:") for e in errors)
    assert any(e.startswith("side:") for e in errors)
    assert any(e.startswith("fees:") for e in errors)


def test_validate_trade_accepts_valid_trade():
    assert validate_trade({"pnl": 10, "date": "2024-01-02", "side": "long"}) == []


def test_strict_normalize_raises():
    with pytest.raises(TradeValidationError) as exc_info:
        normalize_trade({"date": "2024-01-02"}, strict=True)

    assert isinstance(exc_info.value, ValueError)
    assert exc_info.value.errors == ["Missing required field: pnl"]


def test_normalize_trades_skips_non_mappings_and_passes_records():
    record = TradeRecord(id="r1", date=None, pnl=5.0)
    trades = normalize_trades([record, {"pnl": 1, "date": "2024-01-02"}, "junk", 42])

    assert len(trades) == 2
    assert trades[0] is record


def test_normalize_trades_handles_none():
    assert normalize_trades(None) == []


def test_trades_from_dataframe():
    df = pd.DataFrame({
        "id": ["a", "b"],
        "date": ["2024-01-02 09:30", "2024-01-03 11:00"],
        "pnl": [100.0, -40.0],
        "r_multiple": [2.0, float("nan")],
        "playbook": ["orb", None],
    })

    trades = trades_from_dataframe(df)

    assert [t.id for t in trades] == ["a", "b"]
    assert trades[0].r_multiple == 2.0
    assert trades[1].r_multiple is None
    assert trades[1].playbook == ""
    assert trades[1].date == datetime(2024, 1, 3, 11, 0)


def test_trades_from_empty_dataframe():
    assert trades_from_dataframe(pd.DataFrame()) == []


def test_missing_id_is_derived_from_trade_fields():
    raw = {"pnl": 100, "date": "2024-01-02T10:00:00", "symbol": "ES"}

    first = normalize_trade(raw)
    second = normalize_trade(dict(raw))
    other = normalize_trade({**raw, "pnl": -50})

    assert first.id
    assert first.id == second.id
    assert first.id != other.id
