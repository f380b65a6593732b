"""Shared test fixtures for trade analytics."""

import os
from datetime import datetime, timedelta

import numpy as np
import pytest

# Keep a developer's .env / shell from leaking into tests
for _key in list(os.environ):
    if _key.startswith("ANALYTICS_"):
        del os.environ[_key]


@pytest.fixture
def rng():
    """Seeded generator so Monte Carlo tests are reproducible."""
    return np.random.default_rng(12345)


@pytest.fixture
def make_trade():
    """Factory for raw journal trade dicts."""
    counter = {"n": 0}

    def _make(pnl, date="2024-01-02T10:00:00", **extra):
        counter["n"] += 1
        trade = {
            "id": f"t{counter['n']}",
            "date": date,
            "symbol": "es",
            "side": "long",
            "pnl": pnl,
            "fees": 2.5,
            "playbook": "breakout",
            "emotion": "calm",
            "assetClass": "futures",
            "followedRules": True,
        }
        trade.update(extra)
        return trade

    return _make


@pytest.fixture
def daily_trades(make_trade):
    """Factory: one trade per consecutive calendar day starting 2024-01-01."""

    def _make(pnls, start=datetime(2024, 1, 1, 10, 0)):
        return [
            make_trade(p, date=(start + timedelta(days=i)).isoformat())
            for i, p in enumerate(pnls)
        ]

    return _make
