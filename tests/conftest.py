"""Shared fixtures: synthetic candles and an offline market-data client."""

from datetime import datetime, timedelta, timezone

import pytest

from pattern_bot.core.types import Candle
from pattern_bot.execution.base import MarketDataClient

# Tuesday, inside the default trading hours.
BASE_TIME = datetime(2024, 1, 2, 10, 0, tzinfo=timezone.utc)

# Peak at 100.0 (high), trough at 95.0 (low), back to 100.05.
SIDEWAYS_CLOSES = [97, 98, 99, 99.95, 99, 98, 97, 96, 95.05, 96, 97, 98, 99, 99.5, 100.05]

# Trough 98.8 is only 1.2% under the 100.0 peak.
NARROW_CLOSES = [99.5, 99.7, 99.85, 99.95, 99.6, 99.3, 99.0, 98.9, 98.85, 98.9, 99.2, 99.5, 99.8, 99.95, 100.0]

# LOW 95.0, HIGH 100.0, LOW 97.0, last close 98.5.
UPTREND_CLOSES = [97, 96, 95.5, 95.05, 96, 97, 98, 99, 99.95, 99, 98.5, 98, 97.5, 97.05, 97.5, 98, 98.5]


def make_candles(closes, symbol="ETHUSDT", spread=0.05, volume=100.0, start=BASE_TIME, minutes=1):
    """One candle per close; high/low sit `spread` above/below the close."""
    candles = []
    for i, close in enumerate(closes):
        open_time = start + timedelta(minutes=i * minutes)
        candles.append(
            Candle(
                symbol=symbol,
                open=close,
                high=close + spread,
                low=close - spread,
                close=close,
                volume=volume,
                open_time=open_time,
                close_time=open_time + timedelta(minutes=minutes) - timedelta(milliseconds=1),
            )
        )
    return candles


class FakeMarketData(MarketDataClient):
    """Serves canned candles and depth; counts calls; optional failures."""

    def __init__(self, candles=None, depth=None, fail=False):
        self.candles = candles or {}
        self.depth = depth or {}
        self.fail = fail
        self.candle_calls = 0
        self.depth_calls = 0

    def get_recent_candles(self, symbol, lookback, interval="1m"):
        self.candle_calls += 1
        if self.fail:
            raise ConnectionError("exchange unreachable")
        return list(self.candles.get(symbol, []))

    def get_depth(self, symbol, levels=100):
        self.depth_calls += 1
        if self.fail:
            raise ConnectionError("exchange unreachable")
        return self.depth.get(symbol, {"bids": [], "asks": []})


@pytest.fixture
def candle_series():
    return make_candles


@pytest.fixture
def fake_client():
    return FakeMarketData


@pytest.fixture
def feed():
    """Feed candles one at a time to detector.update, collecting completed patterns."""
    def _feed(detector, candles):
        patterns = []
        for i in range(1, len(candles) + 1):
            pattern = detector.update(candles[:i])
            if pattern is not None:
                patterns.append((i - 1, pattern))
        return patterns
    return _feed
