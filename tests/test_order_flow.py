"""Unit tests for analysis.order_flow."""

import pytest

from pattern_bot.analysis.order_flow import (
    OrderFlowAnalyzer,
    OrderFlowSnapshot,
    analyze_depth,
    strength_tier,
    supports,
)
from pattern_bot.core.types import Direction

BIDS = [(99.9, 500.0), (99.2, 100.0), (97.0, 1000.0)]
ASKS = [(100.1, 100.0), (100.8, 50.0)]


def test_bid_heavy_book_is_bullish():
    snap = analyze_depth("ETHUSDT", BIDS, ASKS)
    assert snap.mid_price == pytest.approx(100.0)
    assert snap.spread_pct == pytest.approx(0.2)
    assert snap.bid_notional == pytest.approx(99.9 * 500 + 99.2 * 100)
    assert snap.ask_notional == pytest.approx(100.1 * 100 + 100.8 * 50)
    assert snap.ratio == pytest.approx(snap.bid_notional / snap.ask_notional)
    assert snap.support_notional == pytest.approx(99.9 * 500)
    assert snap.bullish_signal
    assert not snap.bearish_signal
    assert snap.strength == "MEDIUM"
    assert snap.bid_wall.price == 99.9
    assert snap.ask_wall.price == 100.1


def test_ask_heavy_book_is_bearish():
    bids = [(99.9, 100.0), (99.2, 50.0)]
    asks = [(100.1, 500.0), (100.5, 100.0)]
    snap = analyze_depth("ETHUSDT", bids, asks)
    assert snap.ratio < 0.5
    assert snap.bearish_signal
    assert not snap.bullish_signal
    assert snap.bid_wall is None


def test_no_asks_in_band_gives_zero_ratio():
    snap = analyze_depth("ETHUSDT", [(99.9, 10.0)], [(100.1, 0.0)])
    assert snap.ratio == 0.0


def test_strength_tiers():
    assert strength_tier(150000, 0) == "STRONG"
    assert strength_tier(0, 60000) == "MEDIUM"
    assert strength_tier(1000, 1000) == "WEAK"


def test_supports():
    assert supports(Direction.LONG, OrderFlowSnapshot("X", ratio=1.6))
    assert not supports(Direction.LONG, OrderFlowSnapshot("X", ratio=1.2))
    assert supports(Direction.LONG, OrderFlowSnapshot("X", ratio=1.0, bullish_signal=True))
    assert supports(Direction.SHORT, OrderFlowSnapshot("X", ratio=0.6))
    assert not supports(Direction.SHORT, OrderFlowSnapshot("X", ratio=1.0))


def test_analyzer_caches_within_ttl(fake_client):
    client = fake_client(depth={"ETHUSDT": {"bids": BIDS, "asks": ASKS}})
    analyzer = OrderFlowAnalyzer(client, ttl_seconds=10)
    first = analyzer.analyze("ETHUSDT")
    assert analyzer.analyze("ETHUSDT") is first
    assert client.depth_calls == 1
    assert analyzer.supports(Direction.LONG, first)


def test_analyzer_failure_is_neutral(fake_client):
    analyzer = OrderFlowAnalyzer(fake_client(fail=True))
    snap = analyzer.analyze("ETHUSDT")
    assert not snap.available
    assert snap.ratio == 1.0
    assert not snap.bullish_signal and not snap.bearish_signal


def test_empty_book_is_neutral(fake_client):
    snap = OrderFlowAnalyzer(fake_client()).analyze("ETHUSDT")
    assert not snap.available
