"""Unit tests for patterns.detector (sideways and trend state machines)."""

import pytest
from conftest import NARROW_CLOSES, SIDEWAYS_CLOSES, UPTREND_CLOSES

from pattern_bot.core.types import (
    ExtremumKind,
    PatternStatus,
    SidewaysDirection,
    SidewaysPattern,
    TrendDirection,
    TrendPattern,
)
from pattern_bot.patterns.detector import PatternDetector, SidewaysDetector, TrendDetector


def test_sideways_completes_on_return(candle_series, feed):
    detector = SidewaysDetector(lookback_period=3, min_channel_width_pct=2.0, return_tolerance_pct=0.1)
    found = feed(detector, candle_series(SIDEWAYS_CLOSES))
    assert len(found) == 1
    index, pattern = found[0]
    assert index == len(SIDEWAYS_CLOSES) - 1
    assert isinstance(pattern, SidewaysPattern)
    assert pattern.direction == SidewaysDirection.HIGH_LOW_HIGH
    assert pattern.high == 100.0
    assert pattern.low == 95.0
    assert pattern.width_pct == pytest.approx(5.0 / 95.0 * 100)
    assert pattern.width_pct >= 2.0
    assert abs(pattern.current_price - pattern.first.price) <= pattern.first.price * 0.001
    assert detector.active_states() == {}


def test_sideways_narrow_move_is_ignored(candle_series, feed):
    detector = SidewaysDetector(min_channel_width_pct=2.0)
    assert feed(detector, candle_series(NARROW_CLOSES)) == []
    state = detector.active_states()["ETHUSDT"]
    assert len(state.points) == 1
    assert state.points[0].kind == ExtremumKind.HIGH
    assert state.status == PatternStatus.SEEKING_OPPOSITE


def test_sideways_waits_for_return(candle_series, feed):
    detector = SidewaysDetector()
    closes = SIDEWAYS_CLOSES[:-2]
    assert feed(detector, candle_series(closes)) == []
    state = detector.active_states()["ETHUSDT"]
    assert state.status == PatternStatus.AWAITING_RETURN
    assert [p.kind for p in state.points] == [ExtremumKind.HIGH, ExtremumKind.LOW]


def test_sideways_abandons_when_width_below_minimum(candle_series, feed):
    detector = SidewaysDetector()
    feed(detector, candle_series(SIDEWAYS_CLOSES[:-2]))
    detector.min_channel_width_pct = 10.0
    candles = candle_series(SIDEWAYS_CLOSES)
    assert detector.update(candles) is None
    assert detector.active_states() == {}


def test_symbols_are_independent(candle_series, feed):
    detector = SidewaysDetector()
    feed(detector, candle_series(SIDEWAYS_CLOSES[:-2], symbol="AAAUSDT"))
    feed(detector, candle_series(NARROW_CLOSES, symbol="BBBUSDT"))
    states = detector.active_states()
    assert states["AAAUSDT"].status == PatternStatus.AWAITING_RETURN
    assert states["BBBUSDT"].status == PatternStatus.SEEKING_OPPOSITE
    detector.clear("AAAUSDT")
    assert set(detector.active_states()) == {"BBBUSDT"}
    detector.clear_all()
    assert detector.active_states() == {}


def test_too_few_candles_is_noop(candle_series):
    detector = SidewaysDetector(lookback_period=3)
    assert detector.update(candle_series([1, 2, 3, 4, 5, 6])) is None
    assert detector.active_states() == {}


def test_non_positive_price_raises(candle_series):
    detector = SidewaysDetector()
    with pytest.raises(ValueError):
        detector.update(candle_series([1, 1, 1, 0, 1, 1, 1]))


def test_trend_uptrend(candle_series, feed):
    detector = TrendDetector(min_step_pct=1.0, max_step_pct=10.0)
    found = feed(detector, candle_series(UPTREND_CLOSES))
    assert len(found) == 1
    _, pattern = found[0]
    assert isinstance(pattern, TrendPattern)
    assert pattern.trend_direction == TrendDirection.UPTREND
    kinds = [pattern.point1.kind, pattern.point2.kind, pattern.point3.kind]
    assert kinds == [ExtremumKind.LOW, ExtremumKind.HIGH, ExtremumKind.LOW]
    assert pattern.step_size == pytest.approx(2.0)
    assert pattern.step_pct == pytest.approx(2.0 / 95.0 * 100)
    assert pattern.current_price == 98.5
    assert pattern.next_levels.long == pytest.approx(96.5)
    assert pattern.next_levels.short == pytest.approx(100.5)


def test_trend_downtrend_levels(candle_series, feed):
    closes = [200 - c for c in UPTREND_CLOSES]
    detector = TrendDetector()
    found = feed(detector, candle_series(closes))
    assert len(found) == 1
    _, pattern = found[0]
    assert pattern.trend_direction == TrendDirection.DOWNTREND
    assert pattern.point3.price < pattern.point1.price
    assert pattern.next_levels.long == pytest.approx(pattern.current_price + pattern.step_size)
    assert pattern.next_levels.short == pytest.approx(pattern.current_price - pattern.step_size)


def test_trend_step_outside_band_discarded(candle_series, feed):
    detector = TrendDetector(min_step_pct=1.0, max_step_pct=1.5)
    assert feed(detector, candle_series(UPTREND_CLOSES)) == []
    assert detector.active_states() == {}


def test_recorded_points_alternate(candle_series):
    detector = TrendDetector()
    candles = candle_series(UPTREND_CLOSES[:-1])
    for i in range(1, len(candles) + 1):
        detector.update(candles[:i])
        for state in detector.active_states().values():
            kinds = [p.kind for p in state.points]
            assert all(a != b for a, b in zip(kinds, kinds[1:]))


def test_base_detector_is_abstract():
    with pytest.raises(TypeError):
        PatternDetector()
