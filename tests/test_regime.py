"""Unit tests for analysis.regime."""

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from pattern_bot.analysis.regime import RegimeFilter, atr_last, candles_to_frame, trend_strength, volatility_level
from pattern_bot.core.types import Direction, MarketBias


def test_quiet_market_passes_everything(candle_series):
    report = RegimeFilter().evaluate(candle_series([100.0] * 30))
    assert report.available
    assert report.bias == MarketBias.SIDEWAYS
    assert report.strength == 0.0
    assert report.atr == pytest.approx(0.1)
    assert report.allows(Direction.LONG) and report.allows(Direction.SHORT)
    assert report.reason() == "all filters passed"


def test_weekend_blocks_both(candle_series):
    saturday = datetime(2024, 1, 6, 12, 0, tzinfo=timezone.utc)
    report = RegimeFilter().evaluate(candle_series([100.0] * 30, start=saturday))
    assert report.session.weekend
    assert not report.session.passed
    assert not report.allow_long and not report.allow_short
    assert "weekend" in report.reason()


def test_outside_hours_blocks_both(candle_series):
    night = datetime(2024, 1, 2, 2, 0, tzinfo=timezone.utc)
    report = RegimeFilter().evaluate(candle_series([100.0] * 30, start=night))
    assert report.session.hour == 2
    assert not report.allow_long and not report.allow_short


def test_filters_can_be_disabled(candle_series):
    saturday = datetime(2024, 1, 6, 2, 0, tzinfo=timezone.utc)
    regime = RegimeFilter(session_filter_enabled=False, volatility_filter_enabled=False)
    report = regime.evaluate(candle_series([100.0] * 30, spread=3.0, start=saturday))
    assert report.allow_long and report.allow_short
    assert report.volatility == "HIGH"
    assert not report.session.enabled


def test_low_volume_blocks_both(candle_series):
    candles = candle_series([100.0] * 30)
    candles[-1] = replace(candles[-1], volume=10.0)
    report = RegimeFilter().evaluate(candles)
    assert not report.volume.passed
    assert report.volume.average_volume == pytest.approx((19 * 100 + 10) / 20)
    assert not report.allow_long and not report.allow_short


def test_high_volatility_blocks_both(candle_series):
    report = RegimeFilter().evaluate(candle_series([100.0] * 30, spread=2.0))
    assert not report.volatility_check.passed
    assert report.volatility == "HIGH"
    assert not report.allows(Direction.LONG)


def test_strong_uptrend_blocks_shorts(candle_series):
    closes = [100.0 + 0.5 * i for i in range(210)]
    report = RegimeFilter().evaluate(candle_series(closes))
    assert report.bias == MarketBias.BULLISH
    assert report.strength > 30
    assert report.allow_long
    assert not report.allow_short
    assert not report.trend.allow_short


def test_short_history():
    assert RegimeFilter().evaluate([]) is None


def test_short_window_is_unavailable(candle_series):
    report = RegimeFilter().evaluate(candle_series([100.0] * 10))
    assert not report.available
    assert report.atr == 0.0


def test_helpers(candle_series):
    df = candles_to_frame(candle_series([100.0, 101.0, 102.0]))
    assert atr_last(df, period=2) == pytest.approx(1.05)
    assert trend_strength(100.0, 100.0, 100.0, 100.0) == 0.0
    assert trend_strength(200.0, 100.0, 50.0, 10.0) == 100.0
    assert volatility_level(0.1, 100.0) == "LOW"
    assert volatility_level(1.0, 100.0) == "NORMAL"
