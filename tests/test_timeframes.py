"""Unit tests for utils.timeframes and utils.prices."""

from datetime import timedelta

import pytest
from pattern_bot.utils.prices import format_price, pct_change, price_decimals, round_to_scale
from pattern_bot.utils.timeframes import candles_in, timeframe_delta, timeframe_minutes


def test_timeframe_minutes():
    assert timeframe_minutes("5m") == 5
    assert timeframe_minutes("1h") == 60
    assert timeframe_minutes("1d") == 1440


def test_timeframe_invalid():
    with pytest.raises(ValueError):
        timeframe_minutes("1x")


def test_timeframe_delta_and_candles_in():
    assert timeframe_delta("15m") == timedelta(minutes=15)
    assert candles_in(timedelta(hours=6), "1m") == 360
    assert candles_in(timedelta(hours=6), "1h") == 6
    assert candles_in(timedelta(seconds=30), "1m") == 1


def test_price_scale():
    assert price_decimals(43000.0) == 2
    assert price_decimals(2.5) == 4
    assert price_decimals(0.05) == 6
    assert round_to_scale(43000.123) == 43000.12
    assert round_to_scale(1.234567) == 1.2346


def test_format_price():
    assert format_price(100.0) == "100.0000"
    assert format_price(0.000012) == "0.00001200"


def test_pct_change():
    assert pct_change(100.0, 102.0) == pytest.approx(2.0)
    with pytest.raises(ValueError):
        pct_change(0.0, 1.0)
