"""Unit tests for patterns.extrema."""

from conftest import SIDEWAYS_CLOSES

from pattern_bot.core.types import ExtremumKind
from pattern_bot.patterns.extrema import find_local_extrema


def test_too_few_candles(candle_series):
    assert find_local_extrema(candle_series([1, 2, 3, 2, 1, 2]), lookback=3) == []


def test_peak_and_trough(candle_series):
    points = find_local_extrema(candle_series(SIDEWAYS_CLOSES), lookback=3)
    assert [(p.kind, p.index) for p in points] == [(ExtremumKind.HIGH, 3), (ExtremumKind.LOW, 8)]
    assert points[0].price == 100.0
    assert points[1].price == 95.0


def test_ties_are_not_extreme(candle_series):
    closes = [1, 2, 3, 5, 5, 3, 2, 1]
    points = find_local_extrema(candle_series(closes), lookback=3)
    assert all(p.kind != ExtremumKind.HIGH for p in points)


def test_sorted_by_time(candle_series):
    closes = [5, 4, 3, 1, 3, 4, 5, 6, 8, 6, 5, 4, 3, 2, 3, 4, 5]
    points = find_local_extrema(candle_series(closes), lookback=3)
    times = [p.timestamp for p in points]
    assert times == sorted(times)
    assert [p.kind for p in points] == [ExtremumKind.LOW, ExtremumKind.HIGH, ExtremumKind.LOW]
