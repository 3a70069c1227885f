"""Local highs and lows over a symmetric candle neighbourhood."""

from __future__ import annotations
from typing import List, Sequence

from pattern_bot.core.types import Candle, ExtremumKind, PriceExtremum


def is_local_high(candles: Sequence[Candle], i: int, lookback: int) -> bool:
    high = candles[i].high
    lo, hi = max(0, i - lookback), min(len(candles), i + lookback + 1)
    return all(candles[j].high < high for j in range(lo, hi) if j != i)


def is_local_low(candles: Sequence[Candle], i: int, lookback: int) -> bool:
    low = candles[i].low
    lo, hi = max(0, i - lookback), min(len(candles), i + lookback + 1)
    return all(candles[j].low > low for j in range(lo, hi) if j != i)


def find_local_extrema(candles: Sequence[Candle], lookback: int = 3) -> List[PriceExtremum]:
    """
    A candle is a HIGH when every other candle within `lookback` on both
    sides has a strictly lower high (LOW mirrored). Equal values disqualify.
    Only candles with a full neighbourhood are considered. Sorted by time.
    """
    points: List[PriceExtremum] = []
    if lookback < 1 or len(candles) < 2 * lookback + 1:
        return points
    for i in range(lookback, len(candles) - lookback):
        candle = candles[i]
        if is_local_high(candles, i, lookback):
            points.append(PriceExtremum(candle.high, candle.close_time, ExtremumKind.HIGH, i))
        if is_local_low(candles, i, lookback):
            points.append(PriceExtremum(candle.low, candle.close_time, ExtremumKind.LOW, i))
    points.sort(key=lambda p: p.timestamp)
    return points
