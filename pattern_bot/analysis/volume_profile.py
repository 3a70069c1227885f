"""
Volume distribution by price: VPOC, high-volume nodes, low-volume areas.
Built from recent 1m candles, volume binned at each candle's mid price.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Sequence, Tuple

import pandas as pd

from pattern_bot.core.types import Candle
from pattern_bot.execution.base import MarketDataClient
from pattern_bot.utils.cache import TTLCache
from pattern_bot.utils.prices import round_to_scale

logger = logging.getLogger("pattern_bot.analysis.volume_profile")

HIGH_VOLUME_MULTIPLIER = 1.5
LOW_VOLUME_MULTIPLIER = 0.5


@dataclass(frozen=True)
class VolumeProfile:
    symbol: str
    vpoc: float = 0.0
    average_volume: float = 0.0
    high_volume_nodes: Tuple[float, ...] = ()
    low_volume_areas: Tuple[Tuple[float, float], ...] = ()
    levels: int = 0
    available: bool = True
    built_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def is_near_high_volume_node(self, price: float, tolerance: float = 0.003) -> bool:
        return any(abs((price - node) / node) <= tolerance for node in self.high_volume_nodes if node)

    def is_in_low_volume_area(self, price_from: float, price_to: float) -> bool:
        """True if [price_from, price_to] lies entirely inside one low-volume area."""
        low, high = min(price_from, price_to), max(price_from, price_to)
        return any(start <= low and end >= high for start, end in self.low_volume_areas)

    def confirms_channel(self, low: float, high: float) -> bool:
        """A channel is confirmed unless its whole range sits in a low-volume area."""
        return not self.is_in_low_volume_area(low, high)


def empty_profile(symbol: str) -> VolumeProfile:
    return VolumeProfile(symbol=symbol, available=False)


def bin_volume(candles: Sequence[Candle]) -> pd.Series:
    """Total volume per rounded mid price, sorted by price."""
    df = pd.DataFrame(
        {
            "price": [round_to_scale(c.mid_price) for c in candles],
            "volume": [c.volume for c in candles],
        }
    )
    return df.groupby("price")["volume"].sum().sort_index()


def low_volume_runs(volume: pd.Series, threshold: float) -> List[Tuple[float, float]]:
    """Contiguous (price-sorted) runs of bins with volume below threshold."""
    runs: List[Tuple[float, float]] = []
    start = prev = None
    for price, vol in volume.items():
        if vol < threshold:
            if start is None:
                start = price
            prev = price
        elif start is not None:
            runs.append((float(start), float(prev)))
            start = prev = None
    if start is not None:
        runs.append((float(start), float(prev)))
    return runs


def build_profile(symbol: str, candles: Sequence[Candle]) -> VolumeProfile:
    if not candles:
        return empty_profile(symbol)
    volume = bin_volume(candles)
    average = float(volume.mean())
    hvn = volume[volume > average * HIGH_VOLUME_MULTIPLIER]
    return VolumeProfile(
        symbol=symbol,
        vpoc=float(volume.idxmax()),
        average_volume=average,
        high_volume_nodes=tuple(float(p) for p in hvn.index),
        low_volume_areas=tuple(low_volume_runs(volume, average * LOW_VOLUME_MULTIPLIER)),
        levels=len(volume),
    )


class VolumeProfileAnalyzer:
    """Cached per symbol for ttl_seconds; failures yield an unavailable profile."""

    def __init__(
        self,
        client: MarketDataClient,
        ttl_seconds: float = 1800.0,
        lookback_minutes: int = 360,
        interval: str = "1m",
        cache: TTLCache = None,
    ):
        self.client = client
        self.lookback = timedelta(minutes=lookback_minutes)
        self.interval = interval
        self._cache = cache if cache is not None else TTLCache(ttl_seconds)

    def _load(self, symbol: str) -> VolumeProfile:
        candles = self.client.get_recent_candles(symbol, self.lookback, self.interval)
        profile = build_profile(symbol, candles)
        if profile.available:
            logger.debug(
                "%s volume profile: %d levels, VPOC=%.6g, HVN=%d, low-volume areas=%d",
                symbol, profile.levels, profile.vpoc, len(profile.high_volume_nodes), len(profile.low_volume_areas),
            )
        return profile

    def analyze(self, symbol: str) -> VolumeProfile:
        try:
            profile = self._cache.get_or_load(symbol, lambda: self._load(symbol))
        except Exception as e:
            logger.warning("Volume profile unavailable for %s: %s", symbol, e)
            return empty_profile(symbol)
        if not profile.available:
            self._cache.invalidate(symbol)
            logger.warning("Volume profile for %s has no data", symbol)
        return profile

    def clear_expired(self) -> int:
        removed = self._cache.clear_expired()
        if removed:
            logger.debug("Dropped %d stale volume profiles", removed)
        return removed
