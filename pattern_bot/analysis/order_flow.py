"""
Order book imbalance around mid price: bid/ask notional, walls, support/resistance.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from pattern_bot.core.types import Direction
from pattern_bot.execution.base import MarketDataClient
from pattern_bot.utils.cache import TTLCache

logger = logging.getLogger("pattern_bot.analysis.order_flow")

BAND_PCT = 1.0
WALL_BAND_PCT = 2.0
SUPPORT_BAND_PCT = 0.5
BULLISH_RATIO = 2.0
BEARISH_RATIO = 0.5
LONG_SUPPORT_RATIO = 1.5
SHORT_SUPPORT_RATIO = 0.67
STRONG_NOTIONAL = 100000.0
MEDIUM_NOTIONAL = 50000.0


@dataclass(frozen=True)
class Wall:
    price: float
    notional: float


@dataclass(frozen=True)
class OrderFlowSnapshot:
    symbol: str
    mid_price: float = 0.0
    spread_pct: float = 0.0
    bid_notional: float = 0.0
    ask_notional: float = 0.0
    ratio: float = 1.0
    support_notional: float = 0.0
    resistance_notional: float = 0.0
    bid_wall: Optional[Wall] = None
    ask_wall: Optional[Wall] = None
    bullish_signal: bool = False
    bearish_signal: bool = False
    strength: str = "WEAK"
    available: bool = True


def neutral_snapshot(symbol: str) -> OrderFlowSnapshot:
    return OrderFlowSnapshot(symbol=symbol, available=False)


def _notional(levels: Sequence[Tuple[float, float]], lo: float, hi: float) -> float:
    return sum(p * q for p, q in levels if lo <= p <= hi)


def _largest_wall(levels: Sequence[Tuple[float, float]], lo: float, hi: float, min_notional: float) -> Optional[Wall]:
    best = None
    for price, qty in levels:
        notional = price * qty
        if lo <= price <= hi and notional >= min_notional and (best is None or notional > best.notional):
            best = Wall(price=price, notional=notional)
    return best


def strength_tier(bid_notional: float, ask_notional: float) -> str:
    if bid_notional > STRONG_NOTIONAL or ask_notional > STRONG_NOTIONAL:
        return "STRONG"
    if bid_notional > MEDIUM_NOTIONAL or ask_notional > MEDIUM_NOTIONAL:
        return "MEDIUM"
    return "WEAK"


def analyze_depth(
    symbol: str,
    bids: Sequence[Tuple[float, float]],
    asks: Sequence[Tuple[float, float]],
    min_wall_notional: float = 10000.0,
    min_support_notional: float = 25000.0,
) -> OrderFlowSnapshot:
    """Bids and asks are (price, qty) with best level first."""
    if not bids or not asks:
        raise ValueError(f"Empty order book for {symbol}")
    best_bid, best_ask = bids[0][0], asks[0][0]
    mid = (best_bid + best_ask) / 2.0
    spread_pct = (best_ask - best_bid) / mid * 100.0

    band = mid * BAND_PCT / 100.0
    bid_notional = _notional(bids, mid - band, mid)
    ask_notional = _notional(asks, mid, mid + band)
    ratio = bid_notional / ask_notional if ask_notional > 0 else 0.0

    wall_band = mid * WALL_BAND_PCT / 100.0
    bid_wall = _largest_wall(bids, mid - wall_band, mid, min_wall_notional)
    ask_wall = _largest_wall(asks, mid, mid + wall_band, min_wall_notional)

    support_band = mid * SUPPORT_BAND_PCT / 100.0
    support = _notional(bids, mid - support_band, mid)
    resistance = _notional(asks, mid, mid + support_band)

    return OrderFlowSnapshot(
        symbol=symbol,
        mid_price=mid,
        spread_pct=spread_pct,
        bid_notional=bid_notional,
        ask_notional=ask_notional,
        ratio=ratio,
        support_notional=support,
        resistance_notional=resistance,
        bid_wall=bid_wall,
        ask_wall=ask_wall,
        bullish_signal=ratio > BULLISH_RATIO and support >= min_support_notional,
        bearish_signal=ratio < BEARISH_RATIO and resistance >= min_support_notional,
        strength=strength_tier(bid_notional, ask_notional),
    )


def supports(direction: Direction, snapshot: OrderFlowSnapshot) -> bool:
    """LONG needs a bullish book or ratio above 1.5; SHORT a bearish book or ratio below 0.67."""
    if direction == Direction.LONG:
        return snapshot.bullish_signal or snapshot.ratio > LONG_SUPPORT_RATIO
    return snapshot.bearish_signal or snapshot.ratio < SHORT_SUPPORT_RATIO


class OrderFlowAnalyzer:
    def __init__(
        self,
        client: MarketDataClient,
        ttl_seconds: float = 10.0,
        depth_levels: int = 100,
        min_wall_notional: float = 10000.0,
        min_support_notional: float = 25000.0,
        cache: TTLCache = None,
    ):
        self.client = client
        self.depth_levels = depth_levels
        self.min_wall_notional = min_wall_notional
        self.min_support_notional = min_support_notional
        self._cache = cache if cache is not None else TTLCache(ttl_seconds)

    def _load(self, symbol: str) -> OrderFlowSnapshot:
        book = self.client.get_depth(symbol, self.depth_levels)
        snapshot = analyze_depth(
            symbol, book.get("bids", []), book.get("asks", []),
            self.min_wall_notional, self.min_support_notional,
        )
        logger.debug(
            "%s order flow: ratio=%.2f bid=$%.0fk ask=$%.0fk strength=%s",
            symbol, snapshot.ratio, snapshot.bid_notional / 1000, snapshot.ask_notional / 1000, snapshot.strength,
        )
        return snapshot

    def analyze(self, symbol: str) -> OrderFlowSnapshot:
        try:
            return self._cache.get_or_load(symbol, lambda: self._load(symbol))
        except Exception as e:
            logger.warning("Order flow unavailable for %s: %s", symbol, e)
            return neutral_snapshot(symbol)

    def supports(self, direction: Direction, snapshot: OrderFlowSnapshot) -> bool:
        return supports(direction, snapshot)

    def clear_expired(self) -> int:
        return self._cache.clear_expired()
