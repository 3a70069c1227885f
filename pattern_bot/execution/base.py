"""Abstract market-data interface: historical candles and order book depth."""

from __future__ import annotations
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Dict, List, Tuple

from pattern_bot.core.types import Candle
from pattern_bot.utils.timeframes import timeframe_delta

DepthSide = List[Tuple[float, float]]


class MarketDataClient(ABC):
    """Read-only exchange access used by the analyzers and the polling feed."""

    @abstractmethod
    def get_recent_candles(self, symbol: str, lookback: timedelta, interval: str = "1m") -> List[Candle]:
        """Closed candles covering the last `lookback`, oldest first."""
        pass

    @abstractmethod
    def get_depth(self, symbol: str, levels: int = 100) -> Dict[str, DepthSide]:
        """Order book snapshot: {"bids": [(price, qty), ...], "asks": [...]}, best first."""
        pass

    def get_closed_candles(self, symbol: str, interval: str, limit: int = 300) -> List[Candle]:
        """Most recent closed candles. Default derives from get_recent_candles."""
        return self.get_recent_candles(symbol, timeframe_delta(interval) * limit, interval)[-limit:]
