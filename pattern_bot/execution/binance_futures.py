"""
Binance USDT-M Futures market data with retry and rate-limit handling.
"""

from __future__ import annotations
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Dict, List

from binance.client import Client
from binance.exceptions import BinanceAPIException

from pattern_bot.core.types import Candle
from pattern_bot.execution.base import DepthSide, MarketDataClient
from pattern_bot.utils.timeframes import candles_in

logger = logging.getLogger("pattern_bot.execution.binance")

MAX_KLINES_PER_REQUEST = 1500


def retry_on_rate_limit(max_retries: int = 3, base_delay: float = 1.0):
    """Decorator: retry on 429 or 418 (rate limit)."""
    def decorator(f):
        def wrapped(*args, **kwargs):
            last_exc = None
            for attempt in range(max_retries):
                try:
                    return f(*args, **kwargs)
                except BinanceAPIException as e:
                    last_exc = e
                    if e.status_code in (429, 418) and attempt < max_retries - 1:
                        delay = base_delay * (2 ** attempt)
                        logger.warning("Rate limited, retry in %.1fs (attempt %d)", delay, attempt + 1)
                        time.sleep(delay)
                    else:
                        raise
            raise last_exc
        return wrapped
    return decorator


def _ms_to_dt(ms) -> datetime:
    return datetime.fromtimestamp(int(ms) / 1000.0, tz=timezone.utc)


def parse_kline(symbol: str, raw: list) -> Candle:
    """Binance kline row: [open_time, open, high, low, close, volume, close_time, ...]."""
    return Candle(
        symbol=symbol,
        open=float(raw[1]),
        high=float(raw[2]),
        low=float(raw[3]),
        close=float(raw[4]),
        volume=float(raw[5]),
        open_time=_ms_to_dt(raw[0]),
        close_time=_ms_to_dt(raw[6]),
    )


def parse_depth_side(rows: list) -> DepthSide:
    return [(float(price), float(qty)) for price, qty in rows]


class BinanceFuturesClient(MarketDataClient):
    """Binance USDT-M Futures REST client (testnet and live). Never places orders."""

    def __init__(
        self,
        api_key: str = "",
        api_secret: str = "",
        testnet: bool = False,
    ):
        self._client = Client(api_key or None, api_secret or None)
        if testnet:
            self._client.FUTURES_URL = "https://testnet.binancefuture.com/fapi"
            logger.info("Binance Futures: using TESTNET")
        else:
            logger.info("Binance Futures: using LIVE market data")

    @retry_on_rate_limit(max_retries=3, base_delay=1.0)
    def _klines(self, symbol: str, interval: str, limit: int, start_ms: int = None) -> list:
        params = {"symbol": symbol, "interval": interval, "limit": limit}
        if start_ms is not None:
            params["startTime"] = start_ms
        return self._client.futures_klines(**params)

    def get_recent_candles(self, symbol: str, lookback: timedelta, interval: str = "1m") -> List[Candle]:
        limit = min(candles_in(lookback, interval) + 1, MAX_KLINES_PER_REQUEST)
        start = datetime.now(timezone.utc) - lookback
        raw = self._klines(symbol, interval, limit, int(start.timestamp() * 1000))
        return self._closed_only(symbol, raw)

    def get_closed_candles(self, symbol: str, interval: str, limit: int = 300) -> List[Candle]:
        # The last kline returned is the one still forming; request one extra.
        raw = self._klines(symbol, interval, min(limit + 1, MAX_KLINES_PER_REQUEST))
        return self._closed_only(symbol, raw)[-limit:]

    def _closed_only(self, symbol: str, raw: list) -> List[Candle]:
        now = datetime.now(timezone.utc)
        candles = [parse_kline(symbol, row) for row in raw]
        return [c for c in candles if c.close_time <= now]

    @retry_on_rate_limit(max_retries=2)
    def get_depth(self, symbol: str, levels: int = 100) -> Dict[str, DepthSide]:
        book = self._client.futures_order_book(symbol=symbol, limit=levels)
        return {
            "bids": parse_depth_side(book.get("bids", [])),
            "asks": parse_depth_side(book.get("asks", [])),
        }

