"""Execution: market-data abstraction and Binance Futures implementation."""

from pattern_bot.execution.base import MarketDataClient
from pattern_bot.execution.binance_futures import BinanceFuturesClient

__all__ = ["MarketDataClient", "BinanceFuturesClient"]
