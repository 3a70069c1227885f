"""Core: config, types, events, logging."""

from pattern_bot.core.config import load_config, Config
from pattern_bot.core.events import Event, EventBus, EventType
from pattern_bot.core.types import (
    Candle,
    Direction,
    PriceExtremum,
    SidewaysPattern,
    TrendPattern,
    TradingSignal,
    Position,
    PositionStatus,
    TradingStats,
)
from pattern_bot.core.logger import setup_logging

__all__ = [
    "load_config",
    "Config",
    "Event",
    "EventBus",
    "EventType",
    "Candle",
    "Direction",
    "PriceExtremum",
    "SidewaysPattern",
    "TrendPattern",
    "TradingSignal",
    "Position",
    "PositionStatus",
    "TradingStats",
    "setup_logging",
]
