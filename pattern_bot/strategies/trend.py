"""
Trend step: after three alternating extrema, enter when price reaches the
next projected level (one step beyond the current price).
"""

from __future__ import annotations
from typing import Optional, Tuple

from pattern_bot.core.types import Direction, TrendPattern
from pattern_bot.strategies.base import PatternStrategy
from pattern_bot.utils.prices import format_price


def at_level(price: float, level: float, tolerance_pct: float) -> bool:
    return abs(price - level) <= abs(level) * tolerance_pct / 100.0


class TrendStrategy(PatternStrategy):
    name = "trend"

    def __init__(self, entry_level_tolerance_pct: float = 0.1):
        self.entry_level_tolerance_pct = entry_level_tolerance_pct

    def direction_for(self, pattern: TrendPattern, price: float) -> Optional[Direction]:
        if at_level(price, pattern.next_levels.long, self.entry_level_tolerance_pct):
            return Direction.LONG
        if at_level(price, pattern.next_levels.short, self.entry_level_tolerance_pct):
            return Direction.SHORT
        return None

    def price_range(self, pattern: TrendPattern) -> Tuple[float, float]:
        prices = pattern.defining_prices
        return min(prices), max(prices)

    def describe(self, pattern: TrendPattern, direction: Direction) -> str:
        level = pattern.next_levels.long if direction == Direction.LONG else pattern.next_levels.short
        return (
            f"{pattern.trend_direction.value} {direction.value} at level {format_price(level)} "
            f"(step {pattern.step_pct:.2f}%)"
        )

    def pending_reason(self, pattern: TrendPattern, price: float) -> str:
        return (
            f"price {format_price(price)} not at LONG {format_price(pattern.next_levels.long)} "
            f"or SHORT {format_price(pattern.next_levels.short)}"
        )
