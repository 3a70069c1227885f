"""
Sideways channel: price returned to the first extremum. Trade the bounce:
low-high-low -> LONG, high-low-high -> SHORT.
"""

from __future__ import annotations
from typing import Optional, Tuple

from pattern_bot.core.types import Direction, SidewaysDirection, SidewaysPattern
from pattern_bot.strategies.base import PatternStrategy
from pattern_bot.utils.prices import format_price


class SidewaysStrategy(PatternStrategy):
    name = "sideways"

    def direction_for(self, pattern: SidewaysPattern, price: float) -> Optional[Direction]:
        return Direction.LONG if pattern.direction == SidewaysDirection.LOW_HIGH_LOW else Direction.SHORT

    def price_range(self, pattern: SidewaysPattern) -> Tuple[float, float]:
        return pattern.low, pattern.high

    def describe(self, pattern: SidewaysPattern, direction: Direction) -> str:
        return (
            f"sideways {pattern.direction.value} {direction.value} | channel "
            f"{format_price(pattern.low)}-{format_price(pattern.high)} ({pattern.width_pct:.2f}%)"
        )
