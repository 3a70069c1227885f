"""Abstract pattern strategy: trade direction and description for a completed pattern."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from pattern_bot.core.types import CompletedPattern, Direction


class PatternStrategy(ABC):
    """Maps a completed pattern and the current price to a trade direction."""

    name: str = ""

    @abstractmethod
    def direction_for(self, pattern: CompletedPattern, price: float) -> Optional[Direction]:
        """Direction to trade at `price`, or None when the entry condition is not met yet."""
        pass

    @abstractmethod
    def price_range(self, pattern: CompletedPattern) -> Tuple[float, float]:
        """(low, high) span of the pattern, used for volume confirmation."""
        pass

    @abstractmethod
    def describe(self, pattern: CompletedPattern, direction: Direction) -> str:
        pass

    def pending_reason(self, pattern: CompletedPattern, price: float) -> str:
        return "entry condition not met"
