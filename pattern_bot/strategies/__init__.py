"""Strategies: sideways and trend pattern strategies plus the signal composer."""

from pattern_bot.strategies.base import PatternStrategy
from pattern_bot.strategies.composer import ConfirmationPolicy, SignalComposer, SignalDecision
from pattern_bot.strategies.sideways import SidewaysStrategy
from pattern_bot.strategies.trend import TrendStrategy

__all__ = [
    "PatternStrategy",
    "ConfirmationPolicy",
    "SignalComposer",
    "SignalDecision",
    "SidewaysStrategy",
    "TrendStrategy",
]
