"""Patterns: local extrema and sideways/trend detectors."""

from pattern_bot.patterns.detector import PatternDetector, SidewaysDetector, TrendDetector
from pattern_bot.patterns.extrema import find_local_extrema

__all__ = ["PatternDetector", "SidewaysDetector", "TrendDetector", "find_local_extrema"]
