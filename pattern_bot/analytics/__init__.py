"""Analytics: trade performance metrics and signal filter statistics."""

from pattern_bot.analytics.filter_stats import FilterStatistics
from pattern_bot.analytics.metrics import (
    compute_metrics,
    max_drawdown,
    win_rate,
    profit_factor,
    expectancy,
)

__all__ = [
    "FilterStatistics",
    "compute_metrics",
    "max_drawdown",
    "win_rate",
    "profit_factor",
    "expectancy",
]
