"""Risk: TP/SL sizing and the paper position engine."""

from pattern_bot.risk.positions import OpenResult, PositionEngine
from pattern_bot.risk.sizing import AdaptiveSettings, Sizer, adaptive_sizing, fixed_sizing

__all__ = ["OpenResult", "PositionEngine", "AdaptiveSettings", "Sizer", "adaptive_sizing", "fixed_sizing"]
