"""Analysis: reference trend, volume profile, order flow, market regime."""

from pattern_bot.analysis.order_flow import OrderFlowAnalyzer, OrderFlowSnapshot
from pattern_bot.analysis.reference_trend import TrendEstimate, TrendEstimator
from pattern_bot.analysis.regime import RegimeFilter, RegimeReport
from pattern_bot.analysis.volume_profile import VolumeProfile, VolumeProfileAnalyzer

__all__ = [
    "OrderFlowAnalyzer",
    "OrderFlowSnapshot",
    "TrendEstimate",
    "TrendEstimator",
    "RegimeFilter",
    "RegimeReport",
    "VolumeProfile",
    "VolumeProfileAnalyzer",
]
