"""
Market regime filter: EMA20/50/200 trend, ATR volatility band, volume floor,
trading session. Each filter records its inputs and verdict.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from pattern_bot.core.types import Candle, Direction, MarketBias

logger = logging.getLogger("pattern_bot.analysis.regime")

EMA_PERIODS = (20, 50, 200)
ATR_PERIOD = 14
VOLUME_PERIOD = 20
LOW_VOLATILITY_PCT = 0.5
HIGH_VOLATILITY_PCT = 2.0


@dataclass(frozen=True)
class TrendStrengthCheck:
    enabled: bool
    bias: MarketBias
    strength: float
    threshold: float
    allow_long: bool
    allow_short: bool


@dataclass(frozen=True)
class SessionCheck:
    enabled: bool
    hour: int
    weekend: bool
    passed: bool


@dataclass(frozen=True)
class VolumeCheck:
    enabled: bool
    volume: float
    average_volume: float
    multiplier: float
    passed: bool


@dataclass(frozen=True)
class VolatilityCheck:
    enabled: bool
    atr_pct: float
    min_pct: float
    max_pct: float
    passed: bool


@dataclass(frozen=True)
class RegimeReport:
    bias: MarketBias
    strength: float
    ema20: float
    ema50: float
    ema200: float
    atr: float
    volatility: str
    trend: TrendStrengthCheck
    session: SessionCheck
    volume: VolumeCheck
    volatility_check: VolatilityCheck
    reasons: Tuple[str, ...] = ()
    available: bool = True

    @property
    def allow_long(self) -> bool:
        return self.trend.allow_long and self.session.passed and self.volume.passed and self.volatility_check.passed

    @property
    def allow_short(self) -> bool:
        return self.trend.allow_short and self.session.passed and self.volume.passed and self.volatility_check.passed

    def allows(self, direction: Direction) -> bool:
        return self.allow_long if direction == Direction.LONG else self.allow_short

    def reason(self) -> str:
        return "; ".join(self.reasons) if self.reasons else "all filters passed"


def candles_to_frame(candles: Sequence[Candle]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "high": [c.high for c in candles],
            "low": [c.low for c in candles],
            "close": [c.close for c in candles],
            "volume": [c.volume for c in candles],
        }
    )


def ema_last(close: pd.Series, period: int) -> float:
    """Last EMA value; the last close when there are fewer candles than the period."""
    if len(close) < period:
        return float(close.iloc[-1])
    return float(close.ewm(span=period, adjust=False).mean().iloc[-1])


def atr_last(df: pd.DataFrame, period: int = ATR_PERIOD) -> float:
    """Mean of the last `period` true ranges; 0 without enough history."""
    if len(df) < period + 1:
        return 0.0
    high_low = df["high"] - df["low"]
    high_close = (df["high"] - df["close"].shift()).abs()
    low_close = (df["low"] - df["close"].shift()).abs()
    tr = pd.concat([high_low, high_close, low_close], axis=1).max(axis=1).iloc[1:]
    return float(tr.tail(period).mean())


def trend_bias(price: float, ema20: float, ema50: float, ema200: float) -> MarketBias:
    if price > ema20 > ema50 > ema200:
        return MarketBias.BULLISH
    if price < ema20 < ema50 < ema200:
        return MarketBias.BEARISH
    return MarketBias.SIDEWAYS


def trend_strength(price: float, ema20: float, ema50: float, ema200: float) -> float:
    distances = (
        abs((ema20 - ema50) / ema50) * 100,
        abs((ema50 - ema200) / ema200) * 100,
        abs((price - ema20) / ema20) * 100,
    )
    return min(100.0, sum(distances) / len(distances) * 10)


def volatility_level(atr: float, price: float) -> str:
    atr_pct = atr / price * 100 if price > 0 else 0.0
    if atr_pct < LOW_VOLATILITY_PCT:
        return "LOW"
    if atr_pct > HIGH_VOLATILITY_PCT:
        return "HIGH"
    return "NORMAL"


class RegimeFilter:
    """Evaluates a candle window; the last candle is the one being traded."""

    def __init__(
        self,
        trend_filter_enabled: bool = True,
        trend_strength_threshold: float = 30.0,
        session_filter_enabled: bool = True,
        allowed_hours: Optional[List[int]] = None,
        exclude_weekends: bool = True,
        volume_filter_enabled: bool = True,
        min_volume_multiplier: float = 0.5,
        volatility_filter_enabled: bool = True,
        min_atr_multiplier: float = 0.3,
        max_atr_multiplier: float = 3.0,
    ):
        self.trend_filter_enabled = trend_filter_enabled
        self.trend_strength_threshold = trend_strength_threshold
        self.session_filter_enabled = session_filter_enabled
        self.allowed_hours = set(allowed_hours if allowed_hours is not None else range(8, 21))
        self.exclude_weekends = exclude_weekends
        self.volume_filter_enabled = volume_filter_enabled
        self.min_volume_multiplier = min_volume_multiplier
        self.volatility_filter_enabled = volatility_filter_enabled
        self.min_atr_multiplier = min_atr_multiplier
        self.max_atr_multiplier = max_atr_multiplier

    @classmethod
    def from_config(cls, config) -> "RegimeFilter":
        return cls(
            trend_filter_enabled=config.trend_filter_enabled,
            trend_strength_threshold=config.trend_strength_threshold,
            session_filter_enabled=config.session_filter_enabled,
            allowed_hours=config.allowed_hours,
            exclude_weekends=config.exclude_weekends,
            volume_filter_enabled=config.volume_filter_enabled,
            min_volume_multiplier=config.min_volume_multiplier,
            volatility_filter_enabled=config.volatility_filter_enabled,
            min_atr_multiplier=config.min_atr_multiplier,
            max_atr_multiplier=config.max_atr_multiplier,
        )

    def evaluate(self, candles: Sequence[Candle]) -> Optional[RegimeReport]:
        """None for an empty window."""
        if not candles:
            return None
        df = candles_to_frame(candles)
        last = candles[-1]
        price = last.close
        ema20, ema50, ema200 = (ema_last(df["close"], p) for p in EMA_PERIODS)
        atr = atr_last(df)
        avg_volume = float(df["volume"].tail(VOLUME_PERIOD).mean())
        bias = trend_bias(price, ema20, ema50, ema200)
        strength = trend_strength(price, ema20, ema50, ema200)
        reasons: List[str] = []

        allow_long = allow_short = True
        if self.trend_filter_enabled and strength > self.trend_strength_threshold:
            if bias == MarketBias.BULLISH:
                allow_short = False
                reasons.append(f"strong uptrend ({strength:.1f}), LONG only")
            elif bias == MarketBias.BEARISH:
                allow_long = False
                reasons.append(f"strong downtrend ({strength:.1f}), SHORT only")
        trend = TrendStrengthCheck(
            self.trend_filter_enabled, bias, strength, self.trend_strength_threshold, allow_long, allow_short,
        )

        session = self._session(last.close_time)
        if not session.passed:
            reasons.append("weekend" if session.weekend and self.exclude_weekends else f"outside trading hours ({session.hour}:00 UTC)")

        volume_ok = not self.volume_filter_enabled or last.volume >= avg_volume * self.min_volume_multiplier
        volume = VolumeCheck(self.volume_filter_enabled, last.volume, avg_volume, self.min_volume_multiplier, volume_ok)
        if not volume_ok:
            reasons.append(f"low volume ({last.volume:.2f} < {self.min_volume_multiplier} x {avg_volume:.2f})")

        atr_pct = atr / price * 100
        # ATR band is expressed in tenths of a percent of price.
        min_pct, max_pct = 0.1 * self.min_atr_multiplier, 0.1 * self.max_atr_multiplier
        volatility_ok = not self.volatility_filter_enabled or min_pct <= atr_pct <= max_pct
        volatility_check = VolatilityCheck(self.volatility_filter_enabled, atr_pct, min_pct, max_pct, volatility_ok)
        if not volatility_ok:
            reasons.append(f"volatility too {'low' if atr_pct < min_pct else 'high'} (ATR {atr_pct:.3f}%)")

        report = RegimeReport(
            bias=bias,
            strength=strength,
            ema20=ema20,
            ema50=ema50,
            ema200=ema200,
            atr=atr,
            volatility=volatility_level(atr, price),
            trend=trend,
            session=session,
            volume=volume,
            volatility_check=volatility_check,
            reasons=tuple(reasons),
            available=len(candles) > ATR_PERIOD,
        )
        logger.debug(
            "%s regime: %s strength=%.1f ATR=%.3f%% LONG=%s SHORT=%s (%s)",
            last.symbol, bias.value, strength, atr_pct, report.allow_long, report.allow_short, report.reason(),
        )
        return report

    def _session(self, when: datetime) -> SessionCheck:
        hour = when.hour
        weekend = when.weekday() >= 5
        if not self.session_filter_enabled:
            return SessionCheck(False, hour, weekend, True)
        passed = hour in self.allowed_hours and not (self.exclude_weekends and weekend)
        return SessionCheck(True, hour, weekend, passed)
