"""
Per-symbol pattern state machines fed with closed-candle windows.

SidewaysDetector: extremum, opposite extremum, return to the first level.
TrendDetector: three alternating extrema with a net step between first and third.
"""

from __future__ import annotations
import logging
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional, Sequence

from pattern_bot.core.types import (
    Candle,
    ExtremumKind,
    NextLevels,
    PatternState,
    PatternStatus,
    PriceExtremum,
    SidewaysDirection,
    SidewaysPattern,
    TrendDirection,
    TrendPattern,
)
from pattern_bot.patterns.extrema import find_local_extrema

logger = logging.getLogger("pattern_bot.patterns")


def range_pct(a: float, b: float) -> float:
    """Distance between two prices as percent of the lower one."""
    return abs(a - b) / min(a, b) * 100.0


class PatternDetector(ABC):
    """
    Shared seeding and point acceptance. Subclasses decide what a completed
    pattern is. Callers serialize updates per symbol.
    """

    def __init__(
        self,
        lookback_period: int = 3,
        analysis_window: int = 20,
        min_channel_width_pct: float = 2.0,
    ):
        self.lookback_period = lookback_period
        self.analysis_window = analysis_window
        self.min_channel_width_pct = min_channel_width_pct
        self._states: Dict[str, PatternState] = {}
        self._lock = threading.Lock()

    def update(self, candles: Sequence[Candle]):
        """Advance the symbol's state with the latest window. Returns a completed pattern or None."""
        if len(candles) < 2 * self.lookback_period + 1:
            return None
        window = list(candles[-self.analysis_window:])
        for candle in window:
            if candle.high <= 0 or candle.low <= 0 or candle.close <= 0:
                raise ValueError(f"Non-positive price in {candle.symbol} candle at {candle.close_time}")
        symbol = window[-1].symbol
        extrema = find_local_extrema(window, self.lookback_period)
        state = self._states.get(symbol)
        if extrema:
            latest = extrema[-1]
            if state is None:
                state = self._seed(symbol, latest)
            elif self._accepts(state, latest):
                state.points.append(latest)
                logger.debug(
                    "%s: %s %s point #%d at %.6g",
                    symbol, type(self).__name__, latest.kind.value, len(state.points), latest.price,
                )
                self._on_point_added(state)
        if state is None:
            return None
        return self._check_completion(state, window[-1])

    def _seed(self, symbol: str, point: PriceExtremum) -> PatternState:
        direction = (
            SidewaysDirection.HIGH_LOW_HIGH if point.kind == ExtremumKind.HIGH else SidewaysDirection.LOW_HIGH_LOW
        )
        state = PatternState(
            symbol=symbol,
            points=[point],
            status=PatternStatus.SEEKING_OPPOSITE,
            start_time=point.timestamp,
            direction=direction,
        )
        with self._lock:
            self._states[symbol] = state
        logger.debug("%s: %s seeded from %s at %.6g", symbol, type(self).__name__, point.kind.value, point.price)
        return state

    def _accepts(self, state: PatternState, point: PriceExtremum) -> bool:
        last = state.last_point
        if state.status != PatternStatus.SEEKING_OPPOSITE:
            return False
        if point.timestamp <= last.timestamp or point.kind == last.kind:
            return False
        if len(state.points) == 1 and range_pct(point.price, last.price) < self.min_channel_width_pct:
            return False
        return True

    def _on_point_added(self, state: PatternState) -> None:
        pass

    @abstractmethod
    def _check_completion(self, state: PatternState, candle: Candle):
        """Return the completed pattern for state at candle, or None."""
        pass

    def active_states(self) -> Dict[str, PatternState]:
        with self._lock:
            return dict(self._states)

    def clear(self, symbol: str) -> None:
        with self._lock:
            self._states.pop(symbol, None)

    def clear_all(self) -> None:
        with self._lock:
            self._states.clear()


class SidewaysDetector(PatternDetector):
    def __init__(
        self,
        lookback_period: int = 3,
        analysis_window: int = 20,
        min_channel_width_pct: float = 2.0,
        return_tolerance_pct: float = 0.1,
    ):
        super().__init__(lookback_period, analysis_window, min_channel_width_pct)
        self.return_tolerance_pct = return_tolerance_pct

    def _on_point_added(self, state: PatternState) -> None:
        if len(state.points) >= 2:
            state.status = PatternStatus.AWAITING_RETURN

    def _check_completion(self, state: PatternState, candle: Candle) -> Optional[SidewaysPattern]:
        if state.status != PatternStatus.AWAITING_RETURN:
            return None
        first, second = state.points[0], state.points[1]
        high, low = max(first.price, second.price), min(first.price, second.price)
        width_pct = (high - low) / low * 100.0
        if width_pct < self.min_channel_width_pct:
            logger.debug("%s: channel %.2f%% below minimum %.2f%%, abandoned", state.symbol, width_pct, self.min_channel_width_pct)
            self.clear(state.symbol)
            return None
        price = candle.close
        if abs(price - first.price) > first.price * self.return_tolerance_pct / 100.0:
            return None
        pattern = SidewaysPattern(
            symbol=state.symbol,
            first=first,
            second=second,
            current_price=price,
            width_pct=width_pct,
            high=high,
            low=low,
            direction=state.direction,
            start_time=first.timestamp,
            end_time=candle.close_time,
        )
        self.clear(state.symbol)
        logger.info(
            "%s: sideways %s complete | width=%.2f%% low=%.6g high=%.6g price=%.6g",
            state.symbol, state.direction.value, width_pct, low, high, price,
        )
        return pattern


class TrendDetector(PatternDetector):
    def __init__(
        self,
        lookback_period: int = 3,
        analysis_window: int = 20,
        min_channel_width_pct: float = 2.0,
        min_step_pct: float = 1.0,
        max_step_pct: float = 10.0,
    ):
        super().__init__(lookback_period, analysis_window, min_channel_width_pct)
        self.min_step_pct = min_step_pct
        self.max_step_pct = max_step_pct

    def _check_completion(self, state: PatternState, candle: Candle) -> Optional[TrendPattern]:
        if len(state.points) < 3:
            return None
        p1, p2, p3 = state.points[:3]
        self.clear(state.symbol)
        if p3.price == p1.price:
            logger.debug("%s: flat three-point move, discarded", state.symbol)
            return None
        step = abs(p3.price - p1.price)
        step_pct = step / p1.price * 100.0
        if not self.min_step_pct <= step_pct <= self.max_step_pct:
            logger.debug(
                "%s: trend step %.2f%% outside [%.2f, %.2f], discarded",
                state.symbol, step_pct, self.min_step_pct, self.max_step_pct,
            )
            return None
        price = candle.close
        if p3.price > p1.price:
            trend = TrendDirection.UPTREND
            levels = NextLevels(long=price - step, short=price + step)
        else:
            trend = TrendDirection.DOWNTREND
            levels = NextLevels(long=price + step, short=price - step)
        logger.info(
            "%s: %s complete | step=%.2f%% next LONG=%.6g SHORT=%.6g",
            state.symbol, trend.value, step_pct, levels.long, levels.short,
        )
        return TrendPattern(
            symbol=state.symbol,
            point1=p1,
            point2=p2,
            point3=p3,
            current_price=price,
            trend_direction=trend,
            step_size=step,
            step_pct=step_pct,
            next_levels=levels,
            start_time=p1.timestamp,
            end_time=candle.close_time,
        )
