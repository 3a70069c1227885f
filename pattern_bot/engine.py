"""
Trading engine: routes each closed candle through buffers, reference trend,
position marking, pattern detectors, signal composition and paper positions.
Candles for one symbol are handled one at a time; symbols run independently.
"""

from __future__ import annotations
import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional, Tuple

from pattern_bot.analysis.order_flow import OrderFlowAnalyzer
from pattern_bot.analysis.reference_trend import TrendEstimator
from pattern_bot.analysis.regime import RegimeFilter
from pattern_bot.analysis.volume_profile import VolumeProfileAnalyzer
from pattern_bot.analytics.filter_stats import FilterStatistics
from pattern_bot.core.config import Config
from pattern_bot.core.events import Event, EventBus, EventType
from pattern_bot.core.types import Candle, Position, TrendPattern
from pattern_bot.execution.base import MarketDataClient
from pattern_bot.patterns.detector import PatternDetector, SidewaysDetector, TrendDetector
from pattern_bot.risk.positions import PositionEngine
from pattern_bot.risk.sizing import AdaptiveSettings, Sizer
from pattern_bot.strategies.composer import ConfirmationPolicy, SignalComposer, SignalDecision
from pattern_bot.strategies.sideways import SidewaysStrategy
from pattern_bot.strategies.trend import TrendStrategy

logger = logging.getLogger("pattern_bot.engine")

SIDEWAYS = "sideways"
TREND = "trend"


@dataclass
class ArmedSetup:
    """Trend pattern waiting for price to reach one of its entry levels."""
    pattern: TrendPattern
    candles_waited: int = 0


class TradingEngine:
    def __init__(
        self,
        config: Config,
        client: Optional[MarketDataClient] = None,
        bus: Optional[EventBus] = None,
        positions: Optional[PositionEngine] = None,
        trend: Optional[TrendEstimator] = None,
    ):
        self.config = config
        self.bus = bus or EventBus()
        self.positions = positions or PositionEngine.from_config(config)
        self.trend = trend or TrendEstimator(
            fast=config.reference_ema_fast,
            slow=config.reference_ema_slow,
            min_samples=config.reference_min_samples,
            symbol=config.reference_symbol,
        )
        self.filter_stats = FilterStatistics()
        volume_profile = order_flow = None
        if client is not None:
            volume_profile = VolumeProfileAnalyzer(
                client,
                ttl_seconds=config.volume_profile_ttl_s,
                lookback_minutes=config.volume_profile_lookback_min,
                interval=config.volume_profile_interval,
            )
            order_flow = OrderFlowAnalyzer(
                client,
                ttl_seconds=config.order_flow_ttl_s,
                depth_levels=config.order_flow_depth_levels,
                min_wall_notional=config.min_wall_notional,
                min_support_notional=config.min_support_notional,
            )
        self.volume_profile = volume_profile
        self.order_flow = order_flow
        self.regime = RegimeFilter.from_config(config)
        self.strategies: Dict[str, Tuple[PatternDetector, SignalComposer]] = {}
        for name in config.enabled_strategies:
            self.strategies[name] = self._build_strategy(name)

        self._buffers: Dict[str, Deque[Candle]] = {}
        self._armed: Dict[str, ArmedSetup] = {}
        self._symbol_locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._closes_since_snapshot = 0
        self._snapshot_lock = threading.Lock()

    def _build_strategy(self, name: str) -> Tuple[PatternDetector, SignalComposer]:
        c = self.config
        adaptive = AdaptiveSettings.from_config(c)
        if name == SIDEWAYS:
            detector = SidewaysDetector(
                lookback_period=c.lookback_period,
                analysis_window=c.analysis_window,
                min_channel_width_pct=c.min_channel_width_pct,
                return_tolerance_pct=c.return_tolerance_pct,
            )
            strategy = SidewaysStrategy()
            sizer = Sizer(c.sideways_sizing_mode, c.sideways_take_profit_pct, c.sideways_stop_loss_pct, adaptive)
            policy = ConfirmationPolicy(dict(c.sideways_confirmation))
        elif name == TREND:
            detector = TrendDetector(
                lookback_period=c.lookback_period,
                analysis_window=c.analysis_window,
                min_channel_width_pct=c.min_channel_width_pct,
                min_step_pct=c.min_trend_step_pct,
                max_step_pct=c.max_trend_step_pct,
            )
            strategy = TrendStrategy(c.entry_level_tolerance_pct)
            sizer = Sizer(c.trend_sizing_mode, c.trend_take_profit_pct, c.trend_stop_loss_pct, adaptive)
            policy = ConfirmationPolicy(dict(c.trend_confirmation))
        else:
            raise ValueError(f"Unknown strategy: {name}")
        composer = SignalComposer(
            strategy, policy, sizer,
            trend=self.trend,
            volume_profile=self.volume_profile,
            order_flow=self.order_flow,
            regime=self.regime,
            filter_stats=self.filter_stats,
        )
        return detector, composer

    def _lock_for(self, symbol: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._symbol_locks.get(symbol)
            if lock is None:
                lock = self._symbol_locks[symbol] = threading.Lock()
            return lock

    def on_closed_candle(self, candle: Candle) -> List[SignalDecision]:
        """Process one closed candle. Returns the signal decisions it produced."""
        if candle.close <= 0:
            raise ValueError(f"Non-positive close for {candle.symbol}: {candle.close}")
        with self._lock_for(candle.symbol):
            return self._process(candle)

    def preload(self, candles: List[Candle]) -> None:
        """Fill buffers (and the reference trend) from history without trading on it."""
        for candle in candles:
            with self._lock_for(candle.symbol):
                buffer = self._buffers.get(candle.symbol)
                if buffer is None:
                    buffer = self._buffers[candle.symbol] = deque(maxlen=self.config.buffer_size)
                buffer.append(candle)
                if candle.symbol == self.config.reference_symbol:
                    self.trend.update(candle.close)

    def _process(self, candle: Candle) -> List[SignalDecision]:
        symbol = candle.symbol
        buffer = self._buffers.get(symbol)
        if buffer is None:
            buffer = self._buffers[symbol] = deque(maxlen=self.config.buffer_size)
        buffer.append(candle)
        if symbol == self.config.reference_symbol:
            self.trend.update(candle.close)

        closed = self.positions.mark_and_maybe_close(symbol, candle.close, candle.close_time)
        for position in closed:
            self._position_closed(position)

        candles = list(buffer)
        decisions: List[SignalDecision] = []
        for name, (detector, composer) in self.strategies.items():
            if name == TREND:
                decision = self._recheck_armed(symbol, composer, candle, candles)
                if decision is not None:
                    decisions.append(decision)
            pattern = detector.update(candles)
            if pattern is None:
                continue
            self.bus.emit(Event(EventType.PATTERN_COMPLETED, symbol, {"strategy": name, "pattern": pattern}))
            decision = composer.compose(pattern, candle.close, candles, when=candle.close_time)
            if decision.pending:
                self._arm(symbol, pattern, composer)
                continue
            decisions.append(decision)
        for decision in decisions:
            self._act(decision, candle)
        return decisions

    def _arm(self, symbol: str, pattern: TrendPattern, composer: SignalComposer) -> None:
        previous = self._armed.get(symbol)
        if previous is not None:
            composer.expire(previous.pattern, "superseded by a newer trend pattern")
        self._armed[symbol] = ArmedSetup(pattern)
        logger.info(
            "%s: trend setup armed, waiting for LONG %.6g or SHORT %.6g",
            symbol, pattern.next_levels.long, pattern.next_levels.short,
        )

    def _recheck_armed(self, symbol: str, composer: SignalComposer, candle: Candle, candles: List[Candle]) -> Optional[SignalDecision]:
        setup = self._armed.get(symbol)
        if setup is None:
            return None
        decision = composer.compose(setup.pattern, candle.close, candles, when=candle.close_time, record_pending=False)
        if not decision.pending:
            del self._armed[symbol]
            return decision
        setup.candles_waited += 1
        if setup.candles_waited >= self.config.trend_setup_max_candles:
            del self._armed[symbol]
            return composer.expire(
                setup.pattern, f"entry level not reached within {self.config.trend_setup_max_candles} candles",
            )
        return None

    def _act(self, decision: SignalDecision, candle: Candle) -> None:
        self.bus.emit(Event(EventType.SIGNAL_COMPOSED, decision.symbol, {"decision": decision}))
        if not decision.accepted:
            return
        signal = decision.signal
        for position in self.positions.close_opposite(signal.symbol, signal.direction, candle.close, candle.close_time):
            self._position_closed(position)
        result = self.positions.open(signal)
        if result.opened:
            self.bus.emit(Event(EventType.POSITION_OPENED, signal.symbol, {"position": result.position, "signal": signal}))

    def _position_closed(self, position: Position) -> None:
        self.bus.emit(Event(EventType.POSITION_CLOSED, position.symbol, {"position": position}))
        with self._snapshot_lock:
            self._closes_since_snapshot += 1
            due = self._closes_since_snapshot >= self.config.stats_every_closes
            if due:
                self._closes_since_snapshot = 0
        if due:
            self.snapshot()

    def snapshot(self) -> Event:
        """Log and emit current trading stats."""
        self.positions.log_stats()
        self.filter_stats.log_summary()
        event = Event(
            EventType.STATS_SNAPSHOT,
            payload={"stats": self.positions.stats(), "performance": self.positions.performance()},
        )
        self.bus.emit(event)
        return event

    def armed_setups(self) -> Dict[str, ArmedSetup]:
        return dict(self._armed)

    def buffer(self, symbol: str) -> List[Candle]:
        return list(self._buffers.get(symbol, ()))

    def clear_expired_caches(self) -> None:
        if self.volume_profile is not None:
            self.volume_profile.clear_expired()
        if self.order_flow is not None:
            self.order_flow.clear_expired()
