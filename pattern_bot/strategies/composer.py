"""
Signal composer: completed pattern -> direction -> confirmations -> TP/SL.

Each confirmation source runs in one mode:
  off       not consulted
  advisory  feeds the overall label only
  critical  a failed check rejects; an unavailable source passes
  required  a failed or unavailable check rejects
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from pattern_bot.analysis.order_flow import OrderFlowAnalyzer
from pattern_bot.analysis.reference_trend import TrendEstimator
from pattern_bot.analysis.regime import RegimeFilter
from pattern_bot.analysis.volume_profile import VolumeProfileAnalyzer
from pattern_bot.core.types import (
    Candle,
    CompletedPattern,
    Confirmation,
    Direction,
    SourceCheck,
    TradingSignal,
)
from pattern_bot.risk.sizing import Sizer
from pattern_bot.strategies.base import PatternStrategy

logger = logging.getLogger("pattern_bot.strategies.composer")

OFF = "off"
ADVISORY = "advisory"
CRITICAL = "critical"
REQUIRED = "required"
MODES = (OFF, ADVISORY, CRITICAL, REQUIRED)

REFERENCE_TREND = "reference_trend"
VOLUME_PROFILE = "volume_profile"
ORDER_FLOW = "order_flow"
REGIME = "regime"
SOURCES = (REFERENCE_TREND, VOLUME_PROFILE, ORDER_FLOW, REGIME)

ACCEPTED = "accepted"
REJECTED = "rejected"
PENDING = "pending"


@dataclass
class ConfirmationPolicy:
    modes: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        for source, mode in self.modes.items():
            if source not in SOURCES:
                raise ValueError(f"Unknown confirmation source: {source}")
            if mode not in MODES:
                raise ValueError(f"Unknown mode {mode!r} for {source}")

    def mode(self, source: str) -> str:
        return self.modes.get(source, OFF)

    def blocking(self, source: str) -> bool:
        return self.mode(source) in (CRITICAL, REQUIRED)


@dataclass(frozen=True)
class SignalDecision:
    outcome: str
    symbol: str
    strategy: str
    reason: str
    direction: Optional[Direction] = None
    signal: Optional[TradingSignal] = None
    confirmation: Optional[Confirmation] = None
    blocking_sources: tuple = ()

    @property
    def accepted(self) -> bool:
        return self.outcome == ACCEPTED

    @property
    def pending(self) -> bool:
        return self.outcome == PENDING


class SignalComposer:
    """One composer per strategy; analyzers are shared and may be None (treated as unavailable)."""

    def __init__(
        self,
        strategy: PatternStrategy,
        policy: ConfirmationPolicy,
        sizer: Sizer,
        trend: Optional[TrendEstimator] = None,
        volume_profile: Optional[VolumeProfileAnalyzer] = None,
        order_flow: Optional[OrderFlowAnalyzer] = None,
        regime: Optional[RegimeFilter] = None,
        filter_stats=None,
    ):
        self.strategy = strategy
        self.policy = policy
        self.sizer = sizer
        self.trend = trend
        self.volume_profile = volume_profile
        self.order_flow = order_flow
        self.regime = regime
        self.filter_stats = filter_stats

    def compose(
        self,
        pattern: CompletedPattern,
        price: float,
        candles: Sequence[Candle] = (),
        when: datetime = None,
        record_pending: bool = True,
    ) -> SignalDecision:
        """Direction, confirmation and sizing for a completed pattern at `price`."""
        if price <= 0:
            raise ValueError(f"Price must be positive, got {price}")
        direction = self.strategy.direction_for(pattern, price)
        if direction is None:
            reason = self.strategy.pending_reason(pattern, price)
            decision = SignalDecision(PENDING, pattern.symbol, self.strategy.name, reason)
            return self._record(decision) if record_pending else decision

        confirmation, blocking = self.confirm(pattern, direction, candles)
        description = self.strategy.describe(pattern, direction)
        if blocking:
            decision = SignalDecision(
                REJECTED, pattern.symbol, self.strategy.name,
                f"{description} | rejected by {', '.join(blocking)} | {confirmation.summary()}",
                direction=direction, confirmation=confirmation, blocking_sources=tuple(blocking),
            )
            logger.info("%s: %s", pattern.symbol, decision.reason)
            return self._record(decision)

        sizing, take_profit, stop_loss = self.sizer.size(price, direction, pattern.defining_prices)
        reason = f"{description} | {sizing.description}"
        signal = TradingSignal(
            symbol=pattern.symbol,
            direction=direction,
            entry_price=price,
            take_profit=take_profit,
            stop_loss=stop_loss,
            reason=reason,
            confirmation=confirmation,
            timestamp=when or datetime.now(timezone.utc),
            sizing=sizing,
            strategy=self.strategy.name,
        )
        decision = SignalDecision(
            ACCEPTED, pattern.symbol, self.strategy.name, reason,
            direction=direction, signal=signal, confirmation=confirmation,
        )
        logger.info(
            "%s: %s signal | %s | %s%s",
            pattern.symbol, direction.value, reason, confirmation.summary(),
            "" if confirmation.overall else " (partial confirmation)",
        )
        return self._record(decision)

    def expire(self, pattern: CompletedPattern, reason: str) -> SignalDecision:
        """Reject a pattern whose entry condition never came."""
        decision = SignalDecision(REJECTED, pattern.symbol, self.strategy.name, reason)
        logger.info("%s: %s pattern dropped: %s", pattern.symbol, self.strategy.name, reason)
        return self._record(decision)

    def _record(self, decision: SignalDecision) -> SignalDecision:
        if self.filter_stats is not None:
            self.filter_stats.record(decision)
        return decision

    def confirm(self, pattern: CompletedPattern, direction: Direction, candles: Sequence[Candle] = ()):
        """Returns (Confirmation, names of sources that block the trade)."""
        checks: List[SourceCheck] = []
        blocking: List[str] = []
        advisory_ok = True
        for source in SOURCES:
            mode = self.policy.mode(source)
            if mode == OFF:
                continue
            check = self._check(source, pattern, direction, candles)
            checks.append(check)
            if mode == ADVISORY:
                advisory_ok = advisory_ok and check.passed and check.available
            elif not check.passed or (mode == REQUIRED and not check.available):
                blocking.append(source)
        confirmation = Confirmation(
            checks=tuple(checks),
            critical_passed=not blocking,
            overall=not blocking and advisory_ok,
        )
        return confirmation, blocking

    def _check(self, source: str, pattern: CompletedPattern, direction: Direction, candles: Sequence[Candle]) -> SourceCheck:
        if source == REFERENCE_TREND:
            return self._check_trend(direction)
        if source == VOLUME_PROFILE:
            return self._check_volume(pattern)
        if source == ORDER_FLOW:
            return self._check_order_flow(pattern.symbol, direction)
        return self._check_regime(direction, candles)

    def _check_trend(self, direction: Direction) -> SourceCheck:
        if self.trend is None or not self.trend.ready:
            return SourceCheck(REFERENCE_TREND, True, available=False, detail="reference trend not ready")
        estimate = self.trend.estimate
        return SourceCheck(
            REFERENCE_TREND, self.trend.is_direction_allowed(direction),
            detail=f"{estimate.bias.value} fast={estimate.ema_fast:.2f} slow={estimate.ema_slow:.2f}",
        )

    def _check_volume(self, pattern: CompletedPattern) -> SourceCheck:
        if self.volume_profile is None:
            return SourceCheck(VOLUME_PROFILE, True, available=False, detail="no volume profile source")
        profile = self.volume_profile.analyze(pattern.symbol)
        if not profile.available:
            return SourceCheck(VOLUME_PROFILE, True, available=False, detail="volume profile unavailable")
        low, high = self.strategy.price_range(pattern)
        passed = profile.confirms_channel(low, high)
        return SourceCheck(
            VOLUME_PROFILE, passed,
            detail=f"VPOC={profile.vpoc:.6g} {'range has volume' if passed else 'range inside low-volume area'}",
        )

    def _check_order_flow(self, symbol: str, direction: Direction) -> SourceCheck:
        if self.order_flow is None:
            return SourceCheck(ORDER_FLOW, True, available=False, detail="no order book source")
        snapshot = self.order_flow.analyze(symbol)
        if not snapshot.available:
            return SourceCheck(ORDER_FLOW, True, available=False, detail="order book unavailable")
        return SourceCheck(
            ORDER_FLOW, self.order_flow.supports(direction, snapshot),
            detail=f"ratio={snapshot.ratio:.2f} strength={snapshot.strength}",
        )

    def _check_regime(self, direction: Direction, candles: Sequence[Candle]) -> SourceCheck:
        report = self.regime.evaluate(candles) if self.regime is not None else None
        if report is None or not report.available:
            return SourceCheck(REGIME, True, available=False, detail="not enough candles for regime")
        return SourceCheck(REGIME, report.allows(direction), detail=f"{report.bias.value} {report.reason()}")
