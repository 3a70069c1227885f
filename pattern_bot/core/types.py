"""
Core data types: candles, extrema, patterns, signals, positions, stats.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple, Union


class Direction(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"

    @property
    def opposite(self) -> "Direction":
        return Direction.SHORT if self is Direction.LONG else Direction.LONG


class ExtremumKind(str, Enum):
    HIGH = "HIGH"
    LOW = "LOW"


class PatternStatus(str, Enum):
    SEEKING_OPPOSITE = "SEEKING_OPPOSITE"
    AWAITING_RETURN = "AWAITING_RETURN"


class SidewaysDirection(str, Enum):
    HIGH_LOW_HIGH = "high_to_low_to_high"
    LOW_HIGH_LOW = "low_to_high_to_low"


class TrendDirection(str, Enum):
    UPTREND = "UPTREND"
    DOWNTREND = "DOWNTREND"


class MarketBias(str, Enum):
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"
    SIDEWAYS = "SIDEWAYS"


class PositionStatus(str, Enum):
    OPEN = "OPEN"
    CLOSED_TP = "CLOSED_TP"
    CLOSED_SL = "CLOSED_SL"
    CLOSED_REVERSAL = "CLOSED_REVERSAL"


@dataclass(frozen=True)
class Candle:
    """Closed OHLCV candle for one symbol."""
    symbol: str
    open: float
    high: float
    low: float
    close: float
    volume: float
    open_time: datetime
    close_time: datetime

    @property
    def mid_price(self) -> float:
        return (self.high + self.low) / 2.0


@dataclass(frozen=True)
class PriceExtremum:
    price: float
    timestamp: datetime
    kind: ExtremumKind
    index: int


@dataclass
class PatternState:
    """Live pattern being built for one symbol."""
    symbol: str
    points: List[PriceExtremum]
    status: PatternStatus
    start_time: datetime
    direction: SidewaysDirection

    @property
    def last_point(self) -> PriceExtremum:
        return self.points[-1]


@dataclass(frozen=True)
class SidewaysPattern:
    """Price left a level and came back to it: high-low-high or low-high-low."""
    symbol: str
    first: PriceExtremum
    second: PriceExtremum
    current_price: float
    width_pct: float
    high: float
    low: float
    direction: SidewaysDirection
    start_time: datetime
    end_time: datetime

    @property
    def defining_prices(self) -> Tuple[float, ...]:
        return (self.first.price, self.second.price)


@dataclass(frozen=True)
class NextLevels:
    long: float
    short: float


@dataclass(frozen=True)
class TrendPattern:
    """Three alternating extrema with a net step between point1 and point3."""
    symbol: str
    point1: PriceExtremum
    point2: PriceExtremum
    point3: PriceExtremum
    current_price: float
    trend_direction: TrendDirection
    step_size: float
    step_pct: float
    next_levels: NextLevels
    start_time: datetime
    end_time: datetime

    @property
    def defining_prices(self) -> Tuple[float, ...]:
        return (self.point1.price, self.point2.price, self.point3.price)


CompletedPattern = Union[SidewaysPattern, TrendPattern]


@dataclass(frozen=True)
class SourceCheck:
    """Outcome of one confirmation source for one direction."""
    source: str
    passed: bool
    available: bool = True
    detail: str = ""


@dataclass(frozen=True)
class Confirmation:
    checks: Tuple[SourceCheck, ...] = ()
    critical_passed: bool = True
    overall: bool = True

    def get(self, source: str) -> Optional[SourceCheck]:
        for check in self.checks:
            if check.source == source:
                return check
        return None

    def passed(self, source: str) -> bool:
        check = self.get(source)
        return check.passed if check is not None else True

    def summary(self) -> str:
        if not self.checks:
            return "no confirmation sources"
        return " | ".join(
            f"{c.source}={'ok' if c.passed else 'fail'}{'' if c.available else ' (n/a)'}"
            for c in self.checks
        )


@dataclass(frozen=True)
class SizingResult:
    """TP/SL distances in percent plus the derivation text."""
    mode: str
    take_profit_pct: float
    stop_loss_pct: float
    channel_width_pct: float = 0.0
    description: str = ""

    @property
    def risk_reward(self) -> float:
        if self.stop_loss_pct <= 0:
            return 0.0
        return self.take_profit_pct / self.stop_loss_pct


@dataclass(frozen=True)
class TradingSignal:
    """Accepted signal with entry, target and stop."""
    symbol: str
    direction: Direction
    entry_price: float
    take_profit: float
    stop_loss: float
    reason: str
    confirmation: Confirmation
    timestamp: datetime
    sizing: Optional[SizingResult] = None
    strategy: str = ""


@dataclass
class Position:
    """Paper position, mutated only by the PositionEngine."""
    id: str
    symbol: str
    direction: Direction
    entry_price: float
    entry_time: datetime
    current_price: float
    take_profit: float
    stop_loss: float
    confirmation: Confirmation = field(default_factory=Confirmation)
    open_reason: str = ""
    strategy: str = ""
    status: PositionStatus = PositionStatus.OPEN
    unrealized_pnl: float = 0.0
    realized_pnl: Optional[float] = None
    fees_pct: float = 0.0
    close_price: Optional[float] = None
    close_time: Optional[datetime] = None
    close_reason: str = ""

    @property
    def is_open(self) -> bool:
        return self.status == PositionStatus.OPEN

    @property
    def net_pnl(self) -> Optional[float]:
        if self.realized_pnl is None:
            return None
        return self.realized_pnl - self.fees_pct


@dataclass
class TradingStats:
    """Running trade counters; PnL figures are in percent of entry."""
    total_trades: int = 0
    open_trades: int = 0
    closed_trades: int = 0
    win_trades: int = 0
    loss_trades: int = 0
    win_rate: float = 0.0
    total_pnl: float = 0.0
    average_pnl: float = 0.0
    max_win: float = 0.0
    max_loss: float = 0.0
    total_fees_pct: float = 0.0
    net_pnl: float = 0.0
    daily_pnl: float = 0.0
    daily_since: Optional[datetime] = None
