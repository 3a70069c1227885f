"""
Paper position engine: caps, TP/SL marking, reversal closes, running stats.
PnL is percent of entry; fees are percent of notional (taker on entry,
maker on take-profit exits, taker on stop-loss and reversal exits).
"""

from __future__ import annotations
import logging
import threading
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pattern_bot.analytics.metrics import PerformanceMetrics, compute_metrics
from pattern_bot.core.types import Direction, Position, PositionStatus, TradingSignal, TradingStats
from pattern_bot.utils.prices import format_price, pct_change

logger = logging.getLogger("pattern_bot.risk.positions")


@dataclass
class OpenResult:
    """Result of open(): opened or rejected + reason."""
    opened: bool
    position: Optional[Position] = None
    reason: str = ""


def pnl_pct(direction: Direction, entry: float, price: float) -> float:
    move = pct_change(entry, price)
    return move if direction == Direction.LONG else -move


def _check_price(price: float, what: str = "price") -> None:
    if price is None or price <= 0:
        raise ValueError(f"{what} must be positive, got {price}")


class PositionEngine:
    """
    Owns all paper positions. open/close bookkeeping and stats share one lock;
    callers still serialize marking per symbol.
    """

    def __init__(
        self,
        max_positions_per_symbol: int = 1,
        max_total_positions: int = 10,
        one_direction_per_symbol: bool = True,
        maker_fee_rate: float = 0.0002,
        taker_fee_rate: float = 0.0005,
    ):
        self.max_positions_per_symbol = max_positions_per_symbol
        self.max_total_positions = max_total_positions
        self.one_direction_per_symbol = one_direction_per_symbol
        self.maker_fee_rate = maker_fee_rate
        self.taker_fee_rate = taker_fee_rate
        self._open: Dict[str, Position] = {}
        self._closed: List[Position] = []
        self._stats = TradingStats(daily_since=datetime.now(timezone.utc))
        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config) -> "PositionEngine":
        return cls(
            max_positions_per_symbol=config.max_positions_per_symbol,
            max_total_positions=config.max_total_positions,
            one_direction_per_symbol=config.one_direction_per_symbol,
            maker_fee_rate=config.maker_fee_rate,
            taker_fee_rate=config.taker_fee_rate,
        )

    def open(self, signal: TradingSignal) -> OpenResult:
        _check_price(signal.entry_price, "entry price")
        with self._lock:
            same_symbol = [p for p in self._open.values() if p.symbol == signal.symbol]
            if len(same_symbol) >= self.max_positions_per_symbol:
                return self._reject(signal, f"per-symbol cap reached ({len(same_symbol)}/{self.max_positions_per_symbol})")
            if len(self._open) >= self.max_total_positions:
                return self._reject(signal, f"total cap reached ({len(self._open)}/{self.max_total_positions})")
            if self.one_direction_per_symbol and any(p.direction != signal.direction for p in same_symbol):
                return self._reject(signal, f"opposite position open on {signal.symbol}")

            position = Position(
                id=str(uuid.uuid4()),
                symbol=signal.symbol,
                direction=signal.direction,
                entry_price=signal.entry_price,
                entry_time=signal.timestamp,
                current_price=signal.entry_price,
                take_profit=signal.take_profit,
                stop_loss=signal.stop_loss,
                confirmation=signal.confirmation,
                open_reason=signal.reason,
                strategy=signal.strategy,
                fees_pct=self.taker_fee_rate * 100.0,
            )
            self._open[position.id] = position
            self._stats.total_trades += 1
            self._stats.open_trades += 1
        logger.info(
            "Opened %s %s @ %s TP=%s SL=%s [%s] %s",
            position.direction.value, position.symbol, format_price(position.entry_price),
            format_price(position.take_profit), format_price(position.stop_loss),
            position.strategy or "-", position.confirmation.summary(),
        )
        return OpenResult(opened=True, position=position, reason="opened")

    def _reject(self, signal: TradingSignal, reason: str) -> OpenResult:
        logger.info("Open %s %s rejected: %s", signal.direction.value, signal.symbol, reason)
        return OpenResult(opened=False, reason=reason)

    def mark_and_maybe_close(self, symbol: str, price: float, when: datetime = None) -> List[Position]:
        """Update open positions of symbol at price; close those hitting TP (checked first) or SL."""
        _check_price(price)
        closed: List[Position] = []
        for position in self.open_positions(symbol):
            position.current_price = price
            position.unrealized_pnl = pnl_pct(position.direction, position.entry_price, price)
            if position.direction == Direction.LONG:
                hit_tp, hit_sl = price >= position.take_profit, price <= position.stop_loss
            else:
                hit_tp, hit_sl = price <= position.take_profit, price >= position.stop_loss
            if hit_tp:
                closed.append(self._close(position, price, PositionStatus.CLOSED_TP, "take profit hit", when))
            elif hit_sl:
                closed.append(self._close(position, price, PositionStatus.CLOSED_SL, "stop loss hit", when))
        return closed

    def close_by_reversal(self, position: Position, price: float, when: datetime = None) -> Position:
        _check_price(price)
        if not position.is_open:
            raise ValueError(f"Position {position.id} is already closed")
        position.current_price = price
        position.unrealized_pnl = pnl_pct(position.direction, position.entry_price, price)
        return self._close(position, price, PositionStatus.CLOSED_REVERSAL, "reversal signal", when)

    def close_opposite(self, symbol: str, direction: Direction, price: float, when: datetime = None) -> List[Position]:
        """Reversal-close every open position on symbol facing away from direction."""
        return [
            self.close_by_reversal(p, price, when)
            for p in self.open_positions(symbol)
            if p.direction != direction
        ]

    def _close(self, position: Position, price: float, status: PositionStatus, reason: str, when: datetime) -> Position:
        exit_rate = self.maker_fee_rate if status == PositionStatus.CLOSED_TP else self.taker_fee_rate
        with self._lock:
            if self._open.pop(position.id, None) is None:
                raise ValueError(f"Position {position.id} is not open")
            position.status = status
            position.close_price = price
            position.close_time = when or datetime.now(timezone.utc)
            position.close_reason = reason
            position.realized_pnl = position.unrealized_pnl
            position.fees_pct += exit_rate * 100.0
            self._closed.append(position)
            self._record_close(position)
        logger.info(
            "Closed %s %s %s | %+.2f%% (net %+.2f%%) | %s -> %s",
            position.direction.value, position.symbol, status.value, position.realized_pnl, position.net_pnl,
            format_price(position.entry_price), format_price(price),
        )
        return position

    def _record_close(self, position: Position) -> None:
        s = self._stats
        pnl = position.realized_pnl
        s.open_trades -= 1
        s.closed_trades += 1
        if pnl > 0:
            s.win_trades += 1
            s.max_win = max(s.max_win, pnl)
        else:
            s.loss_trades += 1
            s.max_loss = min(s.max_loss, pnl)
        s.total_pnl += pnl
        s.total_fees_pct += position.fees_pct
        s.net_pnl = s.total_pnl - s.total_fees_pct
        s.daily_pnl += position.net_pnl
        s.win_rate = s.win_trades / s.closed_trades * 100.0
        s.average_pnl = s.total_pnl / s.closed_trades

    def open_positions(self, symbol: str = None) -> List[Position]:
        with self._lock:
            return [p for p in self._open.values() if symbol is None or p.symbol == symbol]

    def closed_positions(self) -> List[Position]:
        with self._lock:
            return list(self._closed)

    def stats(self) -> TradingStats:
        with self._lock:
            return replace(self._stats)

    def daily_pnl(self) -> float:
        with self._lock:
            return self._stats.daily_pnl

    def reset_daily_stats(self, when: datetime = None) -> None:
        """Start a new daily window; running totals are kept."""
        with self._lock:
            previous = self._stats.daily_pnl
            self._stats.daily_pnl = 0.0
            self._stats.daily_since = when or datetime.now(timezone.utc)
        logger.info("Daily stats reset (previous day net %+.2f%%)", previous)

    def performance(self) -> PerformanceMetrics:
        return compute_metrics([p.realized_pnl for p in self.closed_positions()])

    def log_stats(self) -> None:
        s = self.stats()
        logger.info("Trades: total=%d open=%d closed=%d", s.total_trades, s.open_trades, s.closed_trades)
        if s.closed_trades:
            logger.info(
                "Wins=%d losses=%d win rate=%.1f%% | PnL total=%+.2f%% avg=%+.2f%% | best=%+.2f%% worst=%+.2f%% | fees=%.3f%% net=%+.2f%% today=%+.2f%%",
                s.win_trades, s.loss_trades, s.win_rate, s.total_pnl, s.average_pnl,
                s.max_win, s.max_loss, s.total_fees_pct, s.net_pnl, s.daily_pnl,
            )
