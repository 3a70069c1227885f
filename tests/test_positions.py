"""Unit tests for risk.positions (paper position engine)."""

from datetime import datetime, timezone

import pytest

from pattern_bot.core.types import Confirmation, Direction, PositionStatus, TradingSignal
from pattern_bot.risk.positions import PositionEngine, pnl_pct

NOW = datetime(2024, 1, 2, 12, 0, tzinfo=timezone.utc)


def signal(direction=Direction.LONG, entry=100.0, tp=102.0, sl=98.0, symbol="ETHUSDT"):
    return TradingSignal(
        symbol=symbol,
        direction=direction,
        entry_price=entry,
        take_profit=tp,
        stop_loss=sl,
        reason="test",
        confirmation=Confirmation(),
        timestamp=NOW,
        strategy="sideways",
    )


def test_open_charges_taker_fee():
    engine = PositionEngine(taker_fee_rate=0.0005)
    result = engine.open(signal())
    assert result.opened
    assert result.position.fees_pct == pytest.approx(0.05)
    assert result.position.is_open
    stats = engine.stats()
    assert stats.total_trades == 1 and stats.open_trades == 1


def test_take_profit_close_uses_maker_fee():
    engine = PositionEngine(maker_fee_rate=0.0002, taker_fee_rate=0.0005)
    engine.open(signal())
    assert engine.mark_and_maybe_close("ETHUSDT", 101.0, NOW) == []
    closed = engine.mark_and_maybe_close("ETHUSDT", 102.5, NOW)
    assert len(closed) == 1
    pos = closed[0]
    assert pos.status == PositionStatus.CLOSED_TP
    assert pos.realized_pnl == pytest.approx(2.5)
    assert pos.fees_pct == pytest.approx(0.07)
    assert pos.net_pnl == pytest.approx(2.43)
    assert engine.open_positions() == []


def test_stop_loss_close_short():
    engine = PositionEngine()
    engine.open(signal(Direction.SHORT, tp=98.0, sl=102.0))
    closed = engine.mark_and_maybe_close("ETHUSDT", 102.0, NOW)
    assert closed[0].status == PositionStatus.CLOSED_SL
    assert closed[0].realized_pnl == pytest.approx(-2.0)
    assert closed[0].fees_pct == pytest.approx(0.1)


def test_take_profit_checked_before_stop_loss():
    # Degenerate levels where one price satisfies both.
    engine = PositionEngine()
    engine.open(signal(tp=101.0, sl=103.0))
    closed = engine.mark_and_maybe_close("ETHUSDT", 102.0, NOW)
    assert closed[0].status == PositionStatus.CLOSED_TP


def test_reversal_closes_opposite_then_opens():
    engine = PositionEngine()
    engine.open(signal(Direction.LONG, entry=100.0, tp=105.0, sl=95.0))
    blocked = engine.open(signal(Direction.SHORT, entry=101.0, tp=99.0, sl=103.0))
    assert not blocked.opened

    closed = engine.close_opposite("ETHUSDT", Direction.SHORT, 101.0, NOW)
    assert len(closed) == 1
    assert closed[0].status == PositionStatus.CLOSED_REVERSAL
    assert closed[0].realized_pnl == pytest.approx(1.0)
    assert engine.stats().closed_trades == 1

    reopened = engine.open(signal(Direction.SHORT, entry=101.0, tp=99.0, sl=103.0))
    assert reopened.opened
    assert [p.direction for p in engine.open_positions("ETHUSDT")] == [Direction.SHORT]


def test_close_opposite_leaves_same_direction():
    engine = PositionEngine()
    engine.open(signal(Direction.LONG))
    assert engine.close_opposite("ETHUSDT", Direction.LONG, 100.5, NOW) == []
    assert len(engine.open_positions("ETHUSDT")) == 1


def test_caps():
    engine = PositionEngine(max_positions_per_symbol=1, max_total_positions=2)
    assert engine.open(signal(symbol="AUSDT")).opened
    same = engine.open(signal(symbol="AUSDT"))
    assert not same.opened and "per-symbol" in same.reason
    assert engine.open(signal(symbol="BUSDT")).opened
    total = engine.open(signal(symbol="CUSDT"))
    assert not total.opened and "total" in total.reason
    assert engine.stats().total_trades == 2


def test_stats_invariants():
    engine = PositionEngine()
    engine.open(signal(symbol="AUSDT"))
    engine.open(signal(symbol="BUSDT"))
    engine.open(signal(symbol="CUSDT"))
    engine.mark_and_maybe_close("AUSDT", 103.0, NOW)
    engine.mark_and_maybe_close("BUSDT", 97.0, NOW)
    reversed_ = engine.close_opposite("CUSDT", Direction.SHORT, 100.0, NOW)
    assert reversed_[0].realized_pnl == 0.0

    s = engine.stats()
    assert s.total_trades == s.open_trades + s.closed_trades == 3
    assert s.closed_trades == s.win_trades + s.loss_trades
    assert s.win_trades == 1 and s.loss_trades == 2
    assert s.total_pnl == pytest.approx(0.0)
    assert s.max_win == pytest.approx(3.0)
    assert s.max_loss == pytest.approx(-3.0)
    assert s.win_rate == pytest.approx(100 / 3)
    assert s.net_pnl == pytest.approx(s.total_pnl - s.total_fees_pct)
    assert len(engine.closed_positions()) == 3

    perf = engine.performance()
    assert perf.total_trades == 3
    assert perf.winning_trades == 1


def test_stats_returns_a_copy():
    engine = PositionEngine()
    snapshot = engine.stats()
    engine.open(signal())
    assert snapshot.total_trades == 0


def test_invalid_prices_raise():
    engine = PositionEngine()
    with pytest.raises(ValueError):
        engine.open(signal(entry=0.0))
    with pytest.raises(ValueError):
        engine.mark_and_maybe_close("ETHUSDT", -1.0)


def test_reversal_of_closed_position_raises():
    engine = PositionEngine()
    pos = engine.open(signal()).position
    engine.mark_and_maybe_close("ETHUSDT", 110.0, NOW)
    with pytest.raises(ValueError):
        engine.close_by_reversal(pos, 100.0, NOW)


def test_pnl_pct():
    assert pnl_pct(Direction.LONG, 100.0, 101.0) == pytest.approx(1.0)
    assert pnl_pct(Direction.SHORT, 100.0, 101.0) == pytest.approx(-1.0)


def test_daily_pnl_accumulates_net_and_resets():
    engine = PositionEngine(maker_fee_rate=0.0002, taker_fee_rate=0.0005)
    engine.open(signal())
    engine.mark_and_maybe_close("ETHUSDT", 102.5, NOW)
    assert engine.daily_pnl() == pytest.approx(2.43)

    later = datetime(2024, 1, 3, 0, 0, tzinfo=timezone.utc)
    engine.reset_daily_stats(later)
    s = engine.stats()
    assert s.daily_pnl == 0.0
    assert s.daily_since == later
    assert s.closed_trades == 1
    assert s.net_pnl == pytest.approx(2.43)

    engine.open(signal())
    engine.mark_and_maybe_close("ETHUSDT", 98.0, later)
    assert engine.daily_pnl() == pytest.approx(-2.1)
