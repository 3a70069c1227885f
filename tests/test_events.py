"""Unit tests for core.events and telegram formatting."""

from datetime import datetime, timezone

from pattern_bot.core.events import Event, EventBus, EventType
from pattern_bot.core.types import Confirmation, Direction, TradingSignal
from pattern_bot.risk.positions import PositionEngine
from pattern_bot.utils.telegram import TelegramNotifier, format_event, send_telegram


def test_subscribers_receive_matching_events():
    bus = EventBus()
    seen = []
    bus.subscribe(EventType.POSITION_OPENED, seen.append)
    bus.emit(Event(EventType.POSITION_OPENED, "ETHUSDT"))
    bus.emit(Event(EventType.POSITION_CLOSED, "ETHUSDT"))
    assert [e.type for e in seen] == [EventType.POSITION_OPENED]


def test_failing_handler_does_not_stop_others():
    bus = EventBus()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    bus.subscribe(EventType.SIGNAL_COMPOSED, broken)
    bus.subscribe(EventType.SIGNAL_COMPOSED, seen.append)
    bus.emit(Event(EventType.SIGNAL_COMPOSED, "ETHUSDT"))
    assert len(seen) == 1


def test_unsubscribe_and_history():
    bus = EventBus(max_history=2)
    seen = []
    bus.subscribe(EventType.STATS_SNAPSHOT, seen.append)
    bus.unsubscribe(EventType.STATS_SNAPSHOT, seen.append)
    for _ in range(3):
        bus.emit(Event(EventType.STATS_SNAPSHOT))
    assert seen == []
    assert len(bus.history()) == 2
    assert bus.history(EventType.POSITION_OPENED) == []


def _position_events():
    engine = PositionEngine()
    signal = TradingSignal(
        symbol="ETHUSDT",
        direction=Direction.LONG,
        entry_price=100.0,
        take_profit=102.0,
        stop_loss=98.0,
        reason="test",
        confirmation=Confirmation(),
        timestamp=datetime(2024, 1, 2, tzinfo=timezone.utc),
        strategy="sideways",
    )
    position = engine.open(signal).position
    opened = Event(EventType.POSITION_OPENED, "ETHUSDT", {"position": position})
    engine.mark_and_maybe_close("ETHUSDT", 102.0)
    closed = Event(EventType.POSITION_CLOSED, "ETHUSDT", {"position": position})
    return opened, closed


def test_format_position_events():
    opened, closed = _position_events()
    assert format_event(opened).startswith("Open LONG ETHUSDT @ 100.0000")
    assert "[sideways] confirmed" in format_event(opened)
    text = format_event(closed)
    assert "CLOSED_TP" in text
    assert "PnL=+2.00%" in text
    assert format_event(Event(EventType.STATS_SNAPSHOT, "X")) == "stats_snapshot X"


def test_notifier_without_credentials_is_silent():
    notifier = TelegramNotifier()
    assert not notifier.enabled
    assert send_telegram("hello") is False
    bus = EventBus()
    notifier.attach(bus)
    opened, _ = _position_events()
    bus.emit(opened)
