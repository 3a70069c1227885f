"""
Synchronous pub/sub for engine events (pattern completed, signal composed,
position opened/closed, stats snapshot). Persistence and notification layers
subscribe here; the core never imports them.
"""

from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List

logger = logging.getLogger("pattern_bot.events")


class EventType(str, Enum):
    PATTERN_COMPLETED = "pattern_completed"
    SIGNAL_COMPOSED = "signal_composed"
    POSITION_OPENED = "position_opened"
    POSITION_CLOSED = "position_closed"
    STATS_SNAPSHOT = "stats_snapshot"


@dataclass
class Event:
    type: EventType
    symbol: str = ""
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Handler = Callable[[Event], None]


class EventBus:
    """Thread-safe subscriber registry. Handlers run on the emitting thread."""

    def __init__(self, max_history: int = 1000):
        self._subscribers: Dict[EventType, List[Handler]] = {}
        self._lock = threading.RLock()
        self._history: List[Event] = []
        self._max_history = max_history

    def subscribe(self, event_type: EventType, handler: Handler) -> None:
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(handler)

    def unsubscribe(self, event_type: EventType, handler: Handler) -> None:
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def emit(self, event: Event) -> None:
        with self._lock:
            self._history.append(event)
            if len(self._history) > self._max_history:
                self._history = self._history[-self._max_history:]
            handlers = list(self._subscribers.get(event.type, []))
        for handler in handlers:
            # A failing subscriber must not break candle processing.
            try:
                handler(event)
            except Exception as e:
                logger.exception("Event handler failed for %s: %s", event.type.value, e)

    def history(self, event_type: EventType = None) -> List[Event]:
        with self._lock:
            if event_type is None:
                return list(self._history)
            return [e for e in self._history if e.type == event_type]
