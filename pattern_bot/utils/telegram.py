"""Telegram notifications. Never log token or chat_id."""

from __future__ import annotations
import logging

import requests

from pattern_bot.core.events import Event, EventBus, EventType
from pattern_bot.utils.prices import format_price

logger = logging.getLogger("pattern_bot.utils.telegram")


def send_telegram(text: str, bot_token: str = "", chat_id: str = "") -> bool:
    """Send message to Telegram. Returns True on success. Uses empty strings if not configured."""
    if not bot_token or not chat_id:
        logger.debug("Telegram not configured, skipping message (len=%d)", len(text))
        return False
    try:
        url = f"https://api.telegram.org/bot{bot_token}/sendMessage"
        payload = {"chat_id": chat_id, "text": text}
        r = requests.post(url, json=payload, timeout=10)
        if r.status_code != 200:
            logger.warning("Telegram send failed: %s %s", r.status_code, r.text[:200])
            return False
        return True
    except Exception as e:
        logger.exception("Telegram error: %s", e)
        return False


def format_event(event: Event) -> str:
    """One-line message for position events."""
    position = event.payload.get("position")
    if position is None:
        return f"{event.type.value} {event.symbol}"
    if event.type == EventType.POSITION_OPENED:
        return (
            f"Open {position.direction.value} {position.symbol} @ {format_price(position.entry_price)} "
            f"TP={format_price(position.take_profit)} SL={format_price(position.stop_loss)} "
            f"[{position.strategy}] {'confirmed' if position.confirmation.overall else 'partial'}"
        )
    return (
        f"Close {position.direction.value} {position.symbol} {position.status.value} "
        f"@ {format_price(position.close_price or position.current_price)} "
        f"PnL={position.realized_pnl:+.2f}% (net {position.net_pnl:+.2f}%)"
    )


class TelegramNotifier:
    """Forwards position open/close events to a Telegram chat."""

    def __init__(self, bot_token: str = "", chat_id: str = ""):
        self.bot_token = bot_token
        self.chat_id = chat_id

    @property
    def enabled(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    def attach(self, bus: EventBus) -> None:
        bus.subscribe(EventType.POSITION_OPENED, self.handle)
        bus.subscribe(EventType.POSITION_CLOSED, self.handle)

    def handle(self, event: Event) -> None:
        send_telegram(format_event(event), self.bot_token, self.chat_id)
