"""Utils: Telegram, timeframes, price scale, TTL cache."""

from pattern_bot.utils.cache import TTLCache
from pattern_bot.utils.prices import format_price, round_to_scale
from pattern_bot.utils.telegram import send_telegram, TelegramNotifier
from pattern_bot.utils.timeframes import timeframe_minutes

__all__ = ["TTLCache", "format_price", "round_to_scale", "send_telegram", "TelegramNotifier", "timeframe_minutes"]
