"""Timeframe string conversions."""

from datetime import timedelta


def timeframe_minutes(tf: str) -> int:
    """Convert Binance-style timeframe (e.g. '5m', '1h', '1d') to minutes."""
    tf = tf.strip().lower()
    if tf.endswith("m"):
        return int(tf[:-1])
    if tf.endswith("h"):
        return int(tf[:-1]) * 60
    if tf.endswith("d"):
        return int(tf[:-1]) * 60 * 24
    raise ValueError(f"Unsupported timeframe: {tf}")


def timeframe_delta(tf: str) -> timedelta:
    return timedelta(minutes=timeframe_minutes(tf))


def candles_in(lookback: timedelta, tf: str) -> int:
    """Number of whole candles of size tf covering lookback (at least 1)."""
    minutes = int(lookback.total_seconds() // 60)
    return max(1, minutes // timeframe_minutes(tf))
