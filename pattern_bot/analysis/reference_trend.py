"""
Reference-asset trend: fast/slow EMA of the reference symbol's closes.
Publishes an immutable TrendEstimate; readers never see a half-updated state.
"""

from __future__ import annotations
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from pattern_bot.core.types import Direction, MarketBias

logger = logging.getLogger("pattern_bot.analysis.reference_trend")


@dataclass(frozen=True)
class TrendEstimate:
    bias: MarketBias
    ema_fast: float
    ema_slow: float
    last_close: float
    samples: int
    warming_up: bool
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def allow_long(self) -> bool:
        return self.bias == MarketBias.BULLISH

    @property
    def allow_short(self) -> bool:
        return self.bias == MarketBias.BEARISH


class TrendEstimator:
    """
    Feed reference closes with update(). Until min_samples closes are seen the
    estimator is not ready and every direction is allowed.
    """

    def __init__(self, fast: int = 20, slow: int = 50, min_samples: int = 20, symbol: str = "BTCUSDT"):
        if fast <= 0 or slow <= 0 or fast >= slow:
            raise ValueError("EMA periods must satisfy 0 < fast < slow")
        self.fast = fast
        self.slow = slow
        self.min_samples = min_samples
        self.symbol = symbol
        self._k_fast = 2.0 / (fast + 1)
        self._k_slow = 2.0 / (slow + 1)
        self._closes: deque = deque(maxlen=slow)
        self._samples = 0
        self._ema_fast = 0.0
        self._ema_slow = 0.0
        self._lock = threading.Lock()
        self._estimate: Optional[TrendEstimate] = None

    def update(self, close: float) -> Optional[TrendEstimate]:
        if close <= 0:
            raise ValueError(f"Reference close must be positive, got {close}")
        with self._lock:
            self._samples += 1
            self._closes.append(close)
            if self._samples == 1:
                self._ema_fast = close
                self._ema_slow = close
            else:
                self._ema_fast = close * self._k_fast + self._ema_fast * (1 - self._k_fast)
                self._ema_slow = close * self._k_slow + self._ema_slow * (1 - self._k_slow)

            if self._samples < self.min_samples:
                return None

            warming_up = self._samples < self.slow
            # Too few samples for a meaningful slow EMA: compare against the plain average.
            slow_value = sum(self._closes) / len(self._closes) if warming_up else self._ema_slow
            bias = MarketBias.BULLISH if self._ema_fast > slow_value else MarketBias.BEARISH
            previous = self._estimate
            estimate = TrendEstimate(
                bias=bias,
                ema_fast=self._ema_fast,
                ema_slow=slow_value,
                last_close=close,
                samples=self._samples,
                warming_up=warming_up,
            )
            self._estimate = estimate

        if previous is None or previous.bias != bias:
            logger.info(
                "%s trend now %s | EMA%d=%.2f %s%d=%.2f close=%.2f",
                self.symbol, bias.value, self.fast, estimate.ema_fast,
                "SMA" if warming_up else "EMA", min(self._samples, self.slow), slow_value, close,
            )
        return estimate

    @property
    def estimate(self) -> Optional[TrendEstimate]:
        return self._estimate

    @property
    def ready(self) -> bool:
        return self._estimate is not None

    def is_direction_allowed(self, direction: Direction) -> bool:
        estimate = self._estimate
        if estimate is None:
            logger.debug("%s trend not ready, allowing %s", self.symbol, direction.value)
            return True
        return estimate.allow_long if direction == Direction.LONG else estimate.allow_short

    def status_line(self) -> str:
        estimate = self._estimate
        if estimate is None:
            return f"{self.symbol} trend: warming up ({self._samples}/{self.min_samples})"
        return (
            f"{self.symbol} trend: {estimate.bias.value} close={estimate.last_close:.2f} "
            f"EMA{self.fast}={estimate.ema_fast:.2f} slow={estimate.ema_slow:.2f} "
            f"LONG={'yes' if estimate.allow_long else 'no'} SHORT={'yes' if estimate.allow_short else 'no'}"
        )
