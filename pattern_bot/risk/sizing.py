"""
Take-profit / stop-loss sizing.
Fixed: configured percents from entry. Adaptive: percents derived from the
width of the pattern's defining prices, clamped and held to a minimum R:R.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Sequence, Tuple

from pattern_bot.core.types import Direction, SizingResult

logger = logging.getLogger("pattern_bot.risk.sizing")

FIXED = "fixed"
ADAPTIVE = "adaptive"


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def protective_prices(entry: float, direction: Direction, take_profit_pct: float, stop_loss_pct: float) -> Tuple[float, float]:
    """Absolute (take_profit, stop_loss) for the given percents."""
    if entry <= 0:
        raise ValueError(f"Entry price must be positive, got {entry}")
    if direction == Direction.LONG:
        return entry * (1 + take_profit_pct / 100.0), entry * (1 - stop_loss_pct / 100.0)
    return entry * (1 - take_profit_pct / 100.0), entry * (1 + stop_loss_pct / 100.0)


@dataclass
class AdaptiveSettings:
    sl_channel_fraction: float = 0.3
    tp_channel_fraction: float = 0.8
    min_stop_loss_pct: float = 0.5
    max_stop_loss_pct: float = 5.0
    min_take_profit_pct: float = 1.0
    max_take_profit_pct: float = 15.0
    min_risk_reward: float = 1.5

    def __post_init__(self):
        if self.min_stop_loss_pct <= 0:
            raise ValueError(f"min_stop_loss_pct must be positive, got {self.min_stop_loss_pct}")
        if self.min_stop_loss_pct > self.max_stop_loss_pct:
            raise ValueError(f"Stop-loss bounds inverted: {self.min_stop_loss_pct} > {self.max_stop_loss_pct}")
        if self.min_take_profit_pct > self.max_take_profit_pct:
            raise ValueError(f"Take-profit bounds inverted: {self.min_take_profit_pct} > {self.max_take_profit_pct}")

    @classmethod
    def from_config(cls, config) -> "AdaptiveSettings":
        return cls(
            sl_channel_fraction=config.sl_channel_fraction,
            tp_channel_fraction=config.tp_channel_fraction,
            min_stop_loss_pct=config.min_stop_loss_pct,
            max_stop_loss_pct=config.max_stop_loss_pct,
            min_take_profit_pct=config.min_take_profit_pct,
            max_take_profit_pct=config.max_take_profit_pct,
            min_risk_reward=config.min_risk_reward,
        )


def fixed_sizing(take_profit_pct: float, stop_loss_pct: float) -> SizingResult:
    return SizingResult(
        mode=FIXED,
        take_profit_pct=take_profit_pct,
        stop_loss_pct=stop_loss_pct,
        description=f"fixed TP {take_profit_pct:.2f}% / SL {stop_loss_pct:.2f}%",
    )


def adaptive_sizing(prices: Sequence[float], entry: float, settings: AdaptiveSettings) -> SizingResult:
    """
    width% = (max - min of prices) / entry * 100
    SL% = clamp(width% * sl_fraction), TP% = clamp(width% * tp_fraction);
    TP% raised to SL% * min_rr (capped at the TP maximum) when below it.
    """
    if entry <= 0:
        raise ValueError(f"Entry price must be positive, got {entry}")
    if not prices:
        raise ValueError("Adaptive sizing needs the pattern's defining prices")
    width_pct = (max(prices) - min(prices)) / entry * 100.0
    sl_pct = clamp(width_pct * settings.sl_channel_fraction, settings.min_stop_loss_pct, settings.max_stop_loss_pct)
    tp_pct = clamp(width_pct * settings.tp_channel_fraction, settings.min_take_profit_pct, settings.max_take_profit_pct)
    adjusted = False
    if tp_pct / sl_pct < settings.min_risk_reward:
        tp_pct = min(settings.max_take_profit_pct, sl_pct * settings.min_risk_reward)
        adjusted = True
    description = (
        f"channel {width_pct:.2f}% -> SL {sl_pct:.2f}% | TP {tp_pct:.2f}% | R:R 1:{tp_pct / sl_pct:.2f}"
        + (" (TP raised to min R:R)" if adjusted else "")
    )
    return SizingResult(
        mode=ADAPTIVE,
        take_profit_pct=tp_pct,
        stop_loss_pct=sl_pct,
        channel_width_pct=width_pct,
        description=description,
    )


class Sizer:
    """Strategy-level sizing: one mode with its fixed fallbacks and adaptive bounds."""

    def __init__(
        self,
        mode: str = FIXED,
        take_profit_pct: float = 2.0,
        stop_loss_pct: float = 2.0,
        adaptive: AdaptiveSettings = None,
    ):
        if mode not in (FIXED, ADAPTIVE):
            raise ValueError(f"Unknown sizing mode: {mode}")
        self.mode = mode
        self.take_profit_pct = take_profit_pct
        self.stop_loss_pct = stop_loss_pct
        self.adaptive = adaptive or AdaptiveSettings()

    def size(self, entry: float, direction: Direction, prices: Sequence[float] = ()) -> Tuple[SizingResult, float, float]:
        """Returns (sizing, take_profit, stop_loss)."""
        if self.mode == ADAPTIVE:
            result = adaptive_sizing(prices, entry, self.adaptive)
        else:
            result = fixed_sizing(self.take_profit_pct, self.stop_loss_pct)
        take_profit, stop_loss = protective_prices(entry, direction, result.take_profit_pct, result.stop_loss_pct)
        return result, take_profit, stop_loss
