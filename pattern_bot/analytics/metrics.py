"""
Performance metrics over closed paper trades: win rate, profit factor,
expectancy, max drawdown of the cumulative PnL curve.
PnL values are per-trade percent of entry.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import List, Optional

import numpy as np


@dataclass
class PerformanceMetrics:
    """Aggregate performance metrics."""
    total_pnl_pct: float
    max_drawdown_pct: float
    win_rate: float
    profit_factor: float
    expectancy: float
    total_trades: int
    winning_trades: int
    losing_trades: int
    avg_win: float
    avg_loss: float


def cumulative_pnl(pnls: List[float]) -> List[float]:
    """Running sum of per-trade PnL%."""
    return np.cumsum(pnls).tolist() if pnls else []


def max_drawdown(curve: List[float]) -> float:
    """Largest drop from a running peak of a PnL% curve starting at 0. Negative or 0."""
    if not curve:
        return 0.0
    arr = np.concatenate([[0.0], np.asarray(curve, dtype=float)])
    peak = np.maximum.accumulate(arr)
    return float(np.min(arr - peak))


def win_rate(pnls: List[float]) -> float:
    """Fraction of trades with positive PnL."""
    if not pnls:
        return 0.0
    return sum(1 for p in pnls if p > 0) / len(pnls)


def profit_factor(pnls: List[float]) -> float:
    """Gross profit / gross loss. Returns inf if no losses."""
    wins = sum(p for p in pnls if p > 0)
    losses = sum(-p for p in pnls if p < 0)
    if losses <= 0:
        return float("inf") if wins > 0 else 0.0
    return wins / losses


def expectancy(pnls: List[float]) -> float:
    """Average PnL per trade."""
    if not pnls:
        return 0.0
    return sum(pnls) / len(pnls)


def compute_metrics(pnls: List[float], curve: Optional[List[float]] = None) -> PerformanceMetrics:
    """Full metrics from trade PnLs in close order. `curve` defaults to their running sum."""
    if not pnls:
        return PerformanceMetrics(
            total_pnl_pct=0.0, max_drawdown_pct=0.0, win_rate=0.0, profit_factor=0.0, expectancy=0.0,
            total_trades=0, winning_trades=0, losing_trades=0, avg_win=0.0, avg_loss=0.0,
        )
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p <= 0]
    curve = curve if curve is not None else cumulative_pnl(pnls)
    return PerformanceMetrics(
        total_pnl_pct=float(sum(pnls)),
        max_drawdown_pct=max_drawdown(curve),
        win_rate=win_rate(pnls),
        profit_factor=profit_factor(pnls),
        expectancy=expectancy(pnls),
        total_trades=len(pnls),
        winning_trades=len(wins),
        losing_trades=len(losses),
        avg_win=sum(wins) / len(wins) if wins else 0.0,
        avg_loss=sum(losses) / len(losses) if losses else 0.0,
    )
