"""Price-scale helpers: rounding and display precision by price magnitude."""

from __future__ import annotations


def price_decimals(price: float) -> int:
    """Decimals kept when binning prices: 2 above 1000, 4 above 1, else 6."""
    price = abs(price)
    if price >= 1000:
        return 2
    if price >= 1:
        return 4
    return 6


def round_to_scale(price: float) -> float:
    """Round price to its scale-dependent precision."""
    return round(price, price_decimals(price))


def format_price(price: float) -> str:
    """Human-readable price for logs; sub-cent prices get 8 decimals."""
    if abs(price) >= 0.01 or price == 0:
        return f"{price:.{price_decimals(price)}f}"
    return f"{price:.8f}"


def pct_change(from_price: float, to_price: float) -> float:
    """Signed move from from_price to to_price, in percent of from_price."""
    if from_price <= 0:
        raise ValueError(f"Reference price must be positive, got {from_price}")
    return (to_price - from_price) / from_price * 100.0
