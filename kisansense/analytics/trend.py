"""
Short-term trend direction over the trailing window of prices.

Compares the first and last price of the last ``window`` observations::

    change_pct = (last - first) / first * 100
    change_pct >  threshold  → up
    change_pct < -threshold  → down
    otherwise                → flat

Fewer than two prices is always flat.
"""

from __future__ import annotations

from collections.abc import Sequence

from kisansense.models.forecast import TrendDirection


def trend_change_pct(prices: Sequence[float], window: int = 5) -> float:
    """Percent change from the start to the end of the trailing window."""
    if len(prices) < 2:
        return 0.0
    recent = list(prices)[-window:]
    first, last = recent[0], recent[-1]
    if not first:
        return 0.0
    return (last - first) / first * 100.0


def detect_trend(
    prices: Sequence[float],
    window: int = 5,
    threshold_pct: float = 1.5,
) -> TrendDirection:
    change = trend_change_pct(prices, window)
    if change > threshold_pct:
        return TrendDirection.UP
    if change < -threshold_pct:
        return TrendDirection.DOWN
    return TrendDirection.FLAT
