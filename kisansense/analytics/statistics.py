"""
Price-sequence statistics: mean, volatility and a linear-trend forecast.

All functions are pure and operate on a plain sequence of modal prices,
oldest first. IEEE double arithmetic throughout; rounding is left to the
presentation layer.

Volatility
----------
Population standard deviation (divide by N, not N-1)::

    sqrt(mean((p - mean(p))^2))

The risk thresholds in ``EngineConfig`` were tuned against this exact
definition; switching to the sample estimator would shift every label.

Linear-regression forecast
--------------------------
Ordinary least squares on index ``x = 0..N-1`` versus price ``y``::

    slope     = (N·ΣXY − ΣX·ΣY) / (N·ΣXX − (ΣX)²)
    intercept = (ΣY − slope·ΣX) / N
    forecast  = intercept + slope·N

i.e. the fitted line evaluated one step past the last observation. The
denominator is zero for N = 1, so callers go through ``build_forecast``,
which short-circuits single observations to the observed price.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from kisansense.models.forecast import ForecastResult


class EmptyInputError(ValueError):
    """Raised when a statistic is requested for an empty price sequence."""


class InsufficientDataError(ValueError):
    """Raised when a regression is requested with fewer than two points."""


def moving_average(prices: Sequence[float]) -> float:
    """Arithmetic mean of the price sequence.

    Raises:
        EmptyInputError: If ``prices`` is empty.
    """
    if not prices:
        raise EmptyInputError("moving_average requires at least one price.")
    return sum(prices) / len(prices)


def volatility(prices: Sequence[float]) -> float:
    """Population standard deviation of the price sequence.

    Raises:
        EmptyInputError: If ``prices`` is empty.
    """
    if not prices:
        raise EmptyInputError("volatility requires at least one price.")
    mean = moving_average(prices)
    variance = sum((p - mean) ** 2 for p in prices) / len(prices)
    return math.sqrt(variance)


def linear_regression_forecast(prices: Sequence[float]) -> float:
    """Extrapolate the OLS trend line one step past the last observation.

    Args:
        prices: At least two prices, oldest first.

    Returns:
        Predicted price at index ``len(prices)``.

    Raises:
        InsufficientDataError: If fewer than two prices are given.
    """
    n = len(prices)
    if n < 2:
        raise InsufficientDataError(
            f"linear_regression_forecast requires at least 2 prices, got {n}."
        )

    sum_x = sum_y = sum_xy = sum_xx = 0.0
    for x, y in enumerate(prices):
        sum_x += x
        sum_y += y
        sum_xy += x * y
        sum_xx += x * x

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x)
    intercept = (sum_y - slope * sum_x) / n
    return intercept + slope * n


def build_forecast(prices: Sequence[float]) -> ForecastResult:
    """Forecast the next price and express it relative to the latest one.

    A single observation yields ``predicted_price == current_price`` with no
    regression attempted.

    Raises:
        EmptyInputError: If ``prices`` is empty.
    """
    if not prices:
        raise EmptyInputError("build_forecast requires at least one price.")

    current = float(prices[-1])
    predicted = linear_regression_forecast(prices) if len(prices) >= 2 else current
    change = predicted - current
    change_pct = (change / current * 100.0) if current else 0.0

    return ForecastResult(
        current_price=current,
        predicted_price=predicted,
        expected_change=change,
        expected_change_pct=change_pct,
        n_points=len(prices),
    )
