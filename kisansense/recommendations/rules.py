"""
Rule-based recommendations: deterministic, total, side-effect free.

This is the path that always succeeds. The advisory engine falls back to it
whenever the external advisory call is unconfigured or fails.

Expected-gain policy (default)
------------------------------
    expected_gain = forecast(prices) - prices[-1]

Bands (first match wins, defaults in ₹/quintal):
    1. WAIT     : gain >  +strong_rise  (50)   significant rise ahead
    2. HOLD     : gain >  +stable_band  (10)   modest rise
    3. HOLD     : gain >= -stable_band         stable
    4. WAIT     : gain >= -strong_drop         dip likely temporary
    5. SELL_NOW : everything below             significant decline ahead

Trend policy (``EngineConfig.rule_policy = "trend"``)
-----------------------------------------------------
Direction of the trailing-window change (see ``analytics.trend``):
    up → SELL_NOW (capture the peak), down → WAIT, flat → HOLD.

Empty input
-----------
Both policies return MONITOR with the minimum confidence and a rationale
that makes no numeric claims.
"""

from __future__ import annotations

from collections.abc import Sequence

from kisansense.analytics.confidence import confidence_percent
from kisansense.analytics.statistics import build_forecast, moving_average
from kisansense.analytics.trend import detect_trend, trend_change_pct
from kisansense.config import EngineConfig
from kisansense.models.forecast import (
    ForecastResult,
    RecommendationAction,
    RecommendationResult,
    RecommendationSource,
    TrendDirection,
)

_DEFAULT_ENGINE = EngineConfig()

# Gain band → action. Band names are also the keys of _BAND_TEMPLATES.
_BAND_ACTIONS: dict[str, RecommendationAction] = {
    "strong_rise":   RecommendationAction.WAIT,
    "modest_rise":   RecommendationAction.HOLD,
    "stable":        RecommendationAction.HOLD,
    "modest_drop":   RecommendationAction.WAIT,
    "strong_drop":   RecommendationAction.SELL_NOW,
}

_BAND_TEMPLATES: dict[str, str] = {
    "strong_rise": (
        "{commodity} prices at {market} are expected to rise significantly: "
        "the forecast is {forecast}/quintal against {current} today "
        "({change}, {change_pct}). Hold your stock and wait for the higher price."
    ),
    "modest_rise": (
        "{commodity} prices at {market} are expected to rise modestly: "
        "the forecast is {forecast}/quintal against {current} today "
        "({change}, {change_pct}). Holding for a few days should pay off."
    ),
    "stable": (
        "{commodity} prices at {market} look stable: the forecast is "
        "{forecast}/quintal against {current} today ({change}, {change_pct}). "
        "There is no urgent need to act; hold and keep watching the market."
    ),
    "modest_drop": (
        "{commodity} prices at {market} may dip slightly: the forecast is "
        "{forecast}/quintal against {current} today ({change}, {change_pct}). "
        "The decline is likely temporary, so wait rather than panic-sell."
    ),
    "strong_drop": (
        "{commodity} prices at {market} are expected to fall significantly: "
        "the forecast is {forecast}/quintal against {current} today "
        "({change}, {change_pct}). Sell now to minimise the loss."
    ),
}

_TREND_ACTIONS: dict[TrendDirection, RecommendationAction] = {
    TrendDirection.UP:   RecommendationAction.SELL_NOW,
    TrendDirection.DOWN: RecommendationAction.WAIT,
    TrendDirection.FLAT: RecommendationAction.HOLD,
}


# ── Expected-gain policy ──────────────────────────────────────────────────────

def gain_band(expected_gain: float, config: EngineConfig = _DEFAULT_ENGINE) -> str:
    """Name the band ``expected_gain`` falls into (see module docstring)."""
    if expected_gain > config.strong_rise:
        return "strong_rise"
    if expected_gain > config.stable_band:
        return "modest_rise"
    if expected_gain >= -config.stable_band:
        return "stable"
    if expected_gain >= -config.strong_drop:
        return "modest_drop"
    return "strong_drop"


def determine_action(
    expected_gain: float,
    config: EngineConfig = _DEFAULT_ENGINE,
) -> RecommendationAction:
    """Map an expected gain (forecast − current) to an action."""
    return _BAND_ACTIONS[gain_band(expected_gain, config)]


def build_rationale(
    commodity: str,
    market: str,
    forecast: ForecastResult,
    config: EngineConfig = _DEFAULT_ENGINE,
) -> str:
    """Fill the band template with the forecast's numbers."""
    band = gain_band(forecast.expected_change, config)
    text = _BAND_TEMPLATES[band].format(
        commodity=commodity,
        market=market,
        forecast=_rupees(forecast.predicted_price),
        current=_rupees(forecast.current_price),
        change=_signed_rupees(forecast.expected_change),
        change_pct=f"{forecast.expected_change_pct:+.1f}%",
    )
    return f"{text} Recommendation: {action_label(_BAND_ACTIONS[band])}."


def generate_rule_based_recommendation(
    prices: Sequence[float],
    commodity: str,
    market: str,
    config: EngineConfig = _DEFAULT_ENGINE,
) -> RecommendationResult:
    """Deterministic recommendation under the configured rule policy.

    Never raises for a well-formed price sequence, including an empty one.
    """
    if not prices:
        return insufficient_data_recommendation(commodity, market, config)
    if config.rule_policy == "trend":
        return generate_trend_recommendation(prices, commodity, market, config)

    forecast = build_forecast(prices)
    return RecommendationResult(
        action=determine_action(forecast.expected_change, config),
        rationale=build_rationale(commodity, market, forecast, config),
        confidence_pct=confidence_percent(len(prices), config),
        source=RecommendationSource.RULE_BASED,
    )


# ── Trend policy ──────────────────────────────────────────────────────────────

def generate_trend_recommendation(
    prices: Sequence[float],
    commodity: str,
    market: str,
    config: EngineConfig = _DEFAULT_ENGINE,
) -> RecommendationResult:
    """Recommendation driven by the trailing-window trend instead of the forecast."""
    if not prices:
        return insufficient_data_recommendation(commodity, market, config)

    trend = detect_trend(prices, config.trend_window, config.trend_threshold_pct)
    latest = prices[-1]
    avg = moving_average(prices)
    from_avg_pct = (latest - avg) / avg * 100.0 if avg else 0.0
    window_pct = trend_change_pct(prices, config.trend_window)
    days = len(prices)

    if trend is TrendDirection.UP:
        rationale = (
            f"{commodity} prices at {market} are trending up ({window_pct:+.1f}% over the "
            f"last {min(days, config.trend_window)} reports), currently {_rupees(latest)}/quintal, "
            f"{from_avg_pct:+.1f}% against the {days}-day average of {_rupees(avg)}. "
            "Selling at current rates captures this peak; waiting longer raises the "
            "risk of a reversal."
        )
    elif trend is TrendDirection.DOWN:
        rationale = (
            f"{commodity} prices at {market} are under downward pressure ({window_pct:+.1f}% "
            f"over the last {min(days, config.trend_window)} reports), currently "
            f"{_rupees(latest)}/quintal, {from_avg_pct:+.1f}% against the {days}-day average "
            f"of {_rupees(avg)}. Hold stock for 3-5 days and wait for prices to stabilise."
        )
    else:
        rationale = (
            f"{commodity} prices at {market} are stable at {_rupees(latest)}/quintal, close "
            f"to the {days}-day average of {_rupees(avg)}. There is no strong signal either "
            f"way; hold and watch for a move above {_rupees(latest * 1.03)}."
        )

    return RecommendationResult(
        action=_TREND_ACTIONS[trend],
        rationale=rationale,
        confidence_pct=confidence_percent(days, config),
        source=RecommendationSource.RULE_BASED,
    )


# ── Empty input ───────────────────────────────────────────────────────────────

def insufficient_data_recommendation(
    commodity: str,
    market: str,
    config: EngineConfig = _DEFAULT_ENGINE,
) -> RecommendationResult:
    return RecommendationResult(
        action=RecommendationAction.MONITOR,
        rationale=(
            f"There is not enough price history for {commodity} at {market} to make "
            "a recommendation yet. Keep monitoring the mandi and check again once "
            "new arrivals are reported."
        ),
        confidence_pct=confidence_percent(0, config),
        source=RecommendationSource.RULE_BASED,
    )


# ── Helpers ───────────────────────────────────────────────────────────────────

def _rupees(value: float) -> str:
    return f"₹{value:,.0f}"


def _signed_rupees(value: float) -> str:
    sign = "+" if value >= 0 else "-"
    return f"{sign}₹{abs(value):,.0f}"


def action_label(action: RecommendationAction) -> str:
    """Display form of an action, e.g. ``SELL_NOW`` → ``"SELL NOW"``."""
    return action.value.replace("_", " ")
