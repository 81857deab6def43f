"""
Impact helpers: weather notes for the mandi and holding-income estimates.

Weather notes
-------------
Temperature (°C):  > 35 → heat may accelerate spoilage
                   < 15 → cool, good for storage
                   otherwise moderate
Rain (%):          > 60 → may disrupt transport
                   > 30 → moderate rain risk
                   otherwise low disruption risk

A missing axis contributes no note. Weather never blocks a recommendation.

Holding impact
--------------
additional_income = quantity × round(expected change per quintal)
"""

from __future__ import annotations

from typing import Optional

from kisansense.models.forecast import ForecastResult, HoldingImpact
from kisansense.models.market import WeatherContext

HIGH_HEAT_C = 35.0
COOL_TEMP_C = 15.0
HIGH_RAIN_PCT = 60.0
MODERATE_RAIN_PCT = 30.0


def assess_weather_impact(weather: Optional[WeatherContext]) -> list[str]:
    """Return human-readable weather impact notes (possibly empty)."""
    if weather is None:
        return []

    notes: list[str] = []
    temp = weather.temperature_celsius
    if temp is not None:
        if temp > HIGH_HEAT_C:
            notes.append(f"High heat ({temp:.0f}°C) may accelerate spoilage")
        elif temp < COOL_TEMP_C:
            notes.append(f"Cool temperature ({temp:.0f}°C) is good for storage")
        else:
            notes.append(f"Moderate temperature ({temp:.0f}°C)")

    rain = weather.rain_probability_pct
    if rain is not None:
        if rain > HIGH_RAIN_PCT:
            notes.append(f"High rain probability ({rain:.0f}%) may disrupt transport")
        elif rain > MODERATE_RAIN_PCT:
            notes.append(f"Moderate rain risk ({rain:.0f}%)")
        else:
            notes.append(f"Low disruption risk from rain ({rain:.0f}%)")

    return notes


def estimate_holding_impact(
    quantity_quintals: float,
    forecast: ForecastResult,
    confidence_pct: int,
) -> HoldingImpact:
    """Estimate what holding ``quantity_quintals`` until the forecast would earn.

    Raises:
        ValueError: If ``quantity_quintals`` is negative.
    """
    if quantity_quintals < 0:
        raise ValueError(f"quantity_quintals must be non-negative, got {quantity_quintals}.")

    gain_per_quintal = round(forecast.expected_change)
    return HoldingImpact(
        quantity_quintals=quantity_quintals,
        sell_today_income=quantity_quintals * forecast.current_price,
        projected_income=quantity_quintals * forecast.predicted_price,
        gain_per_quintal=gain_per_quintal,
        additional_income=quantity_quintals * gain_per_quintal,
        confidence_pct=confidence_pct,
    )
