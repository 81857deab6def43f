"""
Forecast, risk and recommendation output models.

``ForecastResult``       — next-step point forecast and the change it implies.
``RiskAssessment``       — volatility and its discrete risk label.
``RecommendationResult`` — SELL_NOW / HOLD / WAIT / MONITOR with rationale,
                           confidence and provenance (advisory vs rule-based).
``HoldingImpact``        — extra income from holding a harvest until the forecast.
``MarketInsight``        — everything above bundled for the presentation layer.

All models are frozen and created fresh per request; nothing here is cached
or persisted.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from kisansense.models.market import WeatherContext

CONFIDENCE_FLOOR = 40
CONFIDENCE_CEILING = 95


class RecommendationAction(StrEnum):
    """What the farmer should do with stock on hand."""

    SELL_NOW = "SELL_NOW"
    HOLD = "HOLD"
    WAIT = "WAIT"
    MONITOR = "MONITOR"


class RiskLabel(StrEnum):
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"


class RecommendationSource(StrEnum):
    """Which path produced a recommendation."""

    ADVISORY = "ADVISORY"
    RULE_BASED = "RULE_BASED"


class TrendDirection(StrEnum):
    UP = "up"
    DOWN = "down"
    FLAT = "flat"


class ForecastResult(BaseModel):
    """Next-step price forecast relative to the latest observed price.

    Attributes:
        current_price: Latest modal price in the sequence.
        predicted_price: Regression value one step past the last index
            (equal to ``current_price`` for a single observation).
        expected_change: ``predicted_price - current_price``.
        expected_change_pct: ``expected_change / current_price * 100``.
        n_points: Length of the price sequence the forecast was built from.
    """

    model_config = ConfigDict(frozen=True)

    current_price: float
    predicted_price: float
    expected_change: float
    expected_change_pct: float
    n_points: int


class RiskAssessment(BaseModel):
    """Volatility (population std-dev) and the label it maps to."""

    model_config = ConfigDict(frozen=True)

    volatility: float
    label: RiskLabel

    @field_validator("volatility")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"volatility must be non-negative, got {v}.")
        return v


class RecommendationResult(BaseModel):
    """A trading recommendation for one (commodity, mandi) pair.

    Attributes:
        action: One of ``RecommendationAction``; always set.
        rationale: Human-readable explanation; never empty.
        confidence_pct: Data-volume confidence in [40, 95].
        source: ``ADVISORY`` when the external advisory text was used,
            ``RULE_BASED`` for the deterministic fallback.
    """

    model_config = ConfigDict(frozen=True)

    action: RecommendationAction
    rationale: str
    confidence_pct: int
    source: RecommendationSource

    @field_validator("rationale")
    @classmethod
    def validate_rationale_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("rationale must not be empty.")
        return v.strip()

    @field_validator("confidence_pct")
    @classmethod
    def validate_confidence_range(cls, v: int) -> int:
        if not CONFIDENCE_FLOOR <= v <= CONFIDENCE_CEILING:
            raise ValueError(
                f"confidence_pct must be in [{CONFIDENCE_FLOOR}, {CONFIDENCE_CEILING}], got {v}."
            )
        return v


class HoldingImpact(BaseModel):
    """Income difference between selling today and selling at the forecast.

    ``gain_per_quintal`` is rounded to whole rupees before multiplying, so
    ``additional_income == quantity_quintals * gain_per_quintal`` exactly.
    """

    model_config = ConfigDict(frozen=True)

    quantity_quintals: float
    sell_today_income: float
    projected_income: float
    gain_per_quintal: int
    additional_income: float
    confidence_pct: int

    @property
    def is_gain(self) -> bool:
        return self.additional_income >= 0


class MarketInsight(BaseModel):
    """Full engine output for one request.

    ``forecast`` and ``risk`` are ``None`` only when the price sequence was empty.
    """

    model_config = ConfigDict(frozen=True)

    commodity: str
    market: str
    forecast: Optional[ForecastResult] = None
    risk: Optional[RiskAssessment] = None
    trend: TrendDirection = TrendDirection.FLAT
    recommendation: RecommendationResult
    weather: Optional[WeatherContext] = None
    weather_notes: list[str] = []
