"""
Market input models — price observations and optional weather context.

``PricePoint``     — one day of Agmarknet prices for a (commodity, mandi) pair.
``PriceSeries``    — an ordered, oldest-first run of ``PricePoint`` records.
``WeatherContext`` — optional advisory-only weather for the mandi's location.

All three are frozen. Weather payloads arrive with inconsistent field names
(``temp`` vs ``temperature``, ``rainProbability`` vs ``precipitation`` …);
``WeatherContext.from_raw`` is the single place those aliases are resolved,
so nothing downstream needs fallback chains.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

_TEMPERATURE_KEYS = ("temp", "temperature")
_RAIN_KEYS = ("rainProbability", "rain_probability", "precipitation")
_DESCRIPTION_KEYS = ("description", "condition")


class PricePoint(BaseModel):
    """A single day's prices at one mandi, in ₹/quintal.

    Attributes:
        date: Arrival date of the observation.
        modal_price: Most frequently transacted price; the engine's price signal.
        min_price: Day's floor price (≤ modal).
        max_price: Day's ceiling price (≥ modal).
        arrival_quantity: Quintals arrived that day, or ``None`` if unreported.
    """

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    date: dt.date
    modal_price: float
    min_price: float
    max_price: float
    arrival_quantity: Optional[float] = None

    @field_validator("modal_price")
    @classmethod
    def validate_modal_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"modal_price must be positive, got {v}.")
        return v

    @field_validator("arrival_quantity")
    @classmethod
    def validate_quantity_non_negative(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and v < 0:
            raise ValueError("arrival_quantity must be non-negative.")
        return v

    @model_validator(mode="after")
    def validate_price_band(self) -> "PricePoint":
        if self.min_price > self.modal_price:
            raise ValueError(
                f"min_price ({self.min_price}) must be <= modal_price ({self.modal_price})."
            )
        if self.max_price < self.modal_price:
            raise ValueError(
                f"max_price ({self.max_price}) must be >= modal_price ({self.modal_price})."
            )
        return self


class PriceSeries(BaseModel):
    """Oldest-first price history for one (commodity, mandi) pair.

    Ordering and date uniqueness are upstream guarantees; the engine does
    not re-sort. Use ``kisansense.ingestion.agmarknet.build_price_series``
    to build one from raw records.
    """

    model_config = ConfigDict(frozen=True)

    commodity: str
    market: str
    points: tuple[PricePoint, ...] = ()

    @property
    def modal_prices(self) -> list[float]:
        """The price sequence: modal prices, oldest first."""
        return [p.modal_price for p in self.points]

    @property
    def latest(self) -> Optional[PricePoint]:
        return self.points[-1] if self.points else None

    def __len__(self) -> int:
        return len(self.points)


class WeatherContext(BaseModel):
    """Optional weather at the mandi location.

    Attributes:
        temperature_celsius: Current temperature, or ``None``.
        rain_probability_pct: Rain probability / cover in percent (0–100), or ``None``.
        description: Free-text condition, e.g. ``"light rain"``, or ``None``.
    """

    model_config = ConfigDict(frozen=True)

    temperature_celsius: Optional[float] = None
    rain_probability_pct: Optional[float] = None
    description: Optional[str] = None

    @field_validator("rain_probability_pct")
    @classmethod
    def validate_rain_range(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not 0.0 <= v <= 100.0:
            raise ValueError(f"rain_probability_pct must be in [0, 100], got {v}.")
        return v

    @field_validator("description")
    @classmethod
    def blank_description_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()

    @property
    def is_empty(self) -> bool:
        return (
            self.temperature_celsius is None
            and self.rain_probability_pct is None
            and self.description is None
        )

    def summary(self) -> str:
        """One-line description used in advisory prompts and CLI output."""
        if self.is_empty:
            return "Weather data unavailable."
        temp = (
            f"{self.temperature_celsius:.1f}°C"
            if self.temperature_celsius is not None else "N/A"
        )
        rain = (
            f"{self.rain_probability_pct:.0f}%"
            if self.rain_probability_pct is not None else "N/A"
        )
        return (
            f"Current weather: {self.description or 'N/A'}, "
            f"Temp: {temp}, Rain probability: {rain}."
        )

    @classmethod
    def from_raw(cls, raw: Optional[Mapping[str, Any]]) -> Optional["WeatherContext"]:
        """Canonicalize a loosely-shaped weather payload.

        Returns ``None`` when ``raw`` is ``None``/empty or carries none of the
        recognised fields. Rain values outside 0–100 are clamped.
        """
        if not raw:
            return None
        temperature = _first_number(raw, _TEMPERATURE_KEYS)
        rain = _first_number(raw, _RAIN_KEYS)
        description = _first_text(raw, _DESCRIPTION_KEYS)
        if temperature is None and rain is None and description is None:
            return None
        if rain is not None:
            rain = max(0.0, min(100.0, rain))
        return cls(
            temperature_celsius=temperature,
            rain_probability_pct=rain,
            description=description,
        )


def _first_number(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Optional[float]:
    for key in keys:
        val = raw.get(key)
        if val is None or isinstance(val, bool):
            continue
        try:
            return float(val)
        except (TypeError, ValueError):
            continue
    return None


def _first_text(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        val = raw.get(key)
        if isinstance(val, str) and val.strip():
            return val.strip()
    return None
