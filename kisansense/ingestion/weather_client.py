"""
OpenWeatherMap current-weather lookup for a mandi.

Credential setup (.env, gitignored)::

    WEATHER_API_KEY=your_key

Mandi names in Agmarknet carry qualifiers that geocoders do not understand
(``"Azadpur (F&V) APMC"``, ``"Koyambedu Veg. Market"``). ``clean_location``
strips them down to a searchable place name before the lookup.

The response is reduced to a ``WeatherContext``:
    main.temp           → temperature_celsius   (``units=metric``)
    clouds.all          → rain_probability_pct  (cloud cover as a proxy)
    weather[0].description → description

Weather is optional enrichment: a missing key, a transport failure or an
unexpected body all yield ``None`` (logged) instead of raising.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

import httpx

from kisansense.config import WeatherConfig
from kisansense.models.market import WeatherContext

logger = logging.getLogger(__name__)

_PARENTHETICAL = re.compile(r"\([^)]*\)")
_QUALIFIERS = re.compile(
    r"\b(?:APMC|Mandi|Market|Sandhai|F\s*&\s*V|Veg\.?)(?=\s|$|[-_,])",
    re.IGNORECASE,
)
_SEPARATORS = re.compile(r"[-_,]+")
_SPACES = re.compile(r"\s+")


def clean_location(mandi_name: str) -> str:
    """Reduce a mandi name to a place name a geocoder will accept.

    >>> clean_location("Azadpur (F&V) APMC")
    'Azadpur'
    >>> clean_location("Koyambedu Veg. Market")
    'Koyambedu'
    """
    text = _PARENTHETICAL.sub(" ", mandi_name)
    text = _SEPARATORS.sub(" ", text)
    text = _QUALIFIERS.sub(" ", text)
    return _SPACES.sub(" ", text).strip()


def parse_weather_payload(payload: Any) -> Optional[WeatherContext]:
    """Map an OpenWeatherMap ``/weather`` body to a ``WeatherContext``."""
    if not isinstance(payload, dict):
        return None
    main = payload.get("main") or {}
    clouds = payload.get("clouds") or {}
    conditions = payload.get("weather") or []
    description = None
    if conditions and isinstance(conditions[0], dict):
        description = conditions[0].get("description")
    return WeatherContext.from_raw(
        {
            "temperature": main.get("temp") if isinstance(main, dict) else None,
            "rain_probability": clouds.get("all") if isinstance(clouds, dict) else None,
            "description": description,
        }
    )


class WeatherClient:
    """Async OpenWeatherMap client.

    Args:
        config: ``WeatherConfig`` section.
        transport: Optional ``httpx`` transport (tests pass a ``MockTransport``).
    """

    def __init__(
        self,
        config: WeatherConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.config.api_key and self.config.api_key.strip())

    async def lookup(self, mandi_name: str) -> Optional[WeatherContext]:
        """Current weather near ``mandi_name``, or ``None`` if unavailable."""
        if not self.is_configured:
            logger.debug("WEATHER_API_KEY not set; skipping weather lookup for %s", mandi_name)
            return None

        location = clean_location(mandi_name)
        if not location:
            logger.warning("Mandi name %r has no searchable location", mandi_name)
            return None

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            ) as client:
                resp = await client.get(
                    self.config.endpoint,
                    params={
                        "q": f"{location},IN",
                        "appid": self.config.api_key,
                        "units": "metric",
                    },
                )
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Weather lookup failed for %s (%s): %s", mandi_name, location, exc)
            return None

        weather = parse_weather_payload(payload)
        if weather is None:
            logger.warning("Weather response for %s had no usable fields", location)
        return weather
