"""
External advisory (LLM) client — Gemini ``generateContent`` over httpx.

Credential setup (.env, gitignored)::

    GEMINI_API_KEY=your_key

Request::

    POST {endpoint}/models/{model}:generateContent?key={api_key}
    {"contents": [{"parts": [{"text": "<prompt>"}]}]}

Response shape
--------------
The advisory response is not under our control and has changed shape
between proxies and API versions. ``extract_advice_text`` walks an ordered
list of dotted paths (``AdvisoryConfig.response_paths``) and returns the
first non-empty string; the list is configuration, so a new shape is a
config change, not a code change. Known placeholder strings (e.g.
``"No insight"``) count as empty.

Action tokens
-------------
``parse_action`` scans the advice case-insensitively in priority order:
SELL → SELL_NOW, WAIT → WAIT, HOLD → HOLD, anything else → MONITOR.

The client raises on failure (``AdvisoryError`` or an ``httpx`` error);
deciding what to do about it is the engine's job.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from kisansense.analytics.statistics import moving_average
from kisansense.config import AdvisoryConfig
from kisansense.models.forecast import RecommendationAction
from kisansense.models.market import WeatherContext

logger = logging.getLogger(__name__)

_ACTION_TOKENS: tuple[tuple[str, RecommendationAction], ...] = (
    ("SELL", RecommendationAction.SELL_NOW),
    ("WAIT", RecommendationAction.WAIT),
    ("HOLD", RecommendationAction.HOLD),
)


class AdvisoryError(RuntimeError):
    """The advisory service answered, but not with something usable."""


@dataclass(frozen=True)
class AdvisoryContext:
    """Market context sent to the advisory service.

    Attributes:
        commodity: Commodity display name.
        market: Mandi display name.
        prices: Full modal-price sequence, oldest first (non-empty).
        current_price: Latest price.
        average_price: Mean of ``prices``.
        min_price: Lowest price in ``prices``.
        max_price: Highest price in ``prices``.
        change_pct: Percent change from first to latest price.
        weather_summary: One-line weather description.
    """

    commodity: str
    market: str
    prices: tuple[float, ...]
    current_price: float
    average_price: float
    min_price: float
    max_price: float
    change_pct: float
    weather_summary: str

    @classmethod
    def build(
        cls,
        prices: Sequence[float],
        weather: Optional[WeatherContext],
        commodity: str,
        market: str,
    ) -> "AdvisoryContext":
        """Summarise a non-empty price sequence.

        Raises:
            EmptyInputError: If ``prices`` is empty.
        """
        avg = moving_average(prices)
        first, current = prices[0], prices[-1]
        change_pct = (current - first) / first * 100.0 if first else 0.0
        return cls(
            commodity=commodity,
            market=market,
            prices=tuple(float(p) for p in prices),
            current_price=float(current),
            average_price=avg,
            min_price=float(min(prices)),
            max_price=float(max(prices)),
            change_pct=change_pct,
            weather_summary=(
                weather.summary() if weather is not None else "Weather data unavailable."
            ),
        )


def build_prompt(context: AdvisoryContext) -> str:
    """Render the analyst prompt for one (commodity, mandi) pair."""
    price_list = ", ".join(f"{p:.0f}" for p in context.prices)
    return (
        "You are an expert agricultural market analyst in India. "
        f"Analyze the price trend for {context.commodity} at {context.market} mandi. "
        f"Prices over the last {len(context.prices)} reports: {price_list} (₹/quintal). "
        f"Current ₹{context.current_price:.0f}, average ₹{context.average_price:.0f}, "
        f"range ₹{context.min_price:.0f}–₹{context.max_price:.0f}, "
        f"change over the period {context.change_pct:+.1f}%. "
        f"{context.weather_summary} "
        "Provide a 3-4 sentence analysis covering: (1) the current price trend and "
        "momentum, (2) weather impact on supply and demand, (3) a clear SELL NOW, "
        "HOLD or WAIT recommendation with reasoning, (4) the expected price movement "
        "over the next 3-5 days. Be specific with numbers and percentages."
    )


def extract_advice_text(
    payload: Any,
    paths: Sequence[str],
    placeholders: Sequence[str] = (),
) -> Optional[str]:
    """Return the first usable text found at one of ``paths``, stripped.

    Args:
        payload: Decoded JSON response body.
        paths: Ordered dotted paths, e.g. ``"candidates.0.content.parts.0.text"``.
        placeholders: Texts that mean "no advice" (compared case-insensitively).

    Returns:
        Non-empty advice text, or ``None`` if no path yields any.
    """
    unusable = {p.strip().lower() for p in placeholders}
    for path in paths:
        value = _resolve_path(payload, path)
        if isinstance(value, str):
            text = value.strip()
            if text and text.lower() not in unusable:
                return text
    return None


def parse_action(text: str) -> RecommendationAction:
    """Derive an action from advice text; MONITOR when no token matches."""
    upper = text.upper()
    for token, action in _ACTION_TOKENS:
        if token in upper:
            return action
    return RecommendationAction.MONITOR


class AdvisoryClient:
    """Async client for the text-generation advisory service.

    Usage::

        client = AdvisoryClient(config.advisory)
        if client.is_configured:
            text = await client.fetch_advice(context)

    Args:
        config: ``AdvisoryConfig`` section.
        transport: Optional ``httpx`` transport (tests pass a ``MockTransport``).
    """

    def __init__(
        self,
        config: AdvisoryConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return self.config.is_configured

    async def fetch_advice(self, context: AdvisoryContext) -> str:
        """Issue one advisory call and return the extracted advice text.

        Returns:
            Stripped, non-empty advice text.

        Raises:
            AdvisoryError: If the client is unconfigured, the response is not
                2xx, the body is not JSON, or no usable text is present.
            httpx.HTTPError: On transport failure or timeout.
        """
        if not self.is_configured:
            raise AdvisoryError("Advisory service is not configured (GEMINI_API_KEY missing).")

        url = f"{self.config.endpoint.rstrip('/')}/models/{self.config.model}:generateContent"
        body = {"contents": [{"parts": [{"text": build_prompt(context)}]}]}

        async with httpx.AsyncClient(
            timeout=self.config.timeout_seconds,
            transport=self._transport,
        ) as client:
            resp = await client.post(
                url,
                params={"key": self.config.api_key},
                headers={"Content-Type": "application/json"},
                json=body,
            )

        if resp.status_code < 200 or resp.status_code >= 300:
            raise AdvisoryError(f"Advisory service returned HTTP {resp.status_code}.")

        try:
            payload = resp.json()
        except ValueError as exc:
            raise AdvisoryError(f"Advisory response is not JSON: {exc}") from exc

        text = extract_advice_text(
            payload, self.config.response_paths, self.config.placeholder_texts
        )
        if text is None:
            raise AdvisoryError("Advisory response contained no usable text.")

        logger.debug(
            "Advisory text received | commodity=%s market=%s chars=%d",
            context.commodity, context.market, len(text),
        )
        return text


# ── Helper ────────────────────────────────────────────────────────────────────

def _resolve_path(payload: Any, path: str) -> Any:
    """Follow a dotted path through dicts and lists; ``None`` if any hop is missing."""
    node = payload
    for segment in path.split("."):
        if isinstance(node, dict):
            node = node.get(segment)
        elif isinstance(node, list) and segment.isdigit():
            index = int(segment)
            node = node[index] if index < len(node) else None
        else:
            return None
        if node is None:
            return None
    return node
