"""
Recommendation engine: advisory call with deterministic fallback.

Protocol for ``get_recommendation``
-----------------------------------
    1. Empty price sequence              → rule path (MONITOR).
    2. Advisory not configured           → rule path.
    3. One advisory call, bounded by ``AdvisoryConfig.timeout_seconds``.
       Transport error / non-2xx / timeout / undecodable or empty body
                                         → rule path (logged at WARNING).
    4. Usable text                       → action from ``parse_action``,
                                           rationale = the text, source = ADVISORY.

No retry: one failure goes straight to the fallback.
Neither ``get_recommendation`` nor ``analyze_market`` raises for well-formed
input; a request always ends with a populated ``RecommendationResult``.

The engine holds no mutable state, so one instance can serve concurrent
requests for different (commodity, mandi) pairs.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Optional, Union

import httpx

from kisansense.analytics.confidence import confidence_percent
from kisansense.analytics.impact import assess_weather_impact
from kisansense.analytics.risk import assess_risk
from kisansense.analytics.statistics import build_forecast
from kisansense.analytics.trend import detect_trend
from kisansense.config import AppConfig
from kisansense.models.forecast import (
    MarketInsight,
    RecommendationResult,
    RecommendationSource,
)
from kisansense.models.market import PriceSeries, WeatherContext
from kisansense.recommendations.advisory import (
    AdvisoryClient,
    AdvisoryContext,
    AdvisoryError,
    parse_action,
)
from kisansense.recommendations.rules import generate_rule_based_recommendation

logger = logging.getLogger(__name__)

WeatherInput = Union[WeatherContext, Mapping[str, Any], None]


class RecommendationEngine:
    """Turns a price sequence (+ optional weather) into a recommendation.

    Args:
        config: Application config; only ``engine`` and ``advisory`` are read.
        advisory_client: Injected client. Defaults to one built from
            ``config.advisory``.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        advisory_client: Optional[AdvisoryClient] = None,
    ) -> None:
        self.config = config or AppConfig()
        self.advisory_client = advisory_client or AdvisoryClient(self.config.advisory)

    async def get_recommendation(
        self,
        prices: Sequence[float],
        weather: WeatherInput,
        commodity: str,
        market: str,
    ) -> RecommendationResult:
        """Recommend SELL_NOW / HOLD / WAIT / MONITOR for one mandi.

        Args:
            prices: Modal prices, oldest first; may be empty.
            weather: ``WeatherContext``, a raw weather mapping, or ``None``.
            commodity: Commodity display name.
            market: Mandi display name.

        Returns:
            ``RecommendationResult`` with ``source=ADVISORY`` when the advisory
            text was used, otherwise the rule-based result.
        """
        engine_cfg = self.config.engine

        if not prices:
            return generate_rule_based_recommendation(prices, commodity, market, engine_cfg)

        if not self.advisory_client.is_configured:
            logger.info(
                "Advisory not configured; using rule-based recommendation | %s @ %s",
                commodity, market,
            )
            return generate_rule_based_recommendation(prices, commodity, market, engine_cfg)

        context = AdvisoryContext.build(prices, _canonical_weather(weather), commodity, market)
        try:
            text = await asyncio.wait_for(
                self.advisory_client.fetch_advice(context),
                timeout=self.config.advisory.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Advisory call timed out after %.1fs; falling back | %s @ %s",
                self.config.advisory.timeout_seconds, commodity, market,
            )
            return generate_rule_based_recommendation(prices, commodity, market, engine_cfg)
        except (AdvisoryError, httpx.HTTPError) as exc:
            logger.warning(
                "Advisory call failed (%s); falling back | %s @ %s",
                exc, commodity, market,
            )
            return generate_rule_based_recommendation(prices, commodity, market, engine_cfg)
        except Exception as exc:
            logger.warning(
                "Unexpected advisory error (%s: %s); falling back | %s @ %s",
                type(exc).__name__, exc, commodity, market,
                exc_info=True,
            )
            return generate_rule_based_recommendation(prices, commodity, market, engine_cfg)

        return RecommendationResult(
            action=parse_action(text),
            rationale=text,
            confidence_pct=confidence_percent(len(prices), engine_cfg),
            source=RecommendationSource.ADVISORY,
        )

    async def analyze_market(
        self,
        prices: Sequence[float],
        weather: WeatherInput,
        commodity: str,
        market: str,
    ) -> MarketInsight:
        """Forecast, risk, trend, weather notes and recommendation in one bundle."""
        engine_cfg = self.config.engine
        weather_ctx = _canonical_weather(weather)

        recommendation = await self.get_recommendation(prices, weather_ctx, commodity, market)

        if not prices:
            return MarketInsight(
                commodity=commodity,
                market=market,
                recommendation=recommendation,
                weather=weather_ctx,
                weather_notes=assess_weather_impact(weather_ctx),
            )

        return MarketInsight(
            commodity=commodity,
            market=market,
            forecast=build_forecast(prices),
            risk=assess_risk(prices, engine_cfg),
            trend=detect_trend(prices, engine_cfg.trend_window, engine_cfg.trend_threshold_pct),
            recommendation=recommendation,
            weather=weather_ctx,
            weather_notes=assess_weather_impact(weather_ctx),
        )

    async def analyze_series(
        self,
        series: PriceSeries,
        weather: WeatherInput = None,
    ) -> MarketInsight:
        """``analyze_market`` for a ``PriceSeries`` built by the ingestion layer."""
        return await self.analyze_market(
            series.modal_prices, weather, series.commodity, series.market
        )


async def get_recommendation(
    prices: Sequence[float],
    weather: WeatherInput,
    commodity: str,
    market: str,
    config: Optional[AppConfig] = None,
    advisory_client: Optional[AdvisoryClient] = None,
) -> RecommendationResult:
    """Module-level shortcut for ``RecommendationEngine(...).get_recommendation``."""
    engine = RecommendationEngine(config=config, advisory_client=advisory_client)
    return await engine.get_recommendation(prices, weather, commodity, market)


def _canonical_weather(weather: WeatherInput) -> Optional[WeatherContext]:
    if weather is None or isinstance(weather, WeatherContext):
        return weather
    return WeatherContext.from_raw(weather)
