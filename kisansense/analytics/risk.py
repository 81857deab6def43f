"""
Risk classification from price volatility.

    volatility >  risk_high_above                          → High
    risk_moderate_above < volatility ≤ risk_high_above     → Moderate
    volatility ≤ risk_moderate_above                       → Low

Defaults (150 / 50) are in ₹/quintal; see ``EngineConfig``.
"""

from __future__ import annotations

from collections.abc import Sequence

from kisansense.analytics.statistics import volatility
from kisansense.config import EngineConfig
from kisansense.models.forecast import RiskAssessment, RiskLabel

_DEFAULT_ENGINE = EngineConfig()


def classify_risk(vol: float, config: EngineConfig = _DEFAULT_ENGINE) -> RiskLabel:
    """Map a volatility value to its risk label. Both boundaries are inclusive below."""
    if vol > config.risk_high_above:
        return RiskLabel.HIGH
    if vol > config.risk_moderate_above:
        return RiskLabel.MODERATE
    return RiskLabel.LOW


def assess_risk(
    prices: Sequence[float],
    config: EngineConfig = _DEFAULT_ENGINE,
) -> RiskAssessment:
    """Compute volatility for ``prices`` and classify it.

    Raises:
        EmptyInputError: If ``prices`` is empty.
    """
    vol = volatility(prices)
    return RiskAssessment(volatility=vol, label=classify_risk(vol, config))
