"""
Tests for kisansense/recommendations/rules.py.

What we test
------------
determine_action() / gain_band():
  - Band edges: > +50 WAIT, (+10, +50] HOLD, [-10, +10] HOLD,
    [-50, -10) WAIT, < -50 SELL_NOW.
generate_rule_based_recommendation():
  - Reference scenarios: rising → HOLD, sharp decline → SELL_NOW,
    single point → HOLD @ 42%, empty → MONITOR @ 40% with no numbers.
  - Rationale carries the concrete prices and the action label.
  - Always RULE_BASED; total over every input tested.
generate_trend_recommendation():
  - up → SELL_NOW, down → WAIT, flat → HOLD; selected via rule_policy.
"""

from __future__ import annotations

import re

import pytest

from kisansense.config import EngineConfig
from kisansense.models.forecast import RecommendationAction, RecommendationSource
from kisansense.recommendations.rules import (
    action_label,
    determine_action,
    gain_band,
    generate_rule_based_recommendation,
    generate_trend_recommendation,
    insufficient_data_recommendation,
)


class TestDetermineAction:
    @pytest.mark.parametrize(
        "gain, expected",
        [
            (200.0, RecommendationAction.WAIT),
            (50.01, RecommendationAction.WAIT),
            (50.0, RecommendationAction.HOLD),
            (10.01, RecommendationAction.HOLD),
            (10.0, RecommendationAction.HOLD),
            (0.0, RecommendationAction.HOLD),
            (-10.0, RecommendationAction.HOLD),
            (-10.01, RecommendationAction.WAIT),
            (-50.0, RecommendationAction.WAIT),
            (-50.01, RecommendationAction.SELL_NOW),
            (-500.0, RecommendationAction.SELL_NOW),
        ],
    )
    def test_band_edges(self, gain, expected):
        assert determine_action(gain) == expected

    def test_band_names(self):
        assert gain_band(60.0) == "strong_rise"
        assert gain_band(20.0) == "modest_rise"
        assert gain_band(0.0) == "stable"
        assert gain_band(-20.0) == "modest_drop"
        assert gain_band(-60.0) == "strong_drop"

    def test_custom_bands(self):
        cfg = EngineConfig(strong_rise=100.0, stable_band=20.0, strong_drop=100.0)
        assert determine_action(60.0, cfg) == RecommendationAction.HOLD
        assert determine_action(-60.0, cfg) == RecommendationAction.WAIT


class TestScenarios:
    def test_rising_trend_holds(self, rising_prices):
        r = generate_rule_based_recommendation(rising_prices, "Onion", "Lasalgaon")
        assert r.action == RecommendationAction.HOLD
        assert r.source == RecommendationSource.RULE_BASED
        assert r.confidence_pct == 50
        assert "₹2,266" in r.rationale
        assert "₹2,220" in r.rationale
        assert "+₹46" in r.rationale
        assert "+2.1%" in r.rationale
        assert r.rationale.endswith("Recommendation: HOLD.")

    def test_sharp_decline_sells(self, declining_prices):
        r = generate_rule_based_recommendation(declining_prices, "Tomato", "Kolar")
        assert r.action == RecommendationAction.SELL_NOW
        assert "₹2,000" in r.rationale
        assert "-₹200" in r.rationale
        assert "Tomato" in r.rationale and "Kolar" in r.rationale
        assert r.rationale.endswith("Recommendation: SELL NOW.")

    def test_single_point_holds(self):
        r = generate_rule_based_recommendation([1500.0], "Wheat", "Indore")
        assert r.action == RecommendationAction.HOLD
        assert r.source == RecommendationSource.RULE_BASED
        assert r.confidence_pct == 42
        assert "₹1,500" in r.rationale

    def test_empty_monitors(self):
        r = generate_rule_based_recommendation([], "Onion", "Lasalgaon")
        assert r.action == RecommendationAction.MONITOR
        assert r.source == RecommendationSource.RULE_BASED
        assert r.confidence_pct == 40
        assert not re.search(r"\d", r.rationale)

    def test_long_history_caps_confidence(self):
        prices = [2000.0 + i for i in range(60)]
        assert generate_rule_based_recommendation(prices, "Onion", "Lasalgaon").confidence_pct == 95

    def test_modest_drop_waits(self):
        # slope −20 over two points → forecast 1960, gain −20
        r = generate_rule_based_recommendation([2000.0, 1980.0], "Onion", "Lasalgaon")
        assert r.action == RecommendationAction.WAIT
        assert "temporary" in r.rationale


class TestTrendPolicy:
    @pytest.fixture
    def trend_config(self) -> EngineConfig:
        return EngineConfig(rule_policy="trend")

    def test_up_sells(self, rising_prices, trend_config):
        r = generate_rule_based_recommendation(rising_prices, "Onion", "Lasalgaon", trend_config)
        assert r.action == RecommendationAction.SELL_NOW
        assert "+11.0%" in r.rationale
        assert r.source == RecommendationSource.RULE_BASED

    def test_down_waits(self, declining_prices, trend_config):
        r = generate_rule_based_recommendation(declining_prices, "Onion", "Lasalgaon", trend_config)
        assert r.action == RecommendationAction.WAIT

    def test_flat_holds(self, flat_prices, trend_config):
        r = generate_rule_based_recommendation(flat_prices, "Onion", "Lasalgaon", trend_config)
        assert r.action == RecommendationAction.HOLD
        assert "₹1,800" in r.rationale

    def test_empty_monitors(self, trend_config):
        r = generate_trend_recommendation([], "Onion", "Lasalgaon", trend_config)
        assert r.action == RecommendationAction.MONITOR
        assert r.confidence_pct == 40


class TestHelpers:
    def test_insufficient_data_names_pair(self):
        r = insufficient_data_recommendation("Garlic", "Mandsaur")
        assert "Garlic" in r.rationale
        assert "Mandsaur" in r.rationale

    def test_action_label(self):
        assert action_label(RecommendationAction.SELL_NOW) == "SELL NOW"
        assert action_label(RecommendationAction.HOLD) == "HOLD"
