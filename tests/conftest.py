"""
Shared pytest fixtures for the KisanSense test suite.

Provides:
  - Price sequences for the reference scenarios (rising, declining, single, empty).
  - ``AppConfig`` instances with the advisory service unconfigured / configured.
  - Raw Agmarknet records as they arrive from data.gov.in.
  - ``clean_env``: removes every environment variable the config loader reads.
"""

from __future__ import annotations

import pytest

from kisansense.config import AdvisoryConfig, AppConfig, EngineConfig


# ── Price sequences ───────────────────────────────────────────────────────────

@pytest.fixture
def rising_prices() -> list[float]:
    """OLS: slope 54, intercept 1996 → forecast 2266, gain +46 (HOLD)."""
    return [2000.0, 2050.0, 2100.0, 2150.0, 2220.0]


@pytest.fixture
def declining_prices() -> list[float]:
    """OLS: slope −200, intercept 3000 → forecast 2000, gain −200 (SELL_NOW)."""
    return [3000.0, 2800.0, 2600.0, 2400.0, 2200.0]


@pytest.fixture
def flat_prices() -> list[float]:
    return [1800.0, 1800.0, 1800.0, 1800.0]


# ── Config ────────────────────────────────────────────────────────────────────

@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def app_config() -> AppConfig:
    """Defaults; advisory has no API key, so every request takes the rule path."""
    return AppConfig()


@pytest.fixture
def advisory_app_config() -> AppConfig:
    """Advisory configured with a dummy key and a short timeout."""
    return AppConfig(
        advisory=AdvisoryConfig(
            api_key="test-key",
            endpoint="https://advisory.test/v1beta",
            timeout_seconds=0.5,
        )
    )


@pytest.fixture
def clean_env(monkeypatch) -> None:
    for var in (
        "GEMINI_API_KEY",
        "WEATHER_API_KEY",
        "KISANSENSE_ADVISORY_TIMEOUT",
        "KISANSENSE_TRANSLATION_TARGET",
        "KISANSENSE_LOG_LEVEL",
        "KISANSENSE_DEBUG",
    ):
        monkeypatch.delenv(var, raising=False)


# ── Agmarknet records ─────────────────────────────────────────────────────────

def _make_record(
    arrival_date: str,
    modal: str,
    commodity: str = "Onion",
    market: str = "Lasalgaon",
    min_price: str = "",
    max_price: str = "",
    arrival_quantity: str = "",
) -> dict[str, str]:
    """Build a raw Agmarknet record; min/max default to modal ∓/± 200."""
    modal_val = float(modal)
    return {
        "state": "Maharashtra",
        "district": "Nashik",
        "market": market,
        "commodity": commodity,
        "variety": "Red",
        "arrival_date": arrival_date,
        "min_price": min_price or str(int(modal_val - 200)),
        "max_price": max_price or str(int(modal_val + 200)),
        "modal_price": modal,
        "arrival_quantity": arrival_quantity,
    }


@pytest.fixture
def agmarknet_records() -> list[dict[str, str]]:
    """Out-of-order records for two mandis, one duplicate date and one bad row."""
    return [
        _make_record("03/01/2025", "2100"),
        _make_record("01/01/2025", "2000", arrival_quantity="1250.5"),
        _make_record("02/01/2025", "2050"),
        _make_record("02/01/2025", "2060"),          # duplicate date, later wins
        _make_record("01/01/2025", "1900", market="Pimpalgaon"),
        _make_record("04/01/2025", "2150", commodity="Tomato"),
        {"commodity": "Onion", "market": "Lasalgaon", "arrival_date": "not-a-date",
         "min_price": "1", "max_price": "2", "modal_price": "1"},
    ]
