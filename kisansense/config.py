"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``      — committed static defaults
  2. ``config/local.toml``        — optional local overrides (gitignored)
  3. ``.env``                     — local secrets and env overrides (gitignored)
  4. Environment variables        — ``KISANSENSE_*`` prefix, plus the provider
                                    credentials ``GEMINI_API_KEY`` and
                                    ``WEATHER_API_KEY``

Entry point: ``load_config(config_path=None) -> AppConfig``

The recommendation engine, the provider clients and the CLI all receive an
``AppConfig`` (or one of its sections) — never raw dicts or individual env
var lookups scattered through the codebase.

Price-scale constants
---------------------
The risk and action thresholds in ``EngineConfig`` are expressed in the
currency units of the price series (₹/quintal for Agmarknet data). A
deployment that feeds prices in another unit must recalibrate them.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from kisansense.models.forecast import CONFIDENCE_CEILING, CONFIDENCE_FLOOR

# ── Sub-config models ─────────────────────────────────────────────────────────

RulePolicy = Literal["expected_gain", "trend"]

DEFAULT_RESPONSE_PATHS: list[str] = [
    "recommendation",
    "insight",
    "message",
    "text",
    "result",
    "output",
    "response",
    "content",
    "data.recommendation",
    "data.insight",
    "candidates.0.content.parts.0.text",
]


class EngineConfig(BaseModel):
    """Thresholds for risk classification, rule-based actions and confidence.

    Risk (volatility = population std-dev of the price sequence):
        volatility >  risk_high_above                  → High
        risk_moderate_above < volatility ≤ high bound  → Moderate
        otherwise                                      → Low

    Actions (expected gain = forecast − latest price):
        gain >  strong_rise                 → WAIT
        stable_band < gain ≤ strong_rise    → HOLD
        |gain| ≤ stable_band                → HOLD
        −strong_drop ≤ gain < −stable_band  → WAIT
        gain < −strong_drop                 → SELL_NOW
    """

    model_config = ConfigDict(frozen=True)

    risk_high_above: float = 150.0
    risk_moderate_above: float = 50.0

    strong_rise: float = 50.0
    stable_band: float = 10.0
    strong_drop: float = 50.0

    confidence_base: int = 40
    confidence_per_point: int = 2
    confidence_cap: int = 95

    trend_window: int = 5
    trend_threshold_pct: float = 1.5

    rule_policy: RulePolicy = "expected_gain"

    @model_validator(mode="after")
    def validate_bands(self) -> "EngineConfig":
        if self.risk_moderate_above >= self.risk_high_above:
            raise ValueError(
                f"risk_moderate_above ({self.risk_moderate_above}) must be < "
                f"risk_high_above ({self.risk_high_above})."
            )
        if self.stable_band >= self.strong_rise or self.stable_band >= self.strong_drop:
            raise ValueError(
                "stable_band must be narrower than both strong_rise and strong_drop."
            )
        if not CONFIDENCE_FLOOR <= self.confidence_base <= self.confidence_cap <= CONFIDENCE_CEILING:
            raise ValueError(
                f"Need {CONFIDENCE_FLOOR} <= confidence_base ({self.confidence_base}) <= "
                f"confidence_cap ({self.confidence_cap}) <= {CONFIDENCE_CEILING}."
            )
        if self.trend_window < 2:
            raise ValueError(f"trend_window must be >= 2, got {self.trend_window}.")
        return self


class AdvisoryConfig(BaseModel):
    """External text-generation (Gemini) advisory settings.

    ``response_paths`` is the ordered list of dotted paths tried in the
    advisory response body; the first one that resolves to non-empty text
    wins. Integer segments index into lists.
    """

    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = None
    endpoint: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-2.0-flash"
    timeout_seconds: float = 8.0
    response_paths: list[str] = DEFAULT_RESPONSE_PATHS
    placeholder_texts: list[str] = ["No insight"]

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {v}.")
        return v

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip() and self.endpoint.strip())


class WeatherConfig(BaseModel):
    """OpenWeatherMap lookup settings."""

    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = None
    endpoint: str = "https://api.openweathermap.org/data/2.5/weather"
    timeout_seconds: float = 5.0


class TranslationConfig(BaseModel):
    """Translation collaborator settings (retry + backoff)."""

    model_config = ConfigDict(frozen=True)

    source_language: str = "en"
    target_language: str = "hi"
    endpoint: str = "https://translate.googleapis.com/translate_a/single"
    retries: int = 3
    backoff_seconds: float = 0.5
    timeout_seconds: float = 5.0

    @field_validator("retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"retries must be >= 1, got {v}.")
        return v


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration — the single source of truth."""

    model_config = ConfigDict(frozen=True)

    engine: EngineConfig = EngineConfig()
    advisory: AdvisoryConfig = AdvisoryConfig()
    weather: WeatherConfig = WeatherConfig()
    translation: TranslationConfig = TranslationConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``; when that default file is
            absent (e.g. an installed wheel) the built-in defaults are used.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If an explicitly given ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    raw: dict[str, Any] = {}
    if config_path is None:
        default_path = root / "config" / "default.toml"
        if default_path.exists():
            config_path = default_path
    else:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

    if config_path is not None:
        with open(config_path, "rb") as f:
            raw = tomllib.load(f)

        # Also merge local.toml if present (gitignored local overrides)
        local_config_path = config_path.parent / "local.toml"
        if local_config_path.exists():
            with open(local_config_path, "rb") as f:
                local_raw: dict[str, Any] = tomllib.load(f)
            raw = _deep_merge(raw, local_raw)

    # 3. Apply environment overrides
    raw = _apply_env_overrides(raw)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variables to the raw config dict.

    Supported overrides:
      GEMINI_API_KEY                 → raw["advisory"]["api_key"]
      WEATHER_API_KEY                → raw["weather"]["api_key"]
      KISANSENSE_ADVISORY_TIMEOUT    → raw["advisory"]["timeout_seconds"]
      KISANSENSE_TRANSLATION_TARGET  → raw["translation"]["target_language"]
      KISANSENSE_LOG_LEVEL           → raw["logging"]["level"]
      KISANSENSE_DEBUG               → raw["debug"]
    """
    if api_key := os.environ.get("GEMINI_API_KEY"):
        raw.setdefault("advisory", {})["api_key"] = api_key

    if weather_key := os.environ.get("WEATHER_API_KEY"):
        raw.setdefault("weather", {})["api_key"] = weather_key

    if timeout := os.environ.get("KISANSENSE_ADVISORY_TIMEOUT"):
        raw.setdefault("advisory", {})["timeout_seconds"] = float(timeout)

    if target := os.environ.get("KISANSENSE_TRANSLATION_TARGET"):
        raw.setdefault("translation", {})["target_language"] = target

    if log_level := os.environ.get("KISANSENSE_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    if debug := os.environ.get("KISANSENSE_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    project = raw.pop("project", {})

    return AppConfig(
        engine=EngineConfig(**raw.get("engine", {})),
        advisory=AdvisoryConfig(**raw.get("advisory", {})),
        weather=WeatherConfig(**raw.get("weather", {})),
        translation=TranslationConfig(**raw.get("translation", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        debug=raw.get("debug", project.get("debug", False)),
    )
