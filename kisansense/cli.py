"""
KisanSense — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Run the engine / provider call.
  5. Report result to stdout.

Install and run::

    pip install -e .
    kisansense --help
    kisansense validate-config
    kisansense recommend --commodity Onion --market Lasalgaon --prices 2000,2050,2100,2150,2220
    kisansense analyze --commodity Onion --market Lasalgaon --records data/onion.json --quantity 20
    kisansense weather "Azadpur (F&V) APMC"
    kisansense translate "Hold your stock for 3-5 days." --target mr
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="kisansense",
    help="KisanSense — mandi price forecasts and sell/hold recommendations.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from kisansense.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from kisansense.utils.logging import configure_logging
    configure_logging(config.logging, debug=config.debug)


def _parse_prices_or_exit(raw: str) -> list[float]:
    """Parse ``"2000, 2050,2100"`` into floats; empty string → empty list."""
    if not raw.strip():
        return []
    try:
        prices = [float(part) for part in raw.split(",") if part.strip()]
    except ValueError as exc:
        typer.echo(f"[ERROR] --prices must be comma-separated numbers: {exc}", err=True)
        raise typer.Exit(code=1)
    if any(p <= 0 for p in prices):
        typer.echo("[ERROR] --prices must all be positive.", err=True)
        raise typer.Exit(code=1)
    return prices


def _load_records_or_exit(records_file: str) -> list[dict]:
    """Read a JSON array of Agmarknet records (or ``{"records": [...]}``)."""
    path = Path(records_file)
    if not path.exists():
        typer.echo(f"[ERROR] Records file not found: {path}", err=True)
        raise typer.Exit(code=1)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        typer.echo(f"[ERROR] JSON parse error: {exc}", err=True)
        raise typer.Exit(code=1)
    if isinstance(data, dict):
        data = data.get("records", [])
    if not isinstance(data, list):
        typer.echo("[ERROR] Records file must contain an array.", err=True)
        raise typer.Exit(code=1)
    return data


def _weather_from_options(
    temperature: Optional[float],
    rain: Optional[float],
    description: Optional[str],
):
    from kisansense.models.market import WeatherContext

    return WeatherContext.from_raw(
        {"temperature": temperature, "rain_probability": rain, "description": description}
    )


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("recommend")
def recommend(
    commodity: str = typer.Option(..., "--commodity", "-c", help="Commodity name, e.g. Onion."),
    market: str = typer.Option(..., "--market", "-m", help="Mandi name, e.g. Lasalgaon."),
    prices: str = typer.Option(
        "",
        "--prices",
        "-p",
        help="Comma-separated modal prices (₹/quintal), oldest first.",
    ),
    temperature: Optional[float] = typer.Option(None, "--temperature", help="Temperature in °C."),
    rain: Optional[float] = typer.Option(None, "--rain", help="Rain probability in %."),
    description: Optional[str] = typer.Option(None, "--weather", help="Weather description."),
    as_json: bool = typer.Option(False, "--json", help="Print the result as JSON."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Recommend SELL NOW / HOLD / WAIT / MONITOR for one commodity at one mandi.

    Uses the advisory service when GEMINI_API_KEY is set and falls back to
    the rule-based recommendation on any advisory failure.
    """
    from kisansense.recommendations.engine import RecommendationEngine
    from kisansense.recommendations.rules import action_label

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    price_list = _parse_prices_or_exit(prices)
    weather = _weather_from_options(temperature, rain, description)

    engine = RecommendationEngine(config)
    result = asyncio.run(engine.get_recommendation(price_list, weather, commodity, market))

    if as_json:
        typer.echo(json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False))
        return

    typer.echo(f"{commodity} @ {market}")
    typer.echo(f"  Action:     {action_label(result.action)}")
    typer.echo(f"  Source:     {result.source.value}")
    typer.echo(f"  Confidence: {result.confidence_pct}%")
    typer.echo("")
    typer.echo(result.rationale)


@app.command("analyze")
def analyze(
    commodity: str = typer.Option(..., "--commodity", "-c", help="Commodity name."),
    market: str = typer.Option(..., "--market", "-m", help="Mandi name."),
    prices: str = typer.Option(
        "",
        "--prices",
        "-p",
        help="Comma-separated modal prices, oldest first. Ignored with --records.",
    ),
    records_file: Optional[str] = typer.Option(
        None,
        "--records",
        "-r",
        help="JSON file of raw Agmarknet records; filtered to commodity/market.",
    ),
    quantity: Optional[float] = typer.Option(
        None,
        "--quantity",
        "-q",
        help="Quintals held; adds a holding-income estimate.",
    ),
    fetch_weather: bool = typer.Option(
        False,
        "--fetch-weather",
        help="Look up current mandi weather (needs WEATHER_API_KEY).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Print the full market insight (forecast, risk, trend, recommendation) as JSON."""
    from kisansense.analytics.impact import estimate_holding_impact
    from kisansense.ingestion.agmarknet import build_price_series
    from kisansense.ingestion.weather_client import WeatherClient
    from kisansense.recommendations.engine import RecommendationEngine

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    if quantity is not None and quantity < 0:
        typer.echo("[ERROR] --quantity must be non-negative.", err=True)
        raise typer.Exit(code=1)

    if records_file:
        series = build_price_series(_load_records_or_exit(records_file), commodity, market)
        price_list = series.modal_prices
    else:
        price_list = _parse_prices_or_exit(prices)

    async def _run():
        weather = None
        if fetch_weather:
            weather = await WeatherClient(config.weather).lookup(market)
        engine = RecommendationEngine(config)
        return await engine.analyze_market(price_list, weather, commodity, market)

    insight = asyncio.run(_run())
    output = insight.model_dump(mode="json")

    if quantity is not None and insight.forecast is not None:
        impact = estimate_holding_impact(
            quantity, insight.forecast, insight.recommendation.confidence_pct
        )
        output["holding_impact"] = impact.model_dump(mode="json")

    typer.echo(json.dumps(output, indent=2, ensure_ascii=False))


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields (API keys redacted).",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Rule policy:       {config.engine.rule_policy}")
    typer.echo(
        f"  Risk bands:        moderate > {config.engine.risk_moderate_above:g}, "
        f"high > {config.engine.risk_high_above:g}"
    )
    typer.echo(f"  Advisory:          {'configured' if config.advisory.is_configured else 'not configured'}")
    typer.echo(f"  Advisory timeout:  {config.advisory.timeout_seconds:g}s")
    typer.echo(f"  Weather lookup:    {'configured' if config.weather.api_key else 'not configured'}")
    typer.echo(f"  Translation:       {config.translation.source_language} → {config.translation.target_language}")
    typer.echo(f"  Log level:         {config.logging.level}")
    typer.echo(f"  Debug mode:        {config.debug}")

    if show_full:
        dumped = config.model_dump()
        for section in ("advisory", "weather"):
            if dumped[section].get("api_key"):
                dumped[section]["api_key"] = "***"
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(dumped, indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("translate")
def translate(
    text: str = typer.Argument(..., help="Text to translate."),
    target: Optional[str] = typer.Option(
        None,
        "--target",
        "-t",
        help="Target language code (default: translation.target_language).",
    ),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Translate recommendation text; prints the original text if translation fails."""
    from kisansense.translation.translator import Translator

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    translator = Translator(config.translation)
    typer.echo(asyncio.run(translator.translate(text, target=target)))


@app.command("weather")
def weather(
    mandi: str = typer.Argument(..., help='Mandi name, e.g. "Azadpur (F&V) APMC".'),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Look up current weather at a mandi and print its impact notes."""
    from kisansense.analytics.impact import assess_weather_impact
    from kisansense.ingestion.weather_client import WeatherClient, clean_location

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    client = WeatherClient(config.weather)
    if not client.is_configured:
        typer.echo("[ERROR] WEATHER_API_KEY is not set.", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Looking up weather for: {clean_location(mandi)}")
    result = asyncio.run(client.lookup(mandi))
    if result is None:
        typer.echo("[WARN] Weather data unavailable.")
        raise typer.Exit(code=1)

    typer.echo(f"  {result.summary()}")
    for note in assess_weather_impact(result):
        typer.echo(f"  - {note}")


if __name__ == "__main__":
    app()
