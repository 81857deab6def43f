"""
Tests for kisansense/ingestion/weather_client.py.

What we test
------------
clean_location():
  - Parentheticals and mandi qualifiers removed; separators collapsed.
parse_weather_payload():
  - main.temp / clouds.all / weather[0].description mapping; junk → None.
WeatherClient.lookup() (httpx.MockTransport):
  - Query params (q, appid, units=metric).
  - Missing key → None without a request.
  - Non-2xx, transport errors and non-JSON bodies → None.
"""

from __future__ import annotations

import httpx
import pytest

from kisansense.config import WeatherConfig
from kisansense.ingestion.weather_client import (
    WeatherClient,
    clean_location,
    parse_weather_payload,
)

OWM_BODY = {
    "weather": [{"main": "Clouds", "description": "scattered clouds"}],
    "main": {"temp": 31.4, "humidity": 40},
    "clouds": {"all": 40},
    "name": "Azadpur",
}


class TestCleanLocation:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Azadpur (F&V) APMC", "Azadpur"),
            ("Koyambedu Veg. Market", "Koyambedu"),
            ("Lasalgaon", "Lasalgaon"),
            ("Bangalore Mandi", "Bangalore"),
            ("Oddanchatram Sandhai", "Oddanchatram"),
            ("Pune-Manjri", "Pune Manjri"),
            ("Vashi_APMC", "Vashi"),
            ("Kolar  F&V  Market", "Kolar"),
            ("Supermarket Road", "Supermarket Road"),
        ],
    )
    def test_cleaning(self, raw, expected):
        assert clean_location(raw) == expected


class TestParseWeatherPayload:
    def test_mapping(self):
        w = parse_weather_payload(OWM_BODY)
        assert w.temperature_celsius == 31.4
        assert w.rain_probability_pct == 40.0
        assert w.description == "scattered clouds"

    def test_partial(self):
        w = parse_weather_payload({"main": {"temp": 12}})
        assert w.temperature_celsius == 12.0
        assert w.rain_probability_pct is None

    def test_unusable(self):
        assert parse_weather_payload({"cod": "404"}) is None
        assert parse_weather_payload([]) is None


class TestWeatherClient:
    @pytest.mark.asyncio
    async def test_lookup(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(dict(request.url.params))
            return httpx.Response(200, json=OWM_BODY)

        client = WeatherClient(WeatherConfig(api_key="wkey"), transport=httpx.MockTransport(handler))
        weather = await client.lookup("Azadpur (F&V) APMC")

        assert weather.temperature_celsius == 31.4
        assert seen == {"q": "Azadpur,IN", "appid": "wkey", "units": "metric"}

    @pytest.mark.asyncio
    async def test_missing_key_makes_no_request(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=OWM_BODY)

        client = WeatherClient(WeatherConfig(), transport=httpx.MockTransport(handler))
        assert not client.is_configured
        assert await client.lookup("Lasalgaon") is None
        assert calls == []

    @pytest.mark.asyncio
    async def test_http_error_is_none(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(404, json={"cod": "404"}))
        client = WeatherClient(WeatherConfig(api_key="wkey"), transport=transport)
        assert await client.lookup("Nowhere") is None

    @pytest.mark.asyncio
    async def test_transport_error_is_none(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        client = WeatherClient(WeatherConfig(api_key="wkey"), transport=httpx.MockTransport(handler))
        assert await client.lookup("Lasalgaon") is None

    @pytest.mark.asyncio
    async def test_non_json_is_none(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(200, text="not json"))
        client = WeatherClient(WeatherConfig(api_key="wkey"), transport=transport)
        assert await client.lookup("Lasalgaon") is None

    @pytest.mark.asyncio
    async def test_unsearchable_name_is_none(self):
        client = WeatherClient(WeatherConfig(api_key="wkey"), transport=httpx.MockTransport(
            lambda r: httpx.Response(200, json=OWM_BODY)
        ))
        assert await client.lookup("(F&V) APMC") is None
