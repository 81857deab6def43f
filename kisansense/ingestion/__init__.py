"""
Ingestion layer: canonicalize Agmarknet price records and fetch mandi weather.

Modules:
  agmarknet       — raw record → ``PricePoint`` / ``PriceSeries``
  weather_client  — OpenWeatherMap lookup → ``WeatherContext``
"""
