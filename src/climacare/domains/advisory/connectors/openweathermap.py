"""OpenWeatherMap weather provider.

Combines three endpoints into one snapshot:

* ``/weather``        — temperature and humidity (required)
* ``/uvi``            — UV index (falls back to 0 when unavailable)
* ``/air_pollution``  — AQI category 1-5 (falls back to 1 when unavailable)
"""

from __future__ import annotations

import logging
import math
from typing import Any

import httpx

from climacare.domains.advisory.connectors import WeatherProviderError
from climacare.domains.advisory.domain_logic.advisory_models import WeatherSnapshot, now_iso

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openweathermap.org/data/2.5"
PLACEHOLDER_API_KEY = "demo_key_replace_with_real_key"


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)


def _section(container: Any, key: str) -> dict[str, Any]:
    """Return ``container[key]`` if it is a mapping, ``{}`` if absent."""
    value = container.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise WeatherProviderError(f"Weather payload field {key!r} is not an object")
    return value


def snapshot_from_payload(payload: dict[str, Any]) -> WeatherSnapshot:
    """Normalize the combined provider payload into a :class:`WeatherSnapshot`.

    Expected shape::

        {"weather": {"main": {"temp": 21.3, "humidity": 60}, "name": "São Paulo"},
         "uv": {"value": 7.2},
         "airPollution": {"list": [{"main": {"aqi": 2}}]},
         "timestamp": "2026-10-19T12:00:00.000Z"}

    Missing humidity or AQI resolve to 1, missing UV to 0.

    Raises:
        WeatherProviderError: The payload is not the shape above or carries
            no usable temperature.
    """
    if not isinstance(payload, dict):
        raise WeatherProviderError("Weather payload is not an object")
    weather = _section(payload, "weather")
    main = _section(weather, "main")

    temperature = _number(main.get("temp"))
    if temperature is None:
        raise WeatherProviderError("Weather payload has no temperature reading")

    humidity = _number(main.get("humidity"))
    uv_index = _number(_section(payload, "uv").get("value"))

    aqi = None
    readings = _section(payload, "airPollution").get("list") or []
    if not isinstance(readings, list):
        raise WeatherProviderError("Air pollution readings are not a list")
    if readings:
        first = readings[0]
        if not isinstance(first, dict):
            raise WeatherProviderError("Air pollution reading is not an object")
        aqi = _number(_section(first, "main").get("aqi"))

    location = weather.get("name")
    return WeatherSnapshot(
        temperature=temperature,
        humidity=int(round(humidity)) if humidity is not None else 1,
        uv_index=uv_index if uv_index is not None else 0.0,
        air_quality_index=int(aqi) if aqi is not None else 1,
        timestamp=payload.get("timestamp"),
        location=location if isinstance(location, str) and location else None,
    )


class OpenWeatherMapProvider:
    """Fetches live snapshots from the OpenWeatherMap 2.5 API.

    Usage::

        provider = OpenWeatherMapProvider(api_key="...")
        snapshot = await provider.fetch_snapshot(-23.55, -46.63)

    Pass ``client`` to reuse a connection pool or inject a mock transport.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client
        if not self.is_configured():
            logger.warning("OPENWEATHERMAP_API_KEY not configured; weather lookups will fail")

    def is_configured(self) -> bool:
        return bool(self._api_key) and self._api_key != PLACEHOLDER_API_KEY

    @property
    def data_source(self) -> str:
        return "openweathermap"

    async def fetch_payload(self, lat: float, lon: float) -> dict[str, Any]:
        """Fetch the raw combined payload (weather + uv + airPollution)."""
        if not self.is_configured():
            raise WeatherProviderError(
                "Weather API key not configured. Get a free key at https://openweathermap.org/api"
            )

        if self._client is not None:
            return await self._fetch_all(self._client, lat, lon)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._fetch_all(client, lat, lon)

    async def fetch_snapshot(self, lat: float, lon: float) -> WeatherSnapshot:
        payload = await self.fetch_payload(lat, lon)
        try:
            return snapshot_from_payload(payload)
        except (AttributeError, TypeError, ValueError, OverflowError) as exc:
            raise WeatherProviderError(f"Malformed weather payload: {exc}") from exc

    async def _fetch_all(self, client: httpx.AsyncClient, lat: float, lon: float) -> dict[str, Any]:
        coords = {"lat": lat, "lon": lon, "appid": self._api_key}

        try:
            resp = await client.get(
                f"{self._base_url}/weather",
                params={**coords, "units": "metric", "lang": "pt_br"},
            )
            resp.raise_for_status()
            weather = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise WeatherProviderError(f"Failed to fetch weather data: {exc}") from exc

        uv = await self._get_optional(client, "uvi", coords, default={"value": 0})
        air = await self._get_optional(
            client,
            "air_pollution",
            coords,
            default={"list": [{"main": {"aqi": 1}, "components": {}}]},
        )

        return {
            "weather": weather,
            "uv": uv,
            "airPollution": air,
            "timestamp": now_iso(),
        }

    async def _get_optional(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        params: dict[str, Any],
        *,
        default: dict[str, Any],
    ) -> dict[str, Any]:
        try:
            resp = await client.get(f"{self._base_url}/{endpoint}", params=params)
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("OpenWeatherMap %s unavailable, using default: %s", endpoint, exc)
            return default
