"""Weather connectors — abstraction layer for weather snapshot retrieval."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from climacare.domains.advisory.domain_logic.advisory_models import WeatherSnapshot


class WeatherProviderError(Exception):
    """Upstream weather data is unavailable or credentials are missing.

    Callers treat this as "no snapshot" for the current cycle.
    """


@runtime_checkable
class WeatherSnapshotProvider(Protocol):
    """Abstract interface for point-in-time weather readings.

    Tools call this without knowing whether data comes from a live API or a
    fixed reading.
    """

    async def fetch_snapshot(self, lat: float, lon: float) -> WeatherSnapshot:
        """Current temperature, humidity, UV index and AQI at a location."""
        ...

    @property
    def data_source(self) -> str:
        """Label for the active source: 'openweathermap' or 'static'."""
        ...
