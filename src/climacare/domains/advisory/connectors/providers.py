"""Fixed-reading weather provider for offline use and tests."""

from __future__ import annotations

from dataclasses import replace

from climacare.domains.advisory.domain_logic.advisory_models import WeatherSnapshot, now_iso

# A mild reading that triggers no rule for any profile.
DEFAULT_STATIC_SNAPSHOT = WeatherSnapshot(
    temperature=22.0,
    humidity=55,
    uv_index=3.0,
    air_quality_index=1,
)


class StaticWeatherProvider:
    """Returns the same reading for every location. Always available."""

    def __init__(self, snapshot: WeatherSnapshot | None = None) -> None:
        self._snapshot = snapshot or DEFAULT_STATIC_SNAPSHOT
        self.calls: list[tuple[float, float]] = []

    async def fetch_snapshot(self, lat: float, lon: float) -> WeatherSnapshot:
        self.calls.append((lat, lon))
        if self._snapshot.timestamp is not None:
            return self._snapshot
        return replace(self._snapshot, timestamp=now_iso())

    @property
    def data_source(self) -> str:
        return "static"
