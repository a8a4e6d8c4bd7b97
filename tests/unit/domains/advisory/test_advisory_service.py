"""Tests for AdvisoryService — fetch, analyze, record and degrade gracefully."""

from __future__ import annotations

import asyncio

import httpx
import pytest

from climacare.domains.advisory.connectors import WeatherProviderError, WeatherSnapshotProvider
from climacare.domains.advisory.connectors.openweathermap import OpenWeatherMapProvider
from climacare.domains.advisory.connectors.providers import StaticWeatherProvider
from climacare.domains.advisory.domain_logic.advisory_models import (
    HealthProfile,
    ValidationError,
    WeatherSnapshot,
)
from climacare.domains.advisory.domain_logic.advisory_service import AdvisoryService


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


COLD = WeatherSnapshot(temperature=5.0, humidity=50, uv_index=2.0, air_quality_index=1)
ASTHMA_PROFILE = HealthProfile(id="p1", name="Ana", age=34, conditions=["asma"])


class FailingProvider:
    def __init__(self, message: str = "Weather API key not configured") -> None:
        self.message = message

    async def fetch_snapshot(self, lat: float, lon: float) -> WeatherSnapshot:
        raise WeatherProviderError(self.message)

    @property
    def data_source(self) -> str:
        return "failing"


class SlowProvider:
    async def fetch_snapshot(self, lat: float, lon: float) -> WeatherSnapshot:
        await asyncio.sleep(5)
        return COLD

    @property
    def data_source(self) -> str:
        return "slow"


class TestFetchSnapshot:
    def test_providers_satisfy_protocol(self):
        assert isinstance(StaticWeatherProvider(), WeatherSnapshotProvider)
        assert isinstance(FailingProvider(), WeatherSnapshotProvider)

    def test_provider_error_becomes_no_snapshot(self, alert_store, symptom_store):
        service = AdvisoryService(FailingProvider("boom"), alert_store, symptom_store)
        assert _run(service.fetch_snapshot(0, 0)) == (None, "boom")

    def test_timeout_becomes_no_snapshot(self, alert_store, symptom_store):
        service = AdvisoryService(SlowProvider(), alert_store, symptom_store, timeout=0.01)
        snapshot, reason = _run(service.fetch_snapshot(0, 0))
        assert snapshot is None
        assert "timed out" in reason


class TestAssess:
    def test_risks_recorded_as_alert(self, alert_store, symptom_store):
        provider = StaticWeatherProvider(COLD)
        service = AdvisoryService(provider, alert_store, symptom_store)
        assessment = _run(service.assess(ASTHMA_PROFILE, -23.5, -46.6))
        assert assessment.analysis.has_risks
        assert assessment.alert is not None
        assert alert_store.list()[0].id == assessment.alert.id
        assert alert_store.list()[0].weather_data["temperature"] == 5.0
        assert provider.calls == [(-23.5, -46.6)]

    def test_no_risks_no_alert(self, alert_store, symptom_store):
        service = AdvisoryService(StaticWeatherProvider(), alert_store, symptom_store)
        assessment = _run(service.assess(ASTHMA_PROFILE, 0, 0))
        assert not assessment.analysis.has_risks
        assert assessment.alert is None
        assert alert_store.list() == []

    def test_record_false_skips_history(self, alert_store, symptom_store):
        service = AdvisoryService(StaticWeatherProvider(COLD), alert_store, symptom_store)
        assessment = _run(service.assess(ASTHMA_PROFILE, 0, 0, record=False))
        assert assessment.analysis.has_risks
        assert alert_store.list() == []

    def test_unavailable_weather_skips_analysis(self, alert_store, symptom_store):
        service = AdvisoryService(FailingProvider(), alert_store, symptom_store)
        assessment = _run(service.assess(ASTHMA_PROFILE, 0, 0))
        assert assessment.snapshot is None
        assert assessment.analysis.risks == ()
        assert assessment.weather_error == "Weather API key not configured"
        assert alert_store.list() == []

    def test_garbage_provider_body_becomes_weather_error(self, alert_store, symptom_store):
        def handler(request: httpx.Request) -> httpx.Response:
            endpoint = request.url.path.rsplit("/", 1)[-1]
            if endpoint == "air_pollution":
                return httpx.Response(200, json={"list": ["garbage"]})
            return httpx.Response(200, json={"main": {"temp": 20, "humidity": 50}, "value": 3})

        provider = OpenWeatherMapProvider(
            "test-key", client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
        )
        service = AdvisoryService(provider, alert_store, symptom_store)
        assessment = _run(service.assess(ASTHMA_PROFILE, 0, 0))
        assert assessment.snapshot is None
        assert assessment.weather_error
        assert alert_store.list() == []

    def test_normalized_matching(self, alert_store, symptom_store):
        profile = HealthProfile(id="p2", name="Bia", age=50, conditions=["Asma"])
        exact = AdvisoryService(StaticWeatherProvider(COLD), alert_store, symptom_store)
        normalized = AdvisoryService(
            StaticWeatherProvider(COLD), alert_store, symptom_store, match_mode="normalized"
        )
        assert not exact.analyze(COLD, profile).has_risks
        assert normalized.analyze(COLD, profile).has_risks


class TestRecordSymptoms:
    def test_weather_attached(self, alert_store, symptom_store):
        service = AdvisoryService(StaticWeatherProvider(COLD), alert_store, symptom_store)
        entry = _run(service.record_symptoms(["Tosse"], "high", lat=1.0, lon=2.0))
        assert entry.weather["temperature"] == 5.0

    def test_saved_without_weather_when_provider_fails(self, alert_store, symptom_store):
        service = AdvisoryService(FailingProvider(), alert_store, symptom_store)
        entry = _run(service.record_symptoms(["Tosse"], "low", lat=1.0, lon=2.0))
        assert entry.weather is None
        assert len(symptom_store.list()) == 1

    def test_no_location_no_weather_call(self, alert_store, symptom_store):
        provider = StaticWeatherProvider(COLD)
        service = AdvisoryService(provider, alert_store, symptom_store)
        entry = _run(service.record_symptoms(["Tosse"], "low"))
        assert entry.weather is None
        assert provider.calls == []

    def test_empty_symptoms_skip_weather_and_fail(self, alert_store, symptom_store):
        provider = StaticWeatherProvider(COLD)
        service = AdvisoryService(provider, alert_store, symptom_store)
        with pytest.raises(ValidationError):
            _run(service.record_symptoms([], "low", lat=1.0, lon=2.0))
        assert provider.calls == []
        assert symptom_store.list() == []

    def test_unknown_severity_skips_weather_and_fails(self, alert_store, symptom_store):
        provider = StaticWeatherProvider(COLD)
        service = AdvisoryService(provider, alert_store, symptom_store)
        with pytest.raises(ValidationError, match="Severity"):
            _run(service.record_symptoms(["Tosse"], "extreme", lat=1.0, lon=2.0))
        assert provider.calls == []
        assert symptom_store.list() == []
