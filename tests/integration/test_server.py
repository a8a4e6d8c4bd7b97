"""Integration tests for the ClimaCare advisory MCP server."""

from __future__ import annotations

import asyncio
import json

import pytest
from fastmcp import Client

from climacare.core.server.app import create_app
from climacare.core.storage.kv_store import InMemoryKeyValueStore
from climacare.domains.advisory.connectors import WeatherProviderError
from climacare.domains.advisory.connectors.providers import StaticWeatherProvider
from climacare.domains.advisory.domain_logic.advisory_models import WeatherSnapshot


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _payload(result) -> dict:
    return json.loads(result.content[0].text)


ALL_EXPECTED_TOOLS = [
    "health_check",
    "save_health_profile",
    "add_family_member",
    "update_health_profile",
    "delete_health_profile",
    "get_health_profiles",
    "analyze_weather_risks",
    "list_alert_history",
    "acknowledge_alert",
    "record_symptoms",
    "delete_symptom_entry",
    "list_symptom_history",
    "symptom_statistics",
    "weather_trend_report",
    "list_reference_values",
    "prevention_tips",
]

COLD_AND_SUNNY = WeatherSnapshot(temperature=5.0, humidity=50, uv_index=9.0, air_quality_index=1)


class UnavailableProvider:
    async def fetch_snapshot(self, lat: float, lon: float) -> WeatherSnapshot:
        raise WeatherProviderError("Weather API key not configured")

    @property
    def data_source(self) -> str:
        return "openweathermap"


@pytest.fixture
def provider():
    return StaticWeatherProvider(COLD_AND_SUNNY)


@pytest.fixture
def client(provider):
    """MCP client connected to a server with fixed weather and in-memory storage."""
    mcp = create_app(
        weather_provider_override=provider,
        kv_store_override=InMemoryKeyValueStore(),
    )
    return Client(mcp)


def test_server_starts_and_lists_tools(client):
    async def _check():
        async with client:
            tools = await client.list_tools()
            tool_names = [t.name for t in tools]
            for expected in ALL_EXPECTED_TOOLS:
                assert expected in tool_names, f"Missing tool: {expected}"
    _run(_check())


def test_health_check_returns_ok(client):
    async def _check():
        async with client:
            data = _payload(await client.call_tool("health_check", {}))
            assert data["status"] == "ok"
            assert data["weather_source"] == "static"
            assert data["storage_backend"] == "override"
            assert data["condition_match_mode"] == "exact"
    _run(_check())


def test_default_app_uses_sqlite_and_static_weather():
    """With the hermetic env, create_app opens an in-memory SQLite data bank."""
    async def _check():
        async with Client(create_app()) as client:
            data = _payload(await client.call_tool("health_check", {}))
            assert data["storage_backend"] == "sqlite"
            assert data["weather_source"] == "static"
    _run(_check())


class TestProfileTools:
    def test_invalid_age_rejected(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool(
                    "save_health_profile", {"name": "Ana", "age": 0}
                ))
                assert data["status"] == "error"
                assert "between 1 and 120" in data["message"]
                profiles = _payload(await client.call_tool("get_health_profiles", {}))
                assert profiles["primary"] is None
        _run(_check())

    def test_family_lifecycle(self, client):
        async def _check():
            async with client:
                await client.call_tool("save_health_profile", {"name": "Ana", "age": 34})
                added = _payload(await client.call_tool(
                    "add_family_member",
                    {"name": "Léo", "age": 6, "relationship": "Filho(a)", "conditions": ["asma"]},
                ))
                member_id = added["profile"]["id"]

                updated = _payload(await client.call_tool(
                    "update_health_profile",
                    {"profile_id": member_id, "sensitivities": {"uv": "high"}},
                ))
                assert updated["status"] == "updated"
                assert updated["profile"]["sensitivities"]["uv"] == "high"
                assert updated["profile"]["sensitivities"]["temperature"] == "normal"
                assert updated["profile"]["conditions"] == ["asma"]

                profiles = _payload(await client.call_tool("get_health_profiles", {}))
                assert profiles["primary"]["name"] == "Ana"
                assert [m["name"] for m in profiles["family"]] == ["Léo"]

                first = _payload(await client.call_tool(
                    "delete_health_profile", {"profile_id": member_id}
                ))
                second = _payload(await client.call_tool(
                    "delete_health_profile", {"profile_id": member_id}
                ))
                assert (first["status"], second["status"]) == ("deleted", "not_found")
        _run(_check())

    def test_update_unknown_profile(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool(
                    "update_health_profile", {"profile_id": "missing", "age": 40}
                ))
                assert data["status"] == "error"
        _run(_check())


class TestAdvisoryTools:
    def test_analyze_without_profile(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool("analyze_weather_risks", {}))
                assert data["status"] == "error"
        _run(_check())

    def test_analyze_records_and_acknowledges(self, client, provider):
        async def _check():
            async with client:
                await client.call_tool(
                    "save_health_profile", {"name": "Ana", "age": 34, "conditions": ["asma"]}
                )
                data = _payload(await client.call_tool(
                    "analyze_weather_risks", {"latitude": -22.9, "longitude": -43.2}
                ))
                assert data["status"] == "ok"
                assert [r["type"] for r in data["risks"]] == ["temperature", "uv"]
                assert data["recommendations"][0] == "Use roupas adequadas para o frio"
                assert provider.calls[-1] == (-22.9, -43.2)
                alert_id = data["alert_id"]
                assert alert_id

                history = _payload(await client.call_tool("list_alert_history", {}))
                assert history["count"] == 1
                assert history["limit"] == 50
                assert history["alerts"][0]["id"] == alert_id

                ack = _payload(await client.call_tool("acknowledge_alert", {"alert_id": alert_id}))
                again = _payload(await client.call_tool("acknowledge_alert", {"alert_id": alert_id}))
                assert (ack["status"], again["status"]) == ("acknowledged", "unchanged")

                pending = _payload(await client.call_tool(
                    "list_alert_history", {"unacknowledged_only": True}
                ))
                assert pending["count"] == 0
        _run(_check())

    def test_analyze_uses_default_location(self, client, provider):
        async def _check():
            async with client:
                await client.call_tool("save_health_profile", {"name": "Ana", "age": 34})
                await client.call_tool("analyze_weather_risks", {"record": False})
                assert provider.calls[-1] == (-23.5505, -46.6333)
                history = _payload(await client.call_tool("list_alert_history", {}))
                assert history["count"] == 0
        _run(_check())

    def test_weather_unavailable_degrades(self):
        async def _check():
            mcp = create_app(
                weather_provider_override=UnavailableProvider(),
                kv_store_override=InMemoryKeyValueStore(),
            )
            async with Client(mcp) as client:
                await client.call_tool(
                    "save_health_profile", {"name": "Ana", "age": 34, "conditions": ["asma"]}
                )
                data = _payload(await client.call_tool("analyze_weather_risks", {}))
                assert data["status"] == "weather_unavailable"
                assert data["risks"] == []
                history = _payload(await client.call_tool("list_alert_history", {}))
                assert history["count"] == 0

                saved = _payload(await client.call_tool(
                    "record_symptoms", {"symptoms_reported": ["Tosse"]}
                ))
                assert saved["status"] == "saved"
                assert "weather" not in saved["entry"]
        _run(_check())


class TestHistoryTools:
    def test_symptom_diary(self, client):
        async def _check():
            async with client:
                saved = _payload(await client.call_tool(
                    "record_symptoms",
                    {"symptoms_reported": ["Tosse", "Fadiga"], "severity": "high", "notes": "frio"},
                ))
                assert saved["status"] == "saved"
                assert saved["entry"]["weather"]["temperature"] == 5.0
                entry_id = saved["entry"]["id"]

                rejected = _payload(await client.call_tool(
                    "record_symptoms", {"symptoms_reported": []}
                ))
                assert rejected["status"] == "error"

                stats = _payload(await client.call_tool("symptom_statistics", {}))
                assert stats["total_entries"] == 1
                assert stats["average_symptoms_per_entry"] == 2
                assert stats["most_common_symptom"] == "Tosse"

                listing = _payload(await client.call_tool("list_symptom_history", {}))
                assert listing["count"] == 1
                assert listing["limit"] == 100

                first = _payload(await client.call_tool("delete_symptom_entry", {"entry_id": entry_id}))
                second = _payload(await client.call_tool("delete_symptom_entry", {"entry_id": entry_id}))
                assert (first["status"], second["status"]) == ("deleted", "not_found")
        _run(_check())

    def test_record_without_weather(self, client, provider):
        async def _check():
            async with client:
                saved = _payload(await client.call_tool(
                    "record_symptoms", {"symptoms_reported": ["Tosse"], "attach_weather": False}
                ))
                assert "weather" not in saved["entry"]
                assert provider.calls == []
        _run(_check())

    def test_trend_report(self, client):
        async def _check():
            async with client:
                await client.call_tool("record_symptoms", {"symptoms_reported": ["Tosse"]})
                report = _payload(await client.call_tool("weather_trend_report", {"period_days": 7}))
                assert report["period_days"] == 7
                assert len(report["daily"]) == 7
                today = report["daily"][-1]
                assert today["symptoms"] == ["Tosse"]
                assert today["temperature"]["avg"] == 5.0

                bad = _payload(await client.call_tool("weather_trend_report", {"period_days": 14}))
                assert bad["status"] == "error"
        _run(_check())

    def test_reference_values(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool("list_reference_values", {}))
                assert "Asma" in data["conditions"]
                assert "Filho(a)" in data["relationships"]
                assert data["report_periods"] == [7, 30, 90]
        _run(_check())


class TestTipsTools:
    def test_catalog_filtering(self, client):
        async def _check():
            async with client:
                data = _payload(await client.call_tool(
                    "prevention_tips", {"category": "airQuality", "search": "ASMA", "personalize": False}
                ))
                assert data["status"] == "ok"
                assert [tip["id"] for tip in data["tips"]] == ["7"]
                assert "personalized" not in data

                bad = _payload(await client.call_tool("prevention_tips", {"category": "pollen"}))
                assert bad["status"] == "error"
        _run(_check())

    def test_personalized_for_primary_profile(self, client, provider):
        async def _check():
            async with client:
                missing = _payload(await client.call_tool("prevention_tips", {}))
                assert missing["count"] == 15
                assert missing["personalized"]["status"] == "profile_not_found"

                await client.call_tool(
                    "save_health_profile", {"name": "Ana", "age": 34, "conditions": ["asma"]}
                )
                data = _payload(await client.call_tool("prevention_tips", {}))
                personalized = data["personalized"]
                assert personalized["status"] == "ok"
                assert [tip["id"] for tip in personalized["tips"]] == ["3", "4", "5", "6", "7", "11"]
                assert provider.calls[-1] == (-23.5505, -46.6333)
        _run(_check())

    def test_personalized_without_weather(self):
        async def _check():
            mcp = create_app(
                weather_provider_override=UnavailableProvider(),
                kv_store_override=InMemoryKeyValueStore(),
            )
            async with Client(mcp) as client:
                await client.call_tool("save_health_profile", {"name": "Ana", "age": 34})
                data = _payload(await client.call_tool("prevention_tips", {}))
                assert data["count"] == 15
                assert data["personalized"]["status"] == "weather_unavailable"
                assert data["personalized"]["tips"] == []
        _run(_check())
