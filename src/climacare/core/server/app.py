"""ClimaCare MCP Server — application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from climacare.core.audit.logger import AuditLogger
from climacare.core.config.settings import get_settings
from climacare.core.storage.codecs import EncryptionError, create_codec
from climacare.core.storage.database import AdvisoryDatabase
from climacare.core.storage.kv_store import (
    InMemoryKeyValueStore,
    KeyValueStore,
    SqliteKeyValueStore,
)
from climacare.domains.advisory.connectors import WeatherSnapshotProvider
from climacare.domains.advisory.connectors.openweathermap import OpenWeatherMapProvider
from climacare.domains.advisory.connectors.providers import StaticWeatherProvider
from climacare.domains.advisory.domain_logic.advisory_service import AdvisoryService
from climacare.domains.advisory.domain_logic.trend_report import TrendReportBuilder
from climacare.domains.advisory.stores.alert_history import AlertHistoryStore
from climacare.domains.advisory.stores.profile_store import ProfileStore
from climacare.domains.advisory.stores.symptom_history import SymptomHistoryStore
from climacare.domains.advisory.tools.advisory_tools import register_advisory_tools
from climacare.domains.advisory.tools.history_tools import register_history_tools
from climacare.domains.advisory.tools.profile_tools import register_profile_tools
from climacare.domains.advisory.tools.tips_tools import register_tips_tools

logger = logging.getLogger(__name__)

SERVER_NAME = "ClimaCare Health Advisory"
SERVER_VERSION = "0.1.0"


def create_app(
    *,
    weather_provider_override: WeatherSnapshotProvider | None = None,
    kv_store_override: KeyValueStore | None = None,
) -> FastMCP:
    """Create and configure the ClimaCare MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Opens the data bank (SQLite, encrypted when a key is configured)
    3. Builds the profile, alert and symptom stores
    4. Chooses the weather provider
    5. Registers all tools
    """
    settings = get_settings()

    server = FastMCP(
        SERVER_NAME,
        instructions=(
            "Personal health and weather advisory server. Keeps health profiles "
            "for you and your family, checks current weather, UV and air quality "
            "against them, and keeps a history of alerts and reported symptoms."
        ),
    )

    # --- Storage ---
    audit_logger: AuditLogger | None = None
    storage_backend = "memory"
    if kv_store_override is not None:
        kv = kv_store_override
        storage_backend = "override"
    else:
        try:
            codec = create_codec(settings.encryption_key)
            database = AdvisoryDatabase(settings.db_path)
            database.initialize()
            kv = SqliteKeyValueStore(database, codec)
            audit_logger = AuditLogger(database)
            storage_backend = "sqlite-encrypted" if settings.encryption_key else "sqlite"
            logger.info(
                "Data bank initialized: %s (schema v%d)",
                settings.db_path,
                database.get_schema_version(),
            )
        except EncryptionError as exc:
            logger.error("Failed to initialize storage: %s", exc)
            logger.warning("Continuing with in-memory storage; data will not be kept")
            kv = InMemoryKeyValueStore()

    profiles = ProfileStore(kv)
    alerts = AlertHistoryStore(kv, limit=settings.alert_history_limit)
    symptoms = SymptomHistoryStore(kv, limit=settings.symptom_history_limit)

    # --- Weather provider ---
    if weather_provider_override is not None:
        provider = weather_provider_override
    elif settings.weather_provider == "static":
        provider = StaticWeatherProvider()
        logger.info("Using static weather provider")
    else:
        provider = OpenWeatherMapProvider(
            settings.openweathermap_api_key,
            base_url=settings.openweathermap_base_url,
            timeout=settings.weather_timeout_seconds,
        )

    service = AdvisoryService(
        provider,
        alerts,
        symptoms,
        timeout=settings.weather_timeout_seconds,
        match_mode=settings.condition_match_mode,
    )
    reports = TrendReportBuilder(symptoms, alerts)
    default_location = (settings.default_latitude, settings.default_longitude)

    # --- Register tools ---
    @server.tool
    async def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": SERVER_NAME,
            "version": SERVER_VERSION,
            "storage_backend": storage_backend,
            "weather_source": provider.data_source,
            "condition_match_mode": settings.condition_match_mode,
            "alerts_stored": len(alerts.list()),
            "symptom_entries_stored": len(symptoms.list()),
        }

    register_profile_tools(server, profiles, audit_logger)
    register_advisory_tools(
        server,
        service,
        profiles,
        alerts,
        default_location=default_location,
        audit_logger=audit_logger,
    )
    register_history_tools(
        server,
        service,
        symptoms,
        reports,
        default_location=default_location,
        audit_logger=audit_logger,
    )
    register_tips_tools(
        server,
        service,
        profiles,
        default_location=default_location,
        audit_logger=audit_logger,
    )
    logger.info("Advisory tools registered (weather source: %s)", provider.data_source)

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when accessed, so tests importing create_app stay hermetic.
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
