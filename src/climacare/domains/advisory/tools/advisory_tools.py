"""MCP tools for weather risk analysis and the alert history."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

if TYPE_CHECKING:
    from climacare.core.audit.logger import AuditLogger
    from climacare.domains.advisory.domain_logic.advisory_service import AdvisoryService
    from climacare.domains.advisory.stores.alert_history import AlertHistoryStore
    from climacare.domains.advisory.stores.profile_store import ProfileStore

logger = logging.getLogger(__name__)


def register_advisory_tools(
    mcp: FastMCP,
    service: AdvisoryService,
    profiles: ProfileStore,
    alerts: AlertHistoryStore,
    *,
    default_location: tuple[float, float],
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register risk analysis and alert tools on the MCP server."""

    @mcp.tool
    async def analyze_weather_risks(
        ctx: Context,
        profile_id: str = "",
        latitude: float | None = None,
        longitude: float | None = None,
        record: bool = True,
    ) -> str:
        """Check current weather, UV and air quality against a health profile.

        Risks are saved to the alert history when at least one fires.

        Args:
            profile_id: Profile to analyze. Defaults to your primary profile.
            latitude: Location latitude. Defaults to the configured location.
            longitude: Location longitude. Defaults to the configured location.
            record: Save the result to the alert history when risks are found.
        """
        start_time = time.monotonic()
        profile = profiles.get_profile(profile_id) if profile_id else profiles.get_primary_profile()
        if profile is None:
            return json.dumps({
                "status": "error",
                "message": "Health profile not found. Create your profile first.",
            })

        lat = latitude if latitude is not None else default_location[0]
        lon = longitude if longitude is not None else default_location[1]
        assessment = await service.assess(profile, lat, lon, record=record)
        elapsed_ms = (time.monotonic() - start_time) * 1000

        if audit_logger is not None:
            audit_logger.log_tool_call(
                "analyze_weather_risks",
                {"profile_id": profile.id, "record": record},
                entity_id=assessment.alert.id if assessment.alert else None,
                duration_ms=round(elapsed_ms, 1),
                status="success" if assessment.snapshot else "failure",
                error_type="WeatherProviderError" if assessment.weather_error else None,
                metadata={"risks": len(assessment.analysis.risks)},
            )

        if assessment.snapshot is None:
            return json.dumps({
                "status": "weather_unavailable",
                "profile_id": profile.id,
                "message": assessment.weather_error,
                "risks": [],
                "recommendations": [],
            }, ensure_ascii=False)

        return json.dumps({
            "status": "ok",
            "profile_id": profile.id,
            "weather": assessment.snapshot.to_dict(),
            **assessment.analysis.to_dict(),
            "alert_id": assessment.alert.id if assessment.alert else None,
        }, ensure_ascii=False)

    @mcp.tool
    async def list_alert_history(ctx: Context, unacknowledged_only: bool = False) -> str:
        """List saved alerts, most recent first.

        Args:
            unacknowledged_only: Only return alerts you have not acknowledged yet.
        """
        entries = alerts.unacknowledged() if unacknowledged_only else alerts.list()
        return json.dumps({
            "count": len(entries),
            "limit": alerts.limit,
            "alerts": [entry.to_dict() for entry in entries],
        }, ensure_ascii=False)

    @mcp.tool
    async def acknowledge_alert(ctx: Context, alert_id: str) -> str:
        """Mark a saved alert as seen. Unknown or already acknowledged ids change nothing.

        Args:
            alert_id: Id of the alert to acknowledge.
        """
        changed = alerts.acknowledge(alert_id)
        if changed and audit_logger is not None:
            audit_logger.log_data_write(tool_name="acknowledge_alert", entity_id=alert_id)
        return json.dumps({
            "status": "acknowledged" if changed else "unchanged",
            "alert_id": alert_id,
        })
