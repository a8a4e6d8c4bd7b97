"""MCP tool for prevention tips."""

from __future__ import annotations

import json
import logging
import time
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from climacare.domains.advisory.domain_logic.advisory_models import ValidationError
from climacare.domains.advisory.domain_logic.prevention_tips import (
    TIP_CATEGORIES,
    filter_tips,
    personalized_tips,
)

if TYPE_CHECKING:
    from climacare.core.audit.logger import AuditLogger
    from climacare.domains.advisory.domain_logic.advisory_service import AdvisoryService
    from climacare.domains.advisory.stores.profile_store import ProfileStore

logger = logging.getLogger(__name__)


def register_tips_tools(
    mcp: FastMCP,
    service: AdvisoryService,
    profiles: ProfileStore,
    *,
    default_location: tuple[float, float],
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register the prevention tips tool on the MCP server."""

    @mcp.tool
    async def prevention_tips(
        ctx: Context,
        category: str = "",
        search: str = "",
        personalize: bool = True,
        profile_id: str = "",
        latitude: float | None = None,
        longitude: float | None = None,
    ) -> str:
        """Browse prevention tips and get the ones that fit today's weather.

        The catalog part is filtered by category and search term. The
        personalized part combines current weather with a health profile and
        holds at most six tips.

        Args:
            category: One of temperature, humidity, uv, airQuality, general. Empty for all.
            search: Case-insensitive text matched against title, description and conditions.
            personalize: Also pick tips for a profile at the current weather.
            profile_id: Profile to personalize for. Defaults to your primary profile.
            latitude: Location latitude. Defaults to the configured location.
            longitude: Location longitude. Defaults to the configured location.
        """
        try:
            tips = filter_tips(category or None, search)
        except ValidationError as exc:
            return json.dumps({"status": "error", "message": str(exc)}, ensure_ascii=False)

        response: dict[str, Any] = {
            "status": "ok",
            "categories": list(TIP_CATEGORIES),
            "count": len(tips),
            "tips": [tip.to_dict() for tip in tips],
        }
        if personalize:
            response["personalized"] = await _personalize(profile_id, latitude, longitude)
        return json.dumps(response, ensure_ascii=False)

    async def _personalize(
        profile_id: str,
        latitude: float | None,
        longitude: float | None,
    ) -> dict[str, Any]:
        profile = profiles.get_profile(profile_id) if profile_id else profiles.get_primary_profile()
        if profile is None:
            return {
                "status": "profile_not_found",
                "message": "Create your health profile to get personalized tips.",
                "tips": [],
            }

        start_time = time.monotonic()
        lat = latitude if latitude is not None else default_location[0]
        lon = longitude if longitude is not None else default_location[1]
        snapshot, error = await service.fetch_snapshot(lat, lon)
        picked = personalized_tips(snapshot, profile)
        elapsed_ms = (time.monotonic() - start_time) * 1000

        if audit_logger is not None:
            audit_logger.log_tool_call(
                "prevention_tips",
                {"profile_id": profile.id},
                duration_ms=round(elapsed_ms, 1),
                status="success" if snapshot else "failure",
                error_type="WeatherProviderError" if error else None,
                metadata={"tips": len(picked)},
            )

        if snapshot is None:
            logger.info("Personalized tips skipped for %s: %s", profile.id, error)
            return {
                "status": "weather_unavailable",
                "profile_id": profile.id,
                "message": error,
                "tips": [],
            }
        return {
            "status": "ok",
            "profile_id": profile.id,
            "weather": snapshot.to_dict(),
            "tips": [tip.to_dict() for tip in picked],
        }
