"""MCP tools for the symptom diary and weather trend reports."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from climacare.domains.advisory.domain_logic.advisory_models import (
    COMMON_ALLERGIES,
    COMMON_CONDITIONS,
    COMMON_SYMPTOMS,
    RELATIONSHIPS,
    ValidationError,
)
from climacare.domains.advisory.domain_logic.trend_report import REPORT_PERIODS

if TYPE_CHECKING:
    from climacare.core.audit.logger import AuditLogger
    from climacare.domains.advisory.domain_logic.advisory_service import AdvisoryService
    from climacare.domains.advisory.domain_logic.trend_report import TrendReportBuilder
    from climacare.domains.advisory.stores.symptom_history import SymptomHistoryStore

logger = logging.getLogger(__name__)


def register_history_tools(
    mcp: FastMCP,
    service: AdvisoryService,
    symptoms: SymptomHistoryStore,
    reports: TrendReportBuilder,
    *,
    default_location: tuple[float, float],
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register symptom history and report tools on the MCP server."""

    @mcp.tool
    async def record_symptoms(
        ctx: Context,
        symptoms_reported: list[str],
        severity: str = "medium",
        notes: str = "",
        attach_weather: bool = True,
        latitude: float | None = None,
        longitude: float | None = None,
    ) -> str:
        """Add an entry to your symptom diary.

        The current weather is attached when it can be fetched; the entry is
        saved either way.

        Args:
            symptoms_reported: One or more symptoms, e.g. 'Dor de cabeça', 'Tosse'.
            severity: 'low', 'medium' or 'high'.
            notes: Free-text notes.
            attach_weather: Fetch and attach the current weather reading.
            latitude: Location latitude. Defaults to the configured location.
            longitude: Location longitude. Defaults to the configured location.
        """
        lat = lon = None
        if attach_weather:
            lat = latitude if latitude is not None else default_location[0]
            lon = longitude if longitude is not None else default_location[1]
        try:
            entry = await service.record_symptoms(
                symptoms_reported, severity, notes, lat=lat, lon=lon
            )
        except ValidationError as exc:
            return json.dumps({"status": "error", "message": str(exc)}, ensure_ascii=False)

        if audit_logger is not None:
            audit_logger.log_data_write(
                tool_name="record_symptoms",
                entity_id=entry.id,
                metadata={"weather_attached": entry.weather is not None},
            )
        return json.dumps({"status": "saved", "entry": entry.to_dict()}, ensure_ascii=False)

    @mcp.tool
    async def delete_symptom_entry(ctx: Context, entry_id: str) -> str:
        """Delete a symptom diary entry. Deleting twice is harmless.

        Args:
            entry_id: Id of the entry to delete.
        """
        deleted = symptoms.delete(entry_id)
        if deleted and audit_logger is not None:
            audit_logger.log_data_delete(
                tool_name="delete_symptom_entry", entity_id=entry_id, count=1
            )
        return json.dumps({
            "status": "deleted" if deleted else "not_found",
            "entry_id": entry_id,
        })

    @mcp.tool
    async def list_symptom_history(ctx: Context) -> str:
        """List your symptom diary, most recent first."""
        entries = symptoms.list()
        return json.dumps({
            "count": len(entries),
            "limit": symptoms.limit,
            "entries": [entry.to_dict() for entry in entries],
        }, ensure_ascii=False)

    @mcp.tool
    async def symptom_statistics(ctx: Context) -> str:
        """Total entries, symptoms per entry and your most common symptom."""
        return json.dumps(symptoms.statistics(), ensure_ascii=False)

    @mcp.tool
    async def weather_trend_report(ctx: Context, period_days: int = 7) -> str:
        """Daily weather/symptom reports and weekly summaries from your history.

        Args:
            period_days: Report window: 7, 30 or 90 days.
        """
        if period_days not in REPORT_PERIODS:
            return json.dumps({
                "status": "error",
                "message": f"period_days must be one of {list(REPORT_PERIODS)}",
            })
        return json.dumps(reports.build(period_days), ensure_ascii=False)

    @mcp.tool
    async def list_reference_values(ctx: Context) -> str:
        """Common conditions, allergies, symptoms and relationships offered as choices."""
        return json.dumps({
            "conditions": COMMON_CONDITIONS,
            "allergies": COMMON_ALLERGIES,
            "symptoms": COMMON_SYMPTOMS,
            "relationships": RELATIONSHIPS,
            "report_periods": list(REPORT_PERIODS),
        }, ensure_ascii=False)
