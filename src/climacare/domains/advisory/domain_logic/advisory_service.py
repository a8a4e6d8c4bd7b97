"""Advisory flow: fetch a snapshot, analyze it, record alerts.

The engine is pure and the stores are dumb; this module is the caller that
ties them together and owns the degrade-gracefully policy for the weather
provider (bounded timeout, provider errors become "no snapshot").
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterable

from climacare.domains.advisory.connectors import WeatherProviderError, WeatherSnapshotProvider
from climacare.domains.advisory.domain_logic.advisory_models import (
    RISK_LEVELS,
    AlertHistoryEntry,
    HealthProfile,
    RiskAnalysis,
    SymptomEntry,
    ValidationError,
    WeatherSnapshot,
)
from climacare.domains.advisory.domain_logic.risk_engine import MatchMode, analyze
from climacare.domains.advisory.stores.alert_history import AlertHistoryStore
from climacare.domains.advisory.stores.symptom_history import SymptomHistoryStore

logger = logging.getLogger(__name__)


@dataclass
class Assessment:
    """Outcome of one advisory cycle."""

    snapshot: WeatherSnapshot | None
    analysis: RiskAnalysis
    alert: AlertHistoryEntry | None = None
    weather_error: str | None = None


class AdvisoryService:
    """Runs advisory cycles for a profile at a location.

    Usage::

        service = AdvisoryService(provider, alert_store, symptom_store)
        assessment = await service.assess(profile, lat=-23.55, lon=-46.63)
    """

    def __init__(
        self,
        provider: WeatherSnapshotProvider,
        alerts: AlertHistoryStore,
        symptoms: SymptomHistoryStore,
        *,
        timeout: float = 10.0,
        match_mode: MatchMode = "exact",
    ) -> None:
        self._provider = provider
        self._alerts = alerts
        self._symptoms = symptoms
        self._timeout = timeout
        self._match_mode = match_mode

    async def fetch_snapshot(self, lat: float, lon: float) -> tuple[WeatherSnapshot | None, str | None]:
        """Fetch a snapshot, returning ``(None, reason)`` instead of raising."""
        try:
            snapshot = await asyncio.wait_for(
                self._provider.fetch_snapshot(lat, lon), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Weather provider timed out after %.1fs", self._timeout)
            return None, "Weather provider timed out"
        except WeatherProviderError as exc:
            logger.warning("Weather provider unavailable: %s", exc)
            return None, str(exc)
        return snapshot, None

    def analyze(self, snapshot: WeatherSnapshot | None, profile: HealthProfile) -> RiskAnalysis:
        return analyze(snapshot, profile, match_mode=self._match_mode)

    async def assess(
        self,
        profile: HealthProfile,
        lat: float,
        lon: float,
        *,
        record: bool = True,
    ) -> Assessment:
        """Fetch, analyze and (when risks fired and ``record`` is set) save an alert."""
        snapshot, error = await self.fetch_snapshot(lat, lon)
        if snapshot is None:
            return Assessment(snapshot=None, analysis=RiskAnalysis(), weather_error=error)

        analysis = self.analyze(snapshot, profile)
        alert = None
        if record and analysis.has_risks:
            alert = self._alerts.record(analysis.risks, analysis.recommendations, snapshot)
        return Assessment(snapshot=snapshot, analysis=analysis, alert=alert)

    async def record_symptoms(
        self,
        symptoms: Iterable[str],
        severity: str,
        notes: str = "",
        *,
        lat: float | None = None,
        lon: float | None = None,
    ) -> SymptomEntry:
        """Record symptoms, annotated with the current weather when available.

        An empty symptom list or unknown severity skips the weather call and
        raises :class:`ValidationError`.
        """
        if severity not in RISK_LEVELS:
            raise ValidationError(f"Severity must be one of {RISK_LEVELS}, got {severity!r}")
        labels = list(symptoms)
        snapshot = None
        if lat is not None and lon is not None and any(str(s).strip() for s in labels):
            snapshot, _ = await self.fetch_snapshot(lat, lon)
        return self._symptoms.record(labels, severity, notes, snapshot)
