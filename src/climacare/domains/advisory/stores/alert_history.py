"""Alert history — bounded, most-recent-first log of saved analyses."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from climacare.core.storage.kv_store import KeyValueStore
from climacare.domains.advisory.domain_logic.advisory_models import (
    AlertHistoryEntry,
    HealthRisk,
    WeatherSnapshot,
    new_entry_id,
    now_iso,
)

logger = logging.getLogger(__name__)

ALERT_HISTORY_KEY = "alertHistory"
DEFAULT_ALERT_HISTORY_LIMIT = 50


class AlertHistoryStore:
    """Keeps the ``limit`` most recent alerts, newest first.

    Recording is the caller's decision: the advisory flow only records an
    analysis that produced at least one risk.
    """

    def __init__(self, kv: KeyValueStore, *, limit: int = DEFAULT_ALERT_HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("Alert history limit must be at least 1")
        self._kv = kv
        self._limit = limit

    @property
    def limit(self) -> int:
        return self._limit

    def _load(self) -> list[dict[str, Any]]:
        return self._kv.get(ALERT_HISTORY_KEY) or []

    def record(
        self,
        risks: Iterable[HealthRisk],
        recommendations: Iterable[str],
        snapshot: WeatherSnapshot | dict[str, Any] | None,
    ) -> AlertHistoryEntry:
        """Insert a new unacknowledged entry at the head and trim to the cap.

        ``risks``, ``recommendations`` and ``snapshot`` are copied, so later
        changes by the caller do not reach the stored entry.
        """
        weather = snapshot.to_dict() if isinstance(snapshot, WeatherSnapshot) else snapshot
        entry = AlertHistoryEntry(
            id=new_entry_id(),
            date=now_iso(),
            risks=list(risks),
            recommendations=list(recommendations),
            weather_data=dict(weather) if weather is not None else None,
            acknowledged=False,
        )

        history = [entry.to_dict()] + self._load()
        dropped = len(history) - self._limit
        self._kv.set(ALERT_HISTORY_KEY, history[: self._limit])
        logger.info("Alert %s recorded with %d risk(s)", entry.id, len(entry.risks))
        if dropped > 0:
            logger.debug("Alert history trimmed by %d entr(ies)", dropped)
        return entry

    def acknowledge(self, alert_id: str) -> bool:
        """Mark an alert as acknowledged.

        Returns:
            True if the flag changed. Unknown or already-acknowledged ids are
            a no-op and return False.
        """
        history = self._load()
        for item in history:
            if str(item.get("id")) == alert_id:
                if item.get("acknowledged"):
                    return False
                item["acknowledged"] = True
                self._kv.set(ALERT_HISTORY_KEY, history)
                logger.info("Alert %s acknowledged", alert_id)
                return True
        return False

    def list(self) -> list[AlertHistoryEntry]:
        """All stored alerts, most recent first."""
        return [AlertHistoryEntry.from_dict(item) for item in self._load()]

    def get(self, alert_id: str) -> AlertHistoryEntry | None:
        for entry in self.list():
            if entry.id == alert_id:
                return entry
        return None

    def unacknowledged(self) -> list[AlertHistoryEntry]:
        return [entry for entry in self.list() if not entry.acknowledged]
