"""Symptom history — bounded, most-recent-first log of user-reported symptoms."""

from __future__ import annotations

import logging
import math
from collections import Counter
from typing import Any, Iterable

from climacare.core.storage.kv_store import KeyValueStore
from climacare.domains.advisory.domain_logic.advisory_models import (
    RISK_LEVELS,
    SymptomEntry,
    ValidationError,
    WeatherSnapshot,
    new_entry_id,
    now_iso,
    unique_labels,
)

logger = logging.getLogger(__name__)

SYMPTOM_HISTORY_KEY = "symptomHistory"
DEFAULT_SYMPTOM_HISTORY_LIMIT = 100


class SymptomHistoryStore:
    """Keeps the ``limit`` most recent symptom entries, newest first."""

    def __init__(self, kv: KeyValueStore, *, limit: int = DEFAULT_SYMPTOM_HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError("Symptom history limit must be at least 1")
        self._kv = kv
        self._limit = limit

    @property
    def limit(self) -> int:
        return self._limit

    def _load(self) -> list[dict[str, Any]]:
        return self._kv.get(SYMPTOM_HISTORY_KEY) or []

    def record(
        self,
        symptoms: Iterable[str],
        severity: str,
        notes: str = "",
        snapshot: WeatherSnapshot | dict[str, Any] | None = None,
    ) -> SymptomEntry:
        """Insert a new entry at the head and trim to the cap.

        Raises:
            ValidationError: No symptoms (after trimming blanks and
                duplicates) or an unknown severity. The store is unchanged.
        """
        labels = unique_labels(symptoms)
        if not labels:
            raise ValidationError("Select at least one symptom")
        if severity not in RISK_LEVELS:
            raise ValidationError(f"Severity must be one of {RISK_LEVELS}, got {severity!r}")

        weather = snapshot.to_dict() if isinstance(snapshot, WeatherSnapshot) else snapshot
        entry = SymptomEntry(
            id=new_entry_id(),
            date=now_iso(),
            symptoms=labels,
            severity=severity,
            notes=notes or "",
            weather=dict(weather) if weather is not None else None,
        )

        history = [entry.to_dict()] + self._load()
        self._kv.set(SYMPTOM_HISTORY_KEY, history[: self._limit])
        logger.info("Symptom entry %s recorded (%d symptom(s))", entry.id, len(labels))
        return entry

    def delete(self, entry_id: str) -> bool:
        """Remove an entry. Idempotent; returns False when nothing was removed."""
        history = self._load()
        remaining = [item for item in history if str(item.get("id")) != entry_id]
        if len(remaining) == len(history):
            return False
        self._kv.set(SYMPTOM_HISTORY_KEY, remaining)
        logger.info("Symptom entry %s deleted", entry_id)
        return True

    def list(self) -> list[SymptomEntry]:
        """All stored entries, most recent first."""
        return [SymptomEntry.from_dict(item) for item in self._load()]

    def statistics(self) -> dict[str, Any]:
        """Totals shown next to the history.

        The average rounds half up. ``most_common_symptom`` breaks ties by
        first appearance in the most-recent-first history.
        """
        entries = self.list()
        if not entries:
            return {
                "total_entries": 0,
                "average_symptoms_per_entry": None,
                "most_common_symptom": None,
            }

        counts = Counter(symptom for entry in entries for symptom in entry.symptoms)
        # Counter.most_common keeps insertion order among equal counts.
        most_common = counts.most_common(1)[0][0] if counts else None
        total_symptoms = sum(len(entry.symptoms) for entry in entries)
        return {
            "total_entries": len(entries),
            "average_symptoms_per_entry": math.floor(total_symptoms / len(entries) + 0.5),
            "most_common_symptom": most_common,
        }
