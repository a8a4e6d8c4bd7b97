"""Weather/symptom trend reports built from stored history.

Daily reports bucket every recorded reading (symptom annotations and saved
alerts) by UTC calendar day; weekly summaries group days into weeks that
start on Sunday and derive follow-up recommendations from the averages.
"""

from __future__ import annotations

import logging
import math
import statistics
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Any

from climacare.domains.advisory.connectors import WeatherProviderError
from climacare.domains.advisory.connectors.openweathermap import snapshot_from_payload
from climacare.domains.advisory.domain_logic.advisory_models import (
    WeatherSnapshot,
    parse_timestamp,
)
from climacare.domains.advisory.stores.alert_history import AlertHistoryStore
from climacare.domains.advisory.stores.symptom_history import SymptomHistoryStore

logger = logging.getLogger(__name__)

REPORT_PERIODS = (7, 30, 90)

# Weekly recommendation thresholds (strict)
HOT_WEEK_AVG_C = 28
HUMID_WEEK_AVG = 70
UV_WEEK_AVG = 6
AQI_WEEK_AVG = 3
SYMPTOMS_PER_WEEK = 3

WEEKLY_RECOMMENDATIONS = {
    "temperature": "Mantenha-se hidratado em temperaturas altas",
    "humidity": "Use desumidificador em casa",
    "uv": "Use protetor solar diariamente",
    "airQuality": "Evite atividades ao ar livre",
    "symptoms": "Considere consultar um médico",
}


def read_snapshot(data: Any) -> WeatherSnapshot | None:
    """Parse a stored weather record in either the snapshot or raw provider shape."""
    if isinstance(data, WeatherSnapshot):
        return data
    if not isinstance(data, dict) or not data:
        return None
    if "weather" in data:
        try:
            return snapshot_from_payload(data)
        except (WeatherProviderError, AttributeError, TypeError):
            return None
    try:
        return WeatherSnapshot.from_dict(data)
    except (TypeError, ValueError):
        return None


def _round1(value: float) -> float:
    """Round half up to one decimal."""
    return math.floor(value * 10 + 0.5) / 10


def _round0(value: float) -> int:
    return math.floor(value + 0.5)


def _avg(values: list[float]) -> float | None:
    return statistics.mean(values) if values else None


def _day_of(timestamp: str) -> date | None:
    try:
        return parse_timestamp(timestamp).date()
    except (AttributeError, ValueError):
        return None


def _week_start(day: date) -> date:
    """Sunday on or before ``day``."""
    return day - timedelta(days=(day.weekday() + 1) % 7)


class TrendReportBuilder:
    """Builds daily and weekly reports from the symptom and alert histories.

    Usage::

        builder = TrendReportBuilder(symptom_store, alert_store)
        daily = builder.daily_reports(30)
        weekly = builder.weekly_summaries(daily)
    """

    def __init__(self, symptoms: SymptomHistoryStore, alerts: AlertHistoryStore) -> None:
        self._symptoms = symptoms
        self._alerts = alerts

    def daily_reports(self, days: int = 7, *, today: date | None = None) -> list[dict[str, Any]]:
        """One report per day of the window ending ``today``, oldest first.

        Args:
            days: Window length in days (7, 30 and 90 are the offered periods).
            today: Last day of the window (UTC); defaults to the current date.

        Returns:
            List of dicts with date, temperature (min/max/avg), humidity,
            uvIndex, airQuality, readings, risks, symptoms. Weather fields are
            None on days without readings.
        """
        if days < 1:
            raise ValueError("Report period must be at least one day")

        end = today or datetime.now(timezone.utc).date()
        window = [end - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
        readings: dict[date, list[WeatherSnapshot]] = {day: [] for day in window}
        risks: dict[date, int] = {day: 0 for day in window}
        symptoms: dict[date, list[str]] = {day: [] for day in window}

        for entry in self._symptoms.list():
            day = _day_of(entry.date)
            if day not in readings:
                continue
            symptoms[day].extend(entry.symptoms)
            snapshot = read_snapshot(entry.weather)
            if snapshot is not None:
                readings[day].append(snapshot)

        for alert in self._alerts.list():
            day = _day_of(alert.date)
            if day not in readings:
                continue
            risks[day] += len(alert.risks)
            snapshot = read_snapshot(alert.weather_data)
            if snapshot is not None:
                readings[day].append(snapshot)

        return [self._daily(day, readings[day], risks[day], symptoms[day]) for day in window]

    @staticmethod
    def _daily(
        day: date, readings: list[WeatherSnapshot], risk_count: int, day_symptoms: list[str]
    ) -> dict[str, Any]:
        report: dict[str, Any] = {
            "date": day.isoformat(),
            "temperature": None,
            "humidity": None,
            "uvIndex": None,
            "airQuality": None,
            "readings": len(readings),
            "risks": risk_count,
            "symptoms": day_symptoms,
        }
        if readings:
            temps = [r.temperature for r in readings]
            report["temperature"] = {
                "min": min(temps),
                "max": max(temps),
                "avg": _round1(statistics.mean(temps)),
            }
            report["humidity"] = _round0(statistics.mean(r.humidity for r in readings))
            report["uvIndex"] = _round1(statistics.mean(r.uv_index for r in readings))
            report["airQuality"] = _round1(statistics.mean(r.air_quality_index for r in readings))
        return report

    @staticmethod
    def weekly_summaries(daily: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Group daily reports into Sunday-start weeks, most recent week first."""
        weeks: dict[date, list[dict[str, Any]]] = {}
        for report in daily:
            start = _week_start(date.fromisoformat(report["date"]))
            weeks.setdefault(start, []).append(report)

        summaries = []
        for start in sorted(weeks, reverse=True):
            reports = weeks[start]
            with_weather = [r for r in reports if r["temperature"] is not None]

            avg_temp = _avg([r["temperature"]["avg"] for r in with_weather])
            avg_humidity = _avg([r["humidity"] for r in with_weather])
            avg_uv = _avg([r["uvIndex"] for r in with_weather])
            avg_aqi = _avg([r["airQuality"] for r in with_weather])

            all_symptoms = [s for r in reports for s in r["symptoms"]]
            total_symptoms = len(all_symptoms)

            recommendations = []
            if avg_temp is not None and avg_temp > HOT_WEEK_AVG_C:
                recommendations.append(WEEKLY_RECOMMENDATIONS["temperature"])
            if avg_humidity is not None and avg_humidity > HUMID_WEEK_AVG:
                recommendations.append(WEEKLY_RECOMMENDATIONS["humidity"])
            if avg_uv is not None and avg_uv > UV_WEEK_AVG:
                recommendations.append(WEEKLY_RECOMMENDATIONS["uv"])
            if avg_aqi is not None and avg_aqi > AQI_WEEK_AVG:
                recommendations.append(WEEKLY_RECOMMENDATIONS["airQuality"])
            if total_symptoms > SYMPTOMS_PER_WEEK:
                recommendations.append(WEEKLY_RECOMMENDATIONS["symptoms"])

            summaries.append({
                "week": start.isoformat(),
                "avgTemperature": _round1(avg_temp) if avg_temp is not None else None,
                "avgHumidity": _round0(avg_humidity) if avg_humidity is not None else None,
                "avgUV": _round1(avg_uv) if avg_uv is not None else None,
                "avgAirQuality": _round1(avg_aqi) if avg_aqi is not None else None,
                "totalRisks": sum(r["risks"] for r in reports),
                "totalSymptoms": total_symptoms,
                "mostCommonSymptoms": [s for s, _ in Counter(all_symptoms).most_common(3)],
                "recommendations": recommendations,
            })

        return summaries

    def build(self, days: int = 7, *, today: date | None = None) -> dict[str, Any]:
        """Daily reports plus weekly summaries for one period."""
        daily = self.daily_reports(days, today=today)
        weekly = self.weekly_summaries(daily)
        logger.debug("Built %d-day trend report (%d weeks)", days, len(weekly))
        return {"period_days": days, "daily": daily, "weekly": weekly}
