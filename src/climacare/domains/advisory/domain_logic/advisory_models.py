"""Advisory data models and domain constants.

Every model serializes with the camelCase field names used by the persisted
records (``airQuality``, ``uvIndex``, ``emergencyContact``, ``weatherData``),
so stored data written by earlier clients stays readable.
"""

from __future__ import annotations

import math
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable


# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

RISK_LEVELS = ("low", "medium", "high")
SENSITIVITY_LEVELS = ("low", "normal", "high")
RISK_TYPES = ("temperature", "humidity", "airQuality", "uv")

# Choices offered by the profile and history forms. Free text is also accepted.
COMMON_CONDITIONS = [
    "Asma",
    "Bronquite",
    "Artrite",
    "Hipertensão",
    "Diabetes",
    "Enxaqueca",
    "Rinite Alérgica",
    "Sinusite",
    "Problemas Cardíacos",
    "Problemas de Pele",
    "Osteoporose",
    "Fibromialgia",
]

COMMON_ALLERGIES = [
    "Pólen",
    "Ácaros",
    "Poeira",
    "Pelos de Animais",
    "Mofo",
    "Produtos Químicos",
    "Perfumes",
    "Alimentos",
    "Medicamentos",
    "Látex",
]

COMMON_SYMPTOMS = [
    "Dor de cabeça",
    "Fadiga",
    "Dificuldade para respirar",
    "Tosse",
    "Espirros",
    "Olhos irritados",
    "Nariz entupido",
    "Dor nas articulações",
    "Dor muscular",
    "Irritação na pele",
    "Tontura",
    "Náusea",
    "Insônia",
    "Ansiedade",
    "Palpitações",
]

RELATIONSHIPS = ["Filho(a)", "Cônjuge", "Pai/Mãe", "Avô/Avó", "Irmão/Irmã", "Outro"]

MIN_AGE = 1
MAX_AGE = 120


class ValidationError(ValueError):
    """Raised when user-supplied data fails validation. Nothing is stored."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_last_id_ms = 0


def new_entry_id() -> str:
    """Time-based id (epoch milliseconds), strictly increasing within the process."""
    global _last_id_ms  # noqa: PLW0603
    candidate = time.time_ns() // 1_000_000
    if candidate <= _last_id_ms:
        candidate = _last_id_ms + 1
    _last_id_ms = candidate
    return str(candidate)


def now_iso() -> str:
    """Current UTC time as ISO 8601 with milliseconds and a ``Z`` suffix."""
    return format_timestamp(datetime.now(timezone.utc))


def format_timestamp(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp (``Z`` suffix allowed) into an aware UTC datetime."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    moment = datetime.fromisoformat(text)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def unique_labels(items: Iterable[str] | None) -> list[str]:
    """Trim labels, drop blanks and duplicates, keep first-seen order."""
    seen: list[str] = []
    for item in items or []:
        label = str(item).strip()
        if label and label not in seen:
            seen.append(label)
    return seen


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


# ---------------------------------------------------------------------------
# Health profile
# ---------------------------------------------------------------------------

@dataclass
class Sensitivities:
    """Per-factor sensitivity. All four factors are always populated."""

    temperature: str = "normal"
    humidity: str = "normal"
    air_quality: str = "normal"
    uv: str = "normal"

    def validate(self) -> None:
        for name, value in self.to_dict().items():
            if value not in SENSITIVITY_LEVELS:
                raise ValidationError(
                    f"Sensitivity {name!r} must be one of {SENSITIVITY_LEVELS}, got {value!r}"
                )

    def to_dict(self) -> dict[str, str]:
        return {
            "temperature": self.temperature,
            "humidity": self.humidity,
            "airQuality": self.air_quality,
            "uv": self.uv,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Sensitivities:
        """Build from a partial mapping; unset factors default to ``normal``."""
        data = data or {}
        return cls(
            temperature=data.get("temperature") or "normal",
            humidity=data.get("humidity") or "normal",
            air_quality=data.get("airQuality") or data.get("air_quality") or "normal",
            uv=data.get("uv") or "normal",
        )


@dataclass
class HealthProfile:
    """A health profile: the primary user or a family member.

    ``relationship`` is only set on family members.
    """

    id: str
    name: str
    age: int
    conditions: list[str] = field(default_factory=list)
    medications: list[str] = field(default_factory=list)
    allergies: list[str] = field(default_factory=list)
    sensitivities: Sensitivities = field(default_factory=Sensitivities)
    emergency_contact: str | None = None
    relationship: str | None = None

    def __post_init__(self) -> None:
        self.conditions = unique_labels(self.conditions)
        self.medications = unique_labels(self.medications)
        self.allergies = unique_labels(self.allergies)
        if isinstance(self.sensitivities, dict):
            self.sensitivities = Sensitivities.from_dict(self.sensitivities)
        elif self.sensitivities is None:
            self.sensitivities = Sensitivities()

    @property
    def is_family_member(self) -> bool:
        return self.relationship is not None

    def validate(self) -> None:
        """Raise :class:`ValidationError` if the profile cannot be stored."""
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Name must not be empty")
        if isinstance(self.age, bool) or not isinstance(self.age, int):
            raise ValidationError(f"Age must be an integer, got {self.age!r}")
        if not MIN_AGE <= self.age <= MAX_AGE:
            raise ValidationError(f"Age must be between {MIN_AGE} and {MAX_AGE}, got {self.age}")
        if self.relationship is not None and not self.relationship.strip():
            raise ValidationError("Family members need a relationship")
        self.sensitivities.validate()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "age": self.age,
            "conditions": list(self.conditions),
            "medications": list(self.medications),
            "allergies": list(self.allergies),
            "sensitivities": self.sensitivities.to_dict(),
        }
        if self.emergency_contact is not None:
            data["emergencyContact"] = self.emergency_contact
        if self.relationship is not None:
            data["relationship"] = self.relationship
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HealthProfile:
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name", ""),
            age=data.get("age", 0),
            conditions=data.get("conditions") or [],
            medications=data.get("medications") or [],
            allergies=data.get("allergies") or [],
            sensitivities=Sensitivities.from_dict(data.get("sensitivities")),
            emergency_contact=data.get("emergencyContact"),
            relationship=data.get("relationship"),
        )


# ---------------------------------------------------------------------------
# Weather snapshot (engine input)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class WeatherSnapshot:
    """A point-in-time weather/UV/air-quality reading."""

    temperature: float             # degrees Celsius
    humidity: int                  # percent, 0-100
    uv_index: float = 0.0          # 0-11+, no upper bound
    air_quality_index: int = 1     # 1 (good) .. 5 (very poor)
    timestamp: str | None = None   # ISO 8601, when the reading was taken
    location: str | None = None    # provider's place name, if any

    def is_valid(self) -> bool:
        """True if every reading the rules look at is a real number."""
        return all(
            _is_number(value)
            for value in (self.temperature, self.humidity, self.uv_index, self.air_quality_index)
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "temperature": self.temperature,
            "humidity": self.humidity,
            "uvIndex": self.uv_index,
            "airQualityIndex": self.air_quality_index,
        }
        if self.timestamp is not None:
            data["timestamp"] = self.timestamp
        if self.location is not None:
            data["location"] = self.location
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WeatherSnapshot:
        """Parse the camelCase snapshot shape.

        Raises:
            ValueError: If temperature or humidity is missing or non-numeric.
        """
        temperature = data.get("temperature")
        humidity = data.get("humidity")
        if not _is_number(temperature) or not _is_number(humidity):
            raise ValueError("Snapshot needs numeric temperature and humidity")
        uv_index = data.get("uvIndex")
        aqi = data.get("airQualityIndex")
        return cls(
            temperature=float(temperature),
            humidity=int(round(humidity)),
            uv_index=float(uv_index) if _is_number(uv_index) else 0.0,
            air_quality_index=int(aqi) if _is_number(aqi) else 1,
            timestamp=data.get("timestamp"),
            location=data.get("location"),
        )


# ---------------------------------------------------------------------------
# Engine output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class HealthRisk:
    """One flagged concern for one weather factor."""

    level: str      # low | medium | high
    type: str       # temperature | humidity | airQuality | uv
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"level": self.level, "type": self.type, "message": self.message}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HealthRisk:
        return cls(level=data["level"], type=data["type"], message=data["message"])


@dataclass(frozen=True)
class RiskAnalysis:
    """Risks and recommendations produced together by one analysis call."""

    risks: tuple[HealthRisk, ...] = ()
    recommendations: tuple[str, ...] = ()

    @property
    def has_risks(self) -> bool:
        return bool(self.risks)

    def to_dict(self) -> dict[str, Any]:
        return {
            "risks": [risk.to_dict() for risk in self.risks],
            "recommendations": list(self.recommendations),
        }


# ---------------------------------------------------------------------------
# History records
# ---------------------------------------------------------------------------

@dataclass
class AlertHistoryEntry:
    """A saved analysis result. Only ``acknowledged`` ever changes."""

    id: str
    date: str
    risks: list[HealthRisk]
    recommendations: list[str]
    weather_data: dict[str, Any] | None = None
    acknowledged: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "risks": [risk.to_dict() for risk in self.risks],
            "recommendations": list(self.recommendations),
            "weatherData": self.weather_data,
            "acknowledged": self.acknowledged,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AlertHistoryEntry:
        return cls(
            id=str(data["id"]),
            date=data["date"],
            risks=[HealthRisk.from_dict(r) for r in data.get("risks") or []],
            recommendations=list(data.get("recommendations") or []),
            weather_data=data.get("weatherData"),
            acknowledged=bool(data.get("acknowledged", False)),
        )


@dataclass
class SymptomEntry:
    """A user-reported set of symptoms, optionally with the weather at the time."""

    id: str
    date: str
    symptoms: list[str]
    severity: str
    notes: str = ""
    weather: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "date": self.date,
            "symptoms": list(self.symptoms),
            "severity": self.severity,
            "notes": self.notes,
        }
        if self.weather is not None:
            data["weather"] = self.weather
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SymptomEntry:
        return cls(
            id=str(data["id"]),
            date=data["date"],
            symptoms=list(data.get("symptoms") or []),
            severity=data.get("severity", "medium"),
            notes=data.get("notes") or "",
            weather=data.get("weather"),
        )
