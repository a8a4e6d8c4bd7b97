"""Deterministic health-risk analysis: weather snapshot + profile -> risks.

Rule groups run in a fixed order (temperature, uv, airQuality, humidity) and
each appends its risks and recommendations in its own order. That order is
part of the output contract: callers display and persist the lists as-is.

The engine is pure. It never touches a store; callers decide whether to
record the result.
"""

from __future__ import annotations

import unicodedata
from typing import Any, Literal

from climacare.domains.advisory.domain_logic.advisory_models import (
    HealthProfile,
    HealthRisk,
    RiskAnalysis,
    WeatherSnapshot,
)

MatchMode = Literal["exact", "normalized"]

# ---------------------------------------------------------------------------
# Thresholds (strict inequalities)
# ---------------------------------------------------------------------------

HEAT_THRESHOLD_C = 35
COLD_THRESHOLD_C = 10
UV_ALERT_THRESHOLD = 6
UV_HIGH_THRESHOLD = 8
AQI_ALERT_THRESHOLD = 3
HUMIDITY_ALERT_THRESHOLD = 80

# Condition keywords the rules look for
ASTHMA = "asma"
BRONCHITIS = "bronquite"
ARTHRITIS = "artrite"

# ---------------------------------------------------------------------------
# Messages and recommendations (shown to users verbatim)
# ---------------------------------------------------------------------------

HEAT_MESSAGE = "Temperatura muito alta para seu perfil de sensibilidade"
HEAT_RECOMMENDATIONS = (
    "Evite exposição ao sol entre 10h e 16h",
    "Mantenha-se hidratado bebendo água regularmente",
)

COLD_ASTHMA_MESSAGE = "Temperatura baixa pode agravar sintomas de asma"
COLD_ASTHMA_RECOMMENDATIONS = (
    "Use roupas adequadas para o frio",
    "Mantenha medicação de emergência próxima",
)

UV_VERY_HIGH_MESSAGE = "Índice UV muito alto - risco de queimaduras"
UV_HIGH_MESSAGE = "Índice UV alto - risco de queimaduras"
UV_RECOMMENDATIONS = (
    "Use protetor solar FPS 30+",
    "Use chapéu e óculos de sol",
)

AIR_QUALITY_MESSAGE = "Qualidade do ar ruim pode agravar condições respiratórias"
AIR_QUALITY_RECOMMENDATIONS = (
    "Evite atividades ao ar livre",
    "Use máscara se necessário sair",
)

HUMIDITY_MESSAGE = "Alta umidade pode aumentar dores articulares"
HUMIDITY_RECOMMENDATIONS = (
    "Mantenha ambientes secos em casa",
    "Considere exercícios leves de alongamento",
)


# ---------------------------------------------------------------------------
# Condition matching
# ---------------------------------------------------------------------------

def normalize_label(label: str) -> str:
    """Case-fold, strip accents and surrounding whitespace (``" Asma "`` -> ``"asma"``)."""
    decomposed = unicodedata.normalize("NFKD", label.strip().casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def has_condition(profile: HealthProfile, keyword: str, match_mode: MatchMode = "exact") -> bool:
    """Whether the profile lists ``keyword`` among its conditions."""
    if match_mode == "exact":
        return keyword in profile.conditions
    target = normalize_label(keyword)
    return any(normalize_label(c) == target for c in profile.conditions)


# ---------------------------------------------------------------------------
# Rule groups
# ---------------------------------------------------------------------------

def _temperature_rules(
    snapshot: WeatherSnapshot, profile: HealthProfile, match_mode: MatchMode
) -> tuple[list[HealthRisk], list[str]]:
    risks: list[HealthRisk] = []
    recommendations: list[str] = []

    if snapshot.temperature > HEAT_THRESHOLD_C and profile.sensitivities.temperature == "high":
        risks.append(HealthRisk(level="high", type="temperature", message=HEAT_MESSAGE))
        recommendations.extend(HEAT_RECOMMENDATIONS)

    if snapshot.temperature < COLD_THRESHOLD_C and has_condition(profile, ASTHMA, match_mode):
        risks.append(HealthRisk(level="medium", type="temperature", message=COLD_ASTHMA_MESSAGE))
        recommendations.extend(COLD_ASTHMA_RECOMMENDATIONS)

    return risks, recommendations


def _uv_rules(snapshot: WeatherSnapshot) -> tuple[list[HealthRisk], list[str]]:
    if snapshot.uv_index <= UV_ALERT_THRESHOLD:
        return [], []
    if snapshot.uv_index > UV_HIGH_THRESHOLD:
        risk = HealthRisk(level="high", type="uv", message=UV_VERY_HIGH_MESSAGE)
    else:
        risk = HealthRisk(level="medium", type="uv", message=UV_HIGH_MESSAGE)
    return [risk], list(UV_RECOMMENDATIONS)


def _air_quality_rules(
    snapshot: WeatherSnapshot, profile: HealthProfile, match_mode: MatchMode
) -> tuple[list[HealthRisk], list[str]]:
    respiratory = has_condition(profile, ASTHMA, match_mode) or has_condition(
        profile, BRONCHITIS, match_mode
    )
    if snapshot.air_quality_index > AQI_ALERT_THRESHOLD and respiratory:
        risk = HealthRisk(level="high", type="airQuality", message=AIR_QUALITY_MESSAGE)
        return [risk], list(AIR_QUALITY_RECOMMENDATIONS)
    return [], []


def _humidity_rules(
    snapshot: WeatherSnapshot, profile: HealthProfile, match_mode: MatchMode
) -> tuple[list[HealthRisk], list[str]]:
    if snapshot.humidity > HUMIDITY_ALERT_THRESHOLD and has_condition(profile, ARTHRITIS, match_mode):
        risk = HealthRisk(level="medium", type="humidity", message=HUMIDITY_MESSAGE)
        return [risk], list(HUMIDITY_RECOMMENDATIONS)
    return [], []


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _coerce_snapshot(snapshot: Any) -> WeatherSnapshot | None:
    if isinstance(snapshot, WeatherSnapshot):
        return snapshot if snapshot.is_valid() else None
    if isinstance(snapshot, dict):
        try:
            parsed = WeatherSnapshot.from_dict(snapshot)
        except (TypeError, ValueError, OverflowError):
            return None
        return parsed if parsed.is_valid() else None
    return None


def analyze(
    snapshot: WeatherSnapshot | dict[str, Any] | None,
    profile: HealthProfile,
    *,
    match_mode: MatchMode = "exact",
) -> RiskAnalysis:
    """Map a weather snapshot and a health profile to risks and recommendations.

    Args:
        snapshot: The reading to evaluate. A camelCase dict is accepted too.
            An absent or malformed snapshot yields an empty analysis.
        profile: The profile whose conditions and sensitivities modulate the rules.
        match_mode: ``"exact"`` compares condition labels verbatim;
            ``"normalized"`` ignores case, accents and surrounding whitespace.

    Returns:
        RiskAnalysis with risks in rule order and their recommendations.
    """
    reading = _coerce_snapshot(snapshot)
    if reading is None:
        return RiskAnalysis()

    risks: list[HealthRisk] = []
    recommendations: list[str] = []

    for group_risks, group_recommendations in (
        _temperature_rules(reading, profile, match_mode),
        _uv_rules(reading),
        _air_quality_rules(reading, profile, match_mode),
        _humidity_rules(reading, profile, match_mode),
    ):
        risks.extend(group_risks)
        recommendations.extend(group_recommendations)

    return RiskAnalysis(risks=tuple(risks), recommendations=tuple(recommendations))
