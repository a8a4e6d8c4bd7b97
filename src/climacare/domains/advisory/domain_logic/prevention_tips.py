"""Prevention tip catalog, filtering and weather-based personalization.

The catalog is static and shown to users verbatim. Personalization is pure:
given a snapshot and a profile it picks tips in a fixed order (heat, cold,
uv, air quality, humidity, then the profile's conditions), drops repeats
and keeps the first :data:`PERSONALIZED_LIMIT`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from climacare.domains.advisory.domain_logic.advisory_models import (
    HealthProfile,
    ValidationError,
    WeatherSnapshot,
)

TIP_CATEGORIES = ("temperature", "humidity", "uv", "airQuality", "general")
ALL_CATEGORIES = "all"

PERSONALIZED_LIMIT = 6

# Personalization triggers (strict inequalities)
HOT_DAY_C = 30
COLD_DAY_C = 15
UV_TIP_THRESHOLD = 6
AQI_TIP_THRESHOLD = 3
HUMID_DAY_PERCENT = 70
HUMIDITY_TIP_CONDITION = "artrite"


@dataclass(frozen=True)
class PreventionTip:
    id: str
    title: str
    description: str
    category: str                  # one of TIP_CATEGORIES
    conditions: tuple[str, ...]
    severity: str                  # low | medium | high
    icon: str = ""

    def matches(self, term: str) -> bool:
        """Case-insensitive substring match on title, description or conditions."""
        needle = term.lower()
        return (
            needle in self.title.lower()
            or needle in self.description.lower()
            or any(needle in condition.lower() for condition in self.conditions)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "conditions": list(self.conditions),
            "severity": self.severity,
            "icon": self.icon,
        }


PREVENTION_TIPS: tuple[PreventionTip, ...] = (
    PreventionTip(
        "1",
        "Hidratação em Altas Temperaturas",
        "Beba pelo menos 2-3 litros de água por dia quando a temperatura estiver acima de 30°C. "
        "Evite bebidas alcoólicas e com cafeína que podem causar desidratação.",
        "temperature",
        ("Calor extremo", "Desidratação"),
        "high",
        "💧",
    ),
    PreventionTip(
        "2",
        "Roupas Adequadas para o Calor",
        "Use roupas leves, de cores claras e tecidos respiráveis como algodão. "
        "Evite roupas escuras que absorvem mais calor.",
        "temperature",
        ("Calor", "Exposição solar"),
        "medium",
        "👕",
    ),
    PreventionTip(
        "3",
        "Proteção contra o Frio",
        "Vista-se em camadas para manter o calor corporal. Proteja extremidades como mãos, pés "
        "e cabeça. Pessoas com problemas respiratórios devem ter cuidado especial.",
        "temperature",
        ("Frio", "Asma", "Problemas respiratórios"),
        "medium",
        "🧥",
    ),
    PreventionTip(
        "4",
        "Protetor Solar Diário",
        "Use protetor solar FPS 30 ou superior, mesmo em dias nublados. "
        "Reaplique a cada 2 horas ou após nadar/suar.",
        "uv",
        ("Exposição solar", "Pele sensível"),
        "high",
        "🧴",
    ),
    PreventionTip(
        "5",
        "Evitar Horários de Pico Solar",
        "Evite exposição direta ao sol entre 10h e 16h, quando os raios UV são mais intensos. "
        "Procure sombra sempre que possível.",
        "uv",
        ("Índice UV alto", "Pele sensível"),
        "high",
        "🌞",
    ),
    PreventionTip(
        "6",
        "Acessórios de Proteção",
        "Use chapéu de abas largas, óculos de sol com proteção UV e roupas com proteção solar "
        "para atividades ao ar livre.",
        "uv",
        ("Atividades externas", "Exposição prolongada"),
        "medium",
        "🕶️",
    ),
    PreventionTip(
        "7",
        "Máscara em Dias de Poluição",
        "Use máscara N95 ou PFF2 quando a qualidade do ar estiver ruim, especialmente se você "
        "tem problemas respiratórios.",
        "airQuality",
        ("Asma", "Bronquite", "Problemas respiratórios"),
        "high",
        "😷",
    ),
    PreventionTip(
        "8",
        "Exercícios em Ambientes Fechados",
        "Em dias de alta poluição, prefira exercitar-se em ambientes fechados com ar "
        "condicionado ou filtrado.",
        "airQuality",
        ("Poluição alta", "Exercícios"),
        "medium",
        "🏃",
    ),
    PreventionTip(
        "9",
        "Purificação do Ar Doméstico",
        "Use purificadores de ar em casa, mantenha janelas fechadas em dias poluídos e cultive "
        "plantas que purificam o ar.",
        "airQuality",
        ("Poluição", "Alergias"),
        "medium",
        "🌱",
    ),
    PreventionTip(
        "10",
        "Controle da Umidade em Casa",
        "Mantenha a umidade entre 40-60%. Use desumidificador se necessário e evite secar "
        "roupas dentro de casa.",
        "humidity",
        ("Artrite", "Problemas respiratórios"),
        "medium",
        "🏠",
    ),
    PreventionTip(
        "11",
        "Cuidados com Mofo e Ácaros",
        "Em alta umidade, limpe regularmente para evitar mofo. Use capas antialérgicas em "
        "colchões e travesseiros.",
        "humidity",
        ("Alergias", "Asma", "Rinite"),
        "medium",
        "🧽",
    ),
    PreventionTip(
        "12",
        "Medicação de Emergência",
        "Sempre carregue medicamentos de emergência (inalador, antialérgicos) e mantenha-os "
        "em temperatura adequada.",
        "general",
        ("Asma", "Alergias", "Condições crônicas"),
        "high",
        "💊",
    ),
    PreventionTip(
        "13",
        "Monitoramento Regular",
        "Acompanhe diariamente as condições climáticas e alertas meteorológicos para se "
        "preparar adequadamente.",
        "general",
        ("Todas as condições",),
        "low",
        "📱",
    ),
    PreventionTip(
        "14",
        "Alimentação Sazonal",
        "Adapte sua dieta às condições climáticas: mais líquidos no calor, alimentos quentes "
        "no frio, antioxidantes em dias poluídos.",
        "general",
        ("Nutrição", "Imunidade"),
        "low",
        "🥗",
    ),
    PreventionTip(
        "15",
        "Sono e Descanso",
        "Mantenha o ambiente de sono confortável: temperatura entre 18-22°C, umidade adequada "
        "e ar limpo.",
        "general",
        ("Qualidade do sono", "Bem-estar"),
        "medium",
        "😴",
    ),
)

HEAT_TIP_IDS = ("1",)
COLD_TIP_IDS = ("3",)


def filter_tips(category: str | None = None, search: str = "") -> list[PreventionTip]:
    """Return catalog tips in a category and/or matching a search term.

    ``None``, ``""`` or ``"all"`` mean every category; a blank search matches
    everything.

    Raises:
        ValidationError: Unknown category.
    """
    if category and category != ALL_CATEGORIES and category not in TIP_CATEGORIES:
        raise ValidationError(f"Category must be one of {TIP_CATEGORIES}, got {category!r}")

    tips = list(PREVENTION_TIPS)
    if category and category != ALL_CATEGORIES:
        tips = [tip for tip in tips if tip.category == category]
    term = search.strip()
    if term:
        tips = [tip for tip in tips if tip.matches(term)]
    return tips


def _by_ids(ids: tuple[str, ...]) -> list[PreventionTip]:
    return [tip for tip in PREVENTION_TIPS if tip.id in ids]


def _by_category(category: str) -> list[PreventionTip]:
    return [tip for tip in PREVENTION_TIPS if tip.category == category]


def personalized_tips(
    snapshot: WeatherSnapshot | None,
    profile: HealthProfile | None,
    *,
    limit: int = PERSONALIZED_LIMIT,
) -> list[PreventionTip]:
    """Pick the tips most relevant to the current weather and a profile.

    Returns an empty list when either the snapshot or the profile is missing.
    """
    if snapshot is None or profile is None:
        return []

    relevant: list[PreventionTip] = []
    if snapshot.temperature > HOT_DAY_C:
        relevant.extend(_by_ids(HEAT_TIP_IDS))
    if snapshot.temperature < COLD_DAY_C:
        relevant.extend(_by_ids(COLD_TIP_IDS))
    if snapshot.uv_index > UV_TIP_THRESHOLD:
        relevant.extend(_by_category("uv"))
    if snapshot.air_quality_index > AQI_TIP_THRESHOLD:
        relevant.extend(_by_category("airQuality"))
    if snapshot.humidity > HUMID_DAY_PERCENT and HUMIDITY_TIP_CONDITION in profile.conditions:
        relevant.extend(_by_category("humidity"))

    for condition in profile.conditions:
        needle = condition.lower()
        relevant.extend(
            tip for tip in PREVENTION_TIPS
            if any(needle in label.lower() for label in tip.conditions)
        )

    unique: list[PreventionTip] = []
    seen: set[str] = set()
    for tip in relevant:
        if tip.id not in seen:
            seen.add(tip.id)
            unique.append(tip)
    return unique[:limit]
