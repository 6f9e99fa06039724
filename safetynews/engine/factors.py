"""
Risk factors - six independent sub-scores over one incident selection.

Each factor returns a score in [0, 100] plus its configured weight. Every
ratio guards the zero-incident case, so an empty selection scores 0
across the board.

    violent      = min(violent_ratio × 100, 100)        weight 0.40
    property     = min(property_ratio × 80, 100)        weight 0.25
    frequency    = min(incidents_per_day × 20, 100)     weight 0.20
    severity     = avg_severity / 5 × 100               weight 0.10
    time_pattern = night_or_weekend_ratio × 60          weight 0.05
    density      = min(incidents_per_km² × 10, 100)     weight 0.05
"""

import math
from dataclasses import dataclass
from typing import Sequence

from safetynews.config import settings
from safetynews.geo import circle_area_km2
from safetynews.schemas.incident import PROPERTY_CATEGORIES, Incident

VIOLENT_LABEL = "Violent Crime Risk"
PROPERTY_LABEL = "Property Crime Risk"
FREQUENCY_LABEL = "Incident Frequency"
SEVERITY_LABEL = "Average Severity"
TIME_PATTERN_LABEL = "Time Pattern Risk"
DENSITY_LABEL = "Location Density"

NIGHT_START_HOUR = 22
NIGHT_END_HOUR = 6
WEEKEND_DAYS = frozenset({5, 6})  # Saturday, Sunday


def round_half_up(value: float) -> int:
    """Nearest integer, halves rounded up (Python's round() is banker's)."""
    return math.floor(value + 0.5)


@dataclass(frozen=True)
class RiskFactor:
    label: str
    weight: float           # 0-1
    score: float            # 0-100
    explanation: str

    def to_dict(self) -> dict:
        return {
            "type": self.label,
            "weight": self.weight,
            "score": round(self.score, 2),
            "description": self.explanation,
        }


def _ratio(part: int, total: int) -> float:
    return part / total if total else 0.0


def violent_crime_factor(incidents: Sequence[Incident]) -> RiskFactor:
    violent = sum(1 for i in incidents if i.is_violent)
    return RiskFactor(
        label=VIOLENT_LABEL,
        weight=settings.weight_violent,
        score=min(_ratio(violent, len(incidents)) * 100, 100.0),
        explanation=f"{violent} violent incidents out of {len(incidents)} total",
    )


def property_crime_factor(incidents: Sequence[Incident]) -> RiskFactor:
    prop = sum(1 for i in incidents if i.category in PROPERTY_CATEGORIES)
    return RiskFactor(
        label=PROPERTY_LABEL,
        weight=settings.weight_property,
        score=min(_ratio(prop, len(incidents)) * 80, 100.0),
        explanation=f"{prop} property crimes detected",
    )


def frequency_factor(incidents: Sequence[Incident], window_hours: float) -> RiskFactor:
    per_day = len(incidents) / window_hours * 24 if window_hours > 0 else 0.0
    return RiskFactor(
        label=FREQUENCY_LABEL,
        weight=settings.weight_frequency,
        score=min(per_day * 20, 100.0),
        explanation=f"{per_day:.1f} incidents per day",
    )


def severity_factor(incidents: Sequence[Incident]) -> RiskFactor:
    if not incidents:
        return RiskFactor(SEVERITY_LABEL, settings.weight_severity, 0.0, "No incidents to analyze")
    avg = sum(i.severity for i in incidents) / len(incidents)
    return RiskFactor(
        label=SEVERITY_LABEL,
        weight=settings.weight_severity,
        score=avg / 5 * 100,
        explanation=f"Average severity: {avg:.1f}/5",
    )


def is_high_risk_time(incident: Incident) -> bool:
    """Night (22:00 through 06:59) or weekend, in the incident's own offset."""
    moment = incident.datetime
    return (
        moment.hour >= NIGHT_START_HOUR
        or moment.hour <= NIGHT_END_HOUR
        or moment.weekday() in WEEKEND_DAYS
    )


def time_pattern_factor(incidents: Sequence[Incident]) -> RiskFactor:
    ratio = _ratio(sum(1 for i in incidents if is_high_risk_time(i)), len(incidents))
    return RiskFactor(
        label=TIME_PATTERN_LABEL,
        weight=settings.weight_time_pattern,
        score=ratio * 60,
        explanation=f"{ratio * 100:.0f}% of incidents during high-risk times",
    )


def density_factor(incidents: Sequence[Incident], radius_km: float) -> RiskFactor:
    area = circle_area_km2(radius_km)
    density = len(incidents) / area if area > 0 else 0.0
    return RiskFactor(
        label=DENSITY_LABEL,
        weight=settings.weight_density,
        score=min(density * 10, 100.0),
        explanation=f"{density:.2f} incidents per km²",
    )


def compute_factors(
    incidents: Sequence[Incident],
    radius_km: float,
    window_hours: float,
) -> list[RiskFactor]:
    """All six factors, in fixed order."""
    return [
        violent_crime_factor(incidents),
        property_crime_factor(incidents),
        frequency_factor(incidents, window_hours),
        severity_factor(incidents),
        time_pattern_factor(incidents),
        density_factor(incidents, radius_km),
    ]


def weighted_score(factors: Sequence[RiskFactor]) -> int:
    """Weighted mean of factor scores, rounded half-up."""
    total_weight = sum(f.weight for f in factors)
    if total_weight <= 0:
        return 0
    return round_half_up(sum(f.score * f.weight for f in factors) / total_weight)
