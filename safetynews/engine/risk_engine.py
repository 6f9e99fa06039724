"""
Risk Assessment Engine - single entry point for area risk.

assess(area, radius_km, window_hours):
1. Select incidents within the radius inside [now - window, now]
2. Compute the six weighted factors
3. Weighted mean → overall score (0-100) → risk level band
4. Compare against the preceding window of equal length (trend)
5. Confidence from data volume and window length
6. Fixed-rule recommendations

Derived on demand from the store; nothing is persisted. Each call is two
O(n) scans of the store.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from typing import Optional, Sequence, Union

import structlog

from safetynews.config import settings
from safetynews.db.store import IncidentStore
from safetynews.engine.factors import RiskFactor, compute_factors, round_half_up, weighted_score
from safetynews.engine.recommendations import generate_recommendations
from safetynews.engine.trend import TrendAnalysis, analyze_trend
from safetynews.geo import Point
from safetynews.schemas.incident import Incident
from safetynews.tools.geocoding import resolve_place

logger = structlog.get_logger(__name__)

Area = Union[str, Point, Sequence[float]]


class RiskLevel(StrEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    EXTREME = "Extreme"


def risk_level(score: float) -> RiskLevel:
    if score <= settings.risk_low_max:
        return RiskLevel.LOW
    if score <= settings.risk_medium_max:
        return RiskLevel.MEDIUM
    if score <= settings.risk_high_max:
        return RiskLevel.HIGH
    return RiskLevel.EXTREME


def confidence_score(incident_count: int, window_hours: float) -> int:
    """min(n×5, 70) + min(window/168×30, 30); zero when nothing was selected."""
    if incident_count == 0:
        return 0
    data_score = min(incident_count * 5, 70)
    time_score = min(window_hours / 168 * 30, 30)
    return round_half_up(data_score + time_score)


@dataclass
class RiskAssessment:
    """
    Risk for one area and window.

    - overall_score: weighted mean of factor scores (0-100)
    - risk_level: Low ≤25 < Medium ≤50 < High ≤75 < Extreme
    - confidence: 0-100, saturates with more incidents or a longer window
    """
    area: str
    center: Point
    radius_km: float
    window_hours: float
    overall_score: int
    risk_level: RiskLevel
    factors: list[RiskFactor]
    trend: TrendAnalysis
    recommendations: list[str]
    confidence: int
    incident_count: int
    generated_at: str = ""
    incidents: list[Incident] = field(default_factory=list, repr=False)

    def to_dict(self) -> dict:
        return {
            "area": self.area,
            "center": list(self.center),
            "radiusKm": self.radius_km,
            "windowHours": self.window_hours,
            "overallRiskScore": self.overall_score,
            "riskLevel": self.risk_level.value,
            "factors": [f.to_dict() for f in self.factors],
            "trends": self.trend.to_dict(),
            "recommendations": self.recommendations,
            "confidenceScore": self.confidence,
            "incidentCount": self.incident_count,
            "generatedAt": self.generated_at,
        }


def resolve_area(area: Area) -> tuple[str, Point]:
    """Place name → gazetteer point; (lng, lat) passes through."""
    if isinstance(area, str):
        point, _confidence = resolve_place(area)
        return area, (float(point[0]), float(point[1]))
    lng, lat = area
    return f"{lng:.4f},{lat:.4f}", (float(lng), float(lat))


class RiskAssessmentEngine:
    def __init__(self, store: IncidentStore):
        self.store = store

    def select(
        self,
        center: Point,
        radius_km: float,
        start: datetime,
        end: datetime,
        include_end: bool = True,
    ) -> list[Incident]:
        """Nearby incidents from ``start`` (inclusive) up to ``end``. Future-dated ones never count."""
        nearby = self.store.within_radius(center, radius_km)
        if include_end:
            return [i for i in nearby if start <= i.datetime <= end]
        return [i for i in nearby if start <= i.datetime < end]

    def assess(
        self,
        area: Area,
        radius_km: Optional[float] = None,
        window_hours: Optional[float] = None,
    ) -> RiskAssessment:
        radius_km = settings.default_radius_km if radius_km is None else radius_km
        window_hours = settings.default_window_hours if window_hours is None else window_hours
        label, center = resolve_area(area)
        now = self.store.now()
        window = timedelta(hours=window_hours)

        current = self.select(center, radius_km, now - window, now)
        previous = self.select(center, radius_km, now - 2 * window, now - window, include_end=False)

        factors = compute_factors(current, radius_km, window_hours)
        score = weighted_score(factors) if current else 0
        trend = analyze_trend(current, previous, window_hours)

        assessment = RiskAssessment(
            area=label,
            center=center,
            radius_km=radius_km,
            window_hours=window_hours,
            overall_score=score,
            risk_level=risk_level(score),
            factors=factors,
            trend=trend,
            recommendations=generate_recommendations(factors, trend, len(current)),
            confidence=confidence_score(len(current), window_hours),
            incident_count=len(current),
            generated_at=now.isoformat(),
            incidents=current,
        )
        logger.info(
            "risk_assessed",
            area=label,
            radius_km=radius_km,
            window_hours=window_hours,
            incidents=len(current),
            score=score,
            level=assessment.risk_level.value,
            trend=trend.direction.value,
        )
        return assessment
