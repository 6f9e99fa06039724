"""
Dataset evaluation for a saved results batch.

Scoring (0-100):
- schema: 40 when the whole batch validates
- accuracy: accuracyScore% of 30, where accuracy is the share of
  numerically-valid coordinates inside the regional bounds
- completeness: 20 when the batch is non-empty
- coordinate quality: 10 × share of records with numeric coordinates

The regional bounds are used here only; they never gate store admission.
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

import structlog

from safetynews.engine.factors import round_half_up
from safetynews.geo import in_region
from safetynews.pipeline.validator import IncidentValidator
from safetynews.schemas.incident import SEVERITY_MAX, SEVERITY_MIN

logger = structlog.get_logger(__name__)

ACCURACY_TARGET = 80
EXCELLENT_ACCURACY = 90


@dataclass
class CoordinateValidation:
    south_africa_count: int
    invalid_coordinates: int
    accuracy_score: int

    def to_dict(self) -> dict:
        return {
            "southAfricaCount": self.south_africa_count,
            "invalidCoordinates": self.invalid_coordinates,
            "accuracyScore": self.accuracy_score,
        }


@dataclass
class EvaluationReport:
    source: str
    total_incidents: int
    valid_incidents: int
    invalid_incidents: int
    schema_passed: bool
    schema_errors: list[dict]
    coordinates: CoordinateValidation
    severity_distribution: dict[str, int]
    category_distribution: dict[str, int]
    overall_score: int
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "filename": self.source,
            "totalIncidents": self.total_incidents,
            "validIncidents": self.valid_incidents,
            "invalidIncidents": self.invalid_incidents,
            "schemaValidation": {"passed": self.schema_passed, "errors": self.schema_errors},
            "coordinateValidation": self.coordinates.to_dict(),
            "severityDistribution": self.severity_distribution,
            "crimeTypeDistribution": self.category_distribution,
            "overallScore": self.overall_score,
            "recommendations": self.recommendations,
        }


def _numeric_pair(record: Any):
    if not isinstance(record, Mapping):
        return None
    geometry = record.get("coordinates")
    coords = geometry.get("coordinates") if isinstance(geometry, Mapping) else None
    if not isinstance(coords, (list, tuple)) or len(coords) < 2:
        return None
    lng, lat = coords[0], coords[1]
    if any(isinstance(c, bool) or not isinstance(c, (int, float)) for c in (lng, lat)):
        return None
    return lng, lat


def validate_coordinates(records: Sequence[Any]) -> CoordinateValidation:
    inside = 0
    invalid = 0
    for record in records:
        pair = _numeric_pair(record)
        if pair is None:
            invalid += 1
        elif in_region(pair):
            inside += 1
    checked = len(records) - invalid
    accuracy = inside / checked * 100 if checked else 0.0
    return CoordinateValidation(inside, invalid, round_half_up(accuracy))


def _severity_level(value: Any) -> Optional[float]:
    """Any number in range counts; integral floats collapse onto their int level."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not SEVERITY_MIN <= value <= SEVERITY_MAX:
        return None
    return int(value) if float(value).is_integer() else value


def severity_distribution(records: Sequence[Any]) -> dict[str, int]:
    counts = Counter(
        level for level in (
            _severity_level(r.get("severity")) for r in records if isinstance(r, Mapping)
        )
        if level is not None
    )
    return {str(level): counts[level] for level in sorted(counts)}


def category_distribution(records: Sequence[Any]) -> dict[str, int]:
    counts = Counter(
        r.get("type") for r in records
        if isinstance(r, Mapping) and isinstance(r.get("type"), str)
    )
    return dict(counts)


class IncidentEvaluator:
    def __init__(self, validator: IncidentValidator | None = None):
        self.validator = validator or IncidentValidator()

    def evaluate(self, records: Sequence[Any], source: str = "") -> EvaluationReport:
        records = list(records)
        total = len(records)
        safe = self.validator.validate_safe(records)
        valid, rejected = self.validator.partition(records)
        coords = validate_coordinates(records)
        severities = severity_distribution(records)
        categories = category_distribution(records)

        score = 0.0
        if safe.success:
            score += 40
        score += coords.accuracy_score / 100 * 30
        if total > 0:
            score += 20
        score += 10 * ((total - coords.invalid_coordinates) / total if total else 1.0)

        report = EvaluationReport(
            source=source,
            total_incidents=total,
            valid_incidents=len(valid),
            invalid_incidents=len(rejected),
            schema_passed=safe.success,
            schema_errors=[e.to_dict() for e in safe.errors],
            coordinates=coords,
            severity_distribution=severities,
            category_distribution=categories,
            overall_score=round_half_up(score),
            recommendations=self._recommendations(safe.success, coords, severities, categories),
        )
        logger.info(
            "dataset_evaluated",
            source=source,
            total=total,
            schema_passed=safe.success,
            score=report.overall_score,
        )
        return report

    @staticmethod
    def _recommendations(
        schema_passed: bool,
        coords: CoordinateValidation,
        severities: dict[str, int],
        categories: dict[str, int],
    ) -> list[str]:
        out = []
        if not schema_passed:
            out.append("Fix schema validation errors to ensure data structure compliance")
        if coords.accuracy_score < ACCURACY_TARGET:
            out.append("Improve coordinate accuracy - many incidents appear outside South Africa")
        if coords.invalid_coordinates > 0:
            out.append("Ensure all incidents have valid coordinate data")
        if len(severities) == 1:
            out.append("Consider more varied severity scoring for realistic incident assessment")
        if len(categories) == 1:
            out.append("Diversify crime type classification for more comprehensive coverage")
        if coords.accuracy_score >= EXCELLENT_ACCURACY and schema_passed:
            out.append("Excellent data quality! Consider expanding to more detailed incident information")
        return out
