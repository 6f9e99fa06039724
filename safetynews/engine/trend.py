"""
Trend analysis - current window against the immediately preceding one.

    change % = (current - previous) / previous × 100   (0 when previous is empty)
    direction = increasing / decreasing when |change| > threshold, else stable
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Optional, Sequence

from safetynews.config import settings
from safetynews.engine.factors import round_half_up
from safetynews.schemas.incident import Incident

SEVERITY_JUMP = 0.5


class TrendDirection(StrEnum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


@dataclass(frozen=True)
class TrendAnalysis:
    direction: TrendDirection
    change_percentage: int
    timeframe: str
    significant_changes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "direction": self.direction.value,
            "changePercentage": self.change_percentage,
            "timeframe": self.timeframe,
            "significantChanges": list(self.significant_changes),
        }


def timeframe_label(window_hours: float) -> str:
    if window_hours == 168:
        return "week-over-week"
    if window_hours == 24:
        return "day-over-day"
    return f"{window_hours:g}h-over-{window_hours:g}h"


def _avg_severity(incidents: Sequence[Incident]) -> Optional[float]:
    if not incidents:
        return None
    return sum(i.severity for i in incidents) / len(incidents)


def significant_changes(current: Sequence[Incident], previous: Sequence[Incident]) -> list[str]:
    """New categories (first-seen order), then an average-severity jump above 0.5."""
    previous_types = {i.category for i in previous}
    changes = [
        f"New crime type detected: {category.value}"
        for category in dict.fromkeys(i.category for i in current)
        if category not in previous_types
    ]

    current_avg = _avg_severity(current)
    previous_avg = _avg_severity(previous)
    if current_avg is not None and previous_avg is not None and current_avg > previous_avg + SEVERITY_JUMP:
        changes.append(f"Incident severity increased by {current_avg - previous_avg:.1f}")
    return changes


def analyze_trend(
    current: Sequence[Incident],
    previous: Sequence[Incident],
    window_hours: float,
    threshold_pct: Optional[float] = None,
) -> TrendAnalysis:
    threshold = settings.trend_change_threshold_pct if threshold_pct is None else threshold_pct
    change = (len(current) - len(previous)) / len(previous) * 100 if previous else 0.0

    direction = TrendDirection.STABLE
    if abs(change) > threshold:
        direction = TrendDirection.INCREASING if change > 0 else TrendDirection.DECREASING

    return TrendAnalysis(
        direction=direction,
        change_percentage=round_half_up(change),
        timeframe=timeframe_label(window_hours),
        significant_changes=significant_changes(current, previous),
    )
