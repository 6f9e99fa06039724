"""
Recommendation rules. Order is fixed:
violent → property → frequency → increasing trend → new patterns.

A factor rule fires when its score is strictly above the threshold (60).
With no incidents, or when no rule fires, only generic guidance is given.
"""

from typing import Optional, Sequence

from safetynews.config import settings
from safetynews.engine.factors import FREQUENCY_LABEL, PROPERTY_LABEL, VIOLENT_LABEL, RiskFactor
from safetynews.engine.trend import TrendAnalysis, TrendDirection

FACTOR_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    (VIOLENT_LABEL, (
        "⚠️ High violent crime risk - avoid area during late hours",
        "👥 Travel in groups when possible",
        "📱 Share location with trusted contacts",
    )),
    (PROPERTY_LABEL, (
        "🚗 Secure vehicles and avoid displaying valuables",
        "🏠 Use additional security measures for properties",
    )),
    (FREQUENCY_LABEL, (
        "📊 Monitor area regularly for updates",
        "🚨 Consider alternative routes/locations",
    )),
)

NEW_PATTERNS = "🆕 New crime patterns detected - stay updated on latest developments"

GENERIC_GUIDANCE = (
    "✅ No elevated risk factors detected - follow general safety practices",
    "🔔 Stay alert and report suspicious activity to local authorities",
)


def increasing_trend_line(change_percentage: int) -> str:
    return f"📈 Crime increasing by {change_percentage}% - heightened caution advised"


def generate_recommendations(
    factors: Sequence[RiskFactor],
    trend: Optional[TrendAnalysis],
    incident_count: int,
    threshold: Optional[float] = None,
) -> list[str]:
    if incident_count == 0:
        return list(GENERIC_GUIDANCE)

    threshold = settings.recommendation_threshold if threshold is None else threshold
    elevated = {f.label for f in factors if f.score > threshold}

    out: list[str] = []
    for label, lines in FACTOR_RULES:
        if label in elevated:
            out.extend(lines)
    if trend is not None:
        if trend.direction == TrendDirection.INCREASING:
            out.append(increasing_trend_line(trend.change_percentage))
        if trend.significant_changes:
            out.append(NEW_PATTERNS)

    return out or list(GENERIC_GUIDANCE)
