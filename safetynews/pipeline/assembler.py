"""
Incident Assembler - raw tool outputs to validated incidents.

One geocode result serves every extraction result of a request. Candidates
get a synthetic ``geo-{ms}-{index}`` id, then go through four tolerated
repairs (datetime, newsID, keywords, summary) and the schema validator.
Category and severity are never repaired: such records are dropped.

When there is no usable geocode, no extraction, or nothing survives
validation, exactly one fallback incident is synthesised so a request
that reached this stage never yields zero output.
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Sequence

import structlog

from safetynews.config import settings
from safetynews.pipeline.validator import IncidentValidator, RejectedRecord
from safetynews.schemas.incident import SUMMARY_MAX_LENGTH, CrimeCategory, Incident
from safetynews.tools import EXTRACT_TOOL, GEOCODE_TOOL

if TYPE_CHECKING:
    from safetynews.services.decision import ToolCallResult

logger = structlog.get_logger(__name__)

PLACEHOLDER_SUMMARY = "No summary available"
FALLBACK_CATEGORY = CrimeCategory.PROPERTY_FINANCIAL
FALLBACK_SEVERITY = 3
FALLBACK_KEYWORDS = ("safety", "general", "area")


@dataclass
class AssemblyResult:
    incidents: list[Incident]
    rejected: list[RejectedRecord] = field(default_factory=list)
    used_fallback: bool = False


def geocode_point(geocode_result: Optional[Mapping]) -> Optional[tuple[float, float]]:
    """The (lng, lat) of a geocode tool payload, or None if unusable."""
    if not isinstance(geocode_result, Mapping):
        return None
    geometry = geocode_result.get("coordinates")
    if not isinstance(geometry, Mapping):
        return None
    coords = geometry.get("coordinates")
    if (
        isinstance(coords, (list, tuple))
        and len(coords) == 2
        and all(isinstance(c, (int, float)) and not isinstance(c, bool) for c in coords)
        and all(math.isfinite(c) for c in coords)
    ):
        return float(coords[0]), float(coords[1])
    return None


class IncidentAssembler:
    def __init__(
        self,
        validator: Optional[IncidentValidator] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.validator = validator or IncidentValidator()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def assemble(
        self,
        geocode_result: Optional[Mapping],
        extraction_results: Sequence[Any],
        query: str = "",
    ) -> AssemblyResult:
        now = self._clock()
        stamp = int(now.timestamp() * 1000)
        point = geocode_point(geocode_result)
        extractions = [e for e in extraction_results if isinstance(e, Mapping)]

        if point is None or not extractions:
            logger.info(
                "assembly_fallback",
                query=query,
                has_geocode=point is not None,
                extractions=len(extractions),
            )
            return AssemblyResult([self.fallback(query, point, now)], used_fallback=True)

        candidates = [
            {
                "datetime": extracted.get("datetime"),
                "coordinates": {"type": "Point", "coordinates": list(point)},
                "type": extracted.get("category"),
                "newsID": extracted.get("newsID") or f"geo-{stamp}-{index}",
                "severity": extracted.get("severity"),
                "keywords": extracted.get("keywords"),
                "summary": extracted.get("summary"),
            }
            for index, extracted in enumerate(extractions)
        ]
        valid, rejected = self.validator.partition(self.repair(candidates, now))

        if not valid:
            logger.warning("assembly_all_rejected", query=query, rejected=len(rejected))
            return AssemblyResult([self.fallback(query, point, now)], rejected, used_fallback=True)

        logger.info("incidents_assembled", query=query, accepted=len(valid), rejected=len(rejected))
        return AssemblyResult(valid, rejected)

    def assemble_from_tool_results(
        self,
        results: Sequence["ToolCallResult"],
        query: str = "",
    ) -> AssemblyResult:
        """Pick the first successful geocode and every successful extraction, in order."""
        geocode = next(
            (r.result for r in results if r.ok and r.request.name == GEOCODE_TOOL),
            None,
        )
        extractions = [r.result for r in results if r.ok and r.request.name == EXTRACT_TOOL]
        return self.assemble(geocode, extractions, query)

    def repair(self, candidates: Sequence[dict], now: datetime) -> list[dict]:
        """Apply the four tolerated repairs. Nothing else is touched."""
        stamp = int(now.timestamp() * 1000)
        seen: set[str] = set()
        repaired = []
        for candidate in candidates:
            record = dict(candidate)
            if not record.get("datetime"):
                record["datetime"] = now.isoformat()
            news_id = record.get("newsID")
            if not isinstance(news_id, str) or not news_id or news_id in seen:
                record["newsID"] = f"incident-{stamp}-{uuid.uuid4().hex[:9]}"
            seen.add(record["newsID"])
            if not isinstance(record.get("keywords"), (list, tuple)):
                record["keywords"] = []
            if record.get("summary") is None or record.get("summary") == "":
                record["summary"] = PLACEHOLDER_SUMMARY
            repaired.append(record)
        return repaired

    def fallback(
        self,
        query: str,
        point: Optional[tuple[float, float]] = None,
        now: Optional[datetime] = None,
    ) -> Incident:
        now = now or self._clock()
        if point is None or not all(math.isfinite(c) for c in point):
            point = settings.default_city_center
        lng, lat = point
        record = {
            "datetime": now.isoformat(),
            "coordinates": {"type": "Point", "coordinates": [lng, lat]},
            "type": FALLBACK_CATEGORY.value,
            "newsID": f"fallback-{int(now.timestamp() * 1000)}",
            "severity": FALLBACK_SEVERITY,
            "keywords": list(FALLBACK_KEYWORDS),
            "summary": f"General safety information for {query} area."[:SUMMARY_MAX_LENGTH],
        }
        return self.validator.validate(record)
