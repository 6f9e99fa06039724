"""
search_local_crime_data - keyword/location lookup over stored incidents.

An incident matches when its keywords or newsID mention the location, or
when any query term appears in its keywords, summary or category.
Results are most-recent-first and capped at ``search_result_limit``.
"""

from typing import TYPE_CHECKING

import structlog

from safetynews.config import settings
from safetynews.schemas.incident import Incident
from safetynews.schemas.tools import SearchCrimeDataArgs

if TYPE_CHECKING:
    from safetynews.db.store import IncidentStore

logger = structlog.get_logger(__name__)

KNOWN_LOCATIONS: tuple[str, ...] = (
    "sandton", "parkhurst", "rosebank", "melville", "bryanston",
    "fourways", "randburg", "alexandra", "soweto", "hillbrow",
    "kempton park", "benoni", "centurion", "pretoria", "johannesburg",
)

RESULT_URL = "https://local-safety-reports.com/incident/{}"


def location_from_query(query: str) -> str:
    lowered = query.lower()
    for location in KNOWN_LOCATIONS:
        if location in lowered:
            return location
    return settings.default_search_location


def _matches(incident: Incident, terms: list[str], location: str) -> bool:
    keywords = [k.lower() for k in incident.keywords]
    if any(location in k for k in keywords) or location in incident.external_id.lower():
        return True
    summary = incident.summary.lower()
    category = incident.category.value.lower()
    return any(
        any(term in k for k in keywords) or term in summary or term in category
        for term in terms
    )


def _to_result(incident: Incident) -> dict:
    place = next(
        (k for k in incident.keywords if "burg" in k or "town" in k),
        "Johannesburg",
    )
    return {
        "title": f"{incident.category.value} - {', '.join(incident.keywords)}",
        "url": RESULT_URL.format(incident.external_id),
        "snippet": incident.summary,
        "date": incident.datetime.date().isoformat(),
        "severity": incident.severity,
        "location": place,
    }


def make_search_tool(store: "IncidentStore"):
    """Bind the search executor to a store (read-only snapshot per call)."""

    async def search_local_crime_data(params: SearchCrimeDataArgs) -> dict:
        location = (params.location or location_from_query(params.query)).lower().strip()
        terms = params.query.lower().split()

        matching = [i for i in store.all() if _matches(i, terms, location)]
        matching.sort(key=lambda i: i.datetime, reverse=True)
        top = matching[: settings.search_result_limit]

        logger.info(
            "crime_data_searched",
            query=params.query,
            location=location,
            total=len(matching),
        )
        return {
            "results": [_to_result(i) for i in top],
            "searchQuery": params.query,
            "location": location,
            "totalResults": len(matching),
            "foundIncidents": [i.to_record() for i in top],
        }

    return search_local_crime_data
