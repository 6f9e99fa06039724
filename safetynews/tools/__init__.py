"""
Agent tools.

- search_local_crime_data: stored-incident lookup by keyword/location
- geocode_location: gazetteer place-name resolution
- extract_incident_data: keyword-bucket category/severity extraction
"""

from typing import TYPE_CHECKING

from safetynews.schemas.tools import ExtractIncidentArgs, GeocodeLocationArgs, SearchCrimeDataArgs
from safetynews.tools.extraction import extract_incident_data
from safetynews.tools.geocoding import geocode_location
from safetynews.tools.registry import ToolRegistry, ToolSpec
from safetynews.tools.search import make_search_tool

if TYPE_CHECKING:
    from safetynews.db.store import IncidentStore

SEARCH_TOOL = "search_local_crime_data"
GEOCODE_TOOL = "geocode_location"
EXTRACT_TOOL = "extract_incident_data"


def build_default_registry(store: "IncidentStore") -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(
        SEARCH_TOOL,
        SearchCrimeDataArgs,
        make_search_tool(store),
        description="Search local crime database for safety incidents in specific areas",
    )
    registry.register(
        GEOCODE_TOOL,
        GeocodeLocationArgs,
        geocode_location,
        description="Convert location names to geographic coordinates (latitude, longitude)",
    )
    registry.register(
        EXTRACT_TOOL,
        ExtractIncidentArgs,
        extract_incident_data,
        description="Extract structured incident data from news text",
    )
    return registry


__all__ = [
    "EXTRACT_TOOL",
    "GEOCODE_TOOL",
    "SEARCH_TOOL",
    "ToolRegistry",
    "ToolSpec",
    "build_default_registry",
]
