"""
geocode_location - free-text place name to a (lng, lat) point.

Static gazetteer lookup: exact match first, then the first partial match
(query contains key or key contains query) in gazetteer order. Unknown
names fall back to the default city centre with confidence "medium";
this tool never fails.
"""

from typing import Optional

import structlog

from safetynews.config import settings
from safetynews.schemas.tools import GeocodeLocationArgs

logger = structlog.get_logger(__name__)

# [longitude, latitude]; insertion order is the partial-match priority
GAZETTEER: dict[str, tuple[float, float]] = {
    # Johannesburg
    "parkhurst": (28.0093, -26.1414),
    "parkhurst, johannesburg": (28.0093, -26.1414),
    "sandton": (28.0473, -26.1076),
    "sandton, johannesburg": (28.0473, -26.1076),
    "rosebank": (28.0420, -26.1464),
    "rosebank, johannesburg": (28.0420, -26.1464),
    "melville": (28.0093, -26.1809),
    "melville, johannesburg": (28.0093, -26.1809),
    "johannesburg": (28.0473, -26.2041),
    "johannesburg cbd": (28.0473, -26.2041),
    # Cape Town
    "cape town": (18.4241, -33.9249),
    "cape town cbd": (18.4241, -33.9249),
    "camps bay": (18.3775, -33.9506),
    "camps bay, cape town": (18.3775, -33.9506),
    "sea point": (18.3906, -33.9167),
    "sea point, cape town": (18.3906, -33.9167),
    "observatory": (18.4733, -33.9333),
    "observatory, cape town": (18.4733, -33.9333),
    # Durban
    "durban": (31.0218, -29.8587),
    "durban cbd": (31.0218, -29.8587),
    "umhlanga": (31.0952, -29.7277),
    "umhlanga, durban": (31.0952, -29.7277),
    # Pretoria
    "pretoria": (28.1881, -25.7479),
    "pretoria cbd": (28.1881, -25.7479),
    "hatfield": (28.2378, -25.7500),
    "hatfield, pretoria": (28.2378, -25.7500),
}


def resolve_place(name: str) -> tuple[tuple[float, float], str]:
    """Return ``((lng, lat), confidence)`` for a place name."""
    normalized = name.lower().strip()

    coords: Optional[tuple[float, float]] = GAZETTEER.get(normalized)
    if coords is not None:
        return coords, "high"

    if normalized:
        for key, candidate in GAZETTEER.items():
            if key in normalized or normalized in key:
                return candidate, "medium"

    logger.warning("geocode_location_not_found", location=name)
    return tuple(settings.default_city_center), "medium"


async def geocode_location(params: GeocodeLocationArgs) -> dict:
    coords, confidence = resolve_place(params.location)
    logger.info(
        "location_geocoded",
        location=params.location,
        coordinates=list(coords),
        confidence=confidence,
    )
    return {
        "location": params.location,
        "coordinates": {"type": "Point", "coordinates": list(coords)},
        "confidence": confidence,
    }
