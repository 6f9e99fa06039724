"""Geographic helpers. Points are always ``(longitude, latitude)``."""

import math
from typing import Optional, Sequence

from safetynews.config import settings

EARTH_RADIUS_KM = 6371.0

Point = tuple[float, float]


def haversine_km(a: Point, b: Point) -> float:
    """Great-circle distance in km between two (lng, lat) points."""
    lng1, lat1 = a
    lng2, lat2 = b
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def circle_area_km2(radius_km: float) -> float:
    return math.pi * radius_km * radius_km


def in_region(
    point: Sequence[float],
    bounds: Optional[tuple[float, float, float, float]] = None,
) -> bool:
    """
    Regional bounds check (min_lng, max_lng, min_lat, max_lat).

    Defaults to the configured South Africa box. Used for accuracy
    scoring only, never for admission into the store.
    """
    if bounds is None:
        bounds = (
            settings.region_min_lng,
            settings.region_max_lng,
            settings.region_min_lat,
            settings.region_max_lat,
        )
    min_lng, max_lng, min_lat, max_lat = bounds
    lng, lat = point
    return min_lng <= lng <= max_lng and min_lat <= lat <= max_lat
