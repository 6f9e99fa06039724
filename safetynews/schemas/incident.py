"""
Safety incident schema.

Wire contract (persisted record):
    {datetime, coordinates: {type: "Point", coordinates: [lng, lat]},
     type, newsID, severity, keywords: [...], summary}

Attribute names are the domain names (location, category, external_id);
aliases carry the wire names. Coordinates are always [longitude, latitude].
"""

import datetime as dt
import math
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUMMARY_MAX_LENGTH = 100
SEVERITY_MIN = 1
SEVERITY_MAX = 5


class CrimeCategory(StrEnum):
    """Closed set of incident categories. Matching is exact and case-sensitive."""

    VIOLENT = "Violent Crimes"
    PROPERTY_FINANCIAL = "Property & Financial Crimes"
    PUBLIC_ORDER = "Public Order & Social Crimes"
    CYBER = "Cyber & Communication Crimes"
    ORGANISED = "Organised Crime & Syndicate Operations"
    SEXUAL = "Sexual Offences"


VIOLENT_CATEGORIES = frozenset({CrimeCategory.VIOLENT, CrimeCategory.SEXUAL})
PROPERTY_CATEGORIES = frozenset({CrimeCategory.PROPERTY_FINANCIAL})

Keyword = Annotated[str, Field(min_length=1)]


class PointGeometry(BaseModel):
    """GeoJSON point, ``coordinates = (longitude, latitude)``."""

    model_config = ConfigDict(frozen=True)

    type: Literal["Point"]
    coordinates: tuple[float, float]

    @field_validator("coordinates", mode="before")
    @classmethod
    def _two_finite_numbers(cls, value: Any) -> tuple[float, float]:
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            raise ValueError("coordinates must be exactly two numbers [longitude, latitude]")
        for component in value:
            # bool is an int subclass; reject it explicitly
            if isinstance(component, bool) or not isinstance(component, (int, float)):
                raise ValueError("coordinates must be numbers")
            if not math.isfinite(component):
                raise ValueError("coordinates must be finite numbers")
        return float(value[0]), float(value[1])

    @property
    def lng(self) -> float:
        return self.coordinates[0]

    @property
    def lat(self) -> float:
        return self.coordinates[1]

    @classmethod
    def at(cls, lng: float, lat: float) -> "PointGeometry":
        return cls(type="Point", coordinates=(lng, lat))


class Incident(BaseModel):
    """A validated, immutable safety incident."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    datetime: dt.datetime
    location: PointGeometry = Field(alias="coordinates")
    category: CrimeCategory = Field(alias="type")
    external_id: str = Field(alias="newsID", min_length=1)
    severity: int = Field(strict=True, ge=SEVERITY_MIN, le=SEVERITY_MAX)
    keywords: tuple[Keyword, ...]
    summary: str = Field(max_length=SUMMARY_MAX_LENGTH)

    @field_validator("datetime", mode="before")
    @classmethod
    def _iso_instant(cls, value: Any) -> dt.datetime:
        if isinstance(value, dt.datetime):
            parsed = value
        elif isinstance(value, str):
            if "T" not in value.upper():
                raise ValueError("datetime must be an ISO-8601 timestamp with a time component")
            try:
                parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError as exc:
                raise ValueError(f"datetime is not a valid ISO-8601 timestamp: {value!r}") from exc
        else:
            raise ValueError("datetime must be an ISO-8601 string")
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=dt.timezone.utc)
        return parsed

    @property
    def point(self) -> tuple[float, float]:
        return self.location.coordinates

    @property
    def is_violent(self) -> bool:
        return self.category in VIOLENT_CATEGORIES or self.severity >= 4

    def to_record(self) -> dict:
        """Serialise to the persisted JSON record (wire field names)."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, record: Any) -> "Incident":
        return cls.model_validate(record)
