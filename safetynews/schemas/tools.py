"""Input contracts for the agent tools (rendered as JSON schema for the decision service)."""

from typing import Optional

from pydantic import BaseModel, Field


class SearchCrimeDataArgs(BaseModel):
    query: str = Field(description="The search query for crime/safety news")
    location: Optional[str] = Field(
        default=None,
        description="The location to focus the search on (e.g. 'Parkhurst', 'Sandton', 'Johannesburg')",
    )


class GeocodeLocationArgs(BaseModel):
    location: str = Field(
        description="The location name to geocode (e.g., 'Parkhurst, Johannesburg')",
    )


class ExtractIncidentArgs(BaseModel):
    newsText: str = Field(description="The news text to extract incident data from")
    location: str = Field(description="The primary location mentioned")
