"""Request bodies for the HTTP surface."""

from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=500)


class GeoProcessRequest(BaseModel):
    query: str = Field(..., min_length=1, max_length=500)
    searchResults: list[dict[str, Any]] = Field(default_factory=list)


class EvaluateRequest(BaseModel):
    """Evaluate a saved results file by name, or an inline batch of records."""

    filename: Optional[str] = Field(default=None, min_length=1)
    incidents: Optional[list[Any]] = None

    @model_validator(mode="after")
    def _one_source(self) -> "EvaluateRequest":
        if (self.filename is None) == (self.incidents is None):
            raise ValueError("Provide exactly one of filename or incidents")
        return self
