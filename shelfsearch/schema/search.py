"""Unified search result and response schemas shared by every adapter."""

from __future__ import annotations

import enum
from datetime import date

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shelfsearch.models.media import Category, category_for_id


def current_year() -> int:
    return date.today().year


class SearchResult(BaseModel):
    """Provider-agnostic search hit built fresh for each search invocation."""

    model_config = ConfigDict(frozen=True)

    id: str
    category: Category
    title: str
    creator: str
    year: int = Field(default_factory=current_year)
    rating: float | None = None
    genre: str | None = None
    image: str | None = None
    popularity: float | None = None
    is_series: bool | None = None
    source: str | None = None

    @field_validator("title", "creator")
    @classmethod
    def _require_text(cls, value: str) -> str:
        """Reject blank display fields."""
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped

    @model_validator(mode="after")
    def _prefix_matches_category(self) -> "SearchResult":
        """Ensure the id prefix encodes the declared category."""
        if category_for_id(self.id) is not self.category:
            raise ValueError(f"id {self.id!r} does not carry a {self.category.value} prefix")
        return self


class AdapterErrorReason(str, enum.Enum):
    """Failure classes reported per adapter."""
    RATE_LIMIT = "rate_limit"
    NETWORK = "network"
    MALFORMED = "malformed"
    CIRCUIT_OPEN = "circuit_open"
    TIMEOUT = "timeout"
    UNEXPECTED = "unexpected"


class AdapterError(BaseModel):
    """Failure scoped to a single category adapter."""

    model_config = ConfigDict(frozen=True)

    category: Category
    reason: AdapterErrorReason
    message: str = ""


class SearchResponse(BaseModel):
    """Ranked results plus per-adapter failures for one aggregation."""

    results: list[SearchResult] = Field(default_factory=list)
    errors: list[AdapterError] = Field(default_factory=list)
    from_cache: bool = False
    retryable: bool = False
    message: str | None = None
