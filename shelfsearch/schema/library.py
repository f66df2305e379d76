"""Library item schemas consumed read-only by the search core."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from shelfsearch.models.media import Category
from shelfsearch.schema.search import SearchResult


class LibraryItem(BaseModel):
    """Tracked item owned by the library collaborator."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str | None = None
    category: Category | None = None
    status: str


class AnnotatedSearchResult(SearchResult):
    """Search result with the caller's existing library status, when tracked."""
    library_status: str | None = None

    @property
    def in_library(self) -> bool:
        return self.library_status is not None
