"""Library collaborator interface and an in-memory implementation."""

from __future__ import annotations

from typing import Protocol

from shelfsearch.schema.library import LibraryItem
from shelfsearch.schema.search import SearchResult
from shelfsearch.services.normalizer import is_in_library


class LibraryStore(Protocol):
    async def get_library_items(self) -> list[LibraryItem]: ...

    async def add_item(self, result: SearchResult, status: str) -> LibraryItem: ...


class InMemoryLibrary:
    """Process-local library used when no persistent store is wired in."""

    def __init__(self, items: list[LibraryItem] | None = None) -> None:
        self._items: list[LibraryItem] = list(items or [])

    async def get_library_items(self) -> list[LibraryItem]:
        return list(self._items)

    async def add_item(self, result: SearchResult, status: str) -> LibraryItem:
        """Track a search result, returning the existing entry when already tracked."""
        existing = is_in_library(result, self._items)
        if existing is not None:
            return existing
        item = LibraryItem(id=result.id, title=result.title, category=result.category, status=status)
        self._items.append(item)
        return item
