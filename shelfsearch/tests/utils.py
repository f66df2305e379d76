"""Shared helpers for search tests."""

from __future__ import annotations

import asyncio
from typing import Any

from shelfsearch.ingestion.base import BaseAdapter
from shelfsearch.models.media import Category, category_for_id
from shelfsearch.schema.search import SearchResult


def make_result(
    identifier: str,
    title: str,
    *,
    year: int = 2020,
    creator: str = "Someone",
    rating: float | None = None,
    **extra: Any,
) -> SearchResult:
    """Build a result whose category follows the id prefix."""
    category = category_for_id(identifier)
    assert category is not None, identifier
    return SearchResult(
        id=identifier,
        category=category,
        title=title,
        creator=creator,
        year=year,
        rating=rating,
        **extra,
    )


class StubAdapter(BaseAdapter):
    """Adapter returning canned results, or raising a canned error, with a call log."""

    def __init__(
        self,
        category: Category,
        results: list[SearchResult] | None = None,
        *,
        error: BaseException | None = None,
        delay: float = 0.0,
    ) -> None:
        super().__init__(limit=8, enrich_top_n=3)
        self.category = category
        self.source_name = f"stub-{category.value}"
        self.results = list(results or [])
        self.error = error
        self.delay = delay
        self.calls: list[str] = []

    async def _search(self, query: str) -> list[SearchResult]:
        self.calls.append(query)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.results)
