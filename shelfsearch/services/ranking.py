"""Deterministic comparator chain for merged search results.

Priority, first differentiator wins:
1. exact title match (case-insensitive);
2. title contains the query;
3. for title matches only: released this year or later, then newer first;
4. creator contains the query;
5. higher rating (missing counts as 0).

The sort is stable, so remaining ties keep their merge order.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable

from shelfsearch.schema.search import SearchResult


def _sort_key(result: SearchResult, needle: str, this_year: int) -> tuple[Any, ...]:
    title = result.title.strip().casefold()
    title_match = needle in title
    if title_match:
        recency = (0 if result.year >= this_year else 1, -result.year)
    else:
        recency = (0, 0)
    return (
        0 if title == needle else 1,
        0 if title_match else 1,
        recency,
        0 if needle in result.creator.casefold() else 1,
        -(result.rating or 0.0),
    )


def rank(
    results: Iterable[SearchResult],
    query: str,
    *,
    current_year: int | None = None,
) -> list[SearchResult]:
    """Return results ordered for display against ``query``."""
    needle = query.strip().casefold()
    this_year = current_year if current_year is not None else date.today().year
    return sorted(results, key=lambda result: _sort_key(result, needle, this_year))


def compare(
    left: SearchResult,
    right: SearchResult,
    query: str,
    *,
    current_year: int | None = None,
) -> int:
    """Return -1, 0, or 1 as ``left`` ranks before, level with, or after ``right``."""
    needle = query.strip().casefold()
    this_year = current_year if current_year is not None else date.today().year
    left_key = _sort_key(left, needle, this_year)
    right_key = _sort_key(right, needle, this_year)
    return (left_key > right_key) - (left_key < right_key)
