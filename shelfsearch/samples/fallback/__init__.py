"""Built-in sample records served when a provider rate-limits a category."""

from __future__ import annotations

import json
from functools import lru_cache
from importlib import resources
from typing import Any

from shelfsearch.models.media import Category
from shelfsearch.schema.search import SearchResult
from shelfsearch.services.normalizer import resolve_creator


@lru_cache
def load_fallback_records(category: Category) -> tuple[dict[str, Any], ...]:
    """Return the stored records for a category, or nothing when no dataset ships."""
    resource = resources.files(__name__).joinpath(f"{category.value}.json")
    if not resource.is_file():
        return ()
    return tuple(json.loads(resource.read_text(encoding="utf-8")))


def fallback_results(category: Category, query: str, limit: int) -> list[SearchResult]:
    """Filter a category's sample records by case-insensitive title or creator substring."""
    needle = query.strip().casefold()
    if not needle or limit <= 0:
        return []
    results: list[SearchResult] = []
    for record in load_fallback_records(category):
        creator = resolve_creator(category, {"author": record.get("creator")})
        if needle not in record["title"].casefold() and needle not in creator.casefold():
            continue
        results.append(
            SearchResult(
                id=record["id"],
                category=category,
                title=record["title"],
                creator=creator,
                year=record["year"],
                rating=record.get("rating"),
                genre=record.get("genre"),
                image=record.get("image"),
                source="fallback",
            )
        )
        if len(results) >= limit:
            break
    return results
