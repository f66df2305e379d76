"""Creator resolution and library id matching across provider schemas."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, assert_never

from shelfsearch.models.media import (
    CREATOR_PLACEHOLDERS,
    ID_PREFIXES,
    PLACEHOLDER_CREATORS,
    Category,
)
from shelfsearch.schema.library import AnnotatedSearchResult, LibraryItem
from shelfsearch.schema.search import SearchResult

_ALL_PREFIXES = tuple(prefix for prefixes in ID_PREFIXES.values() for prefix in prefixes)


def is_valid_creator(value: Any) -> bool:
    """Return True for a usable creator name (placeholders are rejected)."""
    if not isinstance(value, str):
        return False
    return value.strip().casefold() not in PLACEHOLDER_CREATORS


def _first_name(value: Any) -> str | None:
    """Pull the first name out of a provider list of strings or ``{"name": ...}`` dicts."""
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        name = value.get("name")
        return name if isinstance(name, str) else None
    if isinstance(value, (list, tuple)):
        for entry in value:
            name = _first_name(entry)
            if is_valid_creator(name):
                return name
    return None


def _field_priority(category: Category) -> tuple[str, ...]:
    match category:
        case Category.GAMES:
            return ("developers", "author")
        case Category.MOVIES:
            return ("director", "directors", "author")
        case Category.MUSIC:
            return ("artist", "author")
        case Category.BOOKS:
            return ("author", "authors")
        case _:
            assert_never(category)


def resolve_creator(
    category: Category,
    record: Mapping[str, Any],
    *,
    enriched: str | None = None,
) -> str:
    """Resolve one display creator from a raw provider record.

    ``enriched`` is a value fetched by a detail lookup and wins when usable;
    otherwise the category's record fields are tried in priority order before
    falling back to the category placeholder.
    """
    candidates: list[Any] = [enriched]
    candidates.extend(_first_name(record.get(field)) for field in _field_priority(category))
    for candidate in candidates:
        if is_valid_creator(candidate):
            return candidate.strip()
    return CREATOR_PLACEHOLDERS[category]


def strip_id_prefix(identifier: str) -> str:
    """Remove a known category prefix, leaving the provider-native id."""
    value = identifier.strip()
    for prefix in _ALL_PREFIXES:
        if value.startswith(prefix):
            return value[len(prefix):]
    return value


def ids_match(left: str, right: str) -> bool:
    return strip_id_prefix(left) == strip_id_prefix(right)


def is_in_library(result: SearchResult, library_items: Iterable[LibraryItem]) -> LibraryItem | None:
    """Return the library entry tracking this result, if any."""
    native_id = strip_id_prefix(result.id)
    for item in library_items:
        if item.category is not None and item.category is not result.category:
            continue
        if strip_id_prefix(item.id) == native_id:
            return item
    return None


def annotate(
    results: Iterable[SearchResult], library_items: Iterable[LibraryItem]
) -> list[AnnotatedSearchResult]:
    """Attach existing library statuses to results for display."""
    items = list(library_items)
    annotated: list[AnnotatedSearchResult] = []
    for result in results:
        match_item = is_in_library(result, items)
        annotated.append(
            AnnotatedSearchResult(
                **result.model_dump(),
                library_status=match_item.status if match_item else None,
            )
        )
    return annotated
