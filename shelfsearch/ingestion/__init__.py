"""Adapter registry for the four search categories."""

from __future__ import annotations

from typing import assert_never

from shelfsearch.ingestion.base import BaseAdapter
from shelfsearch.ingestion.google_books import GoogleBooksAdapter
from shelfsearch.ingestion.itunes import ITunesAdapter
from shelfsearch.ingestion.rawg import RAWGAdapter
from shelfsearch.ingestion.tmdb import TMDBAdapter
from shelfsearch.models.media import Category
from shelfsearch.services.result_cache import LookupCache


def build_adapter(category: Category, *, lookup_cache: LookupCache | None = None) -> BaseAdapter:
    """Return a fresh adapter instance for the given category."""
    match category:
        case Category.GAMES:
            return RAWGAdapter(lookup_cache=lookup_cache)
        case Category.MOVIES:
            return TMDBAdapter(lookup_cache=lookup_cache)
        case Category.MUSIC:
            return ITunesAdapter(lookup_cache=lookup_cache)
        case Category.BOOKS:
            return GoogleBooksAdapter(lookup_cache=lookup_cache)
        case _:
            assert_never(category)


def build_adapters(*, lookup_cache: LookupCache | None = None) -> dict[Category, BaseAdapter]:
    """Build one adapter per category sharing a single sub-lookup cache."""
    shared = lookup_cache if lookup_cache is not None else LookupCache()
    return {category: build_adapter(category, lookup_cache=shared) for category in Category}
