"""iTunes adapter for album and track search."""

from __future__ import annotations

import asyncio
from itertools import zip_longest
from typing import Any

from shelfsearch.core.config import settings
from shelfsearch.ingestion.base import BaseAdapter
from shelfsearch.ingestion.http import MalformedResponseError, fetch_json
from shelfsearch.models.media import Category
from shelfsearch.schema.search import SearchResult
from shelfsearch.services.normalizer import resolve_creator
from shelfsearch.utils.datetime import parse_year

SEARCH_URL = "https://itunes.apple.com/search"


class ITunesAdapter(BaseAdapter):
    """iTunes music search over albums and tracks; artist names come with the search hit."""
    category = Category.MUSIC
    source_name = "itunes"

    def __init__(self, country: str | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.country = country or settings.itunes_country

    async def _lookup(self, query: str, entity: str) -> list[dict[str, Any]]:
        payload = await fetch_json(
            SEARCH_URL,
            params={
                "term": query,
                "media": "music",
                "entity": entity,
                "limit": self.limit,
                "country": self.country,
            },
        )
        if not isinstance(payload, dict) or not isinstance(payload.get("results", []), list):
            raise MalformedResponseError("iTunes search payload missing results")
        return payload.get("results") or []

    def _to_result(self, record: dict[str, Any]) -> SearchResult | None:
        if record.get("wrapperType") == "collection" or record.get("collectionType") == "Album":
            native_id, title, prefix = record.get("collectionId"), record.get("collectionName"), "album"
        else:
            native_id, title, prefix = record.get("trackId"), record.get("trackName"), "track"
        if native_id is None or not (title or "").strip():
            return None
        return SearchResult(
            id=f"{prefix}-{native_id}",
            category=Category.MUSIC,
            title=title,
            creator=resolve_creator(Category.MUSIC, {"artist": record.get("artistName")}),
            year=parse_year(record.get("releaseDate")),
            genre=record.get("primaryGenreName"),
            image=record.get("artworkUrl100"),
            source=self.source_name,
        )

    async def _search(self, query: str) -> list[SearchResult]:
        albums, tracks = await asyncio.gather(self._lookup(query, "album"), self._lookup(query, "song"))
        results: list[SearchResult] = []
        for record in (entry for pair in zip_longest(albums, tracks) for entry in pair if entry):
            result = self._to_result(record)
            if result is not None:
                results.append(result)
        return results
