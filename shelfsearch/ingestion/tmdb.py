"""TMDB adapter for movie and TV search with bounded director enrichment."""

from __future__ import annotations

import asyncio
from typing import Any

from shelfsearch.core.config import settings
from shelfsearch.ingestion.base import BaseAdapter
from shelfsearch.ingestion.http import ExternalAPIError, MalformedResponseError, fetch_json
from shelfsearch.models.media import Category
from shelfsearch.schema.search import SearchResult
from shelfsearch.services.normalizer import resolve_creator
from shelfsearch.utils.datetime import parse_year

API_BASE = "https://api.themoviedb.org/3"
IMAGE_BASE = "https://image.tmdb.org/t/p/w500"


class TMDBAdapter(BaseAdapter):
    category = Category.MOVIES
    source_name = "tmdb"

    def __init__(self, api_key: str | None = None, auth_token: str | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key or settings.tmdb_api_key
        self.auth_token = auth_token or settings.tmdb_api_auth_header

    def _auth(self) -> tuple[dict[str, str], dict[str, str]]:
        headers: dict[str, str] = {"accept": "application/json"}
        params: dict[str, str] = {}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        elif self.api_key:
            params["api_key"] = self.api_key
        else:
            raise ExternalAPIError("TMDB API credentials missing; set TMDB_API_AUTH_HEADER or TMDB_API_KEY")
        return headers, params

    async def _fetch_director(self, kind: str, tmdb_id: Any) -> str | None:
        headers, params = self._auth()
        if kind == "tv":
            payload = await fetch_json(
                f"{API_BASE}/tv/{tmdb_id}", headers=headers, params=params, cache=self.lookup_cache
            )
            creators = [member.get("name") for member in payload.get("created_by", []) if member.get("name")]
            return creators[0] if creators else None
        payload = await fetch_json(
            f"{API_BASE}/movie/{tmdb_id}/credits", headers=headers, params=params, cache=self.lookup_cache
        )
        directors = [c.get("name") for c in payload.get("crew", []) if c.get("job") == "Director" and c.get("name")]
        return directors[0] if directors else None

    async def _search(self, query: str) -> list[SearchResult]:
        headers, params = self._auth()
        payload = await fetch_json(
            f"{API_BASE}/search/multi",
            headers=headers,
            params={
                **params,
                "query": query,
                "page": 1,
                "include_adult": "false",
                "language": "en-US",
            },
        )
        if not isinstance(payload, dict) or not isinstance(payload.get("results", []), list):
            raise MalformedResponseError("TMDB search payload missing results")
        entries: list[dict[str, Any]] = []
        for entry in payload.get("results") or []:
            if entry.get("media_type") not in {"movie", "tv"} or entry.get("id") is None:
                continue
            if not (entry.get("title") or entry.get("name") or "").strip():
                continue
            entries.append(entry)
            if len(entries) >= self.limit:
                break

        top = entries[: self.enrich_top_n]
        directors = await asyncio.gather(
            *(
                self._enrich(
                    entry["id"],
                    lambda kind=entry["media_type"], tmdb_id=entry["id"]: self._fetch_director(kind, tmdb_id),
                )
                for entry in top
            )
        )
        enriched = {(entry["media_type"], entry["id"]): director for entry, director in zip(top, directors)}

        results: list[SearchResult] = []
        for entry in entries:
            kind = entry["media_type"]
            vote = entry.get("vote_average")
            poster = entry.get("poster_path")
            results.append(
                SearchResult(
                    id=f"{kind}-{entry['id']}",
                    category=Category.MOVIES,
                    title=entry.get("title") or entry.get("name"),
                    creator=resolve_creator(
                        Category.MOVIES, entry, enriched=enriched.get((kind, entry["id"]))
                    ),
                    year=parse_year(entry.get("release_date") or entry.get("first_air_date")),
                    rating=round(float(vote) / 2, 1) if vote else None,
                    image=f"{IMAGE_BASE}{poster}" if poster else None,
                    popularity=entry.get("popularity"),
                    is_series=kind == "tv",
                    source=self.source_name,
                )
            )
        return results
