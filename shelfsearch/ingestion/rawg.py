"""RAWG adapter for game search with bounded developer enrichment."""

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

API_BASE = "https://api.rawg.io/api"


class RAWGAdapter(BaseAdapter):
    """RAWG games search; the search endpoint omits developers, so the top hits are enriched."""
    category = Category.GAMES
    source_name = "rawg"

    def __init__(self, api_key: str | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key or settings.rawg_api_key

    def _params(self) -> dict[str, str]:
        if not self.api_key:
            raise ExternalAPIError("RAWG API key missing; set RAWG_API_KEY")
        return {"key": self.api_key}

    async def _fetch_developer(self, game_id: Any) -> str | None:
        payload = await fetch_json(
            f"{API_BASE}/games/{game_id}",
            params=self._params(),
            cache=self.lookup_cache,
        )
        developers = payload.get("developers") if isinstance(payload, dict) else None
        for developer in developers or []:
            name = developer.get("name") if isinstance(developer, dict) else None
            if name:
                return name
        return None

    async def _search(self, query: str) -> list[SearchResult]:
        payload = await fetch_json(
            f"{API_BASE}/games",
            params={**self._params(), "search": query, "page_size": self.limit},
        )
        if not isinstance(payload, dict) or not isinstance(payload.get("results", []), list):
            raise MalformedResponseError("RAWG search payload missing results")
        games = [game for game in payload.get("results") or [] if game.get("id") and game.get("name")]
        games = games[: self.limit]

        top = games[: self.enrich_top_n]
        developers = await asyncio.gather(
            *(self._enrich(game["id"], lambda game_id=game["id"]: self._fetch_developer(game_id)) for game in top)
        )
        enriched = dict(zip((game["id"] for game in top), developers))

        results: list[SearchResult] = []
        for game in games:
            rating = game.get("rating")
            genres = game.get("genres") or []
            results.append(
                SearchResult(
                    id=f"game-{game['id']}",
                    category=Category.GAMES,
                    title=game["name"],
                    creator=resolve_creator(Category.GAMES, game, enriched=enriched.get(game["id"])),
                    year=parse_year(game.get("released")),
                    rating=round(float(rating), 1) if rating else None,
                    genre=genres[0].get("name") if genres else None,
                    image=game.get("background_image"),
                    popularity=game.get("added"),
                    source=self.source_name,
                )
            )
        return results
