"""Google Books adapter for volume search."""

from __future__ import annotations

from typing import Any

from shelfsearch.core.config import settings
from shelfsearch.ingestion.base import BaseAdapter
from shelfsearch.ingestion.http import MalformedResponseError, fetch_json
from shelfsearch.models.media import Category
from shelfsearch.schema.search import SearchResult
from shelfsearch.services.normalizer import resolve_creator
from shelfsearch.utils.datetime import parse_year

VOLUMES_URL = "https://www.googleapis.com/books/v1/volumes"


class GoogleBooksAdapter(BaseAdapter):
    """Google Books volume search; authors are present on search hits."""
    category = Category.BOOKS
    source_name = "google_books"

    def __init__(self, api_key: str | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.api_key = api_key or settings.google_books_api_key

    async def _search(self, query: str) -> list[SearchResult]:
        params: dict[str, Any] = {"q": query, "maxResults": self.limit, "printType": "books"}
        if self.api_key:
            params["key"] = self.api_key
        payload = await fetch_json(VOLUMES_URL, params=params)
        if not isinstance(payload, dict) or not isinstance(payload.get("items", []), list):
            raise MalformedResponseError("Google Books payload missing items")

        results: list[SearchResult] = []
        for item in payload.get("items") or []:
            info = item.get("volumeInfo") or {}
            if not item.get("id") or not (info.get("title") or "").strip():
                continue
            categories = info.get("categories") or []
            rating = info.get("averageRating")
            results.append(
                SearchResult(
                    id=f"book-{item['id']}",
                    category=Category.BOOKS,
                    title=info["title"],
                    creator=resolve_creator(Category.BOOKS, info),
                    year=parse_year(info.get("publishedDate")),
                    rating=float(rating) if rating else None,
                    genre=categories[0] if categories else None,
                    image=(info.get("imageLinks") or {}).get("thumbnail"),
                    popularity=info.get("ratingsCount"),
                    source=self.source_name,
                )
            )
        return results
