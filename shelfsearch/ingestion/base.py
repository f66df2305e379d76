"""Base adapter primitives shared by every provider."""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, TypeVar

from shelfsearch.core.config import settings
from shelfsearch.models.media import Category
from shelfsearch.schema.search import SearchResult
from shelfsearch.services.result_cache import LookupCache
from shelfsearch.utils.redaction import redact_secrets

logger = logging.getLogger("shelfsearch.ingestion")

T = TypeVar("T")


class BaseAdapter:
    """Provider adapter: one capability, ``search(query) -> list[SearchResult]``."""
    category: Category
    source_name: str

    def __init__(
        self,
        *,
        lookup_cache: LookupCache | None = None,
        limit: int | None = None,
        enrich_top_n: int | None = None,
    ) -> None:
        self.lookup_cache = lookup_cache if lookup_cache is not None else LookupCache()
        self.limit = limit if limit is not None else settings.search_results_per_source
        self.enrich_top_n = enrich_top_n if enrich_top_n is not None else settings.search_enrich_top_n

    async def search(self, query: str) -> list[SearchResult]:
        """Search the provider and return normalized results, bounded by ``limit``."""
        cleaned = query.strip()
        if not cleaned:
            raise ValueError("query must not be empty")
        results = await self._search(cleaned)
        return results[: self.limit]

    async def _search(self, query: str) -> list[SearchResult]:
        raise NotImplementedError

    async def _enrich(self, identifier: Any, lookup: Callable[[], Awaitable[T]]) -> T | None:
        """Run a best-effort detail lookup; failures yield None instead of raising."""
        try:
            return await lookup()
        except Exception as exc:  # noqa: BLE001
            payload = {
                "event": "enrichment_failure",
                "source": self.source_name,
                "identifier": str(identifier),
                "error": redact_secrets(str(exc)),
            }
            logger.warning(json.dumps(payload))
            return None
