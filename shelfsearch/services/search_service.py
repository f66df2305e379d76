"""Cross-category search aggregation.

Invariants:
- Adapters for one aggregation start together and are all awaited before ranking.
- A failing adapter only ever contributes an ``AdapterError``; siblings are untouched.
- Returned order is always the ranker's, and that ranked tuple is what gets cached.
- Responses where every selected adapter failed are not cached, so a retry re-queries.
"""

from __future__ import annotations

import asyncio
import json
import logging
from time import monotonic
from typing import Iterable, Mapping

import httpx

from shelfsearch.core.config import settings
from shelfsearch.ingestion import build_adapters
from shelfsearch.ingestion.base import BaseAdapter
from shelfsearch.ingestion.http import ExternalAPIError, MalformedResponseError, RateLimitedError
from shelfsearch.ingestion.observability import AdapterMonitor, CircuitOpenError
from shelfsearch.models.media import Category, CategoryFilter
from shelfsearch.samples.fallback import fallback_results
from shelfsearch.schema.search import AdapterError, AdapterErrorReason, SearchResponse, SearchResult
from shelfsearch.services.ranking import rank
from shelfsearch.services.result_cache import ResultCache
from shelfsearch.services.settle import Settled, settle_all
from shelfsearch.utils.redaction import redact_secrets

logger = logging.getLogger("shelfsearch.services.search")

# Failures after which a category may serve its built-in sample data.
FALLBACK_REASONS = frozenset({AdapterErrorReason.RATE_LIMIT, AdapterErrorReason.CIRCUIT_OPEN})


def classify_error(category: Category, exc: BaseException) -> AdapterError:
    """Map an adapter exception onto the per-category error taxonomy."""
    if isinstance(exc, RateLimitedError):
        reason = AdapterErrorReason.RATE_LIMIT
    elif isinstance(exc, CircuitOpenError):
        reason = AdapterErrorReason.CIRCUIT_OPEN
    elif isinstance(exc, TimeoutError):
        reason = AdapterErrorReason.TIMEOUT
    elif isinstance(exc, MalformedResponseError):
        reason = AdapterErrorReason.MALFORMED
    elif isinstance(exc, (ExternalAPIError, httpx.HTTPError)):
        reason = AdapterErrorReason.NETWORK
    else:
        reason = AdapterErrorReason.UNEXPECTED
    return AdapterError(category=category, reason=reason, message=redact_secrets(str(exc)) or reason.value)


def dedupe(results: Iterable[SearchResult]) -> list[SearchResult]:
    """Drop later results whose prefixed id was already seen."""
    seen: set[str] = set()
    unique: list[SearchResult] = []
    for result in results:
        if result.id in seen:
            continue
        seen.add(result.id)
        unique.append(result)
    return unique


class SearchAggregator:
    """Fan one query out to the selected category adapters and merge the outcomes."""

    def __init__(
        self,
        adapters: Mapping[Category, BaseAdapter] | None = None,
        cache: ResultCache | None = None,
        *,
        fallback_categories: Iterable[Category | str] | None = None,
        monitor: AdapterMonitor | None = None,
        timeout_seconds: float | None = None,
        fallback_limit: int | None = None,
    ) -> None:
        self.adapters: dict[Category, BaseAdapter] = dict(adapters) if adapters is not None else build_adapters()
        self.cache = cache if cache is not None else ResultCache()
        categories = fallback_categories if fallback_categories is not None else settings.search_fallback_categories
        self.fallback_categories = frozenset(Category(category) for category in categories)
        self.monitor = monitor if monitor is not None else AdapterMonitor()
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.search_adapter_timeout_seconds
        self.fallback_limit = fallback_limit if fallback_limit is not None else settings.search_results_per_source

    def select(self, category_filter: CategoryFilter) -> list[Category]:
        return [category for category in category_filter.categories() if category in self.adapters]

    async def _run_adapter(self, category: Category, query: str) -> list[SearchResult]:
        adapter = self.adapters[category]
        return await self.monitor.track(
            category.value,
            lambda: asyncio.wait_for(adapter.search(query), timeout=self.timeout_seconds),
            context={"query": query, "source": adapter.source_name},
        )

    async def aggregate(
        self,
        query: str,
        category_filter: CategoryFilter | str = CategoryFilter.ALL,
    ) -> SearchResponse:
        """Search the selected categories and return ranked results plus per-adapter errors.

        Implementation notes:
        - Cache hits short-circuit every adapter call and return the stored order.
        - Rate-limited categories listed in ``fallback_categories`` serve sample data.
        - Only an all-failed, empty outcome is flagged retryable.
        """
        cleaned = query.strip()
        if not cleaned:
            raise ValueError("query must not be empty")
        category_filter = CategoryFilter(category_filter)
        # Late writes must land on the cache this call started with.
        cache = self.cache

        cached = cache.get(category_filter, cleaned)
        if cached is not None:
            logger.info(
                json.dumps({"event": "search_cache_hit", "query": cleaned, "filter": category_filter.value})
            )
            return SearchResponse(results=list(cached), from_cache=True)

        selected = self.select(category_filter)
        start = monotonic()
        outcomes: list[Settled[list[SearchResult]]] = await settle_all(
            self._run_adapter(category, cleaned) for category in selected
        )

        merged: list[SearchResult] = []
        errors: list[AdapterError] = []
        fallback_count = 0
        for category, outcome in zip(selected, outcomes):
            if outcome.ok:
                merged.extend(outcome.value or [])
                continue
            error = classify_error(category, outcome.error)
            errors.append(error)
            if error.reason in FALLBACK_REASONS and category in self.fallback_categories:
                substitutes = fallback_results(category, cleaned, self.fallback_limit)
                fallback_count += len(substitutes)
                merged.extend(substitutes)

        merged = dedupe(merged)
        payload = {
            "event": "search_aggregated",
            "query": cleaned,
            "filter": category_filter.value,
            "results": len(merged),
            "fallback_results": fallback_count,
            "errors": {error.category.value: error.reason.value for error in errors},
            "latency_ms": round((monotonic() - start) * 1000, 2),
        }
        logger.info(json.dumps(payload))

        if not merged and errors and len(errors) == len(selected):
            message = "; ".join(f"{error.category.value}: {error.reason.value} ({error.message})" for error in errors)
            return SearchResponse(errors=errors, retryable=True, message=f"All sources failed: {message}")

        ranked = cache.set(category_filter, cleaned, rank(merged, cleaned))
        return SearchResponse(results=list(ranked), errors=errors)


_default_aggregator: SearchAggregator | None = None


def get_aggregator() -> SearchAggregator:
    """Return the process-wide aggregator, building it from settings on first use."""
    global _default_aggregator
    if _default_aggregator is None:
        _default_aggregator = SearchAggregator()
    return _default_aggregator


def reset_aggregator() -> None:
    """Drop the process-wide aggregator along with its caches."""
    global _default_aggregator
    _default_aggregator = None


async def search(query: str, category_filter: CategoryFilter | str = CategoryFilter.ALL) -> SearchResponse:
    """Search every selected category through the process-wide aggregator."""
    return await get_aggregator().aggregate(query, category_filter)
