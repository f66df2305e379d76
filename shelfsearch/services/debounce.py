"""Debounced search sessions driven by query-change events."""

from __future__ import annotations

import asyncio
import inspect
import json
import logging
from typing import Any, Awaitable, Callable

from shelfsearch.core.config import settings
from shelfsearch.models.media import CategoryFilter
from shelfsearch.schema.search import SearchResponse
from shelfsearch.services.result_cache import ResultCache
from shelfsearch.services.search_service import SearchAggregator
from shelfsearch.utils.redaction import redact_secrets

logger = logging.getLogger("shelfsearch.services.debounce")


class CancellableTimer:
    """Single-slot timer: scheduling replaces any pending call.

    A callback that has already fired runs to completion as its own task;
    ``cancel`` only drops a call that has not fired yet.
    """

    def __init__(self) -> None:
        self._handle: asyncio.TimerHandle | None = None
        self._running: set[asyncio.Future[Any]] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, fn: Callable[[], Any | Awaitable[Any]], delay: float) -> None:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(max(delay, 0.0), self._fire, fn)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, fn: Callable[[], Any | Awaitable[Any]]) -> None:
        self._handle = None
        outcome = fn()
        if inspect.isawaitable(outcome):
            future = asyncio.ensure_future(outcome)
            self._running.add(future)
            future.add_done_callback(self._settle)

    def _settle(self, future: asyncio.Future[Any]) -> None:
        self._running.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is None:
            return
        payload = {
            "event": "search_task_failed",
            "error": redact_secrets(str(error)),
            "error_type": type(error).__name__,
        }
        logger.error(json.dumps(payload))

    async def join(self) -> None:
        """Wait for callbacks that have already fired."""
        while self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)


class SearchSession:
    """One open search surface: debounces input and delivers only the latest query's results."""

    def __init__(
        self,
        aggregator: SearchAggregator,
        on_results: Callable[[SearchResponse], None],
        *,
        delay: float | None = None,
        min_length: int | None = None,
        reset_cache_on_close: bool = True,
    ) -> None:
        self.aggregator = aggregator
        self.on_results = on_results
        self.delay = delay if delay is not None else settings.search_debounce_seconds
        self.min_length = min_length if min_length is not None else settings.search_min_query_length
        self.reset_cache_on_close = reset_cache_on_close
        self.latest: SearchResponse | None = None
        self.closed = False
        self._timer = CancellableTimer()
        self._generation = 0

    @property
    def pending(self) -> bool:
        return self._timer.pending

    def update(self, query: str, category_filter: CategoryFilter | str = CategoryFilter.ALL) -> None:
        """Record a query change; short queries clear results immediately."""
        if self.closed:
            return
        self._generation += 1
        generation = self._generation
        if len(query.strip()) < self.min_length:
            self._timer.cancel()
            self._deliver(SearchResponse())
            return
        category_filter = CategoryFilter(category_filter)
        self._timer.schedule(lambda: self._run(query, category_filter, generation), self.delay)

    async def _run(self, query: str, category_filter: CategoryFilter, generation: int) -> None:
        response = await self.aggregator.aggregate(query, category_filter)
        if self.closed or generation != self._generation:
            logger.info(json.dumps({"event": "search_discarded", "query": query.strip(), "reason": "superseded"}))
            return
        self._deliver(response)

    def _deliver(self, response: SearchResponse) -> None:
        self.latest = response
        self.on_results(response)

    async def wait_idle(self) -> None:
        await self._timer.join()

    def close(self) -> None:
        """Tear down: drop the pending call and ignore anything still in flight."""
        self._timer.cancel()
        self._generation += 1
        self.closed = True
        if self.reset_cache_on_close:
            # In-flight aggregations keep writing to the cache they started with.
            self.aggregator.cache = ResultCache()
