"""Session-lifetime caches for ranked search results and provider sub-lookups.

Invariants:
- Entries are only ever added; a second ``set`` for a cached key is ignored.
- Neither cache expires; lifetime is the owning instance (``clear`` resets it).
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Sequence

from shelfsearch.models.media import CategoryFilter
from shelfsearch.schema.search import SearchResult

CacheKey = tuple[str, str]

# Query params that carry credentials never take part in a lookup key.
_CREDENTIAL_PARAMS = frozenset({"key", "api_key", "apikey", "token", "access_token"})


def normalize_query(query: str) -> str:
    return " ".join(query.casefold().split())


class ResultCache:
    """Ranked result lists keyed by ``(category_filter, query)``."""

    def __init__(self) -> None:
        self._entries: dict[CacheKey, tuple[SearchResult, ...]] = {}
        self.hits = 0
        self.misses = 0

    @staticmethod
    def make_key(category_filter: CategoryFilter | str, query: str) -> CacheKey:
        return (CategoryFilter(category_filter).value, normalize_query(query))

    def get(self, category_filter: CategoryFilter | str, query: str) -> tuple[SearchResult, ...] | None:
        """Return the cached ranked results, or None on a miss."""
        entry = self._entries.get(self.make_key(category_filter, query))
        if entry is None:
            self.misses += 1
        else:
            self.hits += 1
        return entry

    def set(
        self,
        category_filter: CategoryFilter | str,
        query: str,
        results: Iterable[SearchResult],
    ) -> tuple[SearchResult, ...]:
        """Store ranked results and return the canonical cached tuple."""
        key = self.make_key(category_filter, query)
        existing = self._entries.get(key)
        if existing is not None:
            return existing
        stored = tuple(results)
        self._entries[key] = stored
        return stored

    def clear(self) -> None:
        self._entries.clear()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


class LookupCache:
    """Raw provider payloads keyed by request URL, shared across adapters."""

    def __init__(self) -> None:
        self._entries: dict[str, Any] = {}

    @staticmethod
    def make_key(url: str, params: Mapping[str, Any] | None = None) -> str:
        """Build a stable key from the URL and non-credential params."""
        if not params:
            return url
        items: Sequence[tuple[str, str]] = sorted(
            (str(name), str(value))
            for name, value in params.items()
            if name not in _CREDENTIAL_PARAMS and value is not None
        )
        if not items:
            return url
        return url + "?" + "&".join(f"{name}={value}" for name, value in items)

    def get(self, key: str) -> Any | None:
        return self._entries.get(key)

    def set(self, key: str, payload: Any) -> None:
        self._entries.setdefault(key, payload)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
