"""Cross-domain media search aggregation and ranking."""

from shelfsearch.services.search_service import SearchAggregator, search

__all__ = ["SearchAggregator", "search"]
