from shelfsearch.services.library_service import InMemoryLibrary, LibraryStore
from shelfsearch.services.search_service import SearchAggregator, get_aggregator

_library = InMemoryLibrary()


def get_search_aggregator() -> SearchAggregator:
    return get_aggregator()


def get_library() -> LibraryStore:
    return _library
