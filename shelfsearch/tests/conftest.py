"""Shared pytest fixtures for search engine and API tests."""

from __future__ import annotations

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from shelfsearch.api import deps
from shelfsearch.main import app
from shelfsearch.models.media import Category
from shelfsearch.services.library_service import InMemoryLibrary
from shelfsearch.services.result_cache import ResultCache
from shelfsearch.services.search_service import SearchAggregator
from shelfsearch.tests.utils import StubAdapter, make_result


@pytest.fixture()
def stub_adapters() -> dict[Category, StubAdapter]:
    return {
        Category.GAMES: StubAdapter(
            Category.GAMES,
            [
                make_result("game-1", "Super Mario Odyssey", year=2017, creator="Nintendo EPD", rating=4.6),
                make_result("game-2", "Mario Kart 8", year=2024, creator="Nintendo EPD", rating=4.4),
            ],
        ),
        Category.MOVIES: StubAdapter(
            Category.MOVIES,
            [make_result("movie-10", "The Super Mario Bros. Movie", year=2023, creator="Aaron Horvath", rating=3.5)],
        ),
        Category.MUSIC: StubAdapter(
            Category.MUSIC,
            [make_result("album-20", "Koji Kondo Collection", year=2012, creator="Mario Orchestra", rating=None)],
        ),
        Category.BOOKS: StubAdapter(Category.BOOKS, []),
    }


@pytest.fixture()
def aggregator(stub_adapters: dict[Category, StubAdapter]) -> SearchAggregator:
    return SearchAggregator(adapters=stub_adapters, cache=ResultCache(), fallback_categories=["games"])


@pytest.fixture()
def library() -> InMemoryLibrary:
    return InMemoryLibrary()


@pytest_asyncio.fixture()
async def client(aggregator: SearchAggregator, library: InMemoryLibrary) -> AsyncClient:
    app.dependency_overrides[deps.get_search_aggregator] = lambda: aggregator
    app.dependency_overrides[deps.get_library] = lambda: library
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as async_client:
        yield async_client
    app.dependency_overrides.pop(deps.get_search_aggregator, None)
    app.dependency_overrides.pop(deps.get_library, None)
