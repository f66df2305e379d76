"""Tests for fan-out, partial failure, caching, and fallback in the aggregator."""

from __future__ import annotations

import httpx
import pytest

from shelfsearch.ingestion.http import ExternalAPIError, MalformedResponseError, RateLimitedError
from shelfsearch.ingestion.observability import AdapterMonitor
from shelfsearch.models.media import Category, CategoryFilter
from shelfsearch.schema.search import AdapterErrorReason
from shelfsearch.services import search_service
from shelfsearch.services.result_cache import ResultCache
from shelfsearch.services.search_service import SearchAggregator, classify_error, dedupe
from shelfsearch.services.settle import settle_all
from shelfsearch.tests.utils import StubAdapter, make_result


@pytest.mark.asyncio
async def test_all_filter_merges_every_category_in_ranked_order(aggregator, stub_adapters) -> None:
    response = await aggregator.aggregate("Mario", "all")

    titles = [result.title for result in response.results]
    assert set(titles) == {
        "Super Mario Odyssey",
        "Mario Kart 8",
        "The Super Mario Bros. Movie",
        "Koji Kondo Collection",
    }
    # Title matches outrank the creator-only match regardless of category.
    assert titles[-1] == "Koji Kondo Collection"
    assert titles.index("Mario Kart 8") < titles.index("Super Mario Odyssey")
    assert response.errors == []
    assert all(adapter.calls == ["Mario"] for adapter in stub_adapters.values())


@pytest.mark.asyncio
async def test_single_category_filter_only_calls_matching_adapter(aggregator, stub_adapters) -> None:
    response = await aggregator.aggregate("mario", CategoryFilter.GAMES)

    assert {result.category for result in response.results} == {Category.GAMES}
    assert stub_adapters[Category.GAMES].calls == ["mario"]
    assert stub_adapters[Category.MOVIES].calls == []
    assert stub_adapters[Category.MUSIC].calls == []


@pytest.mark.asyncio
async def test_one_failing_adapter_does_not_affect_others(stub_adapters) -> None:
    stub_adapters[Category.MOVIES] = StubAdapter(Category.MOVIES, error=RuntimeError("boom"))
    aggregator = SearchAggregator(adapters=stub_adapters, cache=ResultCache(), fallback_categories=[])

    response = await aggregator.aggregate("mario", "all")

    assert {result.category for result in response.results} == {Category.GAMES, Category.MUSIC}
    assert len(response.errors) == 1
    assert response.errors[0].category is Category.MOVIES
    assert response.errors[0].reason is AdapterErrorReason.UNEXPECTED
    assert response.retryable is False


@pytest.mark.asyncio
async def test_second_call_is_served_from_cache(aggregator, stub_adapters) -> None:
    first = await aggregator.aggregate("Mario", "all")
    second = await aggregator.aggregate("  mario ", "all")

    assert second.from_cache is True
    assert second.results == first.results
    assert all(a is b for a, b in zip(first.results, second.results))
    assert all(len(adapter.calls) == 1 for adapter in stub_adapters.values())


@pytest.mark.asyncio
async def test_rate_limited_games_use_fallback_dataset() -> None:
    adapters = {
        Category.GAMES: StubAdapter(Category.GAMES, error=RateLimitedError("Rate limited by api.rawg.io")),
        Category.MOVIES: StubAdapter(
            Category.MOVIES, [make_result("movie-1", "Elden Ring: The Documentary", year=2023)]
        ),
        Category.MUSIC: StubAdapter(Category.MUSIC, []),
        Category.BOOKS: StubAdapter(Category.BOOKS, [make_result("book-1", "Elden Ring Artbook", year=2022)]),
    }
    aggregator = SearchAggregator(adapters=adapters, cache=ResultCache(), fallback_categories=["games"])

    response = await aggregator.aggregate("elden ring", "all")

    assert [result.title for result in response.results][0] == "Elden Ring"
    fallback = [result for result in response.results if result.source == "fallback"]
    assert [result.id for result in fallback] == ["game-1245620"]
    assert len(response.errors) == 1
    assert response.errors[0].category is Category.GAMES
    assert response.errors[0].reason is AdapterErrorReason.RATE_LIMIT


@pytest.mark.asyncio
async def test_rate_limit_without_fallback_policy_contributes_nothing() -> None:
    adapters = {
        Category.GAMES: StubAdapter(Category.GAMES, error=RateLimitedError("slow down")),
        Category.BOOKS: StubAdapter(Category.BOOKS, [make_result("book-1", "Hades Myths")]),
    }
    aggregator = SearchAggregator(adapters=adapters, cache=ResultCache(), fallback_categories=[])

    response = await aggregator.aggregate("hades", "all")

    assert [result.id for result in response.results] == ["book-1"]
    assert response.errors[0].reason is AdapterErrorReason.RATE_LIMIT


@pytest.mark.asyncio
async def test_all_failed_is_retryable_and_not_cached() -> None:
    cache = ResultCache()
    adapters = {
        Category.GAMES: StubAdapter(Category.GAMES, error=ExternalAPIError("Server error 502")),
        Category.MOVIES: StubAdapter(Category.MOVIES, error=MalformedResponseError("bad json")),
    }
    aggregator = SearchAggregator(adapters=adapters, cache=cache, fallback_categories=["games"])

    response = await aggregator.aggregate("portal", "all")

    assert response.results == []
    assert response.retryable is True
    assert {error.reason for error in response.errors} == {
        AdapterErrorReason.NETWORK,
        AdapterErrorReason.MALFORMED,
    }
    assert "games: network" in response.message
    assert "movies: malformed" in response.message
    assert len(cache) == 0

    await aggregator.aggregate("portal", "all")
    assert len(adapters[Category.GAMES].calls) == 2


@pytest.mark.asyncio
async def test_slow_adapter_times_out_without_blocking_others() -> None:
    adapters = {
        Category.GAMES: StubAdapter(Category.GAMES, [make_result("game-1", "Celeste")]),
        Category.MUSIC: StubAdapter(Category.MUSIC, [make_result("track-1", "Celeste OST")], delay=1.0),
    }
    aggregator = SearchAggregator(adapters=adapters, cache=ResultCache(), timeout_seconds=0.05)

    response = await aggregator.aggregate("celeste", "all")

    assert [result.id for result in response.results] == ["game-1"]
    assert response.errors[0].reason is AdapterErrorReason.TIMEOUT


@pytest.mark.asyncio
async def test_open_circuit_skips_adapter_calls() -> None:
    failing = StubAdapter(Category.GAMES, error=ExternalAPIError("down"))
    monitor = AdapterMonitor(circuit_threshold=1, base_backoff_seconds=60)
    aggregator = SearchAggregator(
        adapters={Category.GAMES: failing}, cache=ResultCache(), monitor=monitor, fallback_categories=[]
    )

    await aggregator.aggregate("doom", "games")
    response = await aggregator.aggregate("quake", "games")

    assert failing.calls == ["doom"]
    assert response.errors[0].reason is AdapterErrorReason.CIRCUIT_OPEN
    assert monitor.snapshot()["games"]["skipped"] == 1


@pytest.mark.asyncio
async def test_empty_query_is_rejected(aggregator) -> None:
    with pytest.raises(ValueError):
        await aggregator.aggregate("   ", "all")


@pytest.mark.asyncio
async def test_module_search_uses_process_wide_aggregator(monkeypatch, aggregator) -> None:
    monkeypatch.setattr(search_service, "_default_aggregator", aggregator)

    response = await search_service.search("mario", "games")

    assert len(response.results) == 2
    assert search_service.get_aggregator() is aggregator


def test_dedupe_keeps_first_result_per_id() -> None:
    first = make_result("game-1", "Hades")
    duplicate = make_result("game-1", "Hades (fallback)")
    other_category = make_result("book-1", "Hades")

    assert dedupe([first, duplicate, other_category]) == [first, other_category]


@pytest.mark.asyncio
async def test_movie_and_series_sharing_a_native_id_are_both_kept() -> None:
    adapters = {
        Category.MOVIES: StubAdapter(
            Category.MOVIES,
            [
                make_result("movie-1399", "Thrones of Sand", year=2019),
                make_result("tv-1399", "Game of Thrones", year=2011, is_series=True),
            ],
        ),
        Category.MUSIC: StubAdapter(
            Category.MUSIC,
            [make_result("album-7", "Thrones Suite"), make_result("track-7", "Thrones Theme")],
        ),
    }
    aggregator = SearchAggregator(adapters=adapters, cache=ResultCache(), fallback_categories=[])

    response = await aggregator.aggregate("thrones", "all")

    assert {result.id for result in response.results} == {"movie-1399", "tv-1399", "album-7", "track-7"}


def test_classify_error_maps_httpx_failures_to_network() -> None:
    request = httpx.Request("GET", "https://example.test")
    error = classify_error(Category.MUSIC, httpx.ConnectError("refused", request=request))

    assert error.reason is AdapterErrorReason.NETWORK
    assert error.category is Category.MUSIC


def test_classify_error_redacts_credentials() -> None:
    error = classify_error(Category.GAMES, ExternalAPIError("GET https://api.rawg.io/api/games?key=abc123 failed"))

    assert "abc123" not in error.message


@pytest.mark.asyncio
async def test_settle_all_captures_each_branch_in_order() -> None:
    async def ok(value: int) -> int:
        return value

    async def fail() -> int:
        raise ValueError("nope")

    outcomes = await settle_all([ok(1), fail(), ok(3)])

    assert [outcome.ok for outcome in outcomes] == [True, False, True]
    assert outcomes[0].value == 1
    assert isinstance(outcomes[1].error, ValueError)
    assert outcomes[2].value == 3
