from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from shelfsearch.api.deps import get_library, get_search_aggregator
from shelfsearch.core.config import settings
from shelfsearch.models.media import CategoryFilter
from shelfsearch.schema.library import AnnotatedSearchResult, LibraryItem
from shelfsearch.schema.search import AdapterError, SearchResult
from shelfsearch.services.library_service import LibraryStore
from shelfsearch.services.normalizer import annotate
from shelfsearch.services.search_service import SearchAggregator

router = APIRouter()


class AnnotatedSearchResponse(BaseModel):
    """Search response with library status attached to each result."""
    results: list[AnnotatedSearchResult] = Field(default_factory=list)
    errors: list[AdapterError] = Field(default_factory=list)
    from_cache: bool = False
    retryable: bool = False
    message: str | None = None


class LibraryAddRequest(BaseModel):
    result: SearchResult
    status: str = "want_to_consume"


@router.get("/search", response_model=AnnotatedSearchResponse)
async def search(
    q: str = Query(..., min_length=settings.search_min_query_length),
    category: CategoryFilter = Query(default=CategoryFilter.ALL),
    aggregator: SearchAggregator = Depends(get_search_aggregator),
    library: LibraryStore = Depends(get_library),
) -> AnnotatedSearchResponse:
    if len(q.strip()) < settings.search_min_query_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Query must be at least {settings.search_min_query_length} characters",
        )
    response = await aggregator.aggregate(q, category)
    items = await library.get_library_items()
    return AnnotatedSearchResponse(
        results=annotate(response.results, items),
        errors=response.errors,
        from_cache=response.from_cache,
        retryable=response.retryable,
        message=response.message,
    )


@router.get("/library", response_model=list[LibraryItem])
async def list_library(library: LibraryStore = Depends(get_library)) -> list[LibraryItem]:
    return await library.get_library_items()


@router.post("/library", response_model=LibraryItem)
async def add_to_library(
    payload: LibraryAddRequest,
    library: LibraryStore = Depends(get_library),
) -> LibraryItem:
    return await library.add_item(payload.result, payload.status)
