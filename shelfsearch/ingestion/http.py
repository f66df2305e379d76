from __future__ import annotations

from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential_jitter

from shelfsearch.core.config import settings
from shelfsearch.services.result_cache import LookupCache

_RATE_LIMIT_MARKERS = ("rate limit", "limit reached", "too many requests", "quota")


class ExternalAPIError(Exception):
    pass


class ProviderServerError(ExternalAPIError):
    pass


class MalformedResponseError(ExternalAPIError):
    pass


class RateLimitedError(ExternalAPIError):
    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _is_rate_limited(response: httpx.Response) -> bool:
    if response.status_code == 429:
        return True
    if response.status_code in (401, 403):
        body = response.text.casefold()
        return any(marker in body for marker in _RATE_LIMIT_MARKERS)
    return False


async def fetch_json(
    url: str,
    *,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    cache: LookupCache | None = None,
) -> Any:
    cache_key = LookupCache.make_key(url, params) if cache is not None else None
    if cache is not None and cache_key in cache:
        return cache.get(cache_key)

    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max(settings.http_max_attempts, 1)),
        wait=wait_exponential_jitter(initial=1, max=8),
        retry=retry_if_exception_type((httpx.TransportError, ProviderServerError)),
        reraise=True,
    ):
        with attempt:
            async with httpx.AsyncClient(timeout=settings.http_timeout_seconds) as client:
                response = await client.get(url, headers=headers, params=params)
            if _is_rate_limited(response):
                raise RateLimitedError(
                    f"Rate limited by {response.request.url.host}",
                    retry_after=_retry_after(response),
                )
            if response.status_code >= 500:
                raise ProviderServerError(f"Server error {response.status_code}")
            if response.status_code >= 400:
                raise ExternalAPIError(f"Client error {response.status_code}")
            try:
                payload = response.json()
            except ValueError as exc:
                raise MalformedResponseError(f"Invalid JSON from {response.request.url.host}") from exc
            if cache is not None:
                cache.set(cache_key, payload)
            return payload
    raise ExternalAPIError("Unreachable")
