"""Per-category circuit breaking and latency metrics for adapter searches."""

from __future__ import annotations

import json
import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, DefaultDict, TypeVar

from shelfsearch.core.config import settings
from shelfsearch.ingestion.http import RateLimitedError
from shelfsearch.utils.redaction import redact_secrets

logger = logging.getLogger("shelfsearch.ingestion")

T = TypeVar("T")


class CircuitOpenError(Exception):
    """Raised when a category circuit is open and searches are temporarily blocked."""


@dataclass
class CircuitBreakerState:
    """Track per-category failure streaks and cooldown windows."""
    threshold: int = 3
    base_backoff_seconds: float = 15.0
    max_backoff_seconds: float = 300.0
    failure_streak: int = 0
    open_until: float = 0.0
    current_backoff: float = field(init=False)
    opened_count: int = 0

    def __post_init__(self) -> None:
        self.current_backoff = self.base_backoff_seconds

    def can_call(self) -> bool:
        return time.monotonic() >= self.open_until

    def remaining_cooldown(self) -> float:
        if self.can_call():
            return 0.0
        return self.open_until - time.monotonic()

    def record_success(self) -> None:
        self.failure_streak = 0
        self.open_until = 0.0
        self.current_backoff = self.base_backoff_seconds

    def record_failure(self, cooldown: float | None = None) -> None:
        """Advance the streak; open immediately when the provider names a cooldown."""
        self.failure_streak += 1
        if cooldown is None and self.failure_streak < self.threshold:
            return
        backoff = max(cooldown or 0.0, self.current_backoff)
        self.open_until = time.monotonic() + backoff
        self.failure_streak = 0
        self.opened_count += 1
        self.current_backoff = min(self.current_backoff * 2, self.max_backoff_seconds)

    def snapshot(self) -> dict[str, Any]:
        return {
            "failure_streak": self.failure_streak,
            "remaining_cooldown": round(self.remaining_cooldown(), 2),
            "current_backoff": self.current_backoff,
            "opened_count": self.opened_count,
        }


@dataclass
class SearchMetrics:
    """Aggregated counters for one category."""
    started: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    last_latency_ms: float | None = None
    last_error: str | None = None


class AdapterMonitor:
    """Track adapter performance and enforce circuit breaking per category.

    All mutation happens on the event loop thread between awaits, so no lock
    is taken around the counters.
    """

    def __init__(
        self,
        *,
        circuit_threshold: int | None = None,
        base_backoff_seconds: float | None = None,
        max_backoff_seconds: float | None = None,
    ) -> None:
        threshold = circuit_threshold if circuit_threshold is not None else settings.circuit_threshold
        base = base_backoff_seconds if base_backoff_seconds is not None else settings.circuit_base_backoff_seconds
        ceiling = max_backoff_seconds if max_backoff_seconds is not None else settings.circuit_max_backoff_seconds
        self._metrics: DefaultDict[str, SearchMetrics] = defaultdict(SearchMetrics)
        self._circuits: DefaultDict[str, CircuitBreakerState] = defaultdict(
            lambda: CircuitBreakerState(
                threshold=threshold,
                base_backoff_seconds=base,
                max_backoff_seconds=ceiling,
            )
        )

    def allow_call(self, category: str) -> bool:
        return self._circuits[category].can_call()

    async def track(
        self,
        category: str,
        func: Callable[[], Awaitable[T]],
        *,
        context: dict[str, Any] | None = None,
    ) -> T:
        """Execute an adapter search while tracking metrics and circuit state.

        Implementation notes:
        - Failures update the circuit breaker and emit structured logs.
        - A rate limit opens the circuit for at least the provider's retry-after.
        """
        context = context or {}
        circuit = self._circuits[category]
        metrics = self._metrics[category]
        if not circuit.can_call():
            remaining = circuit.remaining_cooldown()
            metrics.skipped += 1
            payload = {
                "event": "search_circuit_open",
                "category": category,
                "context": context,
                "remaining_cooldown": round(remaining, 2),
            }
            logger.warning(json.dumps(payload))
            raise CircuitOpenError(f"{category} circuit open for {remaining:.2f}s")
        metrics.started += 1

        start = time.monotonic()
        try:
            result = await func()
        except Exception as exc:  # noqa: BLE001
            latency_ms = (time.monotonic() - start) * 1000
            metrics.failed += 1
            metrics.last_latency_ms = latency_ms
            metrics.last_error = redact_secrets(str(exc))
            cooldown = (exc.retry_after or 0.0) if isinstance(exc, RateLimitedError) else None
            circuit.record_failure(cooldown)
            payload = {
                "event": "search_failure",
                "category": category,
                "error": metrics.last_error,
                "latency_ms": round(latency_ms, 2),
                "context": context,
                "circuit": circuit.snapshot(),
            }
            logger.warning(json.dumps(payload))
            raise

        latency_ms = (time.monotonic() - start) * 1000
        metrics.succeeded += 1
        metrics.last_latency_ms = latency_ms
        metrics.last_error = None
        circuit.record_success()
        payload = {
            "event": "search_success",
            "category": category,
            "latency_ms": round(latency_ms, 2),
            "context": context,
        }
        logger.info(json.dumps(payload))
        return result

    def snapshot(self) -> dict[str, Any]:
        """Return a serializable view of every tracked category."""
        return {
            category: {
                "circuit": self._circuits[category].snapshot(),
                "started": metrics.started,
                "succeeded": metrics.succeeded,
                "failed": metrics.failed,
                "skipped": metrics.skipped,
                "last_latency_ms": metrics.last_latency_ms,
                "last_error": metrics.last_error,
            }
            for category, metrics in self._metrics.items()
        }
