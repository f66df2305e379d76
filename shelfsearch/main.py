"""FastAPI application entrypoint and health reporting utilities."""

import logging
from typing import Any

from fastapi import Depends, FastAPI

from shelfsearch.api.deps import get_search_aggregator
from shelfsearch.api.router import api_router
from shelfsearch.core.config import settings
from shelfsearch.services.search_service import SearchAggregator

LOG_FORMAT = "%(asctime)s %(name)s [%(levelname)s] %(message)s"


def _configure_logging() -> None:
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)


_configure_logging()

app = FastAPI(title=settings.app_name)
app.include_router(api_router, prefix=settings.api_prefix)


def _summarize_adapters(snapshot: dict[str, Any]) -> dict[str, Any]:
    """Condense adapter monitor state into health-friendly telemetry.

    Open circuits and repeated failures count as degraded signals.
    """
    issues: list[dict[str, Any]] = []
    categories: dict[str, Any] = {}
    for category, payload in snapshot.items():
        circuit = payload.get("circuit", {})
        remaining = float(circuit.get("remaining_cooldown") or 0.0)
        state = "ok"
        if remaining > 0:
            issues.append({"category": category, "reason": "circuit_open", "remaining_cooldown": remaining})
            state = "degraded"
        failed = int(payload.get("failed") or 0)
        if failed >= 3:
            issues.append({"category": category, "reason": "repeated_failures", "failed": failed})
            state = "degraded"
        elif payload.get("last_error"):
            issues.append({"category": category, "reason": "last_error", "error": payload["last_error"]})
            state = "degraded"
        categories[category] = {**payload, "state": state}
    return {"categories": categories, "issues": issues}


@app.get("/health", tags=["internal"])
@app.get(f"{settings.api_prefix}/health", tags=["internal"])
async def health(aggregator: SearchAggregator = Depends(get_search_aggregator)) -> dict[str, Any]:
    """Return health status with per-category adapter telemetry."""
    telemetry = _summarize_adapters(aggregator.monitor.snapshot())
    status = "ok" if not telemetry["issues"] else "degraded"
    return {"status": status, "cached_queries": len(aggregator.cache), "adapters": telemetry}
