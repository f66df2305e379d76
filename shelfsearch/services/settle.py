"""Settle-all fan-in: run awaitables together and capture each outcome."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Generic, Iterable, TypeVar

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class Settled(Generic[T]):
    """Outcome of one branch: a value or the exception it raised."""
    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def settle_all(awaitables: Iterable[Awaitable[T]]) -> list[Settled[T]]:
    """Await every branch to completion; one failure never cancels its siblings.

    Outcomes come back in input order. Cancellation of the caller still
    propagates, since ``CancelledError`` is not captured as a branch failure.
    """
    outcomes = await asyncio.gather(*awaitables, return_exceptions=True)
    settled: list[Settled[T]] = []
    for outcome in outcomes:
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome
        if isinstance(outcome, BaseException):
            settled.append(Settled(error=outcome))
        else:
            settled.append(Settled(value=outcome))
    return settled
