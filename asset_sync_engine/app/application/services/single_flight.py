from __future__ import annotations

import asyncio
import functools
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def make_cache_key(*args: Any) -> str:
    """Join call arguments into a single key ("1_0xAbc...")."""
    return "_".join(str(a) for a in args)


@dataclass
class _Entry(Generic[T]):
    future: asyncio.Future[T]
    expires_at: float


class TtlSingleFlightCache(Generic[T]):
    """
    TTL-bounded memo with single-flight semantics.

    - The first caller for a key starts the factory as its own task;
      concurrent callers for the same key await that task.
    - Cancelling a caller only cancels its wait, never the shared flight.
    - A successful result is reused until `ttl_seconds` after the call started.
    - A failed call is evicted as soon as it fails: every waiter of that
      flight gets the exception, the next call runs the factory again.

    The clock is injectable (monotonic seconds) so expiry is testable.
    """

    def __init__(
        self,
        *,
        name: str,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        self._name = name
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry[T]] = {}

    @property
    def name(self) -> str:
        return self._name

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    async def get_or_run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        self._evict_expired()

        entry = self._entries.get(key)
        if entry is not None:
            logger.debug("Cache hit", extra={"cache": self._name, "key": key})
        else:
            task: asyncio.Future[T] = asyncio.ensure_future(factory())
            entry = _Entry(future=task, expires_at=self._clock() + self._ttl)
            self._entries[key] = entry
            task.add_done_callback(functools.partial(self._on_flight_done, key, entry))

        # Every caller, the starter included, is shielded: a cancelled caller
        # must not cancel the flight the others are waiting on
        return await asyncio.shield(entry.future)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.expires_at > self._clock()

    def __len__(self) -> int:
        return len(self._entries)

    def _on_flight_done(self, key: str, entry: _Entry[T], future: asyncio.Future[T]) -> None:
        # exception() also marks the error retrieved when nobody is left waiting
        if future.cancelled() or future.exception() is not None:
            self._discard(key, entry)

    def _discard(self, key: str, entry: _Entry[T]) -> None:
        if self._entries.get(key) is entry:
            del self._entries[key]

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = [
            key
            for key, entry in self._entries.items()
            # in-flight entries are never evicted; they expire once settled
            if entry.future.done() and entry.expires_at <= now
        ]
        for key in expired:
            del self._entries[key]
