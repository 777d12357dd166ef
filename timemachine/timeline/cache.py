"""In-process TTL cache for loaded source series.

The clock is injected so tests can expire entries deterministically:

    clock = FakeClock()
    cache = TimelineCache(clock=clock)
    cache.get_or_load("XBTUSD_1h", ttl=300, loader=lambda: load(...))
    clock.advance(301)  # next get_or_load reloads
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any, TypeVar

from timemachine.common.logging import get_logger
from timemachine.common.metrics import CACHE_LOOKUPS_TOTAL

logger = get_logger("CACHE")

V = TypeVar("V")


class TimelineCache:
    """Key → (value, loaded_at) store with per-lookup time-to-live.

    Args:
        clock: Zero-argument callable returning seconds. Defaults to
            ``time.monotonic``.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}
        # Sync routes run on a threadpool; one loader per key at a time
        self._lock = threading.Lock()

    def get_or_load(self, key: str, ttl: float, loader: Callable[[], V | None]) -> V | None:
        """Return the cached value for ``key`` or load and cache a fresh one.

        An entry is fresh while ``now - loaded_at < ttl``. A loader that
        returns None is not cached, so the next lookup retries. Exceptions
        raised by the loader propagate and leave the cache untouched.
        """
        with self._lock:
            return self._get_or_load_locked(key, ttl, loader)

    def _get_or_load_locked(self, key: str, ttl: float, loader: Callable[[], V | None]) -> V | None:
        now = self._clock()
        entry = self._entries.get(key)
        if entry is not None and now - entry[1] < ttl:
            CACHE_LOOKUPS_TOTAL.labels(outcome="hit").inc()
            return entry[0]

        CACHE_LOOKUPS_TOTAL.labels(outcome="expired" if entry is not None else "miss").inc()
        value = loader()
        if value is None:
            self._entries.pop(key, None)
            return None

        self._entries[key] = (value, now)
        logger.debug("Cached entry", extra={"data": {"key": key, "ttl": ttl}})
        return value

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
