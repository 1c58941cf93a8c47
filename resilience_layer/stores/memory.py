"""In-process store backends.

Suitable for development, tests, and single-process deployments. Both stores
guard their maps with a ``threading.Lock`` and never ``await`` while holding
it, so they are safe to share between threads and asyncio tasks.
"""

from __future__ import annotations

import copy
import math
import time
from threading import Lock
from typing import Any, Callable, Dict, Optional, Tuple

from ..base.interfaces import WindowCount
from ..config.defaults import CACHE_DEFAULT_MAXSIZE


class InMemoryCacheStore:
    """TTL cache with a size bound; the oldest entry is evicted when full."""

    def __init__(self, maxsize: int = CACHE_DEFAULT_MAXSIZE, *, clock: Callable[[], float] = time.monotonic) -> None:
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")
        self._maxsize = maxsize
        self._clock = clock
        self._lock = Lock()
        # key -> (value, stored_at, expires_at)
        self._entries: Dict[str, Tuple[Any, float, float]] = {}

    def _purge_expired(self, now: float) -> None:
        for key in [k for k, (_, _, exp) in self._entries.items() if exp <= now]:
            del self._entries[key]

    async def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, _, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[key]
                return None
            return copy.deepcopy(value)

    async def set(self, key: str, value: Any, ttl: float) -> None:
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            if key not in self._entries and len(self._entries) >= self._maxsize:
                oldest = min(self._entries.items(), key=lambda item: item[1][1])[0]
                del self._entries[oldest]
            self._entries[key] = (copy.deepcopy(value), now, now + ttl)

    async def delete_by_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [k for k in self._entries if k.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class InMemoryCounterStore:
    """Fixed-window counters aligned to multiples of the window length."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = Lock()
        # window key -> (count, reset_at)
        self._counters: Dict[str, Tuple[int, float]] = {}
        # earliest reset_at among live windows; sweeps wait until then
        self._next_purge = math.inf

    def _purge_expired(self, now: float) -> None:
        live = {k: v for k, v in self._counters.items() if v[1] > now}
        self._counters = live
        self._next_purge = min((reset_at for _, reset_at in live.values()), default=math.inf)

    async def increment(self, key: str, window_seconds: float) -> WindowCount:
        with self._lock:
            now = self._clock()
            if now >= self._next_purge:
                self._purge_expired(now)
            index = int(now // window_seconds)
            window_key = f"{key}:{index}"
            count, reset_at = self._counters.get(window_key, (0, (index + 1) * window_seconds))
            count += 1
            self._counters[window_key] = (count, reset_at)
            self._next_purge = min(self._next_purge, reset_at)
            return WindowCount(count=count, reset_at=reset_at)

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)


__all__ = ["InMemoryCacheStore", "InMemoryCounterStore"]
