"""Redis-backed store implementations (``redis.asyncio``).

The client is injected (or built with :meth:`from_url`) so the owning
container controls the connection lifetime; call :meth:`aclose` on shutdown.

Failure modes
-------------
- Transport errors propagate as ``redis.exceptions.RedisError``. The rate
  limiter and the recovery chain treat them as "store unavailable" and
  degrade; nothing in this module swallows them.
"""

from __future__ import annotations

import json
import math
import time
from typing import Any, Callable, Optional

import redis.asyncio as redis

from ..base.interfaces import WindowCount
from ..config.defaults import CACHE_DEFAULT_KEY_PREFIX

_DELETE_BATCH = 500


class RedisCacheStore:
    """JSON values under a key prefix with per-entry expiry."""

    def __init__(self, client: "redis.Redis", *, key_prefix: str = CACHE_DEFAULT_KEY_PREFIX) -> None:
        self._client = client
        self._prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisCacheStore":
        return cls(redis.from_url(url, decode_responses=True), **kwargs)

    async def get(self, key: str) -> Optional[Any]:
        raw = await self._client.get(self._prefix + key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set(self, key: str, value: Any, ttl: float) -> None:
        await self._client.set(self._prefix + key, json.dumps(value, default=str), ex=max(1, math.ceil(ttl)))

    async def delete_by_prefix(self, prefix: str) -> int:
        removed = 0
        batch = []
        async for key in self._client.scan_iter(match=f"{self._prefix}{prefix}*"):
            batch.append(key)
            if len(batch) >= _DELETE_BATCH:
                removed += await self._client.delete(*batch)
                batch = []
        if batch:
            removed += await self._client.delete(*batch)
        return removed

    async def aclose(self) -> None:
        await self._client.aclose()


class RedisCounterStore:
    """Fixed-window counters using one ``INCR`` + ``EXPIRE`` transaction."""

    def __init__(self, client: "redis.Redis", *, clock: Callable[[], float] = time.time) -> None:
        self._client = client
        self._clock = clock

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisCounterStore":
        return cls(redis.from_url(url, decode_responses=True), **kwargs)

    async def increment(self, key: str, window_seconds: float) -> WindowCount:
        now = self._clock()
        index = int(now // window_seconds)
        reset_at = (index + 1) * window_seconds
        window_key = f"{key}:{index}"
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.incr(window_key)
            pipe.expire(window_key, max(1, math.ceil(reset_at - now)))
            count, _ = await pipe.execute()
        return WindowCount(count=int(count), reset_at=reset_at)

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["RedisCacheStore", "RedisCounterStore"]
