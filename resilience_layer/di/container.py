"""Dependency injection container for the resilience layer.

Goals:
- Build settings, the breaker registry, stores, and the rate limiter once per
  process and hand the same instances to every caller.
- Keep construction out of request handlers so tests can inject fakes.
- Own the Redis connection lifetime (released by :meth:`aclose`).
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import redis.asyncio as redis

from ..base.interfaces import CacheStore, CounterStore
from ..base.logging import configure_logger
from ..base.rate_limit import BucketConfig, RateLimiter
from ..base.resilience import CircuitBreakerConfig, CircuitBreakerRegistry
from ..config import ResilienceSettings, get_settings
from ..stores import InMemoryCacheStore, RedisCacheStore, RedisCounterStore

_UNSET: Any = object()


class ResilienceContainer:
    """Composition root for resilience services and singletons.

    Args:
        settings: Pre-built settings; ``None`` loads them with :func:`get_settings`.
        counter_store: Explicit counter backend (``None`` disables limiting).
            When omitted a Redis store is built from ``settings.redis_url``
            if one is configured.
        cache_store: Explicit recovery cache backend. When omitted Redis is
            used if configured, otherwise an in-memory cache.
    """

    def __init__(
        self,
        settings: Optional[ResilienceSettings] = None,
        *,
        counter_store: Optional[CounterStore] = _UNSET,
        cache_store: Optional[CacheStore] = _UNSET,
    ) -> None:
        self._settings = settings or get_settings()
        self._singletons: Dict[str, Any] = {}
        if counter_store is not _UNSET:
            self._singletons["counter_store"] = counter_store
        if cache_store is not _UNSET:
            self._singletons["cache_store"] = cache_store
        self._redis_client: Any = None

    @property
    def settings(self) -> ResilienceSettings:
        return self._settings

    def configure_logging(self) -> None:
        configure_logger(level=self._settings.log_level)

    # ---- Shared singletons ----
    def _redis(self) -> Any:
        if self._redis_client is None and self._settings.redis_url:
            self._redis_client = redis.from_url(self._settings.redis_url, decode_responses=True)
        return self._redis_client

    def breaker_registry(self) -> CircuitBreakerRegistry:
        if "breaker_registry" not in self._singletons:
            b = self._settings.breaker
            self._singletons["breaker_registry"] = CircuitBreakerRegistry(
                CircuitBreakerConfig(
                    failure_threshold=b.failure_threshold,
                    reset_timeout=b.reset_timeout,
                    half_open_requests=b.half_open_requests,
                )
            )
        return self._singletons["breaker_registry"]

    def counter_store(self) -> Optional[CounterStore]:
        if "counter_store" not in self._singletons:
            client = self._redis()
            self._singletons["counter_store"] = RedisCounterStore(client) if client is not None else None
        return self._singletons["counter_store"]

    def cache_store(self) -> CacheStore:
        if "cache_store" not in self._singletons:
            client = self._redis()
            if client is not None:
                store: CacheStore = RedisCacheStore(client, key_prefix=self._settings.cache_key_prefix)
            else:
                store = InMemoryCacheStore(maxsize=self._settings.cache_maxsize)
            self._singletons["cache_store"] = store
        return self._singletons["cache_store"]

    def rate_limiter(self) -> RateLimiter:
        if "rate_limiter" not in self._singletons:
            buckets: Mapping[str, BucketConfig] = {
                name: BucketConfig(cfg.limit, cfg.window_seconds) for name, cfg in self._settings.buckets.items()
            }
            self._singletons["rate_limiter"] = RateLimiter(
                self.counter_store(),
                buckets,
                production=self._settings.is_production,
            )
        return self._singletons["rate_limiter"]

    async def aclose(self) -> None:
        """Release the shared Redis connection, if one was opened."""
        client, self._redis_client = self._redis_client, None
        if client is not None:
            await client.aclose()

    def clear(self) -> None:  # testing convenience
        self._singletons.clear()


def build_container(
    settings: Optional[ResilienceSettings] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ResilienceContainer:
    """Construct a container from ``settings`` or from merged configuration."""
    return ResilienceContainer(settings or get_settings(overrides))


__all__ = ["ResilienceContainer", "build_container"]
