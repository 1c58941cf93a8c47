"""Concrete cache and counter store backends (in-memory and Redis)."""

from .memory import InMemoryCacheStore, InMemoryCounterStore
from .redis_store import RedisCacheStore, RedisCounterStore

__all__ = [
    "InMemoryCacheStore",
    "InMemoryCounterStore",
    "RedisCacheStore",
    "RedisCounterStore",
]
