"""CacheStore Protocol (single-class module).

Opaque key/value cache consulted by the recovery chain's cache fallback.
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class CacheStore(Protocol):
    """Async key/value cache with per-entry TTL.

    Values are JSON-compatible. Implementations may raise on transport faults;
    callers in this package treat any such fault as a cache miss.
    """

    async def get(self, key: str) -> Optional[Any]:  # pragma: no cover - interface
        """Return the stored value or ``None`` when absent or expired."""
        ...

    async def set(self, key: str, value: Any, ttl: float) -> None:  # pragma: no cover - interface
        """Store ``value`` under ``key`` for ``ttl`` seconds."""
        ...

    async def delete_by_prefix(self, prefix: str) -> int:  # pragma: no cover - interface
        """Remove every key starting with ``prefix``; return the number removed."""
        ...
