"""CounterStore Protocol (single-class module).

Fixed-window counter backing the rate limiter.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .window_count import WindowCount


@runtime_checkable
class CounterStore(Protocol):
    """Atomic increment within a fixed time window."""

    async def increment(self, key: str, window_seconds: float) -> WindowCount:  # pragma: no cover - interface
        """Increment the counter for ``key`` in the current window.

        The first increment of a window starts it; the counter expires when the
        window closes. The returned count includes this increment.
        """
        ...
