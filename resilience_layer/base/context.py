"""Ambient request context: identity headers, correlation id, and deadline.

Purpose
-------
Request-handling code binds one :class:`RequestContext` per logical call (the
HTTP middleware in ``resilience_layer.service`` does this automatically). The
resilience components read it implicitly:

- the rate limiter resolves caller identity from ``headers``;
- canonical errors pick up ``correlation_id``;
- the retry executor honors ``deadline`` when no explicit one is passed.

The context lives in a :mod:`contextvars` variable, so it is isolated per
asyncio task and per thread without any locking.

Failure modes
-------------
- Reading the context outside a bound scope returns an empty default context;
  nothing here raises.
"""
from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Callable, Iterator, Mapping, Optional


class Deadline:
    """Absolute expiry point on the monotonic clock."""

    __slots__ = ("_expires_at", "_clock")

    def __init__(self, expires_at: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._expires_at = expires_at
        self._clock = clock

    @classmethod
    def after(cls, seconds: float, *, clock: Callable[[], float] = time.monotonic) -> "Deadline":
        """Create a deadline ``seconds`` from now."""
        return cls(clock() + max(0.0, seconds), clock=clock)

    @property
    def expires_at(self) -> float:
        return self._expires_at

    def remaining(self) -> float:
        """Seconds left before expiry, never negative."""
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self._clock() >= self._expires_at

    def __repr__(self) -> str:  # pragma: no cover - introspection aid
        return f"Deadline(remaining={self.remaining():.3f}s)"


def _lower_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    return {str(k).lower(): str(v) for k, v in (headers or {}).items()}


@dataclass(frozen=True)
class RequestContext:
    """Per-call ambient data read by the resilience components."""

    headers: Mapping[str, str] = field(default_factory=dict)
    correlation_id: Optional[str] = None
    deadline: Optional[Deadline] = None

    def header(self, name: str) -> Optional[str]:
        """Case-insensitive header lookup returning ``None`` for blank values."""
        value = self.headers.get(name.lower())
        if value is None:
            return None
        value = value.strip()
        return value or None


_EMPTY = RequestContext()
_CURRENT: ContextVar[RequestContext] = ContextVar("resilience_request_context", default=_EMPTY)


def current_context() -> RequestContext:
    """Return the context bound to the running task/thread (or an empty one)."""
    return _CURRENT.get()


def new_correlation_id() -> str:
    return uuid.uuid4().hex


def current_correlation_id() -> str:
    """Correlation id of the bound context, or a fresh one when unbound."""
    return current_context().correlation_id or new_correlation_id()


@contextmanager
def request_context(
    headers: Mapping[str, str] | None = None,
    *,
    correlation_id: str | None = None,
    timeout_seconds: float | None = None,
    deadline: Deadline | None = None,
) -> Iterator[RequestContext]:
    """Bind a :class:`RequestContext` for the duration of the ``with`` block.

    ``timeout_seconds`` is a convenience that builds a :class:`Deadline` when no
    explicit ``deadline`` is given. Header names are normalized to lowercase.
    """
    if deadline is None and timeout_seconds is not None and timeout_seconds > 0:
        deadline = Deadline.after(timeout_seconds)
    ctx = RequestContext(
        headers=_lower_headers(headers),
        correlation_id=correlation_id or new_correlation_id(),
        deadline=deadline,
    )
    token = _CURRENT.set(ctx)
    try:
        yield ctx
    finally:
        _CURRENT.reset(token)


__all__ = [
    "Deadline",
    "RequestContext",
    "current_context",
    "current_correlation_id",
    "new_correlation_id",
    "request_context",
]
