"""Identity-based fixed-window rate limiter.

Purpose
-------
Bound how often one caller may hit a class of operations. Each bucket
(``standard``, ``sensitive``, ``write``, ``strict``) carries its own
``limit`` per ``window_seconds``; counters are kept per ``(bucket, identity)``
in a :class:`CounterStore`.

Fail-open policy
----------------
Limiting is availability-first. Outside production, without a counter store,
or when the store raises, the check reports ``allowed=True`` with a nominal
limit/remaining of 999. Store faults are logged as ``rate_limit.degraded``
and never surface to the caller.

Failure modes
-------------
- ``require_limit`` / ``with_limit`` raise ``ResilienceError(RATE_LIMITED)``
  on refusal, with ``details.retry_after_seconds``.
- An unknown bucket name is a programming error and raises
  ``ResilienceError(INTERNAL)``.
"""
from __future__ import annotations

import functools
import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, TypeVar

from ...config.defaults import (
    RATE_LIMIT_DEFAULT_BUCKETS,
    RATE_LIMIT_KEY_PREFIX,
    RATE_LIMIT_NOMINAL_LIMIT,
)
from ...config.env import is_production
from ..errors import ErrorCode, ResilienceError, make_error
from ..interfaces import CounterStore
from ..logging import LogContext, get_logger, log_event
from .identity import resolve_identity

T = TypeVar("T")

_LOGGER = get_logger("resilience.rate_limit")


@dataclass(frozen=True)
class BucketConfig:
    limit: int
    window_seconds: float

    def __post_init__(self) -> None:
        if self.limit < 1:
            raise ValueError("limit must be >= 1")
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")


DEFAULT_BUCKETS: Dict[str, BucketConfig] = {
    name: BucketConfig(limit, window) for name, (limit, window) in RATE_LIMIT_DEFAULT_BUCKETS.items()
}


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one check; ``reset_at`` is epoch seconds."""

    allowed: bool
    limit: int
    remaining: int
    reset_at: float

    def retry_after(self, now: float) -> int:
        """Whole seconds until the window resets (at least 1)."""
        return max(1, math.ceil(self.reset_at - now))

    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }


class RateLimiter:
    """Per-identity limiter over a pluggable counter store.

    Parameters
    ----------
    store:
        Counter backend; ``None`` disables enforcement (fail-open).
    buckets:
        Bucket table; defaults to :data:`DEFAULT_BUCKETS`.
    production:
        Whether enforcement is active. ``None`` re-reads the environment on
        every check.
    clock:
        Epoch-seconds clock used for nominal reset times and retry-after.
    """

    def __init__(
        self,
        store: Optional[CounterStore] = None,
        buckets: Optional[Mapping[str, BucketConfig]] = None,
        *,
        production: Optional[bool] = None,
        key_prefix: str = RATE_LIMIT_KEY_PREFIX,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._buckets = dict(buckets or DEFAULT_BUCKETS)
        self._production = production
        self._key_prefix = key_prefix
        self._clock = clock

    @property
    def buckets(self) -> Mapping[str, BucketConfig]:
        return dict(self._buckets)

    def _bucket(self, bucket: str) -> BucketConfig:
        try:
            return self._buckets[bucket]
        except KeyError:
            raise ResilienceError(
                make_error(
                    ErrorCode.INTERNAL,
                    f"unknown rate limit bucket '{bucket}'",
                    details={"bucket": bucket, "known": sorted(self._buckets)},
                )
            ) from None

    def _enforcing(self) -> bool:
        return is_production() if self._production is None else self._production

    def _nominal(self, cfg: BucketConfig) -> RateLimitDecision:
        return RateLimitDecision(
            allowed=True,
            limit=RATE_LIMIT_NOMINAL_LIMIT,
            remaining=RATE_LIMIT_NOMINAL_LIMIT,
            reset_at=self._clock() + cfg.window_seconds,
        )

    async def check_limit(self, bucket: str = "standard", identity: Optional[str] = None) -> RateLimitDecision:
        cfg = self._bucket(bucket)
        if not self._enforcing() or self._store is None:
            return self._nominal(cfg)
        who = resolve_identity(identity)
        key = f"{self._key_prefix}:{bucket}:{who}"
        try:
            window = await self._store.increment(key, cfg.window_seconds)
        except Exception as exc:  # fail open on store faults
            log_event(
                _LOGGER,
                "rate_limit.degraded",
                LogContext(component="rate_limit", resource=bucket),
                level=logging.WARNING,
                identity=who,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return self._nominal(cfg)
        decision = RateLimitDecision(
            allowed=window.count <= cfg.limit,
            limit=cfg.limit,
            remaining=max(0, cfg.limit - window.count),
            reset_at=window.reset_at,
        )
        if not decision.allowed:
            log_event(
                _LOGGER,
                "rate_limit.refused",
                LogContext(component="rate_limit", resource=bucket),
                level=logging.WARNING,
                identity=who,
                limit=cfg.limit,
                reset_at=decision.reset_at,
            )
        return decision

    async def require_limit(self, bucket: str = "standard", identity: Optional[str] = None) -> RateLimitDecision:
        """Check and raise ``ResilienceError(RATE_LIMITED)`` when refused."""
        decision = await self.check_limit(bucket, identity)
        if decision.allowed:
            return decision
        retry_after = decision.retry_after(self._clock())
        text = f"Rate limit exceeded. Please try again in {retry_after} seconds."
        raise ResilienceError(
            make_error(
                ErrorCode.RATE_LIMITED,
                text,
                user_message=text,
                details={
                    "bucket": bucket,
                    "limit": decision.limit,
                    "reset_at": decision.reset_at,
                    "retry_after_seconds": retry_after,
                },
            )
        )

    def with_limit(
        self,
        func: Callable[..., Awaitable[T]],
        bucket: str = "standard",
        *,
        identity: Optional[str] = None,
    ) -> Callable[..., Awaitable[T]]:
        """Wrap ``func`` so every call passes ``require_limit`` first."""

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            await self.require_limit(bucket, identity)
            return await func(*args, **kwargs)

        return wrapper


__all__ = [
    "BucketConfig",
    "DEFAULT_BUCKETS",
    "RateLimitDecision",
    "RateLimiter",
]
