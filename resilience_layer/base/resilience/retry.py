"""Retry executor with capped exponential backoff and jitter.

Semantics
---------
- Attempts ``0..max_retries`` inclusive (``max_retries=3`` means up to four
  calls of the operation).
- Every failure is classified; non-retryable codes and the final attempt raise
  the classified :class:`ResilienceError` immediately.
- Delay before the next attempt is ``min(base_delay * 2**attempt, max_delay)``
  perturbed by uniform jitter within ``±jitter_fraction`` of that value.
- ``CIRCUIT_OPEN`` is not retryable, so retries never spin against an open
  breaker.

Deadlines
---------
An explicit ``deadline`` (or the one bound in the ambient request context)
bounds the whole loop: sleeps are clipped to the remaining budget and an
expired budget raises ``ResilienceError(TIMEOUT)``. The inter-attempt sleep is
``asyncio.sleep`` so it never blocks unrelated tasks.
"""
from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import random
import time
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, TypeVar

from ..context import Deadline, current_context
from ..errors import ErrorCode, ResilienceError, classify, make_error
from ..logging import LogContext, get_logger, log_event

T = TypeVar("T")

_LOGGER = get_logger("resilience.retry")


class AttemptLogger(Protocol):  # pragma: no cover - structural protocol
    def __call__(
        self,
        *,
        attempt: int,
        max_attempts: int,
        delay: float | None,
        error: ResilienceError | None,
    ) -> None: ...


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry configuration (all durations in seconds)."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    jitter_fraction: float = 0.25

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")
        if self.max_delay < self.base_delay:
            raise ValueError("max_delay must be >= base_delay")
        if not 0.0 <= self.jitter_fraction <= 1.0:
            raise ValueError("jitter_fraction must be within [0, 1]")

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def with_overrides(self, **changes: Any) -> "RetryPolicy":
        return replace(self, **changes)


RETRY_PRESETS: Dict[str, RetryPolicy] = {
    "standard": RetryPolicy(max_retries=3, base_delay=1.0, max_delay=10.0, jitter_fraction=0.25),
    "aggressive": RetryPolicy(max_retries=5, base_delay=0.5, max_delay=30.0, jitter_fraction=0.25),
    "conservative": RetryPolicy(max_retries=2, base_delay=2.0, max_delay=10.0, jitter_fraction=0.25),
    "none": RetryPolicy(max_retries=0, base_delay=0.0, max_delay=0.0, jitter_fraction=0.0),
}

DEFAULT_RETRY_POLICY = RETRY_PRESETS["standard"]


def compute_delay(policy: RetryPolicy, attempt: int, rng: Callable[[], float] = random.random) -> float:
    """Return the backoff delay (seconds) to wait after failed ``attempt``.

    ``rng`` must return a float in ``[0, 1)``; it is mapped onto the symmetric
    jitter interval ``[-jitter, +jitter]``.
    """
    delay = min(policy.base_delay * (2 ** attempt), policy.max_delay)
    if policy.jitter_fraction:
        spread = policy.jitter_fraction * delay
        delay += spread * (rng() * 2 - 1)
    return max(0.0, delay)


def _timeout_error(attempt: int, last: ResilienceError | None) -> ResilienceError:
    details: Dict[str, Any] = {"attempts": attempt}
    if last is not None:
        details["last_error_code"] = last.code.value
    return ResilienceError(make_error(ErrorCode.TIMEOUT, "deadline expired during retries", details=details))


def _log_attempt(name: str, attempt: int, policy: RetryPolicy, delay: float | None, error: ResilienceError) -> None:
    log_event(
        _LOGGER,
        "retry.attempt" if delay is not None else "retry.exhausted",
        LogContext(component="retry", resource=name),
        level=logging.WARNING,
        attempt=attempt,
        max_attempts=policy.max_attempts,
        delay=round(delay, 4) if delay is not None else None,
        error_code=error.code.value,
        retryable=error.retryable,
    )


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    *,
    deadline: Optional[Deadline] = None,
    name: str | None = None,
    attempt_logger: AttemptLogger | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    rng: Callable[[], float] = random.random,
) -> T:
    """Run ``operation`` with bounded retries; raise a classified error on failure."""
    deadline = deadline or current_context().deadline
    label = name or getattr(operation, "__qualname__", "operation")
    last: ResilienceError | None = None
    for attempt in range(policy.max_attempts):
        if deadline is not None and deadline.expired:
            raise _timeout_error(attempt, last)
        try:
            if deadline is not None:
                result = await asyncio.wait_for(operation(), timeout=deadline.remaining())
            else:
                result = await operation()
        except asyncio.TimeoutError as exc:
            if deadline is not None and deadline.expired:
                raise _timeout_error(attempt + 1, last) from exc
            last = ResilienceError(classify(exc))
            cause: Exception = exc
        except Exception as exc:
            last = ResilienceError(classify(exc))
            cause = exc
        else:
            if attempt_logger:
                attempt_logger(attempt=attempt, max_attempts=policy.max_attempts, delay=None, error=None)
            return result

        final = (not last.retryable) or attempt == policy.max_retries
        delay = None if final else compute_delay(policy, attempt, rng)
        if attempt_logger:
            attempt_logger(attempt=attempt, max_attempts=policy.max_attempts, delay=delay, error=last)
        _log_attempt(label, attempt, policy, delay, last)
        if delay is None:
            raise last from cause
        if deadline is not None:
            if deadline.remaining() <= delay:
                await sleep(deadline.remaining())
                raise _timeout_error(attempt + 1, last) from cause
        await sleep(delay)

    # Unreachable: the final attempt either returns or raises above.
    raise RuntimeError("retry: reached terminal state without outcome")  # pragma: no cover


def with_retry_sync(
    operation: Callable[[], T],
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    *,
    deadline: Optional[Deadline] = None,
    name: str | None = None,
    attempt_logger: AttemptLogger | None = None,
    sleep: Callable[[float], Any] = time.sleep,
    rng: Callable[[], float] = random.random,
) -> T:
    """Blocking counterpart of :func:`with_retry` for synchronous callables.

    The deadline is checked between attempts only; a running synchronous call
    cannot be interrupted.
    """
    deadline = deadline or current_context().deadline
    label = name or getattr(operation, "__qualname__", "operation")
    last: ResilienceError | None = None
    for attempt in range(policy.max_attempts):
        if deadline is not None and deadline.expired:
            raise _timeout_error(attempt, last)
        try:
            result = operation()
        except Exception as exc:
            last = ResilienceError(classify(exc))
            final = (not last.retryable) or attempt == policy.max_retries
            delay = None if final else compute_delay(policy, attempt, rng)
            if attempt_logger:
                attempt_logger(attempt=attempt, max_attempts=policy.max_attempts, delay=delay, error=last)
            _log_attempt(label, attempt, policy, delay, last)
            if delay is None:
                raise last from exc
            if deadline is not None and deadline.remaining() <= delay:
                sleep(deadline.remaining())
                raise _timeout_error(attempt + 1, last) from exc
            sleep(delay)
            continue
        if attempt_logger:
            attempt_logger(attempt=attempt, max_attempts=policy.max_attempts, delay=None, error=None)
        return result
    raise RuntimeError("retry: reached terminal state without outcome")  # pragma: no cover


def retry(policy: RetryPolicy = DEFAULT_RETRY_POLICY):
    """Return a decorator applying the retry policy.

    Works for coroutine functions (async backoff) and plain functions
    (blocking backoff) alike and preserves the wrapped signature.
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                return await with_retry(lambda: func(*args, **kwargs), policy, name=func.__qualname__)

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            return with_retry_sync(lambda: func(*args, **kwargs), policy, name=func.__qualname__)

        return wrapper

    return decorator


__all__ = [
    "AttemptLogger",
    "RetryPolicy",
    "RETRY_PRESETS",
    "DEFAULT_RETRY_POLICY",
    "compute_delay",
    "with_retry",
    "with_retry_sync",
    "retry",
]
