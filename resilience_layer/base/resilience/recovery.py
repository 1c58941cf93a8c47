"""Layered recovery strategy chain.

Purpose
-------
Run an operation through an ordered list of strategies and return the first
one that yields data:

- ``RetryStrategy``: invoke the operation under :func:`with_retry`.
- ``CacheFallback``: serve a previously remembered value that is younger than
  ``max_age`` seconds (marked stale).
- ``Degrade``: serve a caller-supplied fallback value (marked degraded).
- ``Prompt``: ask a caller-supplied :data:`ConfirmationHandler` whether to try
  the operation one more time.

Fresh results are written through to every ``CacheFallback`` key of the chain
so later failures have something to fall back to.

Circuit interaction
-------------------
``CIRCUIT_OPEN`` is not retryable, so a ``RetryStrategy`` fails on it at once.
After the chain has seen ``CIRCUIT_OPEN`` it skips the remaining strategies
that would invoke the operation (``RetryStrategy`` and ``Prompt``) and falls
through to the cache and degrade steps.

Failure modes
-------------
- Cache reads and writes never fail the chain; store faults count as a miss
  and are logged.
- When every strategy fails the outcome carries the last classified error (or
  ``SERVICE_UNAVAILABLE`` when no strategy produced one) plus the names of the
  strategies attempted. Nothing here raises for operation failures.
"""
from __future__ import annotations

import asyncio
import functools
import logging
import time
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Generic,
    List,
    Optional,
    Tuple,
    TypeVar,
    Union,
)

from ..errors import CanonicalError, ErrorCode, ResilienceError, classify, make_error
from ..interfaces import CacheStore
from ..logging import LogContext, get_logger, log_event
from .retry import DEFAULT_RETRY_POLICY, RETRY_PRESETS, RetryPolicy, with_retry

T = TypeVar("T")

_LOGGER = get_logger("resilience.recovery")

ConfirmationHandler = Callable[[str, str], Awaitable[bool]]


@dataclass(frozen=True)
class RetryStrategy:
    policy: RetryPolicy = DEFAULT_RETRY_POLICY
    kind: str = field(default="retry", init=False)


@dataclass(frozen=True)
class CacheFallback:
    """Serve ``key`` from the cache when its entry is at most ``max_age`` seconds old."""

    key: str
    max_age: Optional[float] = None
    kind: str = field(default="cache", init=False)


@dataclass(frozen=True)
class Degrade:
    fallback_value: Any = None
    kind: str = field(default="degrade", init=False)


@dataclass(frozen=True)
class Prompt:
    title: str
    message: str
    kind: str = field(default="prompt", init=False)


RecoveryStrategy = Union[RetryStrategy, CacheFallback, Degrade, Prompt]


@dataclass(frozen=True)
class RecoveryConfig:
    """Ordered strategies plus optional observers.

    ``on_success(strategy, data)`` fires when a strategy yields data;
    ``on_failure(error, strategies)`` fires once when the whole chain fails.
    """

    strategies: Tuple[RecoveryStrategy, ...]
    name: Optional[str] = None
    on_success: Optional[Callable[[RecoveryStrategy, Any], None]] = None
    on_failure: Optional[Callable[[CanonicalError, Tuple[RecoveryStrategy, ...]], None]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "strategies", tuple(self.strategies))

    def cache_keys(self) -> List[Tuple[str, Optional[float]]]:
        return [(s.key, s.max_age) for s in self.strategies if isinstance(s, CacheFallback)]


@dataclass(frozen=True)
class RecoveryOutcome(Generic[T]):
    success: bool
    data: Optional[T] = None
    strategy: Optional[RecoveryStrategy] = None
    is_stale: bool = False
    is_degraded: bool = False
    error: Optional[CanonicalError] = None
    attempted: Tuple[str, ...] = ()


# Entries without an explicit max_age are kept for an hour.
DEFAULT_CACHE_TTL = 3600.0


def _envelope(value: Any, now: float) -> dict:
    return {"data": value, "timestamp": now}


async def remember(
    cache: CacheStore,
    key: str,
    value: Any,
    ttl: Optional[float] = None,
    *,
    clock: Callable[[], float] = time.time,
) -> None:
    """Store ``value`` under ``key`` in the envelope the cache fallback reads."""
    await cache.set(key, _envelope(value, clock()), ttl or DEFAULT_CACHE_TTL)


async def _write_through(cache: CacheStore | None, config: RecoveryConfig, data: Any, clock: Callable[[], float]) -> None:
    if cache is None:
        return
    for key, max_age in config.cache_keys():
        try:
            await remember(cache, key, data, max_age, clock=clock)
        except Exception as exc:  # cache faults never fail the chain
            log_event(
                _LOGGER,
                "recovery.cache_write_failed",
                LogContext(component="recovery", resource=key),
                level=logging.WARNING,
                error=str(exc),
            )


async def _read_cache(
    cache: CacheStore | None, strategy: CacheFallback, clock: Callable[[], float]
) -> Tuple[bool, Any]:
    if cache is None:
        return False, None
    try:
        entry = await cache.get(strategy.key)
    except Exception as exc:
        log_event(
            _LOGGER,
            "recovery.cache_read_failed",
            LogContext(component="recovery", resource=strategy.key),
            level=logging.WARNING,
            error=str(exc),
        )
        return False, None
    if not isinstance(entry, dict) or "data" not in entry:
        return False, None
    timestamp = entry.get("timestamp")
    if strategy.max_age is not None:
        if not isinstance(timestamp, (int, float)) or clock() - timestamp > strategy.max_age:
            return False, None
    return True, entry["data"]


def _log_strategy(label: str, strategy: RecoveryStrategy, outcome: str, **fields: Any) -> None:
    log_event(
        _LOGGER,
        "recovery.strategy",
        LogContext(component="recovery", resource=label),
        level=logging.INFO if outcome == "succeeded" else logging.WARNING,
        strategy=strategy.kind,
        outcome=outcome,
        **fields,
    )


def _notify_observer(label: str, hook: str, callback: Callable[..., None], *args: Any) -> None:
    try:
        callback(*args)
    except Exception as exc:  # observer faults must not change the outcome
        log_event(
            _LOGGER,
            "recovery.observer_failed",
            LogContext(component="recovery", resource=label),
            level=logging.WARNING,
            hook=hook,
            error=str(exc),
            error_type=type(exc).__name__,
        )


async def execute_recovery(
    operation: Callable[[], Awaitable[T]],
    config: RecoveryConfig,
    *,
    cache: CacheStore | None = None,
    confirm: ConfirmationHandler | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    clock: Callable[[], float] = time.time,
) -> RecoveryOutcome[T]:
    """Evaluate ``config.strategies`` in order, returning on the first success."""
    label = config.name or getattr(operation, "__qualname__", "operation")
    attempted: List[str] = []
    last_error: CanonicalError | None = None
    circuit_open = False

    def succeed(strategy: RecoveryStrategy, data: Any, **flags: bool) -> RecoveryOutcome[T]:
        _log_strategy(label, strategy, "succeeded")
        if config.on_success is not None:
            _notify_observer(label, "on_success", config.on_success, strategy, data)
        return RecoveryOutcome(success=True, data=data, strategy=strategy, attempted=tuple(attempted), **flags)

    for strategy in config.strategies:
        if isinstance(strategy, RetryStrategy):
            if circuit_open:
                _log_strategy(label, strategy, "skipped")
                continue
            attempted.append(strategy.kind)
            try:
                data = await with_retry(operation, strategy.policy, name=label, sleep=sleep)
            except ResilienceError as exc:
                last_error = exc.error
                circuit_open = circuit_open or exc.code is ErrorCode.CIRCUIT_OPEN
                _log_strategy(label, strategy, "failed", error_code=exc.code.value)
                continue
            await _write_through(cache, config, data, clock)
            return succeed(strategy, data)

        if isinstance(strategy, CacheFallback):
            attempted.append(strategy.kind)
            hit, data = await _read_cache(cache, strategy, clock)
            if hit:
                return succeed(strategy, data, is_stale=True)
            _log_strategy(label, strategy, "missed")
            continue

        if isinstance(strategy, Degrade):
            attempted.append(strategy.kind)
            return succeed(strategy, strategy.fallback_value, is_degraded=True)

        if isinstance(strategy, Prompt):
            if circuit_open:
                _log_strategy(label, strategy, "skipped")
                continue
            attempted.append(strategy.kind)
            if confirm is None:
                _log_strategy(label, strategy, "failed", reason="no_handler")
                continue
            try:
                agreed = await confirm(strategy.title, strategy.message)
            except Exception as exc:
                _log_strategy(label, strategy, "failed", reason="handler_error", error=str(exc))
                continue
            if not agreed:
                _log_strategy(label, strategy, "declined")
                continue
            try:
                data = await operation()
            except Exception as exc:
                last_error = classify(exc)
                circuit_open = circuit_open or last_error.code is ErrorCode.CIRCUIT_OPEN
                _log_strategy(label, strategy, "failed", error_code=last_error.code.value)
                continue
            await _write_through(cache, config, data, clock)
            return succeed(strategy, data)

        raise TypeError(f"unknown recovery strategy: {strategy!r}")

    error = last_error or make_error(
        ErrorCode.SERVICE_UNAVAILABLE,
        "all recovery strategies failed",
        details={"attempted": list(attempted)},
    )
    log_event(
        _LOGGER,
        "recovery.failed",
        LogContext(component="recovery", resource=label),
        level=logging.ERROR,
        error_code=error.code.value,
        attempted=attempted,
    )
    if config.on_failure is not None:
        _notify_observer(label, "on_failure", config.on_failure, error, config.strategies)
    return RecoveryOutcome(success=False, error=error, attempted=tuple(attempted))


def with_recovery(
    func: Callable[..., Awaitable[T]],
    config: RecoveryConfig,
    *,
    cache: CacheStore | None = None,
    confirm: ConfirmationHandler | None = None,
) -> Callable[..., Awaitable[RecoveryOutcome[T]]]:
    """Wrap a coroutine function so each call runs through ``config``."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> RecoveryOutcome[T]:
        return await execute_recovery(lambda: func(*args, **kwargs), config, cache=cache, confirm=confirm)

    return wrapper


# --------------------------------------------------------------------------- #
# Presets (max ages in seconds)
# --------------------------------------------------------------------------- #
def standard_recovery(cache_key: str, fallback_value: Any = None) -> RecoveryConfig:
    return RecoveryConfig(
        strategies=(
            RetryStrategy(RETRY_PRESETS["standard"]),
            CacheFallback(cache_key, max_age=5 * 60),
            Degrade(fallback_value),
        ),
        name=cache_key,
    )


def aggressive_recovery(cache_key: str, fallback_value: Any = None) -> RecoveryConfig:
    return RecoveryConfig(
        strategies=(
            RetryStrategy(RETRY_PRESETS["aggressive"]),
            CacheFallback(cache_key, max_age=30 * 60),
            Degrade(fallback_value),
        ),
        name=cache_key,
    )


def interactive_recovery(
    cache_key: str,
    fallback_value: Any = None,
    prompt_message: str = "We couldn't reach the service. Would you like to try again?",
) -> RecoveryConfig:
    return RecoveryConfig(
        strategies=(
            RetryStrategy(RETRY_PRESETS["conservative"]),
            CacheFallback(cache_key, max_age=10 * 60),
            Prompt("Connection Error", prompt_message),
            Degrade(fallback_value),
        ),
        name=cache_key,
    )


def critical_recovery(cache_key: str) -> RecoveryConfig:
    """Critical operations never degrade; they escalate to the user instead."""
    return RecoveryConfig(
        strategies=(
            RetryStrategy(RETRY_PRESETS["aggressive"].with_overrides(max_retries=10)),
            CacheFallback(cache_key, max_age=60 * 60),
            Prompt("Critical Error", "This operation is required. Please check your connection."),
        ),
        name=cache_key,
    )


RECOVERY_PRESETS = {
    "standard": standard_recovery,
    "aggressive": aggressive_recovery,
    "interactive": interactive_recovery,
    "critical": critical_recovery,
}


__all__ = [
    "ConfirmationHandler",
    "RetryStrategy",
    "CacheFallback",
    "Degrade",
    "Prompt",
    "RecoveryStrategy",
    "RecoveryConfig",
    "RecoveryOutcome",
    "DEFAULT_CACHE_TTL",
    "remember",
    "execute_recovery",
    "with_recovery",
    "standard_recovery",
    "aggressive_recovery",
    "interactive_recovery",
    "critical_recovery",
    "RECOVERY_PRESETS",
]
