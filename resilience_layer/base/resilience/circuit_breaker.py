"""Circuit breaker guarding a single named dependency.

State machine
-------------
``CLOSED`` passes calls through; ``OPEN`` fails fast without invoking the
operation; ``HALF_OPEN`` admits a bounded number of recovery probes.

- CLOSED -> OPEN when consecutive failures reach ``failure_threshold``.
- OPEN -> HALF_OPEN on the first admission check after ``reset_timeout``
  seconds since the last failure; that admission is probe #1.
- HALF_OPEN -> OPEN on any probe failure.
- HALF_OPEN -> CLOSED once ``half_open_requests`` probes succeed.
- HALF_OPEN refuses attempts beyond ``half_open_requests``; refused attempts
  still count toward ``half_open_attempts``.

Concurrency
-----------
All counters live behind one ``threading.Lock`` and every
"increment -> check threshold -> transition" sequence runs inside a single
critical section with no ``await``, so it is atomic for threads and asyncio
tasks alike. State-change callbacks and log events fire after the lock is
released.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, TypeVar

from ..errors import ErrorCode, ResilienceError, classify, make_error
from ..logging import LogContext, get_logger, log_event

T = TypeVar("T")

_LOGGER = get_logger("resilience.breaker")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


StateChangeCallback = Callable[[str, CircuitState, CircuitState], None]


@dataclass(frozen=True)
class CircuitBreakerConfig:
    """Thresholds for one breaker (durations in seconds)."""

    failure_threshold: int = 5
    reset_timeout: float = 30.0
    half_open_requests: int = 3

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.reset_timeout < 0:
            raise ValueError("reset_timeout must be >= 0")
        if self.half_open_requests < 1:
            raise ValueError("half_open_requests must be >= 1")


DEFAULT_BREAKER_CONFIG = CircuitBreakerConfig()


@dataclass
class CircuitBreakerState:
    """Mutable per-breaker record; only mutated under the owning breaker's lock."""

    name: str
    state: CircuitState = CircuitState.CLOSED
    consecutive_failures: int = 0
    half_open_attempts: int = 0
    half_open_successes: int = 0
    last_failure_timestamp: Optional[float] = None
    total_requests: int = 0
    total_successes: int = 0
    total_failures: int = 0


@dataclass(frozen=True)
class CircuitBreakerMetrics:
    """Immutable snapshot of a breaker's counters."""

    name: str
    state: CircuitState
    total_requests: int
    total_successes: int
    total_failures: int
    consecutive_failures: int
    half_open_attempts: int
    half_open_successes: int
    last_failure_timestamp: Optional[float]
    remaining_cooldown: float
    failure_rate: float = field(default=0.0)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "state": self.state.value,
            "total_requests": self.total_requests,
            "total_successes": self.total_successes,
            "total_failures": self.total_failures,
            "consecutive_failures": self.consecutive_failures,
            "half_open_attempts": self.half_open_attempts,
            "half_open_successes": self.half_open_successes,
            "last_failure_timestamp": self.last_failure_timestamp,
            "remaining_cooldown": self.remaining_cooldown,
            "failure_rate": self.failure_rate,
        }


class CircuitBreaker:
    """Named finite-state guard against a failing dependency."""

    def __init__(
        self,
        name: str,
        config: CircuitBreakerConfig = DEFAULT_BREAKER_CONFIG,
        *,
        on_state_change: StateChangeCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._name = name
        self._config = config
        self._on_state_change = on_state_change
        self._clock = clock
        self._lock = Lock()
        self._state = CircuitBreakerState(name=name)

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #
    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> CircuitBreakerConfig:
        return self._config

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state.state

    def remaining_cooldown(self) -> float:
        """Seconds until an OPEN breaker will admit a probe (0 otherwise)."""
        with self._lock:
            return self._remaining_cooldown_locked()

    def _remaining_cooldown_locked(self) -> float:
        st = self._state
        if st.state is not CircuitState.OPEN or st.last_failure_timestamp is None:
            return 0.0
        elapsed = self._clock() - st.last_failure_timestamp
        return max(0.0, self._config.reset_timeout - elapsed)

    def metrics(self) -> CircuitBreakerMetrics:
        with self._lock:
            st = self._state
            return CircuitBreakerMetrics(
                name=st.name,
                state=st.state,
                total_requests=st.total_requests,
                total_successes=st.total_successes,
                total_failures=st.total_failures,
                consecutive_failures=st.consecutive_failures,
                half_open_attempts=st.half_open_attempts,
                half_open_successes=st.half_open_successes,
                last_failure_timestamp=st.last_failure_timestamp,
                remaining_cooldown=self._remaining_cooldown_locked(),
                failure_rate=(st.total_failures / st.total_requests) if st.total_requests else 0.0,
            )

    # ------------------------------------------------------------------ #
    # Transitions (callers hold the lock; notifications are returned)
    # ------------------------------------------------------------------ #
    def _transition_locked(self, new_state: CircuitState) -> Tuple[CircuitState, CircuitState] | None:
        old_state = self._state.state
        if old_state is new_state:
            return None
        self._state.state = new_state
        return old_state, new_state

    def _notify(self, change: Tuple[CircuitState, CircuitState] | None) -> None:
        if change is None:
            return
        old_state, new_state = change
        log_event(
            _LOGGER,
            "breaker.transition",
            LogContext(component="circuit_breaker", resource=self._name),
            level=logging.WARNING if new_state is CircuitState.OPEN else logging.INFO,
            from_state=old_state.value,
            to_state=new_state.value,
        )
        if self._on_state_change is not None:
            try:
                self._on_state_change(self._name, old_state, new_state)
            except Exception:  # observer faults must not break the state machine
                _LOGGER.exception("state change callback failed for breaker %s", self._name)

    # ------------------------------------------------------------------ #
    # Contract
    # ------------------------------------------------------------------ #
    def can_proceed(self) -> bool:
        """Admission check; counts the request and may move OPEN -> HALF_OPEN."""
        change = None
        with self._lock:
            st = self._state
            st.total_requests += 1
            if st.state is CircuitState.CLOSED:
                allowed = True
            elif st.state is CircuitState.OPEN:
                elapsed = (
                    self._clock() - st.last_failure_timestamp
                    if st.last_failure_timestamp is not None
                    else float("inf")
                )
                if elapsed >= self._config.reset_timeout:
                    change = self._transition_locked(CircuitState.HALF_OPEN)
                    st.half_open_attempts = 1
                    st.half_open_successes = 0
                    allowed = True
                else:
                    allowed = False
            else:
                st.half_open_attempts += 1
                allowed = st.half_open_attempts <= self._config.half_open_requests
        self._notify(change)
        return allowed

    def record_success(self) -> None:
        change = None
        with self._lock:
            st = self._state
            st.total_successes += 1
            if st.state is CircuitState.CLOSED:
                st.consecutive_failures = 0
            elif st.state is CircuitState.HALF_OPEN:
                st.half_open_successes += 1
                if st.half_open_successes >= self._config.half_open_requests:
                    change = self._transition_locked(CircuitState.CLOSED)
                    st.consecutive_failures = 0
                    st.half_open_attempts = 0
                    st.half_open_successes = 0
            # OPEN: a late success from a call admitted before opening is ignored
        self._notify(change)

    def record_failure(self) -> None:
        change = None
        with self._lock:
            st = self._state
            st.total_failures += 1
            st.last_failure_timestamp = self._clock()
            if st.state is CircuitState.CLOSED:
                st.consecutive_failures += 1
                if st.consecutive_failures >= self._config.failure_threshold:
                    change = self._transition_locked(CircuitState.OPEN)
            elif st.state is CircuitState.HALF_OPEN:
                st.consecutive_failures += 1
                change = self._transition_locked(CircuitState.OPEN)
        self._notify(change)

    def open_error(self) -> ResilienceError:
        """Build the CIRCUIT_OPEN error carrying the remaining cooldown."""
        cooldown = self.remaining_cooldown()
        return ResilienceError(
            make_error(
                ErrorCode.CIRCUIT_OPEN,
                f"Circuit '{self._name}' is open. Retry in {cooldown:.3f}s",
                details={"circuit": self._name, "remaining_cooldown": cooldown},
            )
        )

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` under breaker protection.

        Raises ``ResilienceError(CIRCUIT_OPEN)`` without invoking ``operation``
        when admission is refused; any failure of ``operation`` is recorded and
        re-raised as a classified :class:`ResilienceError`.
        """
        if not self.can_proceed():
            error = self.open_error()
            log_event(
                _LOGGER,
                "breaker.rejected",
                LogContext(component="circuit_breaker", resource=self._name),
                remaining_cooldown=error.error.details.get("remaining_cooldown"),
            )
            raise error
        try:
            result = await operation()
        except BaseException as exc:
            # cancellation counts as a failure
            self.record_failure()
            if isinstance(exc, ResilienceError) or not isinstance(exc, Exception):
                raise
            raise ResilienceError(classify(exc)) from exc
        self.record_success()
        return result

    def call(self, operation: Callable[[], T]) -> T:
        """Synchronous counterpart of :meth:`execute`."""
        if not self.can_proceed():
            raise self.open_error()
        try:
            result = operation()
        except BaseException as exc:
            self.record_failure()
            if isinstance(exc, ResilienceError) or not isinstance(exc, Exception):
                raise
            raise ResilienceError(classify(exc)) from exc
        self.record_success()
        return result

    # ------------------------------------------------------------------ #
    # Administration
    # ------------------------------------------------------------------ #
    def reset(self) -> None:
        """Force CLOSED and clear all counters (administrative escape hatch)."""
        with self._lock:
            change = self._transition_locked(CircuitState.CLOSED)
            self._state = CircuitBreakerState(name=self._name)
        self._notify(change)

    def force_state(self, new_state: CircuitState) -> None:
        """Force ``new_state`` (testing/admin). Forcing OPEN starts a fresh cooldown."""
        with self._lock:
            change = self._transition_locked(new_state)
            st = self._state
            if new_state is CircuitState.CLOSED:
                st.consecutive_failures = 0
            elif new_state is CircuitState.OPEN:
                st.last_failure_timestamp = self._clock()
            else:
                st.half_open_attempts = 0
                st.half_open_successes = 0
        self._notify(change)

    def __repr__(self) -> str:  # pragma: no cover - introspection aid
        return f"CircuitBreaker(name={self._name!r}, state={self.state.value})"


__all__ = [
    "CircuitState",
    "CircuitBreakerConfig",
    "DEFAULT_BREAKER_CONFIG",
    "CircuitBreakerState",
    "CircuitBreakerMetrics",
    "CircuitBreaker",
    "StateChangeCallback",
]
