"""Named circuit breaker registry.

One registry is created by the composition root and injected wherever a
breaker is needed; breakers are created lazily per dependency name and live
for the registry's lifetime.
"""
from __future__ import annotations

import time
from threading import Lock
from typing import Callable, Dict, List, Optional

from .circuit_breaker import (
    DEFAULT_BREAKER_CONFIG,
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerMetrics,
    StateChangeCallback,
)


class CircuitBreakerRegistry:
    """Thread-safe name -> :class:`CircuitBreaker` map."""

    def __init__(
        self,
        default_config: CircuitBreakerConfig = DEFAULT_BREAKER_CONFIG,
        *,
        on_state_change: StateChangeCallback | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_config = default_config
        self._on_state_change = on_state_change
        self._clock = clock
        self._lock = Lock()
        self._breakers: Dict[str, CircuitBreaker] = {}

    @property
    def default_config(self) -> CircuitBreakerConfig:
        return self._default_config

    def get_or_create(self, name: str, config: Optional[CircuitBreakerConfig] = None) -> CircuitBreaker:
        """Return the breaker for ``name``, creating it on first use.

        ``config`` only applies on creation; an existing breaker keeps the
        configuration it was created with.
        """
        with self._lock:
            breaker = self._breakers.get(name)
            if breaker is None:
                breaker = CircuitBreaker(
                    name,
                    config or self._default_config,
                    on_state_change=self._on_state_change,
                    clock=self._clock,
                )
                self._breakers[name] = breaker
            return breaker

    def get(self, name: str) -> Optional[CircuitBreaker]:
        with self._lock:
            return self._breakers.get(name)

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._breakers)

    def all_metrics(self) -> Dict[str, CircuitBreakerMetrics]:
        with self._lock:
            breakers = list(self._breakers.values())
        return {b.name: b.metrics() for b in breakers}

    def reset(self, name: str) -> bool:
        """Reset one breaker; returns ``False`` when ``name`` is unknown."""
        breaker = self.get(name)
        if breaker is None:
            return False
        breaker.reset()
        return True

    def reset_all(self) -> int:
        with self._lock:
            breakers = list(self._breakers.values())
        for breaker in breakers:
            breaker.reset()
        return len(breakers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._breakers)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._breakers


__all__ = ["CircuitBreakerRegistry"]
