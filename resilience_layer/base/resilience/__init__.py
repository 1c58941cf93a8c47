"""Fault-tolerance primitives: retry, circuit breaking, and recovery chains."""

from .breaker_registry import CircuitBreakerRegistry
from .circuit_breaker import (
    DEFAULT_BREAKER_CONFIG,
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerMetrics,
    CircuitState,
)
from .recovery import (
    CacheFallback,
    Degrade,
    Prompt,
    RecoveryConfig,
    RecoveryOutcome,
    RetryStrategy,
    aggressive_recovery,
    critical_recovery,
    execute_recovery,
    interactive_recovery,
    remember,
    standard_recovery,
    with_recovery,
)
from .retry import DEFAULT_RETRY_POLICY, RETRY_PRESETS, RetryPolicy, compute_delay, retry, with_retry

__all__ = [
    "CircuitBreakerRegistry",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerMetrics",
    "CircuitState",
    "DEFAULT_BREAKER_CONFIG",
    "RetryPolicy",
    "RETRY_PRESETS",
    "DEFAULT_RETRY_POLICY",
    "compute_delay",
    "retry",
    "with_retry",
    "RetryStrategy",
    "CacheFallback",
    "Degrade",
    "Prompt",
    "RecoveryConfig",
    "RecoveryOutcome",
    "execute_recovery",
    "with_recovery",
    "remember",
    "standard_recovery",
    "aggressive_recovery",
    "interactive_recovery",
    "critical_recovery",
]
