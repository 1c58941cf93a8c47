"""resilience_layer package

In-process fault tolerance for request-handling code.

Purpose:
    Give callers one consistent way to classify failures, retry transient
    faults, stop hammering unhealthy dependencies, recover with cached or
    degraded data, and throttle abusive callers.

Public API (re-exported):
    - Version: ``__version__``
    - Errors: :class:`ErrorCode`, :class:`CanonicalError`,
      :class:`ResilienceError`, :func:`classify`
    - Results: ``ActionResult``, :func:`capture`, :func:`with_error_handling`
    - Retry: :class:`RetryPolicy`, :func:`with_retry`, :func:`retry`
    - Breakers: :class:`CircuitBreaker`, :class:`CircuitBreakerRegistry`
    - Recovery: :func:`execute_recovery` and the preset builders
    - Rate limiting: :class:`RateLimiter`
    - Composition: :func:`build_container`

Notes:
    - The FastAPI surface lives in ``resilience_layer.service.app`` and is not
      imported here.
"""

from .base.context import Deadline, request_context
from .base.errors import CanonicalError, ErrorCode, ResilienceError, classify, make_error
from .base.rate_limit import RateLimitDecision, RateLimiter
from .base.resilience import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitBreakerRegistry,
    CircuitState,
    RecoveryConfig,
    RecoveryOutcome,
    RetryPolicy,
    aggressive_recovery,
    critical_recovery,
    execute_recovery,
    interactive_recovery,
    retry,
    standard_recovery,
    with_recovery,
    with_retry,
)
from .base.result import ActionResult, Failure, Success, capture, with_error_handling
from .di import ResilienceContainer, build_container

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Deadline",
    "request_context",
    "ErrorCode",
    "CanonicalError",
    "ResilienceError",
    "classify",
    "make_error",
    "ActionResult",
    "Success",
    "Failure",
    "capture",
    "with_error_handling",
    "RetryPolicy",
    "with_retry",
    "retry",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerRegistry",
    "CircuitState",
    "RecoveryConfig",
    "RecoveryOutcome",
    "execute_recovery",
    "with_recovery",
    "standard_recovery",
    "aggressive_recovery",
    "interactive_recovery",
    "critical_recovery",
    "RateLimiter",
    "RateLimitDecision",
    "ResilienceContainer",
    "build_container",
]
