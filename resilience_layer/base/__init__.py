"""
Resilience Base Package

Framework-free core of the resilience layer:
- Errors: closed taxonomy, canonical error value, classifier
- Results: ``ActionResult`` success/failure envelope
- Context: per-request headers, correlation id, and deadline
- Resilience: retry executor, circuit breakers, recovery chains
- Rate limiting: identity-based fixed-window limiter
- Interfaces: cache and counter store protocols

Nothing under ``base`` imports the HTTP service layer or a concrete store
client; backends are injected by the composition root.
"""

from .context import Deadline, RequestContext, current_context, request_context
from .errors import CanonicalError, ErrorCode, ResilienceError, classify, make_error
from .interfaces import CacheStore, CounterStore, WindowCount
from .result import ActionResult, Failure, Success, capture, fail, ok, validate_with_schema, with_error_handling

__all__ = [
    "Deadline",
    "RequestContext",
    "current_context",
    "request_context",
    "CanonicalError",
    "ErrorCode",
    "ResilienceError",
    "classify",
    "make_error",
    "CacheStore",
    "CounterStore",
    "WindowCount",
    "ActionResult",
    "Success",
    "Failure",
    "ok",
    "fail",
    "capture",
    "with_error_handling",
    "validate_with_schema",
]
