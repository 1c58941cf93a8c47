"""Errors parts package public surface.

Re-exports individual error taxonomy components for optional direct imports.
Prefer importing from `resilience_layer.base.errors` for the stable surface.
"""

from .error_code import (
    ErrorCode,
    RETRYABLE_CODES,
    USER_MESSAGES,
    SUGGESTIONS,
    DEFAULT_SUGGESTION,
    is_retryable,
    suggestion_for,
    user_message_for,
)
from .canonical_error import CanonicalError, ResilienceError, make_error, raise_error
from .classification import classify, classify_exception, to_resilience_error

__all__ = [
    "ErrorCode",
    "RETRYABLE_CODES",
    "USER_MESSAGES",
    "is_retryable",
    "user_message_for",
    "suggestion_for",
    "SUGGESTIONS",
    "DEFAULT_SUGGESTION",
    "CanonicalError",
    "ResilienceError",
    "make_error",
    "raise_error",
    "classify",
    "classify_exception",
    "to_resilience_error",
]
