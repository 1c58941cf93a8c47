"""Unified error taxonomy public surface.

This module re-exports the one-concern-per-file implementations under
``resilience_layer.base.errors_parts`` to maintain a stable import path.
"""

from .errors_parts.error_code import (
    ErrorCode,
    RETRYABLE_CODES,
    USER_MESSAGES,
    SUGGESTIONS,
    DEFAULT_SUGGESTION,
    is_retryable,
    suggestion_for,
    user_message_for,
)
from .errors_parts.canonical_error import CanonicalError, ResilienceError, make_error, raise_error
from .errors_parts.classification import classify, classify_exception, to_resilience_error

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
