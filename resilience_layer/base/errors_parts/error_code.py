"""
Normalized error codes (taxonomy).

Defines the closed `ErrorCode` enumeration used by every component of the
resilience layer, together with the fixed retryability flags and the static
user-facing message table. Values are lowercase snake_case and are considered
a stable public contract for logging and analytics.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, FrozenSet


class ErrorCode(str, Enum):
    """Enumerated normalized error codes representing failure categories."""

    NETWORK = "network"
    AUTH = "auth"
    FORBIDDEN = "forbidden"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    RATE_LIMITED = "rate_limited"
    DATABASE = "database"
    SERVER = "server"
    TIMEOUT = "timeout"
    SERVICE_UNAVAILABLE = "service_unavailable"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    CIRCUIT_OPEN = "circuit_open"
    INTERNAL = "internal"
    CONFLICT = "conflict"
    UNKNOWN = "unknown"


# CIRCUIT_OPEN must stay out of this set: retrying against an open breaker only
# spins until the cooldown elapses.
RETRYABLE_CODES: FrozenSet[ErrorCode] = frozenset(
    {
        ErrorCode.NETWORK,
        ErrorCode.RATE_LIMITED,
        ErrorCode.SERVER,
        ErrorCode.DATABASE,
    }
)


USER_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.NETWORK: "Unable to connect. Please check your internet connection.",
    ErrorCode.AUTH: "Please sign in to continue.",
    ErrorCode.FORBIDDEN: "You don't have permission to do this.",
    ErrorCode.VALIDATION: "Some of the submitted information is invalid. Please review it and try again.",
    ErrorCode.NOT_FOUND: "The item you're looking for doesn't exist.",
    ErrorCode.PERMISSION_DENIED: "You don't have permission to access this resource.",
    ErrorCode.RATE_LIMITED: "Too many requests. Please wait a moment and try again.",
    ErrorCode.DATABASE: "A database error occurred. Please try again.",
    ErrorCode.SERVER: "The server encountered a problem. Please try again.",
    ErrorCode.TIMEOUT: "The request timed out. Please try again.",
    ErrorCode.SERVICE_UNAVAILABLE: "The service is temporarily unavailable. Please try again later.",
    ErrorCode.PAYLOAD_TOO_LARGE: "The request is too large. Please reduce the size and try again.",
    ErrorCode.CIRCUIT_OPEN: "This service is temporarily unavailable. Please try again shortly.",
    ErrorCode.INTERNAL: "Something went wrong. Please try again later.",
    ErrorCode.CONFLICT: "This item already exists or was changed by someone else.",
    ErrorCode.UNKNOWN: "Something went wrong. Please try again later.",
}


# Next-step hints shown alongside the user message; codes without an entry get
# the generic hint.
SUGGESTIONS: Dict[ErrorCode, str] = {
    ErrorCode.AUTH: "Try signing in again.",
    ErrorCode.NETWORK: "Check your internet connection.",
    ErrorCode.TIMEOUT: "The server took too long to respond. Try again.",
    ErrorCode.SERVICE_UNAVAILABLE: "The service is temporarily down. Try again in a few minutes.",
    ErrorCode.PAYLOAD_TOO_LARGE: "The data you sent is too large. Try reducing the file size.",
    ErrorCode.CIRCUIT_OPEN: "This service is temporarily unavailable. Try again shortly.",
    ErrorCode.RATE_LIMITED: "You're making requests too quickly. Wait a moment and try again.",
    ErrorCode.VALIDATION: "Check the highlighted fields and submit again.",
}

DEFAULT_SUGGESTION = "Please try again later."


def is_retryable(code: ErrorCode) -> bool:
    """Return the fixed retryability flag for ``code``."""
    return code in RETRYABLE_CODES


def user_message_for(code: ErrorCode) -> str:
    """Return the static user-facing message for ``code``."""
    return USER_MESSAGES.get(code, USER_MESSAGES[ErrorCode.UNKNOWN])


def suggestion_for(code: ErrorCode) -> str:
    return SUGGESTIONS.get(code, DEFAULT_SUGGESTION)


__all__ = [
    "ErrorCode",
    "RETRYABLE_CODES",
    "USER_MESSAGES",
    "SUGGESTIONS",
    "DEFAULT_SUGGESTION",
    "is_retryable",
    "user_message_for",
    "suggestion_for",
]
