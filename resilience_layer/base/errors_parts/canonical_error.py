"""
Canonical error value and the exception that carries it.

`CanonicalError` is the immutable, classified failure value threaded through
results, logs, and HTTP responses. `ResilienceError` is the single exception
type raised by the library's public operations; it wraps one canonical value
so callers can branch exhaustively on ``err.code``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, NoReturn, Optional

from ..context import current_correlation_id
from .error_code import ErrorCode, is_retryable, suggestion_for, user_message_for


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CanonicalError:
    """Represents a classified failure with a normalized error code.

    Attributes:
        code: Normalized :class:`ErrorCode` classification for the failure.
        message: Diagnostic message suitable for logs (never shown to users).
        user_message: Safe, presentation-ready message from the static table.
        retryable: Fixed retryability flag of ``code``.
        details: Optional structured diagnostics (cooldowns, retry-after, ...).
        timestamp: UTC time the error was classified.
        correlation_id: Request correlation id for log stitching.
    """

    code: ErrorCode
    message: str
    user_message: str
    retryable: bool
    details: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)
    correlation_id: str = field(default_factory=current_correlation_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "user_message": self.user_message,
            "retryable": self.retryable,
            "details": dict(self.details),
            "timestamp": self.timestamp.isoformat(),
            "correlation_id": self.correlation_id,
        }

    def public_dict(self) -> Dict[str, Any]:
        """Subset that is safe to hand to presentation layers."""
        return {
            "code": self.code.value,
            "message": self.user_message,
            "suggestion": suggestion_for(self.code),
            "retryable": self.retryable,
            "correlation_id": self.correlation_id,
        }

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.code.value}: {self.message}"


class ResilienceError(Exception):
    """Exception raised across component boundaries, wrapping a `CanonicalError`."""

    def __init__(self, error: CanonicalError) -> None:
        super().__init__(error.message)
        self.error = error

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def retryable(self) -> bool:
        return self.error.retryable

    @property
    def user_message(self) -> str:
        return self.error.user_message

    def __str__(self) -> str:
        return str(self.error)


def make_error(
    code: ErrorCode,
    message: Optional[str] = None,
    *,
    details: Optional[Mapping[str, Any]] = None,
    user_message: Optional[str] = None,
    correlation_id: Optional[str] = None,
) -> CanonicalError:
    """Build a canonical error using the fixed table for flags and user text."""
    return CanonicalError(
        code=code,
        message=message or code.value.replace("_", " "),
        user_message=user_message or user_message_for(code),
        retryable=is_retryable(code),
        details=dict(details or {}),
        correlation_id=correlation_id or current_correlation_id(),
    )


def raise_error(
    code: ErrorCode,
    message: Optional[str] = None,
    *,
    details: Optional[Mapping[str, Any]] = None,
    cause: Optional[BaseException] = None,
) -> NoReturn:
    """Raise a :class:`ResilienceError` for ``code`` (optionally chained)."""
    raise ResilienceError(make_error(code, message, details=details)) from cause


__all__ = ["CanonicalError", "ResilienceError", "make_error", "raise_error"]
