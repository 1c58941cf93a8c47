"""Uniform success/failure envelope threaded through calls.

`ActionResult[T]` is a tagged union of :class:`Success` and :class:`Failure`.
Both carry a ``success`` discriminator so callers can branch without
``isinstance``; exactly one of ``data`` / ``error`` exists on any value.

``capture`` and ``with_error_handling`` convert raised faults into
``Failure(CanonicalError)`` via the classifier, so no unclassified exception
crosses a component boundary. ``validate_with_schema`` does the same for
pydantic validation, collecting messages per field path.
"""
from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, List, Literal, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from .errors import CanonicalError, ErrorCode, ResilienceError, classify, make_error
from .logging import LogContext, get_logger, log_event

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)

_LOGGER = get_logger("resilience.result")


@dataclass(frozen=True)
class Success(Generic[T]):
    data: T
    success: Literal[True] = True

    def unwrap(self) -> T:
        return self.data


@dataclass(frozen=True)
class Failure:
    error: CanonicalError
    success: Literal[False] = False

    def unwrap(self) -> Any:
        """Raise the carried error as a :class:`ResilienceError`."""
        raise ResilienceError(self.error)


ActionResult = Union[Success[T], Failure]


def ok(data: T) -> Success[T]:
    return Success(data)


def fail(error: CanonicalError | ErrorCode, message: str | None = None) -> Failure:
    """Build a :class:`Failure` from a canonical error or a bare code."""
    if isinstance(error, ErrorCode):
        error = make_error(error, message)
    return Failure(error)


def _log_failure(error: CanonicalError, operation: str | None) -> None:
    level = logging.ERROR if error.code in (ErrorCode.SERVER, ErrorCode.INTERNAL, ErrorCode.UNKNOWN) else logging.WARNING
    log_event(
        _LOGGER,
        "error.classified",
        LogContext(component="result", resource=operation, correlation_id=error.correlation_id),
        level=level,
        code=error.code.value,
        retryable=error.retryable,
        message=error.message,
    )


async def capture(operation: Callable[[], Awaitable[T]], *, name: str | None = None) -> ActionResult[T]:
    """Await ``operation`` and wrap its outcome in an :class:`ActionResult`."""
    try:
        return Success(await operation())
    except Exception as exc:  # every fault becomes a classified Failure
        error = classify(exc)
        _log_failure(error, name)
        return Failure(error)


def with_error_handling(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[ActionResult[T]]]:
    """Decorate a coroutine function so it returns an :class:`ActionResult`."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> ActionResult[T]:
        return await capture(lambda: func(*args, **kwargs), name=func.__qualname__)

    return wrapper


def format_validation_errors(exc: ValidationError) -> Dict[str, List[str]]:
    """Group pydantic error messages by dotted field path (``value`` for the root)."""
    fields: Dict[str, List[str]] = {}
    for issue in exc.errors():
        path = ".".join(str(part) for part in issue.get("loc", ())) or "value"
        fields.setdefault(path, []).append(issue.get("msg", "invalid value"))
    return fields


def validate_with_schema(model: Type[M], data: Any) -> ActionResult[M]:
    """Validate ``data`` into ``model``.

    Returns ``Success(instance)`` or ``Failure(VALIDATION)`` whose
    ``details["fields"]`` maps each offending path to its messages.
    """
    try:
        return Success(model.model_validate(data))
    except ValidationError as exc:
        return Failure(
            make_error(
                ErrorCode.VALIDATION,
                "Validation failed",
                details={"fields": format_validation_errors(exc)},
            )
        )


__all__ = [
    "ActionResult",
    "Success",
    "Failure",
    "ok",
    "fail",
    "capture",
    "with_error_handling",
    "format_validation_errors",
    "validate_with_schema",
]
