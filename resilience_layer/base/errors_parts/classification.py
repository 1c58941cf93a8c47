"""
Fault classification mapping arbitrary raised values to `CanonicalError`.

Implements HTTP status extraction, structured store-code inspection, and
message-based heuristics. The mapper is total and deterministic: every input
(exceptions, dict-shaped faults from data-store clients, bare strings, or
anything else) yields exactly one canonical value, and nothing is logged or
mutated along the way.
"""
from __future__ import annotations

import asyncio
import re
from typing import Any, Callable, Mapping, Optional, Tuple

from .canonical_error import CanonicalError, ResilienceError, make_error
from .error_code import ErrorCode

# Empty-result marker emitted by PostgREST-style data APIs.
_EMPTY_RESULT_CODES = frozenset({"PGRST116"})
# SQLSTATE insufficient_privilege.
_PRIVILEGE_CODES = frozenset({"42501"})
# SQLSTATE class 23 = integrity constraint violation.
_INTEGRITY_CLASS = "23"


def _field(raw: Any, name: str) -> Any:
    """Read ``name`` from an attribute or, for mappings, from a key."""
    if isinstance(raw, Mapping):
        return raw.get(name)
    return getattr(raw, name, None)


def _extract_status(raw: Any) -> Optional[int]:
    """Attempt to extract an HTTP status code from a fault.

    Supported shapes (checked in order): ``status_code``, ``status``,
    ``response.status_code``. Returns ``None`` if no valid status is found.
    """
    for attr in ("status_code", "status"):
        val = _field(raw, attr)
        if isinstance(val, int) and not isinstance(val, bool) and 100 <= val < 600:
            return val
    resp = _field(raw, "response")
    if resp is not None:
        sc = _field(resp, "status_code")
        if isinstance(sc, int) and not isinstance(sc, bool) and 100 <= sc < 600:
            return sc
    return None


def _extract_code(raw: Any) -> Optional[str]:
    """Return an opaque store/driver error code (e.g. SQLSTATE) if present."""
    for attr in ("code", "pgcode", "sqlstate"):
        val = _field(raw, attr)
        if isinstance(val, bool) or val is None:
            continue
        if isinstance(val, (str, int)) and str(val).strip():
            return str(val).strip()
    return None


def _extract_message(raw: Any) -> str:
    if isinstance(raw, str):
        return raw
    msg = _field(raw, "message")
    if isinstance(msg, str) and msg:
        return msg
    if isinstance(raw, BaseException):
        return str(raw) or type(raw).__name__
    return repr(raw)


def _any(patterns: Tuple[str, ...]) -> Callable[[str], bool]:
    rx = re.compile("|".join(patterns))
    return lambda text: rx.search(text) is not None


_NETWORK = _any(
    (
        r"network",
        r"fetch failed",
        r"failed to fetch",
        r"timeout",
        r"timed out",
        r"econnrefused",
        r"econnreset",
        r"enotfound",
        r"etimedout",
        r"socket hang up",
        r"connection (refused|reset|aborted|error)",
    )
)
_AUTH = _any(
    (
        r"unauthori[sz]ed",
        r"not authenticated",
        r"unauthenticated",
        r"\bjwt\b",
        r"(invalid|expired|missing|bad) (access |refresh )?token",
        r"token (has )?(expired|invalid|missing)",
        r"\bauth\b",
        r"authentication",
        r"invalid api key",
    )
)
_NOT_FOUND = _any((r"not found", r"does not exist", r"no rows", r"0 rows"))
_FORBIDDEN = _any((r"forbidden",))
_PERMISSION = _any((r"permission", r"denied", r"insufficient privilege"))
_RATE_LIMIT = _any((r"rate limit", r"too many requests", r"throttl", r"quota exceeded"))
_INTEGRITY = _any((r"violates", r"constraint", r"duplicate key", r"unique"))
_SERVER = _any(
    (
        r"internal server error",
        r"server error",
        r"internal error",
        r"bad gateway",
        r"service unavailable",
        r"\bserver\b",
        r"\binternal\b",
    )
)


def _classify_code(raw: Any) -> Tuple[ErrorCode, dict]:
    """Return the error code and diagnostics for a non-canonical fault."""
    status = _extract_status(raw)
    store_code = _extract_code(raw)
    text = _extract_message(raw).lower()
    details: dict = {}
    if status is not None:
        details["status"] = status
    if store_code is not None:
        details["source_code"] = store_code
    if isinstance(raw, BaseException):
        details["exception_type"] = type(raw).__name__

    if isinstance(raw, (TimeoutError, asyncio.TimeoutError, ConnectionError)) or status == 408 or _NETWORK(text):
        return ErrorCode.NETWORK, details
    if status == 401 or _AUTH(text):
        return ErrorCode.AUTH, details
    if status == 404 or store_code in _EMPTY_RESULT_CODES or _NOT_FOUND(text):
        return ErrorCode.NOT_FOUND, details
    if status == 403 or _FORBIDDEN(text):
        return ErrorCode.FORBIDDEN, details
    if store_code in _PRIVILEGE_CODES or _PERMISSION(text):
        return ErrorCode.PERMISSION_DENIED, details
    if status == 429 or _RATE_LIMIT(text):
        return ErrorCode.RATE_LIMITED, details
    is_integrity_code = store_code is not None and len(store_code) == 5 and store_code.startswith(_INTEGRITY_CLASS)
    if is_integrity_code or status in (400, 422) or _INTEGRITY(text):
        return ErrorCode.VALIDATION, details
    if status == 409:
        return ErrorCode.CONFLICT, details
    if status == 413:
        return ErrorCode.PAYLOAD_TOO_LARGE, details
    if (status is not None and status >= 500) or _SERVER(text):
        return ErrorCode.SERVER, details
    if store_code is not None:
        return ErrorCode.DATABASE, details
    return ErrorCode.UNKNOWN, details


def classify(raw: Any) -> CanonicalError:
    """Classify any raised fault into a :class:`CanonicalError`.

    Precedence:
        1. ``CanonicalError`` / ``ResilienceError`` passthrough.
        2. Network / timeout (exception type, HTTP 408, keywords).
        3. Auth markers (HTTP 401, token/unauthorized keywords).
        4. Not-found markers (HTTP 404, empty-result code, keywords).
        5. Forbidden (HTTP 403) then permission-denied (SQLSTATE 42501, keywords).
        6. Rate-limit markers (HTTP 429, keywords).
        7. Integrity / constraint violations (SQLSTATE class 23, 400/422).
        8. HTTP 409 / 413 map to CONFLICT / PAYLOAD_TOO_LARGE.
        9. 5xx or internal/server keywords.
        10. Remaining structured faults with an opaque code -> DATABASE.
        11. ``UNKNOWN`` fallback.
    """
    if isinstance(raw, CanonicalError):
        return raw
    if isinstance(raw, ResilienceError):
        return raw.error
    code, details = _classify_code(raw)
    return make_error(code, _extract_message(raw), details=details)


def classify_exception(exc: BaseException) -> ErrorCode:
    """Shortcut returning only the :class:`ErrorCode` of ``exc``."""
    return classify(exc).code


def to_resilience_error(raw: Any) -> ResilienceError:
    """Wrap ``raw`` in a :class:`ResilienceError` (identity for existing ones)."""
    if isinstance(raw, ResilienceError):
        return raw
    return ResilienceError(classify(raw))


__all__ = [
    "classify",
    "classify_exception",
    "to_resilience_error",
]
