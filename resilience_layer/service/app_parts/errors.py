"""Mapping of canonical errors onto HTTP responses.

Only presentation-safe fields leave the process: the code, the user message,
the retryable flag, and the correlation id. Diagnostic messages and details
stay in the logs, except ``retry_after_seconds`` which becomes a header.
"""
from __future__ import annotations

import logging
from typing import Dict

from fastapi import Request
from fastapi.responses import JSONResponse

from ...base.errors import ErrorCode, ResilienceError
from ...base.logging import LogContext, get_logger, log_event

_LOGGER = get_logger("resilience.service")

STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.AUTH: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.PERMISSION_DENIED: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.VALIDATION: 422,
    ErrorCode.CONFLICT: 409,
    ErrorCode.PAYLOAD_TOO_LARGE: 413,
    ErrorCode.RATE_LIMITED: 429,
    ErrorCode.TIMEOUT: 504,
    ErrorCode.SERVICE_UNAVAILABLE: 503,
    ErrorCode.CIRCUIT_OPEN: 503,
}


def http_status_for(code: ErrorCode) -> int:
    return STATUS_BY_CODE.get(code, 500)


async def resilience_error_handler(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, ResilienceError)  # nosec B101 - registered for ResilienceError only
    error = exc.error
    status = http_status_for(error.code)
    log_event(
        _LOGGER,
        "http.error",
        LogContext(component="service", resource=request.url.path, correlation_id=error.correlation_id),
        level=logging.ERROR if status >= 500 else logging.WARNING,
        status=status,
        code=error.code.value,
        message=error.message,
    )
    headers = {"x-request-id": error.correlation_id}
    retry_after = error.details.get("retry_after_seconds")
    if retry_after is None and error.code is ErrorCode.CIRCUIT_OPEN:
        cooldown = error.details.get("remaining_cooldown")
        if cooldown is not None:
            retry_after = max(1, int(round(cooldown)))
    if retry_after is not None:
        headers["Retry-After"] = str(retry_after)
    return JSONResponse(status_code=status, content={"ok": False, "error": error.public_dict()}, headers=headers)


__all__ = ["STATUS_BY_CODE", "http_status_for", "resilience_error_handler"]
