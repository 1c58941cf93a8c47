"""Per-request context binding and rate-limit dependencies."""
from __future__ import annotations

import math
from typing import Awaitable, Callable, Optional

from fastapi import Request, Response

from ...base.context import request_context
from ...base.rate_limit import RateLimitDecision
from ...config.defaults import REQUEST_TIMEOUT_MAX_SECONDS

REQUEST_ID_HEADER = "x-request-id"
REQUEST_TIMEOUT_HEADER = "x-request-timeout"


def _timeout_from(request: Request, default: float) -> float:
    raw = request.headers.get(REQUEST_TIMEOUT_HEADER)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    if not math.isfinite(value) or value <= 0:
        return default
    return min(value, REQUEST_TIMEOUT_MAX_SECONDS)


async def bind_request_context(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """HTTP middleware: bind headers, correlation id, and deadline for the call."""
    container = request.app.state.container
    timeout = _timeout_from(request, container.settings.request_timeout_seconds)
    incoming_id: Optional[str] = request.headers.get(REQUEST_ID_HEADER) or None
    with request_context(dict(request.headers), correlation_id=incoming_id, timeout_seconds=timeout) as ctx:
        response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = ctx.correlation_id or ""
    return response


def rate_limit(bucket: str = "standard") -> Callable[[Request, Response], Awaitable[RateLimitDecision]]:
    """Dependency factory enforcing ``bucket`` for the caller of a route."""

    async def dependency(request: Request, response: Response) -> RateLimitDecision:
        limiter = request.app.state.container.rate_limiter()
        decision = await limiter.require_limit(bucket)
        response.headers.update(decision.headers())
        return decision

    return dependency


__all__ = ["REQUEST_ID_HEADER", "REQUEST_TIMEOUT_HEADER", "bind_request_context", "rate_limit"]
