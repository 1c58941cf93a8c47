"""FastAPI surface for operating the resilience layer.

Routes
------
- ``GET /health``: liveness plus environment and store status.
- ``GET /breakers``: metrics snapshot for every registered breaker.
- ``POST /breakers/{name}/reset``: force one breaker CLOSED.
- ``POST /breakers/reset``: reset all breakers (``strict`` bucket).

Every request runs inside a bound request context (client headers,
``x-request-id`` correlation id, ``x-request-timeout`` deadline) and any
:class:`ResilienceError` becomes a JSON error body with a mapped status.
"""
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Depends, FastAPI, Request

from ..base.errors import ErrorCode, ResilienceError, raise_error
from ..config.defaults import SERVICE_DEFAULT_TITLE
from ..di import ResilienceContainer, build_container
from .app_parts.errors import resilience_error_handler
from .app_parts.request_scope import bind_request_context, rate_limit


def _container(request: Request) -> ResilienceContainer:
    return request.app.state.container


def create_app(container: Optional[ResilienceContainer] = None) -> FastAPI:
    """Build the service around ``container`` (a fresh one when omitted)."""
    container = container or build_container()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        container.configure_logging()
        try:
            yield
        finally:
            await container.aclose()

    app = FastAPI(title=SERVICE_DEFAULT_TITLE, version="0.1.0", lifespan=lifespan)
    app.state.container = container
    app.middleware("http")(bind_request_context)
    app.add_exception_handler(ResilienceError, resilience_error_handler)

    @app.get("/health")
    async def health(request: Request) -> Dict[str, Any]:
        c = _container(request)
        return {
            "ok": True,
            "environment": c.settings.environment,
            "rate_limiting": c.settings.is_production and c.counter_store() is not None,
            "breakers": len(c.breaker_registry()),
        }

    @app.get("/breakers", dependencies=[Depends(rate_limit("standard"))])
    async def list_breakers(request: Request) -> Dict[str, Any]:
        metrics = _container(request).breaker_registry().all_metrics()
        return {"ok": True, "breakers": {name: m.to_dict() for name, m in metrics.items()}}

    @app.post("/breakers/reset", dependencies=[Depends(rate_limit("strict"))])
    async def reset_all_breakers(request: Request) -> Dict[str, Any]:
        count = _container(request).breaker_registry().reset_all()
        return {"ok": True, "reset": count}

    @app.post("/breakers/{name}/reset", dependencies=[Depends(rate_limit("sensitive"))])
    async def reset_breaker(name: str, request: Request) -> Dict[str, Any]:
        if not _container(request).breaker_registry().reset(name):
            raise_error(ErrorCode.NOT_FOUND, f"no circuit breaker named '{name}'", details={"name": name})
        return {"ok": True, "reset": name}

    return app


__all__ = ["create_app"]
