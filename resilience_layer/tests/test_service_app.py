"""HTTP surface: request context middleware, error mapping, and admin routes."""

from __future__ import annotations

from fastapi.testclient import TestClient

from resilience_layer.base.context import current_context
from resilience_layer.base.errors import ErrorCode, ResilienceError, make_error
from resilience_layer.config import ResilienceSettings
from resilience_layer.di import ResilienceContainer
from resilience_layer.service.app import create_app
from resilience_layer.service.app_parts.errors import http_status_for
from resilience_layer.stores.memory import InMemoryCacheStore, InMemoryCounterStore


def _client(environment: str = "production") -> tuple[TestClient, ResilienceContainer]:
    container = ResilienceContainer(
        ResilienceSettings(environment=environment),
        counter_store=InMemoryCounterStore(clock=lambda: 1_000.0),
        cache_store=InMemoryCacheStore(),
    )
    return TestClient(create_app(container)), container


def test_health_echoes_request_id():
    client, _ = _client()
    resp = client.get("/health", headers={"x-request-id": "rid-1"})
    assert resp.status_code == 200  # nosec B101
    assert resp.headers["x-request-id"] == "rid-1"  # nosec B101
    body = resp.json()
    assert body["ok"] is True and body["rate_limiting"] is True  # nosec B101


def test_breakers_listing_and_reset():
    client, container = _client()
    breaker = container.breaker_registry().get_or_create("payments")
    for _ in range(5):
        breaker.record_failure()
    listed = client.get("/breakers").json()["breakers"]
    assert listed["payments"]["state"] == "open"  # nosec B101
    resp = client.post("/breakers/payments/reset")
    assert resp.status_code == 200 and resp.json()["reset"] == "payments"  # nosec B101
    assert client.get("/breakers").json()["breakers"]["payments"]["state"] == "closed"  # nosec B101


def test_unknown_breaker_maps_to_404_with_correlation_id():
    client, _ = _client()
    resp = client.post("/breakers/nope/reset", headers={"x-request-id": "rid-404"})
    assert resp.status_code == 404  # nosec B101
    error = resp.json()["error"]
    assert error["code"] == "not_found"  # nosec B101
    assert error["correlation_id"] == "rid-404"  # nosec B101
    assert "nope" not in error["message"]  # nosec B101


def test_strict_bucket_limits_reset_all():
    client, _ = _client()
    statuses = [client.post("/breakers/reset").status_code for _ in range(4)]
    assert statuses == [200, 200, 200, 429]  # nosec B101
    resp = client.post("/breakers/reset")
    assert resp.json()["error"]["code"] == "rate_limited"  # nosec B101
    assert int(resp.headers["Retry-After"]) >= 1  # nosec B101


def test_limits_are_not_enforced_outside_production():
    client, _ = _client(environment="development")
    statuses = [client.post("/breakers/reset").status_code for _ in range(5)]
    assert statuses == [200] * 5  # nosec B101


def test_circuit_open_maps_to_503_with_retry_after():
    client, _ = _client()

    @client.app.get("/guarded")
    async def guarded():
        raise ResilienceError(make_error(ErrorCode.CIRCUIT_OPEN, "open", details={"remaining_cooldown": 12.4}))

    resp = client.get("/guarded")
    assert resp.status_code == 503  # nosec B101
    assert resp.headers["Retry-After"] == "12"  # nosec B101
    assert resp.json()["error"]["retryable"] is False  # nosec B101


def test_request_timeout_header_binds_deadline():
    client, _ = _client()

    @client.app.get("/budget")
    async def budget():
        deadline = current_context().deadline
        return {"remaining": deadline.remaining() if deadline else None}

    remaining = client.get("/budget", headers={"x-request-timeout": "5"}).json()["remaining"]
    assert 0 < remaining <= 5  # nosec B101
    default = client.get("/budget", headers={"x-request-timeout": "junk"}).json()["remaining"]
    assert 5 < default <= 30  # nosec B101


def test_status_mapping_table():
    assert http_status_for(ErrorCode.AUTH) == 401  # nosec B101
    assert http_status_for(ErrorCode.PERMISSION_DENIED) == 403  # nosec B101
    assert http_status_for(ErrorCode.VALIDATION) == 422  # nosec B101
    assert http_status_for(ErrorCode.TIMEOUT) == 504  # nosec B101
    assert http_status_for(ErrorCode.DATABASE) == 500  # nosec B101


def test_non_finite_request_timeout_falls_back_to_default():
    client, _ = _client()

    @client.app.get("/budget")
    async def budget():
        deadline = current_context().deadline
        return {"remaining": deadline.remaining() if deadline else None}

    for raw in ("nan", "inf", "-inf"):
        remaining = client.get("/budget", headers={"x-request-timeout": raw}).json()["remaining"]
        assert remaining is not None and 5 < remaining <= 30  # nosec B101
