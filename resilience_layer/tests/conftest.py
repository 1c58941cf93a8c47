"""Pytest configuration for the resilience layer test suite.

Every test runs with the resilience environment variables cleared so the
developer's shell (or CI secrets) cannot flip rate limiting on or point the
stores at a real Redis.
"""

from __future__ import annotations

from typing import Iterator

import pytest

_ENV_VARS = (
    "RESILIENCE_ENV",
    "APP_ENV",
    "RESILIENCE_REDIS_URL",
    "REDIS_URL",
    "RESILIENCE_CONFIG_FILE",
    "RESILIENCE_LOG_LEVEL",
    "RESILIENCE_REQUEST_TIMEOUT_SECONDS",
    "RESILIENCE_BREAKER_FAILURE_THRESHOLD",
    "RESILIENCE_BREAKER_RESET_TIMEOUT",
    "RESILIENCE_BREAKER_HALF_OPEN_REQUESTS",
)


class ManualClock:
    """Deterministic clock advanced explicitly by tests."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture()
def clock() -> ManualClock:
    return ManualClock()
