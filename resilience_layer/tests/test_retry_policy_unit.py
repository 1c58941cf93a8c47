from __future__ import annotations

import asyncio
import random

import pytest

from resilience_layer.base.context import Deadline
from resilience_layer.base.errors import ErrorCode, ResilienceError, make_error
from resilience_layer.base.resilience.retry import (
    RETRY_PRESETS,
    RetryPolicy,
    compute_delay,
    retry,
    with_retry,
)


def _no_jitter(**kw) -> RetryPolicy:
    return RetryPolicy(jitter_fraction=0.0, **kw)


class Recorder:
    def __init__(self) -> None:
        self.sleeps: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.sleeps.append(seconds)


def test_exponential_delays_are_capped():
    policy = _no_jitter(max_retries=4, base_delay=1.0, max_delay=10.0)
    assert [compute_delay(policy, a) for a in range(5)] == [1.0, 2.0, 4.0, 8.0, 10.0]  # nosec B101


def test_jitter_stays_within_fraction():
    policy = RetryPolicy(max_retries=4, base_delay=1.0, max_delay=10.0, jitter_fraction=0.25)
    rng = random.Random(1234).random
    for attempt, nominal in enumerate([1.0, 2.0, 4.0, 8.0, 10.0]):
        for _ in range(50):
            d = compute_delay(policy, attempt, rng)
            assert nominal * 0.75 <= d <= nominal * 1.25  # nosec B101
    assert compute_delay(policy, 0, lambda: 0.0) == pytest.approx(0.75)  # nosec B101
    assert compute_delay(policy, 0, lambda: 0.5) == pytest.approx(1.0)  # nosec B101


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_retries": -1},
        {"base_delay": 5.0, "max_delay": 1.0},
        {"jitter_fraction": 1.5},
        {"base_delay": -0.1},
    ],
)
def test_policy_validation(kwargs):
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)


def test_presets():
    assert RETRY_PRESETS["standard"].max_retries == 3  # nosec B101
    assert RETRY_PRESETS["aggressive"].max_delay == 30.0  # nosec B101
    assert RETRY_PRESETS["conservative"].base_delay == 2.0  # nosec B101
    assert RETRY_PRESETS["none"].max_attempts == 1  # nosec B101


def test_retries_transient_faults_then_succeeds():
    calls = {"n": 0}
    sleep = Recorder()

    async def flaky():
        calls["n"] += 1
        if calls["n"] < 3:
            raise ConnectionError("econnreset")
        return "ok"

    result = asyncio.run(with_retry(flaky, RETRY_PRESETS["standard"], sleep=sleep, rng=lambda: 0.5))
    assert result == "ok"  # nosec B101
    assert calls["n"] == 3  # nosec B101
    assert sleep.sleeps == [1.0, 2.0]  # nosec B101


def test_non_retryable_fault_raises_immediately():
    calls = {"n": 0}
    sleep = Recorder()

    async def missing():
        calls["n"] += 1
        raise LookupError("record not found")

    with pytest.raises(ResilienceError) as exc_info:
        asyncio.run(with_retry(missing, RETRY_PRESETS["aggressive"], sleep=sleep))
    assert exc_info.value.code is ErrorCode.NOT_FOUND  # nosec B101
    assert calls["n"] == 1  # nosec B101
    assert sleep.sleeps == []  # nosec B101


def test_exhaustion_raises_classified_error_after_all_attempts():
    calls = {"n": 0}
    attempts = []

    async def down():
        calls["n"] += 1
        raise ConnectionError("connection refused")

    def on_attempt(*, attempt, max_attempts, delay, error):
        attempts.append((attempt, delay is None, error.code))

    with pytest.raises(ResilienceError) as exc_info:
        asyncio.run(
            with_retry(down, _no_jitter(max_retries=2, base_delay=0.1, max_delay=1.0), sleep=Recorder(), attempt_logger=on_attempt)
        )
    assert exc_info.value.code is ErrorCode.NETWORK  # nosec B101
    assert calls["n"] == 3  # nosec B101
    assert [a[1] for a in attempts] == [False, False, True]  # nosec B101
    assert isinstance(exc_info.value.__cause__, ConnectionError)  # nosec B101


def test_circuit_open_is_not_retried():
    calls = {"n": 0}

    async def guarded():
        calls["n"] += 1
        raise ResilienceError(make_error(ErrorCode.CIRCUIT_OPEN, "open"))

    with pytest.raises(ResilienceError) as exc_info:
        asyncio.run(with_retry(guarded, RETRY_PRESETS["aggressive"], sleep=Recorder()))
    assert exc_info.value.code is ErrorCode.CIRCUIT_OPEN  # nosec B101
    assert calls["n"] == 1  # nosec B101


def test_expired_deadline_raises_timeout_without_calling():
    calls = {"n": 0}

    async def op():
        calls["n"] += 1
        return 1

    expired = Deadline(5.0, clock=lambda: 10.0)
    with pytest.raises(ResilienceError) as exc_info:
        asyncio.run(with_retry(op, deadline=expired, sleep=Recorder()))
    assert exc_info.value.code is ErrorCode.TIMEOUT  # nosec B101
    assert calls["n"] == 0  # nosec B101


def test_backoff_is_clipped_to_deadline():
    sleep = Recorder()
    deadline = Deadline(0.5, clock=lambda: 0.0)

    async def down():
        raise ConnectionError("network unreachable")

    with pytest.raises(ResilienceError) as exc_info:
        asyncio.run(with_retry(down, _no_jitter(max_retries=3, base_delay=1.0, max_delay=10.0), deadline=deadline, sleep=sleep))
    assert exc_info.value.code is ErrorCode.TIMEOUT  # nosec B101
    assert exc_info.value.error.details["last_error_code"] == "network"  # nosec B101
    assert sleep.sleeps == [0.5]  # nosec B101


def test_retry_decorator_handles_sync_and_async():
    state = {"sync": 0, "async": 0}
    policy = RetryPolicy(max_retries=1, base_delay=0.0, max_delay=0.0, jitter_fraction=0.0)

    @retry(policy)
    def sync_op(x):
        state["sync"] += 1
        if state["sync"] == 1:
            raise TimeoutError("timed out")
        return x * 2

    @retry(policy)
    async def async_op(x):
        state["async"] += 1
        if state["async"] == 1:
            raise ConnectionError("reset")
        return x + 1

    assert sync_op(4) == 8  # nosec B101
    assert asyncio.run(async_op(4)) == 5  # nosec B101
    assert state == {"sync": 2, "async": 2}  # nosec B101
    assert sync_op.__name__ == "sync_op"  # nosec B101
