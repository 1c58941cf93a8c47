from __future__ import annotations

import asyncio

from resilience_layer.base.context import Deadline, current_context, current_correlation_id, request_context
from resilience_layer.base.errors import ErrorCode, make_error


def test_deadline_remaining_and_expiry(clock):
    d = Deadline.after(5.0, clock=clock)
    assert d.remaining() == 5.0  # nosec B101
    clock.advance(4.0)
    assert d.remaining() == 1.0 and not d.expired  # nosec B101
    clock.advance(2.0)
    assert d.remaining() == 0.0 and d.expired  # nosec B101


def test_request_context_binds_and_restores():
    assert current_context().correlation_id is None  # nosec B101
    with request_context({"X-Real-IP": " 10.1.1.1 ", "X-Empty": "  "}, correlation_id="abc", timeout_seconds=2) as ctx:
        assert current_context() is ctx  # nosec B101
        assert ctx.header("x-real-ip") == "10.1.1.1"  # nosec B101
        assert ctx.header("X-EMPTY") is None  # nosec B101
        assert ctx.deadline is not None and ctx.deadline.remaining() <= 2  # nosec B101
        assert make_error(ErrorCode.SERVER).correlation_id == "abc"  # nosec B101
    assert current_context().correlation_id is None  # nosec B101


def test_unbound_correlation_ids_are_fresh():
    assert current_correlation_id() != current_correlation_id()  # nosec B101


def test_context_is_isolated_per_task():
    async def worker(name):
        with request_context(correlation_id=name):
            await asyncio.sleep(0)
            return current_context().correlation_id

    async def main():
        return await asyncio.gather(worker("a"), worker("b"))

    assert asyncio.run(main()) == ["a", "b"]  # nosec B101
