"""ActionResult envelope and error-capturing helpers."""

from __future__ import annotations

import asyncio

import pytest
from pydantic import BaseModel, Field

from resilience_layer.base.errors import ErrorCode, ResilienceError
from resilience_layer.base.result import (
    Failure,
    Success,
    capture,
    fail,
    ok,
    validate_with_schema,
    with_error_handling,
)


def test_success_and_failure_discriminators():
    s = ok(3)
    f = fail(ErrorCode.NOT_FOUND, "missing")
    assert s.success is True and s.data == 3  # nosec B101
    assert f.success is False and f.error.code is ErrorCode.NOT_FOUND  # nosec B101
    assert not hasattr(s, "error")  # nosec B101
    assert not hasattr(f, "data")  # nosec B101


def test_failure_unwrap_raises_resilience_error():
    with pytest.raises(ResilienceError) as exc_info:
        fail(ErrorCode.CONFLICT).unwrap()
    assert exc_info.value.code is ErrorCode.CONFLICT  # nosec B101
    assert ok("x").unwrap() == "x"  # nosec B101


def test_capture_classifies_raised_faults():
    async def boom():
        raise ConnectionError("socket hang up")

    async def fine():
        return {"id": 1}

    failed = asyncio.run(capture(boom, name="boom"))
    good = asyncio.run(capture(fine))
    assert isinstance(failed, Failure)  # nosec B101
    assert failed.error.code is ErrorCode.NETWORK  # nosec B101
    assert failed.error.retryable is True  # nosec B101
    assert isinstance(good, Success) and good.data == {"id": 1}  # nosec B101


def test_with_error_handling_decorator_preserves_arguments():
    @with_error_handling
    async def divide(a, b):
        return a / b

    assert asyncio.run(divide(6, 3)).data == 2  # nosec B101
    result = asyncio.run(divide(1, 0))
    assert result.success is False  # nosec B101
    assert result.error.details["exception_type"] == "ZeroDivisionError"  # nosec B101
    assert divide.__name__ == "divide"  # nosec B101


class Address(BaseModel):
    city: str
    zip_code: str = Field(min_length=5)


class Signup(BaseModel):
    email: str
    age: int = Field(ge=18)
    address: Address


def test_validate_with_schema_returns_model_on_success():
    result = validate_with_schema(
        Signup, {"email": "a@example.com", "age": 30, "address": {"city": "Oslo", "zip_code": "01234"}}
    )
    assert isinstance(result, Success)  # nosec B101
    assert result.data.address.city == "Oslo"  # nosec B101


def test_validate_with_schema_groups_messages_by_field_path():
    result = validate_with_schema(Signup, {"age": 12, "address": {"city": "Oslo", "zip_code": "1"}})
    assert isinstance(result, Failure)  # nosec B101
    assert result.error.code is ErrorCode.VALIDATION  # nosec B101
    assert result.error.retryable is False  # nosec B101
    fields = result.error.details["fields"]
    assert set(fields) == {"email", "age", "address.zip_code"}  # nosec B101
    assert all(isinstance(msgs, list) and msgs for msgs in fields.values())  # nosec B101


def test_validate_with_schema_root_errors_use_value_path():
    result = validate_with_schema(Signup, "not a mapping")
    assert result.success is False  # nosec B101
    assert list(result.error.details["fields"]) == ["value"]  # nosec B101
