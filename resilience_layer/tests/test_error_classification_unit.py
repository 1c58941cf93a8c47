from __future__ import annotations

import asyncio
import types

import pytest

from resilience_layer.base.errors import (
    ErrorCode,
    DEFAULT_SUGGESTION,
    ResilienceError,
    USER_MESSAGES,
    classify,
    classify_exception,
    is_retryable,
    make_error,
    suggestion_for,
    to_resilience_error,
)


def test_canonical_values_pass_through_unchanged():
    err = make_error(ErrorCode.AUTH, "nope")
    assert classify(err) is err  # nosec B101 - assert is appropriate in unit tests
    wrapped = ResilienceError(err)
    assert classify(wrapped) is err  # nosec B101 - assert is appropriate in unit tests
    assert to_resilience_error(wrapped) is wrapped  # nosec B101 - assert is appropriate in unit tests


@pytest.mark.parametrize(
    "status, expected",
    [
        (401, ErrorCode.AUTH),
        (403, ErrorCode.FORBIDDEN),
        (404, ErrorCode.NOT_FOUND),
        (408, ErrorCode.NETWORK),
        (409, ErrorCode.CONFLICT),
        (413, ErrorCode.PAYLOAD_TOO_LARGE),
        (422, ErrorCode.VALIDATION),
        (429, ErrorCode.RATE_LIMITED),
        (500, ErrorCode.SERVER),
        (503, ErrorCode.SERVER),
    ],
)
def test_classify_http_status_mapping(status, expected):
    assert classify_exception(types.SimpleNamespace(status_code=status)) is expected  # nosec B101


def test_status_read_from_response_and_status_attribute():
    nested = types.SimpleNamespace(response=types.SimpleNamespace(status_code=404))
    assert classify(nested).code is ErrorCode.NOT_FOUND  # nosec B101
    assert classify({"status": 429, "message": "slow down"}).code is ErrorCode.RATE_LIMITED  # nosec B101
    assert classify(nested).details["status"] == 404  # nosec B101


def test_network_faults_by_type_and_keyword():
    assert classify_exception(TimeoutError()) is ErrorCode.NETWORK  # nosec B101
    assert classify_exception(asyncio.TimeoutError()) is ErrorCode.NETWORK  # nosec B101
    assert classify_exception(ConnectionResetError("peer reset")) is ErrorCode.NETWORK  # nosec B101
    assert classify_exception(Exception("TypeError: fetch failed")) is ErrorCode.NETWORK  # nosec B101
    assert classify_exception(Exception("connect ECONNREFUSED 127.0.0.1:5432")) is ErrorCode.NETWORK  # nosec B101


def test_auth_and_permission_keywords():
    assert classify_exception(Exception("JWT expired")) is ErrorCode.AUTH  # nosec B101
    assert classify_exception(Exception("User is not authenticated")) is ErrorCode.AUTH  # nosec B101
    assert classify_exception(Exception("Forbidden resource")) is ErrorCode.FORBIDDEN  # nosec B101
    assert classify_exception(Exception("permission denied for table posts")) is ErrorCode.PERMISSION_DENIED  # nosec B101


def test_json_parse_errors_are_not_mistaken_for_auth():
    assert classify_exception(Exception("Unexpected token < in JSON at position 0")) is ErrorCode.UNKNOWN  # nosec B101


def test_structured_store_faults():
    empty = {"code": "PGRST116", "message": "JSON object requested, multiple (or no) rows returned"}
    privilege = {"code": "42501", "message": "new row violates row-level security policy"}
    unique = {"code": "23505", "message": "duplicate key value violates unique constraint"}
    opaque = {"code": "XX000", "message": "something odd happened"}

    assert classify(empty).code is ErrorCode.NOT_FOUND  # nosec B101
    assert classify(privilege).code is ErrorCode.PERMISSION_DENIED  # nosec B101
    assert classify(unique).code is ErrorCode.VALIDATION  # nosec B101
    assert classify(opaque).code is ErrorCode.DATABASE  # nosec B101
    assert classify(opaque).details["source_code"] == "XX000"  # nosec B101


def test_rate_limit_keywords_and_unknown_fallback():
    assert classify_exception(Exception("rate limit exceeded")) is ErrorCode.RATE_LIMITED  # nosec B101
    assert classify_exception(Exception("Too Many Requests")) is ErrorCode.RATE_LIMITED  # nosec B101
    assert classify_exception(Exception("random")) is ErrorCode.UNKNOWN  # nosec B101


@pytest.mark.parametrize(
    "raw",
    [
        ValueError(""),
        RuntimeError("internal server error"),
        {"code": "23502", "message": "null value violates not-null constraint"},
        "plain string fault",
        42,
        None,
        types.SimpleNamespace(status_code=502),
    ],
)
def test_classify_is_total_with_fixed_flags(raw):
    err = classify(raw)
    assert err.user_message  # nosec B101
    assert err.user_message != err.message  # nosec B101
    assert err.user_message == USER_MESSAGES[err.code]  # nosec B101
    assert err.retryable is is_retryable(err.code)  # nosec B101


def test_classify_is_deterministic():
    raw = {"status": 503, "message": "upstream down"}
    assert classify(raw).code is classify(raw).code  # nosec B101


def test_circuit_open_is_never_retryable():
    assert make_error(ErrorCode.CIRCUIT_OPEN).retryable is False  # nosec B101
    assert make_error(ErrorCode.NETWORK).retryable is True  # nosec B101


def test_to_dict_and_public_dict_shapes():
    err = make_error(ErrorCode.NOT_FOUND, "row 7 missing", details={"id": 7}, correlation_id="cid-1")
    data = err.to_dict()
    assert data["code"] == "not_found"  # nosec B101
    assert data["details"] == {"id": 7}  # nosec B101
    assert data["timestamp"].endswith("+00:00")  # nosec B101
    public = err.public_dict()
    assert public == {  # nosec B101
        "code": "not_found",
        "message": USER_MESSAGES[ErrorCode.NOT_FOUND],
        "suggestion": DEFAULT_SUGGESTION,
        "retryable": False,
        "correlation_id": "cid-1",
    }


def test_suggestions_cover_actionable_codes_and_default_the_rest():
    assert suggestion_for(ErrorCode.AUTH) == "Try signing in again."  # nosec B101
    assert "too quickly" in suggestion_for(ErrorCode.RATE_LIMITED)  # nosec B101
    assert suggestion_for(ErrorCode.CONFLICT) == DEFAULT_SUGGESTION  # nosec B101
    for code in ErrorCode:
        assert suggestion_for(code)  # nosec B101
    assert make_error(ErrorCode.NETWORK).public_dict()["suggestion"] == suggestion_for(ErrorCode.NETWORK)  # nosec B101
