"""Tests for mapping HTTP responses and failures onto client exceptions."""

import httpx
import pytest

from firestore_rest.domain.exceptions import (
    APIError,
    AuthenticationException,
    SerializationException,
    TransportException,
)
from firestore_rest.infrastructure.firebase._api_errors import (
    api_error_from_response,
    is_retryable_error,
    is_retryable_status,
    parse_json,
    raise_for_api_error,
    transport_error,
)


@pytest.mark.parametrize(
    ("status", "expected"),
    [(200, False), (400, False), (404, False), (409, False), (429, True), (500, True), (503, True)],
)
def test_is_retryable_status(status: int, expected: bool) -> None:
    assert is_retryable_status(status) is expected


def test_is_retryable_error() -> None:
    assert is_retryable_error(APIError(503, "x", "c"))
    assert is_retryable_error(TransportException("x"))
    assert not is_retryable_error(APIError(404, "x", "c"))
    assert not is_retryable_error(AuthenticationException())
    assert not is_retryable_error(RuntimeError("not ours"))


def test_api_error_from_google_envelope() -> None:
    response = httpx.Response(
        404,
        json={"error": {"code": 404, "message": "No document to update: x", "status": "NOT_FOUND"}},
    )
    error = api_error_from_response(response, "tests/missing")
    assert error.code == 404
    assert error.message == "No document to update: x"
    assert error.status == "NOT_FOUND"
    assert error.context == "tests/missing"


def test_api_error_from_oauth_error() -> None:
    response = httpx.Response(
        400, json={"error": "invalid_grant", "error_description": "Invalid JWT Signature."}
    )
    error = api_error_from_response(response, "token")
    assert error.code == 400
    assert error.message == "Invalid JWT Signature."
    assert error.status == "invalid_grant"


def test_api_error_from_plain_text_body() -> None:
    error = api_error_from_response(httpx.Response(502, text="Bad Gateway"), "tests/a")
    assert error.code == 502
    assert error.message == "Bad Gateway"
    assert error.retryable


def test_raise_for_api_error() -> None:
    ok = httpx.Response(200, json={})
    assert raise_for_api_error(ok, "c") is ok
    with pytest.raises(APIError) as exc_info:
        raise_for_api_error(httpx.Response(409, json={"error": {"code": 409, "message": "exists"}}), "c")
    assert exc_info.value.code == 409


def test_transport_error_wraps_request_error() -> None:
    request = httpx.Request("GET", "https://firestore.googleapis.com/v1/x")
    error = transport_error(httpx.ConnectTimeout("timed out", request=request), "tests/a")
    assert isinstance(error, TransportException)
    assert error.retryable
    assert "ConnectTimeout" in error.message
    assert error.details == {"context": "tests/a"}


def test_parse_json() -> None:
    assert parse_json(httpx.Response(200, json={"a": 1}), "c") == {"a": 1}
    assert parse_json(httpx.Response(200), "c") == {}
    with pytest.raises(SerializationException, match="not valid JSON"):
        parse_json(httpx.Response(200, text="<html>"), "c")
