"""Tests for domain exceptions (error_code, message, details, retryable)."""

import pytest

from firestore_rest.domain.exceptions import (
    APIError,
    AuthenticationException,
    BudgetExhaustedException,
    CredentialException,
    FileAccessException,
    FirestoreException,
    SerializationException,
    TransportException,
)


def test_firestore_exception_default_error_code() -> None:
    """Base FirestoreException uses class name as error_code when not provided."""
    exc = FirestoreException("Something failed")
    assert exc.message == "Something failed"
    assert exc.error_code == "FirestoreException"
    assert exc.details == {}
    assert exc.retryable is False


def test_firestore_exception_custom_error_code_and_details() -> None:
    exc = FirestoreException("Oops", error_code="CUSTOM", details={"key": "value"})
    assert exc.error_code == "CUSTOM"
    assert exc.details == {"key": "value"}


def test_api_error_carries_code_and_context() -> None:
    """APIError keeps the remote code, message and the caller's context."""
    exc = APIError(409, "Document already exists", "tests/a", status="ALREADY_EXISTS")
    assert exc.code == 409
    assert exc.message == "Document already exists"
    assert exc.context == "tests/a"
    assert exc.error_code == "API_ERROR"
    assert exc.details == {"code": 409, "context": "tests/a", "status": "ALREADY_EXISTS"}
    assert str(exc) == "API error 409 (tests/a): Document already exists"


@pytest.mark.parametrize(
    ("code", "retryable"),
    [(400, False), (401, False), (403, False), (404, False), (409, False),
     (429, True), (500, True), (503, True), (599, True)],
)
def test_api_error_retryable_only_for_429_and_5xx(code: int, retryable: bool) -> None:
    assert APIError(code, "x", "ctx").retryable is retryable


def test_authentication_exception() -> None:
    """AuthenticationException sets AUTHENTICATION_ERROR and default message."""
    exc = AuthenticationException()
    assert exc.message == "Authentication failed"
    assert exc.error_code == "AUTHENTICATION_ERROR"
    assert exc.retryable is False


def test_credential_exception_with_field() -> None:
    exc = CredentialException("Missing key", field="private_key")
    assert exc.error_code == "CREDENTIAL_ERROR"
    assert exc.details == {"field": "private_key"}


def test_serialization_exception_details() -> None:
    """SerializationException records the failing field and validation errors."""
    exc = SerializationException("Bad value", field="a.b", errors=[{"loc": ("a",)}])
    assert exc.error_code == "SERIALIZATION_ERROR"
    assert exc.details == {"field": "a.b", "errors": [{"loc": ("a",)}]}
    assert SerializationException("Bad").details == {}


def test_transport_exception_is_retryable() -> None:
    exc = TransportException("connection reset", context="tests/a")
    assert exc.retryable is True
    assert exc.error_code == "TRANSPORT_ERROR"
    assert exc.details == {"context": "tests/a"}


def test_file_access_exception() -> None:
    exc = FileAccessException("/tmp/missing.json", "No such file or directory")
    assert exc.message == "Cannot read file: /tmp/missing.json"
    assert exc.error_code == "IO_ERROR"
    assert exc.details == {"path": "/tmp/missing.json", "reason": "No such file or directory"}


def test_budget_exhausted_exception_wraps_last_error() -> None:
    """BudgetExhaustedException keeps the last transient failure and is itself final."""
    last = APIError(503, "Backend unavailable", "tests/a")
    exc = BudgetExhaustedException(last, attempts=4, elapsed=61.2)
    assert exc.last_error is last
    assert exc.attempts == 4
    assert exc.error_code == "RETRY_BUDGET_EXHAUSTED"
    assert exc.details == {"attempts": 4, "elapsed": 61.2}
    assert exc.retryable is False
    assert "Backend unavailable" in exc.message


def test_all_exceptions_inherit_from_firestore_exception() -> None:
    """Callers can catch FirestoreException for every client failure."""
    for exc in (
        APIError(404, "x", "c"),
        AuthenticationException(),
        CredentialException(),
        SerializationException("x"),
        TransportException("x"),
        FileAccessException("p", "r"),
        BudgetExhaustedException(TransportException("x"), 1, 0.0),
    ):
        assert isinstance(exc, FirestoreException)
