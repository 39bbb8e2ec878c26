"""Exceptions for the Firestore REST client.

Every failure surfaced by a public operation is a FirestoreException
subclass. The retryable flag is what the backoff executor reads to decide
between another attempt and immediate propagation.
"""

from typing import Any


class FirestoreException(Exception):
    """Base exception for all client errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. path, status).
        retryable: True when the failure is transient and may be retried.
    """

    retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class APIError(FirestoreException):
    """Raised when the remote API rejects a request.

    Callers match on code: 409 for create conflicts, 404 for missing
    documents, 400 for malformed requests or failed preconditions.
    """

    def __init__(
        self,
        code: int,
        message: str,
        context: str,
        status: str | None = None,
    ) -> None:
        """Initialize with the API error envelope and caller context.

        Args:
            code: HTTP status / API error code.
            message: Message from the API error envelope.
            context: Caller-supplied context, usually the document path.
            status: Optional canonical status string (e.g. 'NOT_FOUND').
        """
        self.code = code
        self.context = context
        self.status = status
        self.retryable = code == 429 or 500 <= code <= 599
        details: dict[str, Any] = {"code": code, "context": context}
        if status:
            details["status"] = status
        super().__init__(message, "API_ERROR", details)

    def __str__(self) -> str:
        return f"API error {self.code} ({self.context}): {self.message}"


class AuthenticationException(FirestoreException):
    """Raised when a token grant or token verification fails."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, "AUTHENTICATION_ERROR")


class CredentialException(FirestoreException):
    """Raised when credential content is missing or malformed."""

    def __init__(self, message: str = "Invalid credentials", field: str | None = None) -> None:
        details = {"field": field} if field else {}
        super().__init__(message, "CREDENTIAL_ERROR", details)


class SerializationException(FirestoreException):
    """Raised when a value cannot be encoded to or decoded from the wire format."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        errors: list[Any] | None = None,
    ) -> None:
        """Initialize with message and optional location.

        Args:
            message: Description of the failure.
            field: Optional field name or path that failed.
            errors: Optional list of validation error details (e.g. from pydantic).
        """
        details: dict[str, Any] = {}
        if field:
            details["field"] = field
        if errors:
            details["errors"] = errors
        super().__init__(message, "SERIALIZATION_ERROR", details)


class TransportException(FirestoreException):
    """Raised when the HTTP request never produced a response (network, timeout)."""

    retryable = True

    def __init__(self, message: str, context: str | None = None) -> None:
        details = {"context": context} if context else {}
        super().__init__(message, "TRANSPORT_ERROR", details)


class FileAccessException(FirestoreException):
    """Raised when a local file (e.g. a service account key) cannot be read."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(
            f"Cannot read file: {path}",
            "IO_ERROR",
            {"path": path, "reason": reason},
        )


class BudgetExhaustedException(FirestoreException):
    """Raised when the retry time budget expired while failures were still transient."""

    def __init__(self, last_error: Exception, attempts: int, elapsed: float) -> None:
        """Initialize with the last transient failure and retry statistics.

        Args:
            last_error: The failure observed on the final attempt.
            attempts: Number of attempts made.
            elapsed: Seconds spent, including backoff delays.
        """
        self.last_error = last_error
        self.attempts = attempts
        self.elapsed = elapsed
        super().__init__(
            f"Retry budget exhausted after {attempts} attempts ({elapsed:.1f}s). "
            f"Last error: {last_error}",
            "RETRY_BUDGET_EXHAUSTED",
            {"attempts": attempts, "elapsed": elapsed},
        )
