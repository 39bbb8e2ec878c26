"""Map HTTP responses and transport failures onto the client's exception taxonomy.

Retryable: network-level failures, 429 and 5xx. Everything else is permanent.
"""

import json
from typing import Any

import httpx

from firestore_rest.domain.exceptions import (
    APIError,
    FirestoreException,
    SerializationException,
    TransportException,
)


def is_retryable_status(status: int) -> bool:
    """Return True for HTTP statuses worth another attempt (429, 5xx)."""
    return status == 429 or 500 <= status <= 599


def is_retryable_error(error: Exception) -> bool:
    """Default retry predicate for the backoff executor."""
    return isinstance(error, FirestoreException) and error.retryable


def api_error_from_response(response: httpx.Response, context: str) -> APIError:
    """Build an APIError from an error response.

    Reads the Google API error envelope {error: {code, message, status}} when
    present; otherwise falls back to the HTTP status and body text.
    """
    code = response.status_code
    message = response.text or response.reason_phrase
    status: str | None = None
    try:
        payload = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        payload = None
    error = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(error, dict):
        code = int(error.get("code") or code)
        message = error.get("message") or message
        status = error.get("status")
    elif isinstance(error, str):
        # OAuth token endpoints: {"error": "invalid_grant", "error_description": "..."}
        message = payload.get("error_description") or error
        status = error
    return APIError(code, message, context, status=status)


def raise_for_api_error(response: httpx.Response, context: str) -> httpx.Response:
    """Return the response unchanged on success, raise APIError otherwise."""
    if response.is_success:
        return response
    raise api_error_from_response(response, context)


def transport_error(error: httpx.RequestError, context: str) -> TransportException:
    """Wrap a request that produced no response (timeout, connection reset)."""
    return TransportException(
        f"{type(error).__name__} during request for {context}: {error}", context
    )


def parse_json(response: httpx.Response, context: str) -> Any:
    """Decode a successful response body; empty bodies decode to {}.

    Raises:
        SerializationException: If the body is not valid JSON.
    """
    if not response.content:
        return {}
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SerializationException(
            f"Response for {context} is not valid JSON: {e}"
        ) from e
