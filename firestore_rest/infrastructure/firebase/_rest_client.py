"""Thin Firestore REST API transport (no firebase-admin, no grpc).

All HTTP calls go through the session's httpx.AsyncClient with a bearer
token fetched per attempt, so a retried request picks up a refreshed token.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from firestore_rest.infrastructure.firebase._api_errors import (
    parse_json,
    raise_for_api_error,
    transport_error,
)
from firestore_rest.infrastructure.firebase._backoff import execute

if TYPE_CHECKING:
    from firestore_rest.infrastructure.firebase.sessions import Session

Params = dict[str, Any] | list[tuple[str, Any]] | None


def documents_root(session: Session) -> str:
    """Resource name of the database's document root."""
    return (
        f"projects/{session.project_id}/databases/"
        f"{session.settings.firestore_database_id}/documents"
    )


def firestore_url(session: Session, path: str = "") -> str:
    """Absolute REST URL for a path relative to the document root.

    A path starting with ':' addresses a method on the root itself
    (e.g. ':runQuery').
    """
    base = f"{session.settings.firestore_base_url.rstrip('/')}/{documents_root(session)}"
    if not path:
        return base
    if path.startswith(":"):
        return f"{base}{path}"
    return f"{base}/{_quote_path(path)}"


def name_url(session: Session, name: str) -> str:
    """Absolute REST URL for an absolute resource name."""
    return f"{session.settings.firestore_base_url.rstrip('/')}/{_quote_path(name)}"


def _quote_path(path: str) -> str:
    # Ids may hold any character but "/"; each segment is percent-encoded.
    return "/".join(quote(segment, safe="") for segment in path.strip("/").split("/"))


async def _request_async(
    session: Session,
    method: str,
    url: str,
    *,
    context: str,
    params: Params = None,
    body: dict | None = None,
) -> Any:
    """Perform one authorized HTTP request and decode the JSON response."""
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {await session.access_token()}",
    }
    try:
        resp = await session.http.request(
            method, url, params=params, json=body, headers=headers
        )
    except httpx.RequestError as e:
        raise transport_error(e, context) from e
    raise_for_api_error(resp, context)
    return parse_json(resp, context)


async def request_json(
    session: Session,
    method: str,
    url: str,
    *,
    context: str,
    params: Params = None,
    body: dict | None = None,
    max_elapsed_time: float | None = None,
) -> Any:
    """Perform an authorized request under the session's backoff policy.

    Args:
        session: Session providing the token, HTTP client and backoff policy.
        method: HTTP method.
        url: Absolute URL.
        context: Attached to errors for diagnostics (usually the document path).
        params: Query parameters; repeated keys as a list of pairs.
        body: JSON body.
        max_elapsed_time: Optional retry budget override in seconds.

    Returns:
        Decoded JSON body ({} when empty).
    """

    async def attempt() -> Any:
        return await _request_async(
            session, method, url, context=context, params=params, body=body
        )

    return await execute(attempt, max_elapsed_time, policy=session.backoff)
