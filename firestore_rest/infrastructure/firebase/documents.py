"""Document operations: create, read, write, delete, list and query.

Every operation takes the Session first and wraps its HTTP call(s) in the
backoff executor via request_json. Paths are relative to the database's
document root ("collection/doc_id", "a/b/c/d" for subcollections); absolute
names found in list/query results convert with abs_to_rel.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable, Mapping, Sequence
from typing import Any, TypeVar, overload

from pydantic import BaseModel

from firestore_rest.domain.exceptions import APIError, SerializationException
from firestore_rest.domain.values import (
    Document,
    FieldOperator,
    QueryFilter,
    WriteOptions,
    WriteResult,
)
from firestore_rest.infrastructure.firebase._rest_client import (
    firestore_url,
    name_url,
    request_json,
)
from firestore_rest.infrastructure.firebase._rest_encoding import (
    _encode_value,
    decode_document,
    encode_document,
    quote_field_name,
    quote_field_path,
)
from firestore_rest.infrastructure.firebase.sessions import Session
from firestore_rest.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)
Record = BaseModel | Mapping[str, Any]
Ordering = tuple[str, bool]


def abs_to_rel(name: str) -> str:
    """Convert an absolute document name to a path relative to the document root.

    Example: projects/p/databases/(default)/documents/tests/a -> tests/a
    """
    marker = "/documents/"
    idx = name.find(marker)
    if name.startswith("projects/") and idx != -1:
        return name[idx + len(marker):]
    return name


def _join(collection: str, document_id: str) -> str:
    return f"{collection.strip('/')}/{document_id}"


def _to_document(payload: Any, context: str) -> Document:
    if not isinstance(payload, dict):
        raise SerializationException(f"Expected a document for {context}")
    return Document.model_validate(payload)


@overload
def to_record(document: Document, model: type[RecordT]) -> RecordT: ...
@overload
def to_record(document: Document, model: None = None) -> dict[str, Any]: ...
def to_record(document: Document, model: type[RecordT] | None = None) -> RecordT | dict[str, Any]:
    """Decode a Document's fields into model (or a dict when model is None)."""
    return decode_document(document.fields, model)


async def create(
    session: Session,
    collection: str,
    document_id: str,
    value: Record,
) -> Document:
    """Create a new document; fails with APIError(409) if the id exists.

    Args:
        session: Authenticated session.
        collection: Relative collection path, e.g. "tests".
        document_id: Id of the new document.
        value: Pydantic record or mapping.

    Returns:
        The created Document with server timestamps.
    """
    path = _join(collection, document_id)
    body = {"fields": encode_document(value)}
    payload = await request_json(
        session,
        "POST",
        firestore_url(session, collection),
        context=path,
        params={"documentId": document_id},
        body=body,
    )
    logger.debug("Created document %s", path)
    return _to_document(payload, path)


async def read_by_name(
    session: Session,
    name: str,
    model: type[RecordT] | None = None,
) -> RecordT | dict[str, Any]:
    """Read a document by absolute resource name (as found in list/query results).

    Raises:
        APIError: 404 if the document does not exist.
        SerializationException: If the fields do not match model.
    """
    payload = await request_json(session, "GET", name_url(session, name), context=name)
    return to_record(_to_document(payload, name), model)


async def read(
    session: Session,
    collection: str,
    document_id: str,
    model: type[RecordT] | None = None,
) -> RecordT | dict[str, Any]:
    """Read a document by collection and id.

    Raises:
        APIError: 404 if the document does not exist.
        SerializationException: If the fields do not match model.
    """
    path = _join(collection, document_id)
    payload = await request_json(session, "GET", firestore_url(session, path), context=path)
    return to_record(_to_document(payload, path), model)


async def write(
    session: Session,
    collection: str,
    document_id: str | None,
    value: Record,
    options: WriteOptions | None = None,
) -> WriteResult:
    """Write a document.

    Without merge the document's field set is replaced: fields missing from
    value are deleted. With merge only the top-level fields present in value
    are written; a merge of no fields leaves the document as it is. No
    existence precondition is implied; set options.exists to require one.
    document_id=None lets the server generate an id.

    Returns:
        WriteResult with the resolved id and server timestamps.

    Raises:
        ValueError: If merge or exists is combined with document_id=None.
    """
    options = options or WriteOptions()
    if document_id is None and (options.merge or options.exists is not None):
        raise ValueError("merge and exists need an explicit document_id")
    fields = encode_document(value)
    if document_id is None:
        payload = await request_json(
            session,
            "POST",
            firestore_url(session, collection),
            context=collection,
            body={"fields": fields},
        )
        return _write_result(_to_document(payload, collection), "")

    context = _join(collection, document_id)
    if options.merge and not fields:
        return await _merge_nothing(session, context, document_id, options)

    params: list[tuple[str, Any]] = []
    if options.merge:
        params.extend(("updateMask.fieldPaths", quote_field_name(k)) for k in fields)
    if options.exists is not None:
        params.append(("currentDocument.exists", "true" if options.exists else "false"))
    payload = await request_json(
        session,
        "PATCH",
        firestore_url(session, context),
        context=context,
        params=params or None,
        body={"fields": fields},
    )
    doc = _to_document(payload, context)
    logger.debug("Wrote document %s (merge=%s)", context, options.merge)
    return _write_result(doc, document_id)


async def _merge_nothing(
    session: Session, path: str, document_id: str, options: WriteOptions
) -> WriteResult:
    # A PATCH without updateMask replaces the document, so an empty merge
    # must not be sent as one.
    try:
        payload = await request_json(session, "GET", firestore_url(session, path), context=path)
    except APIError as e:
        if e.code != 404 or options.exists:
            raise
        payload = await request_json(
            session,
            "PATCH",
            firestore_url(session, path),
            context=path,
            params=[("currentDocument.exists", "false")],
            body={"fields": {}},
        )
        logger.debug("Created empty document %s from an empty merge", path)
        return _write_result(_to_document(payload, path), document_id)
    if options.exists is False:
        raise APIError(409, f"Document already exists: {path}", path, status="ALREADY_EXISTS")
    return _write_result(_to_document(payload, path), document_id)


def _write_result(doc: Document, document_id: str) -> WriteResult:
    return WriteResult(
        document_id=doc.document_id or document_id,
        create_time=doc.create_time,
        update_time=doc.update_time,
    )


async def delete(session: Session, path: str, fail_if_not_existing: bool = False) -> None:
    """Delete the document at a relative path ("collection/doc_id").

    Absolute names from list/query results must be converted with abs_to_rel
    first. With fail_if_not_existing a missing document raises APIError(404);
    otherwise deleting a missing document succeeds.
    """
    params = {"currentDocument.exists": "true"} if fail_if_not_existing else None
    await request_json(
        session, "DELETE", firestore_url(session, path), context=path, params=params
    )
    logger.debug("Deleted document %s", path)


async def list_documents(
    session: Session,
    collection: str,
    model: type[RecordT] | None = None,
    *,
    page_size: int | None = None,
) -> AsyncIterator[tuple[RecordT | dict[str, Any], Document]]:
    """Iterate over all documents of a collection, page by page.

    Pages are fetched lazily as the iterator is consumed; each page fetch is
    retried independently. The iterator is not restartable.

    Yields:
        (decoded value, Document) pairs.
    """
    url = firestore_url(session, collection)
    size = page_size or session.settings.list_page_size
    page_token: str | None = None
    while True:
        params: dict[str, Any] = {"pageSize": size}
        if page_token:
            params["pageToken"] = page_token
        payload = await request_json(session, "GET", url, context=collection, params=params)
        for raw in payload.get("documents") or []:
            doc = _to_document(raw, collection)
            yield to_record(doc, model), doc
        page_token = payload.get("nextPageToken")
        if not page_token:
            return


def _build_filter(where: QueryFilter | Sequence[Any]) -> dict[str, Any]:
    field_path, op, value = where
    return {
        "fieldFilter": {
            "field": {"fieldPath": quote_field_path(field_path)},
            "op": FieldOperator.parse(op).value,
            "value": _encode_value(value, field_path),
        }
    }


def build_structured_query(
    collection: str,
    where: QueryFilter | Sequence[Any] | None = None,
    order_by: Iterable[Ordering] | None = None,
) -> dict[str, Any]:
    """Translate a filter and orderings into a structuredQuery object."""
    collection_id = collection.strip("/").rsplit("/", 1)[-1]
    structured: dict[str, Any] = {
        "from": [{"collectionId": collection_id, "allDescendants": False}],
    }
    if where is not None:
        structured["where"] = _build_filter(where)
    orders = [
        {
            "field": {"fieldPath": quote_field_path(field_path)},
            "direction": "ASCENDING" if ascending else "DESCENDING",
        }
        for field_path, ascending in (order_by or ())
    ]
    if orders:
        structured["orderBy"] = orders
    return structured


async def query(
    session: Session,
    collection: str,
    where: QueryFilter | Sequence[Any] | None = None,
    order_by: Iterable[Ordering] | None = None,
) -> list[Document]:
    """Run a structured query over a collection.

    Args:
        session: Authenticated session.
        collection: Relative collection path; may be a subcollection ("a/b/c").
        where: Optional (field_path, operator, value) filter; operator is a
            FieldOperator or shorthand such as "==".
        order_by: Optional (field_path, ascending) pairs, highest priority first.

    Returns:
        Matching documents (empty list when nothing matches).
    """
    collection = collection.strip("/")
    parent = collection.rsplit("/", 1)[0] if "/" in collection else ""
    if parent:
        url = f"{firestore_url(session, parent)}:runQuery"
    else:
        url = firestore_url(session, ":runQuery")
    body = {"structuredQuery": build_structured_query(collection, where, order_by)}
    payload = await request_json(session, "POST", url, context=collection, body=body)
    rows = payload if isinstance(payload, list) else [payload]
    documents = [
        _to_document(row["document"], collection)
        for row in rows
        if isinstance(row, dict) and "document" in row
    ]
    logger.debug("Query on %s returned %d documents", collection, len(documents))
    return documents
