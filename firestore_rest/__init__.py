"""Firestore REST client with service-account and end-user sessions.

Example:
    from firestore_rest import ServiceSession, Credentials, documents

    creds = Credentials.from_file("firebase-service-account.json")
    async with ServiceSession(creds) as session:
        await documents.create(session, "tests", "doc1", {"a_string": "abc"})
        data = await documents.read(session, "tests", "doc1")
"""

from firestore_rest.domain import (
    APIError,
    AuthenticationException,
    BudgetExhaustedException,
    CredentialException,
    Document,
    FieldOperator,
    FileAccessException,
    FirestoreException,
    GeoPoint,
    QueryFilter,
    Reference,
    SerializationException,
    TransportException,
    WriteOptions,
    WriteResult,
)
from firestore_rest.infrastructure.firebase import (
    Credentials,
    ServiceSession,
    Session,
    Token,
    UserSession,
    create_service_session,
    load_credentials,
)
from firestore_rest.infrastructure.firebase import documents, users
from firestore_rest.shared.telemetry import setup_logging

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "documents",
    "users",
    "setup_logging",
    # Sessions
    "Credentials",
    "ServiceSession",
    "Session",
    "Token",
    "UserSession",
    "create_service_session",
    "load_credentials",
    # Values
    "Document",
    "FieldOperator",
    "GeoPoint",
    "QueryFilter",
    "Reference",
    "WriteOptions",
    "WriteResult",
    # Exceptions
    "APIError",
    "AuthenticationException",
    "BudgetExhaustedException",
    "CredentialException",
    "FileAccessException",
    "FirestoreException",
    "SerializationException",
    "TransportException",
]
