"""Domain layer: value types and exceptions.

No dependencies on infrastructure. Used by the infrastructure layer and
by callers building values, filters and write options.
"""

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
from firestore_rest.domain.values import (
    Document,
    FieldOperator,
    GeoPoint,
    QueryFilter,
    Reference,
    WriteOptions,
    WriteResult,
)

__all__ = [
    # Exceptions
    "APIError",
    "AuthenticationException",
    "BudgetExhaustedException",
    "CredentialException",
    "FileAccessException",
    "FirestoreException",
    "SerializationException",
    "TransportException",
    # Values
    "Document",
    "FieldOperator",
    "GeoPoint",
    "QueryFilter",
    "Reference",
    "WriteOptions",
    "WriteResult",
]
