"""Firestore REST integration: credentials, sessions and document operations."""

from firestore_rest.infrastructure.firebase.client import (
    create_service_session,
    load_credentials,
)
from firestore_rest.infrastructure.firebase.credentials import Credentials
from firestore_rest.infrastructure.firebase.sessions import (
    ServiceSession,
    Session,
    Token,
    UserSession,
)

__all__ = [
    "Credentials",
    "ServiceSession",
    "Session",
    "Token",
    "UserSession",
    "create_service_session",
    "load_credentials",
]
