"""Firebase Auth account lookup and removal for the signed-in user.

Both calls use the user's own ID token against the Identity Toolkit REST
API and run under the session's backoff policy.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from firestore_rest.domain.exceptions import SerializationException
from firestore_rest.infrastructure.firebase._backoff import execute
from firestore_rest.infrastructure.firebase._rest_client import _request_async
from firestore_rest.infrastructure.firebase.sessions import UserSession
from firestore_rest.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"


class ProviderUserInfo(BaseModel):
    """Linked sign-in provider of an account."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    provider_id: str = Field(alias="providerId")
    federated_id: str | None = Field(default=None, alias="federatedId")
    email: str | None = None
    display_name: str | None = Field(default=None, alias="displayName")
    photo_url: str | None = Field(default=None, alias="photoUrl")


class FirebaseAuthUser(BaseModel):
    """Account record returned by accounts:lookup."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    local_id: str = Field(alias="localId")
    email: str | None = None
    email_verified: bool = Field(default=False, alias="emailVerified")
    display_name: str | None = Field(default=None, alias="displayName")
    photo_url: str | None = Field(default=None, alias="photoUrl")
    disabled: bool = False
    provider_user_info: list[ProviderUserInfo] = Field(default_factory=list, alias="providerUserInfo")
    created_at: str | None = Field(default=None, alias="createdAt")
    last_login_at: str | None = Field(default=None, alias="lastLoginAt")
    custom_attributes: str | None = Field(default=None, alias="customAttributes")


class UserInfoResponse(BaseModel):
    """Envelope of accounts:lookup."""

    model_config = ConfigDict(extra="ignore")

    kind: str = ""
    users: list[FirebaseAuthUser] = Field(default_factory=list)


async def _account_request(session: UserSession, action: str, context: str) -> Any:
    # The idToken goes in the body, so it is read again on every attempt in
    # case a retry follows a token refresh.
    async def attempt() -> Any:
        return await _request_async(
            session,
            "POST",
            f"{IDENTITY_TOOLKIT_URL}/accounts:{action}",
            context=context,
            params={"key": session.credentials.require_api_key()},
            body={"idToken": await session.access_token()},
        )

    return await execute(attempt, policy=session.backoff)


async def user_info(session: UserSession) -> UserInfoResponse:
    """Look up the account behind the session's ID token."""
    context = f"accounts:lookup ({session.user_id})"
    payload = await _account_request(session, "lookup", context)
    try:
        return UserInfoResponse.model_validate(payload)
    except ValueError as e:
        raise SerializationException(f"Unexpected response for {context}: {e}") from e


async def user_remove(session: UserSession) -> None:
    """Delete the account behind the session's ID token."""
    await _account_request(session, "delete", f"accounts:delete ({session.user_id})")
    logger.info("Removed Firebase Auth user %s", session.user_id)
