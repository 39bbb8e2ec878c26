"""Authenticated sessions: bearer token acquisition, caching and refresh.

A Session owns one Token and one httpx.AsyncClient. access_token() returns
a token that stays valid for at least the configured safety margin,
refreshing under an asyncio.Lock so concurrent callers share a single
refresh and never see a half-written token (Token is immutable and the
reference is swapped in one assignment).

Two variants:
- ServiceSession: signs a JWT assertion with the service account key and
  exchanges it at the OAuth token endpoint (jwt-bearer grant).
- UserSession: a Firebase end user, built by signing in with a custom
  token, by exchanging a refresh token, or by wrapping an existing ID token.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, ClassVar

import httpx
from google.auth import exceptions as google_auth_exceptions
from google.auth import jwt as google_jwt

from firestore_rest.core.config import Settings, get_settings
from firestore_rest.domain.exceptions import AuthenticationException
from firestore_rest.infrastructure.firebase._api_errors import (
    api_error_from_response,
    parse_json,
    transport_error,
)
from firestore_rest.infrastructure.firebase._backoff import BackoffPolicy
from firestore_rest.infrastructure.firebase.credentials import Credentials
from firestore_rest.shared.telemetry.logging import get_logger
from firestore_rest.shared.utils.datetime import from_timestamp_utc, utc_now

logger = get_logger(__name__)

JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"


@dataclass(frozen=True)
class Token:
    """Bearer token with absolute expiry; refresh_token only for user sessions."""

    access_token: str
    expires_at: datetime
    refresh_token: str | None = None

    def is_valid(self, margin: timedelta = timedelta(0), now: datetime | None = None) -> bool:
        """True if the token is still valid margin from now."""
        return bool(self.access_token) and (now or utc_now()) + margin < self.expires_at


class Session(ABC):
    """Base session: credentials, cached token, HTTP client, backoff policy."""

    def __init__(
        self,
        credentials: Credentials,
        *,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
        token: Token | None = None,
    ) -> None:
        self.credentials = credentials
        self.settings = settings or get_settings()
        self.http = (
            http_client
            if http_client is not None
            else httpx.AsyncClient(timeout=self.settings.http_timeout_seconds)
        )
        self._owns_http = http_client is None
        self.backoff = BackoffPolicy.from_settings(self.settings)
        self._token = token
        self._lock = asyncio.Lock()

    @property
    def project_id(self) -> str:
        return self.credentials.project_id

    @property
    def token(self) -> Token | None:
        """Cached token as is, possibly expired."""
        return self._token

    @property
    def refresh_margin(self) -> timedelta:
        return timedelta(seconds=self.settings.token_refresh_margin_seconds)

    def access_token_unchecked(self) -> str:
        """Return the cached bearer string without checking expiry ('' if none)."""
        return self._token.access_token if self._token else ""

    async def access_token(self) -> str:
        """Return a bearer token valid for at least the refresh margin.

        Raises:
            AuthenticationException: If the token cannot be refreshed.
        """
        async with self._lock:
            token = self._token
            if token is None or not token.is_valid(self.refresh_margin):
                token = await self._refresh_locked()
            return token.access_token

    async def refresh(self) -> Token:
        """Force a token refresh and return the new token."""
        async with self._lock:
            return await self._refresh_locked()

    async def _refresh_locked(self) -> Token:
        token = await self._fetch_token()
        self._token = token
        logger.info(
            "Refreshed %s token for project %s (expires %s)",
            type(self).__name__,
            self.project_id,
            token.expires_at.isoformat(),
        )
        return token

    @abstractmethod
    async def _fetch_token(self) -> Token:
        """Obtain a new token from the issuing endpoint."""
        ...

    async def _auth_request(
        self,
        method: str,
        url: str,
        *,
        context: str,
        params: dict[str, str] | None = None,
        data: dict[str, str] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """Call a token/identity endpoint (no bearer token).

        Rejections (4xx) become AuthenticationException; 429/5xx stay
        retryable APIError and network failures TransportException, so the
        executor around the calling document operation can retry them.
        """
        try:
            resp = await self.http.request(
                method, url, params=params, data=data, json=json_body
            )
        except httpx.RequestError as e:
            raise transport_error(e, context) from e
        if not resp.is_success:
            error = api_error_from_response(resp, context)
            if error.retryable:
                raise error
            logger.error("%s failed: status=%d", context, resp.status_code)
            raise AuthenticationException(f"{context} failed: {error.message}") from error
        return parse_json(resp, context)

    async def aclose(self) -> None:
        """Close the HTTP client only if this session created it."""
        if self._owns_http:
            await self.http.aclose()

    async def __aenter__(self) -> Session:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def _require(data: Any, key: str, context: str) -> Any:
    if not isinstance(data, dict) or not data.get(key):
        raise AuthenticationException(f"{context} response has no '{key}'")
    return data[key]


class ServiceSession(Session):
    """Session for a service account (full database access, bypasses rules)."""

    SCOPES: ClassVar[tuple[str, ...]] = (
        "https://www.googleapis.com/auth/datastore",
        "https://www.googleapis.com/auth/cloud-platform",
    )

    async def _fetch_token(self) -> Token:
        issued_at = int(utc_now().timestamp())
        lifetime = self.settings.token_lifetime_seconds
        claims = {
            "iss": self.credentials.client_email,
            "sub": self.credentials.client_email,
            "aud": self.credentials.token_uri,
            "scope": " ".join(self.SCOPES),
            "iat": issued_at,
            "exp": issued_at + lifetime,
        }
        context = "Service account token grant"
        data = await self._auth_request(
            "POST",
            self.credentials.token_uri,
            context=context,
            data={"grant_type": JWT_BEARER_GRANT, "assertion": self.credentials.sign(claims)},
        )
        expires_in = int(data.get("expires_in") or lifetime)
        return Token(
            access_token=_require(data, "access_token", context),
            expires_at=from_timestamp_utc(issued_at + expires_in),
        )


class UserSession(Session):
    """Session for a Firebase end user (access governed by security rules).

    Build with by_user_id, by_refresh_token or by_access_token.
    """

    TOKEN_ENDPOINT: ClassVar[str] = "https://securetoken.googleapis.com/v1/token"
    SIGN_IN_ENDPOINT: ClassVar[str] = (
        "https://identitytoolkit.googleapis.com/v1/accounts:signInWithCustomToken"
    )
    CUSTOM_TOKEN_AUDIENCE: ClassVar[str] = (
        "https://identitytoolkit.googleapis.com/google.identity.identitytoolkit.v1.IdentityToolkit"
    )
    CERTS_URL: ClassVar[str] = (
        "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
    )

    def __init__(
        self,
        credentials: Credentials,
        user_id: str = "",
        *,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
        token: Token | None = None,
        refreshable: bool = True,
    ) -> None:
        super().__init__(credentials, http_client=http_client, settings=settings, token=token)
        self.user_id = user_id
        self._refreshable = refreshable

    @property
    def refresh_token(self) -> str | None:
        return self._token.refresh_token if self._token else None

    @property
    def refreshable(self) -> bool:
        return self._refreshable and bool(self.refresh_token)

    @classmethod
    async def by_user_id(
        cls,
        credentials: Credentials,
        user_id: str,
        *,
        with_refresh_token: bool = True,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> UserSession:
        """Sign in as user_id with a custom token signed by the service account.

        Meant for tests and trusted backends: it impersonates the user.
        """
        session = cls(credentials, user_id, http_client=http_client, settings=settings)
        try:
            session._token = await session._sign_in_with_custom_token(with_refresh_token)
        except Exception:
            await session.aclose()
            raise
        return session

    @classmethod
    async def by_refresh_token(
        cls,
        credentials: Credentials,
        refresh_token: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> UserSession:
        """Exchange a refresh token for a new ID token; user_id comes from the response."""
        expired = Token(access_token="", expires_at=from_timestamp_utc(0), refresh_token=refresh_token)
        session = cls(credentials, http_client=http_client, settings=settings, token=expired)
        try:
            await session.refresh()
        except Exception:
            await session.aclose()
            raise
        return session

    @classmethod
    async def by_access_token(
        cls,
        credentials: Credentials,
        access_token: str,
        *,
        verify: bool = True,
        http_client: httpx.AsyncClient | None = None,
        settings: Settings | None = None,
    ) -> UserSession:
        """Wrap an existing ID token. The session cannot refresh it.

        With verify=True the signature, audience and issuer are checked
        against Google's securetoken certificates.
        """
        session = cls(
            credentials, http_client=http_client, settings=settings, refreshable=False
        )
        try:
            claims = await session._decode_id_token(access_token, verify)
        except Exception:
            await session.aclose()
            raise
        session.user_id = claims.get("user_id") or claims["sub"]
        session._token = Token(access_token=access_token, expires_at=from_timestamp_utc(claims["exp"]))
        return session

    async def _sign_in_with_custom_token(self, with_refresh_token: bool) -> Token:
        api_key = self.credentials.require_api_key()
        issued_at = int(utc_now().timestamp())
        custom_token = self.credentials.sign(
            {
                "iss": self.credentials.client_email,
                "sub": self.credentials.client_email,
                "aud": self.CUSTOM_TOKEN_AUDIENCE,
                "iat": issued_at,
                "exp": issued_at + self.settings.token_lifetime_seconds,
                "uid": self.user_id,
            }
        )
        context = "Custom token sign-in"
        data = await self._auth_request(
            "POST",
            self.SIGN_IN_ENDPOINT,
            context=context,
            params={"key": api_key},
            json_body={"token": custom_token, "returnSecureToken": with_refresh_token},
        )
        return Token(
            access_token=_require(data, "idToken", context),
            expires_at=utc_now() + timedelta(seconds=int(data.get("expiresIn") or 3600)),
            refresh_token=data.get("refreshToken") if with_refresh_token else None,
        )

    async def _fetch_token(self) -> Token:
        if not self.refreshable:
            raise AuthenticationException(
                f"User session for {self.user_id or 'unknown user'} has no refresh "
                "capability and its token expired"
            )
        context = "Refresh token grant"
        data = await self._auth_request(
            "POST",
            self.TOKEN_ENDPOINT,
            context=context,
            params={"key": self.credentials.require_api_key()},
            data={"grant_type": "refresh_token", "refresh_token": self.refresh_token},
        )
        self.user_id = data.get("user_id") or self.user_id
        return Token(
            access_token=_require(data, "id_token", context),
            expires_at=utc_now() + timedelta(seconds=int(data.get("expires_in") or 3600)),
            refresh_token=data.get("refresh_token") or self.refresh_token,
        )

    async def _decode_id_token(self, id_token: str, verify: bool) -> dict[str, Any]:
        try:
            if verify:
                certs = await self._auth_request(
                    "GET", self.CERTS_URL, context="Securetoken certificate download"
                )
                claims = google_jwt.decode(id_token, certs=certs, audience=self.project_id)
                issuer = f"https://securetoken.google.com/{self.project_id}"
                if claims.get("iss") != issuer:
                    raise AuthenticationException(
                        f"ID token issuer {claims.get('iss')!r} does not match {issuer!r}"
                    )
            else:
                claims = google_jwt.decode(id_token, verify=False)
        except (ValueError, google_auth_exceptions.GoogleAuthError) as e:
            raise AuthenticationException(f"Invalid ID token: {e}") from e
        if "exp" not in claims or not (claims.get("user_id") or claims.get("sub")):
            raise AuthenticationException("ID token lacks 'exp' or a user id claim")
        return claims
