"""Service account credentials.

Loaded from the JSON key file downloaded from the Firebase console (or the
same content as a string/dict). Key parsing and JWT signing are delegated
to google-auth.
"""

import json
from pathlib import Path
from typing import Any

from google.auth import crypt, jwt
from pydantic import BaseModel, ConfigDict, SecretStr, ValidationError

from firestore_rest.domain.exceptions import CredentialException, FileAccessException

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


class Credentials(BaseModel):
    """Service account key material. Immutable once loaded."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    project_id: str
    client_email: str
    private_key: SecretStr
    private_key_id: str | None = None
    client_id: str | None = None
    token_uri: str = GOOGLE_TOKEN_URI
    # Web API key, needed by user sessions only.
    api_key: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Credentials":
        """Build credentials from a parsed service account JSON object.

        Raises:
            CredentialException: If required keys are missing or empty.
        """
        try:
            creds = cls.model_validate(data)
        except ValidationError as e:
            first = e.errors(include_url=False)[0]
            field = ".".join(str(p) for p in first.get("loc", ())) or None
            raise CredentialException(
                f"Service account JSON is invalid: {first.get('msg')}", field=field
            ) from e
        for name in ("project_id", "client_email"):
            if not getattr(creds, name):
                raise CredentialException(f"Service account JSON has empty '{name}'", field=name)
        if not creds.private_key.get_secret_value():
            raise CredentialException("Service account JSON has empty 'private_key'", field="private_key")
        return creds

    @classmethod
    def from_json(cls, raw: str) -> "Credentials":
        """Build credentials from a service account JSON string."""
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise CredentialException("Service account key is not valid JSON") from e
        if not isinstance(data, dict):
            raise CredentialException("Service account key must be a JSON object")
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: str | Path) -> "Credentials":
        """Read credentials from a service account JSON file.

        Raises:
            FileAccessException: If the file cannot be read.
            CredentialException: If the content is not a valid key.
        """
        path = Path(path).expanduser()
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise FileAccessException(str(path), e.strerror or str(e)) from e
        return cls.from_json(raw)

    def with_api_key(self, api_key: str | None) -> "Credentials":
        """Return a copy carrying the given web API key."""
        if not api_key:
            return self
        return self.model_copy(update={"api_key": api_key})

    def signer(self) -> crypt.RSASigner:
        """Return an RSA signer for the private key.

        Raises:
            CredentialException: If the private key cannot be parsed.
        """
        try:
            return crypt.RSASigner.from_service_account_info(
                {
                    "private_key": self.private_key.get_secret_value(),
                    "private_key_id": self.private_key_id,
                }
            )
        except ValueError as e:
            raise CredentialException(
                f"Service account private key is invalid: {e}", field="private_key"
            ) from e

    def verify(self) -> None:
        """Check that the private key parses. Raises CredentialException otherwise."""
        self.signer()

    def sign(self, claims: dict[str, Any]) -> str:
        """Sign claims as an RS256 JWT with the service account key."""
        token = jwt.encode(self.signer(), claims)
        return token.decode("ascii") if isinstance(token, bytes) else token

    def require_api_key(self) -> str:
        """Return the web API key or raise CredentialException."""
        if not self.api_key:
            raise CredentialException(
                "A web API key is required for user sessions. Add 'api_key' to the "
                "service account JSON or set FIREBASE_API_KEY.",
                field="api_key",
            )
        return self.api_key
