"""Settings-driven construction of credentials and sessions.

Reads FIREBASE_SERVICE_ACCOUNT_KEY (JSON string, e.g. on serverless hosts)
or FIREBASE_SERVICE_ACCOUNT_PATH (file path), plus the optional
FIREBASE_API_KEY. Sessions are returned to the caller; nothing is cached
at module level.
"""

from pathlib import Path

import httpx

from firestore_rest.core.config import Settings, get_settings
from firestore_rest.domain.exceptions import CredentialException
from firestore_rest.infrastructure.firebase.credentials import Credentials
from firestore_rest.infrastructure.firebase.sessions import ServiceSession
from firestore_rest.shared.telemetry.logging import get_logger

logger = get_logger(__name__)


def load_credentials(settings: Settings | None = None) -> Credentials:
    """Return service account credentials from the environment key or file path.

    Raises:
        CredentialException: If neither source is configured or the content is invalid.
        FileAccessException: If the configured file cannot be read.
    """
    settings = settings or get_settings()
    key_json = (
        settings.firebase_service_account_key.get_secret_value()
        if settings.firebase_service_account_key
        else None
    )
    if key_json:
        creds = Credentials.from_json(key_json)
    elif settings.firebase_service_account_path:
        path = Path(settings.firebase_service_account_path).expanduser()
        logger.debug("Loading service account from %s", path)
        creds = Credentials.from_file(path)
    else:
        raise CredentialException(
            "Set FIREBASE_SERVICE_ACCOUNT_KEY (full JSON string) or "
            "FIREBASE_SERVICE_ACCOUNT_PATH (path to JSON file)."
        )
    api_key = settings.firebase_api_key.get_secret_value() if settings.firebase_api_key else None
    return creds.with_api_key(api_key)


def create_service_session(
    settings: Settings | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> ServiceSession:
    """Load and verify credentials, then build a ServiceSession.

    The first token is fetched lazily on the first operation.
    """
    settings = settings or get_settings()
    creds = load_credentials(settings)
    creds.verify()
    logger.info("Service session ready for project %s", creds.project_id)
    return ServiceSession(creds, http_client=http_client, settings=settings)
