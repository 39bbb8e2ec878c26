"""Pytest configuration and fixtures for firestore_rest.

Sessions talk to FakeFirestore (tests/firestore_fake.py) through an
httpx.MockTransport; keys and certificates are generated per test run with
cryptography, so no real service account or network is needed.
"""

from datetime import UTC, datetime, timedelta

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from firestore_fake import FakeFirestore
from firestore_rest.core.config import Settings
from firestore_rest.infrastructure.firebase.credentials import Credentials
from firestore_rest.infrastructure.firebase.sessions import ServiceSession

TEST_PROJECT = "test-project"
TEST_KEY_ID = "test-key-id"
TEST_API_KEY = "test-api-key"


@pytest.fixture(scope="session")
def signing_key() -> tuple[str, str]:
    """RSA private key (PKCS8 PEM) and a self-signed certificate for it."""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "securetoken.test")])
    now = datetime.now(UTC)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=1))
        .sign(key, hashes.SHA256())
    )
    return key_pem, cert.public_bytes(serialization.Encoding.PEM).decode()


@pytest.fixture
def service_account_info(signing_key: tuple[str, str]) -> dict[str, str]:
    """Service account JSON content as downloaded from the console."""
    return {
        "type": "service_account",
        "project_id": TEST_PROJECT,
        "private_key_id": TEST_KEY_ID,
        "private_key": signing_key[0],
        "client_email": f"firestore-rest@{TEST_PROJECT}.iam.gserviceaccount.com",
        "client_id": "1234567890",
        "token_uri": "https://oauth2.googleapis.com/token",
        "api_key": TEST_API_KEY,
    }


@pytest.fixture
def credentials(service_account_info: dict[str, str]) -> Credentials:
    return Credentials.from_dict(service_account_info)


@pytest.fixture
def settings() -> Settings:
    """Settings with millisecond backoff so retry tests stay fast."""
    return Settings(
        retry_initial_interval_seconds=0.001,
        retry_multiplier=1.5,
        retry_randomization_factor=0.0,
        retry_max_interval_seconds=0.01,
        request_retry_max_elapsed_seconds=1.0,
    )


@pytest.fixture
def fake(credentials: Credentials, signing_key: tuple[str, str]) -> FakeFirestore:
    return FakeFirestore(credentials, signing_key[1])


@pytest.fixture
async def http_client(fake: FakeFirestore) -> httpx.AsyncClient:
    """AsyncClient routed to the fake backend."""
    async with httpx.AsyncClient(transport=fake.transport()) as client:
        yield client


@pytest.fixture
def service_session(
    credentials: Credentials, settings: Settings, http_client: httpx.AsyncClient
) -> ServiceSession:
    return ServiceSession(credentials, http_client=http_client, settings=settings)
