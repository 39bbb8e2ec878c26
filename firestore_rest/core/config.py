"""Client configuration (settings and environment).

Single source of truth for endpoints, token lifetimes and retry tuning.
Uses pydantic-settings with .env support. Everything has a default, so
sessions can be built without any environment; credential settings are
only consulted by the settings-driven factory in
firestore_rest.infrastructure.firebase.client.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment and .env."""

    debug: bool = False

    # Firebase credentials: use key (JSON string in env) or path (file).
    firebase_service_account_key: SecretStr | None = None
    firebase_service_account_path: str | None = None
    # Web API key; required for user sessions. Overrides api_key in the key file.
    firebase_api_key: SecretStr | None = None

    # Firestore REST
    firestore_base_url: str = "https://firestore.googleapis.com/v1"
    firestore_database_id: str = "(default)"
    http_timeout_seconds: float = 30.0
    list_page_size: int = 100

    # Tokens
    token_refresh_margin_seconds: int = 60
    token_lifetime_seconds: int = 3600

    # Retry with exponential backoff
    retry_initial_interval_seconds: float = 0.5
    retry_multiplier: float = 1.5
    retry_randomization_factor: float = 0.5
    retry_max_interval_seconds: float = 60.0
    request_retry_max_elapsed_seconds: float = 60.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_retry_and_tokens(self) -> "Settings":
        """Reject retry and token settings that would loop forever or never refresh."""
        if self.retry_initial_interval_seconds <= 0:
            raise ValueError("retry_initial_interval_seconds must be positive")
        if self.retry_max_interval_seconds < self.retry_initial_interval_seconds:
            raise ValueError(
                "retry_max_interval_seconds must be >= retry_initial_interval_seconds"
            )
        if self.retry_multiplier < 1:
            raise ValueError("retry_multiplier must be >= 1")
        if not 0 <= self.retry_randomization_factor <= 1:
            raise ValueError("retry_randomization_factor must be within [0, 1]")
        if self.request_retry_max_elapsed_seconds <= 0:
            raise ValueError("request_retry_max_elapsed_seconds must be positive")
        if self.token_refresh_margin_seconds < 0:
            raise ValueError("token_refresh_margin_seconds must not be negative")
        if self.token_lifetime_seconds <= self.token_refresh_margin_seconds:
            raise ValueError(
                "token_lifetime_seconds must exceed token_refresh_margin_seconds"
            )
        if self.list_page_size <= 0:
            raise ValueError("list_page_size must be positive")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached settings (single instance per process).

    In tests, call get_settings.cache_clear() before overriding env vars so
    the next get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
