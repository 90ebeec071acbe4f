"""Configuration settings for the Leadbridge service.

Wraps environment variables (and the local `.env` file) and provides defaults.
"""

from typing import Optional

from pydantic import ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pydantic settings class.

    Attributes:
    ----------
        PROJECT_NAME (str): The name of the project.
        LOCAL_DEVELOPMENT (bool): Whether the application is running locally.
        LOG_LEVEL (str): The logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        APOLLO_API_KEY (Optional[str]): API key for the Apollo.io search API.
        APOLLO_BASE_URL (str): Base URL of the Apollo.io REST API.
        BIGIN_BASE_URL (str): Base URL of the Bigin record API.
        BIGIN_AUTH_URL (str): The Zoho OAuth token endpoint.
        BIGIN_ACCESS_TOKEN (Optional[str]): Last persisted access token, reused on start.
        BIGIN_ACCESS_TOKEN_EXPIRES_AT (Optional[float]): Epoch seconds after which the
            persisted access token must no longer be used.
        BIGIN_REFRESH_TOKEN (Optional[str]): Long-lived refresh token issued out of band.
        BIGIN_CLIENT_ID (Optional[str]): OAuth client id.
        BIGIN_CLIENT_SECRET (Optional[str]): OAuth client secret.
        CREDENTIALS_ENV_FILE (str): Env file rewritten when the access token is refreshed.
        HTTP_TIMEOUT_SECONDS (float): Default timeout for outgoing HTTP requests.
        TOKEN_REFRESH_COOLDOWN_SECONDS (float): Minimum time between two refresh attempts.
        TOKEN_THROTTLE_COOLDOWN_SECONDS (float): Cooldown applied when the auth server throttles.
        TOKEN_EXPIRY_SAFETY_MARGIN_SECONDS (float): Subtracted from `expires_in`.
        CONTACT_CACHE_TTL_SECONDS (float): Lifetime of the cached contact listing.
        CONTACT_FETCH_COOLDOWN_SECONDS (float): Minimum time between two live listings.
        CONTACT_CACHE_PAGE_SIZE (int): Records requested per live listing.
        SYNC_BATCH_SIZE (int): Records upserted concurrently per batch group.
        SYNC_BATCH_DELAY_SECONDS (float): Pause between two batch groups.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", env_ignore_empty=True)

    PROJECT_NAME: str = "Leadbridge"
    LOCAL_DEVELOPMENT: bool = False

    # Logging configuration
    LOG_LEVEL: str = "INFO"

    # Source platform
    APOLLO_API_KEY: Optional[str] = None
    APOLLO_BASE_URL: str = "https://api.apollo.io/v1"
    # Public URL of `/apollo/phone-webhook`; Apollo delivers revealed phone numbers there
    APOLLO_PHONE_WEBHOOK_URL: Optional[str] = None

    # Destination platform
    BIGIN_BASE_URL: str = "https://www.zohoapis.com/bigin/v1"
    BIGIN_AUTH_URL: str = "https://accounts.zoho.com/oauth/v2/token"
    BIGIN_ACCESS_TOKEN: Optional[str] = None
    BIGIN_ACCESS_TOKEN_EXPIRES_AT: Optional[float] = None
    BIGIN_REFRESH_TOKEN: Optional[str] = None
    BIGIN_CLIENT_ID: Optional[str] = None
    BIGIN_CLIENT_SECRET: Optional[str] = None

    CREDENTIALS_ENV_FILE: str = ".env"
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Token lifecycle
    TOKEN_REFRESH_COOLDOWN_SECONDS: float = 60.0
    TOKEN_THROTTLE_COOLDOWN_SECONDS: float = 300.0
    TOKEN_EXPIRY_SAFETY_MARGIN_SECONDS: float = 300.0

    # Contact listing cache
    CONTACT_CACHE_TTL_SECONDS: float = 300.0
    CONTACT_FETCH_COOLDOWN_SECONDS: float = 60.0
    CONTACT_CACHE_PAGE_SIZE: int = 200

    # Batch sync
    SYNC_BATCH_SIZE: int = 5
    SYNC_BATCH_DELAY_SECONDS: float = 2.0

    @field_validator("SYNC_BATCH_SIZE", "CONTACT_CACHE_PAGE_SIZE")
    def validate_positive(cls, v: int, info: ValidationInfo) -> int:
        """Reject sizes that would make pagination or batching loop forever.

        Args:
            v: The configured size.
            info: Validation context, used for the field name.
        """
        if v <= 0:
            raise ValueError(f"{info.field_name} must be greater than zero")
        return v

    @field_validator(
        "SYNC_BATCH_DELAY_SECONDS",
        "TOKEN_REFRESH_COOLDOWN_SECONDS",
        "TOKEN_THROTTLE_COOLDOWN_SECONDS",
        "TOKEN_EXPIRY_SAFETY_MARGIN_SECONDS",
        "CONTACT_CACHE_TTL_SECONDS",
        "CONTACT_FETCH_COOLDOWN_SECONDS",
    )
    def validate_non_negative(cls, v: float, info: ValidationInfo) -> float:
        """Durations may be zero (disabled) but never negative."""
        if v < 0:
            raise ValueError(f"{info.field_name} must not be negative")
        return v

    @property
    def has_bigin_refresh_credentials(self) -> bool:
        """Whether the refresh-token grant can be attempted at all."""
        return bool(self.BIGIN_REFRESH_TOKEN and self.BIGIN_CLIENT_ID and self.BIGIN_CLIENT_SECRET)


settings = Settings()
