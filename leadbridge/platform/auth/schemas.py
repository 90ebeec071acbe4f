"""Schemas for destination OAuth credentials and token endpoint responses."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict


class OAuth2TokenResponse(BaseModel):
    """OAuth2 token response schema.

    Attributes:
    ----------
        access_token (str): The access token.
        token_type (Optional[str]): The token type.
        expires_in (Optional[int]): The expiration time in seconds.
        api_domain (Optional[str]): Zoho data-center specific API domain.
        scope (Optional[str]): The scope of the token.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    api_domain: Optional[str] = None
    scope: Optional[str] = None


class OAuth2ErrorResponse(BaseModel):
    """Error object returned by the token endpoint (`{error, error_description}`)."""

    model_config = ConfigDict(extra="allow")

    error: Optional[str] = None
    error_description: Optional[str] = None

    @classmethod
    def from_body(cls, body: Any) -> "OAuth2ErrorResponse":
        """Parse a decoded response body, tolerating non-dict payloads."""
        if isinstance(body, dict):
            return cls.model_validate(body)
        return cls(error_description=str(body) if body else None)

    @property
    def text(self) -> str:
        """Best human-readable message."""
        return self.error_description or self.error or "unknown error"


class BiginCredential(BaseModel):
    """The single destination credential managed by the token manager.

    Attributes:
    ----------
        access_token (Optional[str]): Current bearer token, if any.
        expires_at (Optional[float]): Epoch seconds after which the access token is stale.
            Already includes the safety margin.
        refresh_token (Optional[str]): Long-lived token for the refresh-token grant.
        client_id (Optional[str]): OAuth client id.
        client_secret (Optional[str]): OAuth client secret.
    """

    access_token: Optional[str] = None
    expires_at: Optional[float] = None
    refresh_token: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None

    def is_valid_at(self, now: float) -> bool:
        """Whether the cached access token can be used at `now`."""
        return bool(self.access_token) and self.expires_at is not None and self.expires_at > now

    @property
    def can_refresh(self) -> bool:
        """Whether all inputs of the refresh-token grant are present."""
        return bool(self.refresh_token and self.client_id and self.client_secret)
