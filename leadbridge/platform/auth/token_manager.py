"""Token manager for the destination OAuth2 access token."""

import asyncio
import time
from enum import Enum
from typing import Any, Callable, Optional

import httpx

from leadbridge.core.config import Settings
from leadbridge.core.datetime_utils import utc_from_timestamp
from leadbridge.core.exceptions import (
    AuthExpiredError,
    LeadbridgeException,
    RateLimitBlockedError,
    TransientAuthError,
)
from leadbridge.core.logging import logger
from leadbridge.platform.auth.credential_store import CredentialStore
from leadbridge.platform.auth.schemas import (
    BiginCredential,
    OAuth2ErrorResponse,
    OAuth2TokenResponse,
)


class TokenState(str, Enum):
    """Lifecycle of the single managed credential."""

    UNINITIALIZED = "uninitialized"
    VALID = "valid"
    EXPIRING = "expiring"
    REFRESHING = "refreshing"
    COOLDOWN_BLOCKED = "cooldown_blocked"


class TokenManager:
    """Keeps one destination access token valid under rate-limit pressure.

    This class owns the credential. It handles:
    - Returning the cached token while it is inside its validity window (no network call)
    - Refreshing through the OAuth refresh-token grant once it is not
    - A client-side cooldown between refresh attempts, extended when the auth server throttles
    - Sharing one in-flight refresh between all concurrent callers
    - Persisting every refreshed token to a credential store
    """

    ACCESS_TOKEN_KEY = "BIGIN_ACCESS_TOKEN"
    EXPIRES_AT_KEY = "BIGIN_ACCESS_TOKEN_EXPIRES_AT"

    # Zoho issues one-hour tokens; used when the response has no `expires_in`
    DEFAULT_EXPIRES_IN_SECONDS = 3600

    # `error` values meaning the refresh token itself is unusable
    INVALID_REFRESH_ERRORS = frozenset(
        {"invalid_code", "invalid_grant", "invalid_client", "invalid_token"}
    )

    def __init__(
        self,
        credential: BiginCredential,
        *,
        token_url: str,
        http_client: httpx.AsyncClient,
        credential_store: CredentialStore,
        clock: Callable[[], float] = time.time,
        refresh_cooldown_seconds: float = 60.0,
        throttle_cooldown_seconds: float = 300.0,
        safety_margin_seconds: float = 300.0,
        logger_instance=None,
    ):
        """Initialize the token manager.

        Args:
            credential: The credential to manage; copied, never shared.
            token_url: OAuth token endpoint used for the refresh-token grant.
            http_client: Shared async HTTP client.
            credential_store: Where refreshed tokens are persisted.
            clock: Returns the current time in epoch seconds.
            refresh_cooldown_seconds: Minimum time between two refresh attempts.
            throttle_cooldown_seconds: Cooldown applied when the auth server throttles us.
            safety_margin_seconds: Subtracted from `expires_in` when computing the expiry.
            logger_instance: Optional logger instance for contextual logging.
        """
        self._credential = credential.model_copy()
        self._token_url = token_url
        self._http = http_client
        self._store = credential_store
        self._clock = clock
        self._refresh_cooldown = refresh_cooldown_seconds
        self._throttle_cooldown = throttle_cooldown_seconds
        self._safety_margin = safety_margin_seconds
        self.logger = logger_instance or logger

        self._last_refresh_attempt: Optional[float] = None
        self._blocked_until: Optional[float] = None
        self._inflight: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        http_client: httpx.AsyncClient,
        credential_store: CredentialStore,
        clock: Callable[[], float] = time.time,
        logger_instance=None,
    ) -> "TokenManager":
        """Build a token manager, reusing a persisted token that has not expired yet."""
        access_token = credential_store.get(cls.ACCESS_TOKEN_KEY) or settings.BIGIN_ACCESS_TOKEN
        raw_expires_at = credential_store.get(cls.EXPIRES_AT_KEY)
        if raw_expires_at is None:
            raw_expires_at = settings.BIGIN_ACCESS_TOKEN_EXPIRES_AT

        credential = BiginCredential(
            access_token=access_token,
            expires_at=_parse_epoch(raw_expires_at),
            refresh_token=settings.BIGIN_REFRESH_TOKEN,
            client_id=settings.BIGIN_CLIENT_ID,
            client_secret=settings.BIGIN_CLIENT_SECRET,
        )
        return cls(
            credential,
            token_url=settings.BIGIN_AUTH_URL,
            http_client=http_client,
            credential_store=credential_store,
            clock=clock,
            refresh_cooldown_seconds=settings.TOKEN_REFRESH_COOLDOWN_SECONDS,
            throttle_cooldown_seconds=settings.TOKEN_THROTTLE_COOLDOWN_SECONDS,
            safety_margin_seconds=settings.TOKEN_EXPIRY_SAFETY_MARGIN_SECONDS,
            logger_instance=logger_instance,
        )

    @property
    def state(self) -> TokenState:
        """Current lifecycle state of the credential."""
        if self._inflight is not None and not self._inflight.done():
            return TokenState.REFRESHING

        now = self._clock()
        if self._credential.is_valid_at(now):
            return TokenState.VALID

        retry_at = self._cooldown_ends_at()
        if retry_at is not None and now < retry_at:
            return TokenState.COOLDOWN_BLOCKED

        if not self._credential.access_token and self._last_refresh_attempt is None:
            return TokenState.UNINITIALIZED

        return TokenState.EXPIRING

    @property
    def expires_at(self) -> Optional[float]:
        """Epoch seconds after which the cached token is no longer handed out."""
        return self._credential.expires_at

    async def get_valid_token(self) -> str:
        """Get a valid access token, refreshing if necessary.

        Returns:
            A valid access token

        Raises:
            RateLimitBlockedError: If a refresh is needed but the cooldown is active
            AuthExpiredError: If the refresh token was rejected
            TransientAuthError: If the refresh failed for any other reason
        """
        now = self._clock()
        if self._credential.is_valid_at(now):
            return self._credential.access_token

        return await self._join_or_start_refresh(now)

    async def refresh_on_unauthorized(self, stale_token: Optional[str] = None) -> str:
        """Force a token refresh after the record API rejected `stale_token`.

        If another caller already replaced the rejected token, the replacement is returned
        without a network call.
        """
        now = self._clock()
        current = self._credential.access_token
        if current and current != stale_token and self._credential.is_valid_at(now):
            return current

        if self._inflight is None:
            self.logger.warning("Access token rejected by the destination, forcing a refresh")
            self.invalidate()

        return await self._join_or_start_refresh(now)

    def invalidate(self) -> None:
        """Mark the cached token as stale; the next call goes through a refresh."""
        self._credential.expires_at = None

    async def _join_or_start_refresh(self, now: float) -> str:
        if self._inflight is None:
            self._ensure_not_cooling_down(now)
            self._last_refresh_attempt = now
            self._inflight = asyncio.create_task(self._refresh(now))
            self._inflight.add_done_callback(self._on_refresh_done)

        # Shielded so a cancelled caller does not cancel the refresh other callers wait on
        return await asyncio.shield(self._inflight)

    def _on_refresh_done(self, task: asyncio.Task) -> None:
        self._inflight = None
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self.logger.error(f"Failed to refresh destination access token: {error}")

    def _cooldown_ends_at(self) -> Optional[float]:
        ends_at = None
        if self._last_refresh_attempt is not None:
            ends_at = self._last_refresh_attempt + self._refresh_cooldown
        if self._blocked_until is not None:
            ends_at = max(ends_at or self._blocked_until, self._blocked_until)
        return ends_at

    def _ensure_not_cooling_down(self, now: float) -> None:
        retry_at = self._cooldown_ends_at()
        if retry_at is not None and now < retry_at:
            self.logger.info(
                f"Rate limit protection: token refresh blocked for {retry_at - now:.0f}s"
            )
            raise RateLimitBlockedError(retry_after=retry_at - now)

    async def _refresh(self, started_at: float) -> str:
        """Perform the refresh-token grant and store the new token.

        Returns:
            The new access token

        Raises:
            LeadbridgeException: Classified refresh failure
        """
        if not self._credential.can_refresh:
            raise AuthExpiredError(
                "Destination refresh credentials are not configured "
                "(refresh token, client id and client secret are required)"
            )

        payload = {
            "refresh_token": self._credential.refresh_token,
            "client_id": self._credential.client_id,
            "client_secret": self._credential.client_secret,
            "grant_type": "refresh_token",
        }

        self.logger.info(f"Refreshing destination access token via {self._token_url}")
        try:
            response = await self._http.post(self._token_url, data=payload)
        except httpx.HTTPError as e:
            raise TransientAuthError(f"Token endpoint unreachable: {e}") from e

        body = _decode_body(response)
        if not (response.is_success and isinstance(body, dict) and body.get("access_token")):
            raise self._classify_failure(response.status_code, body)

        token = OAuth2TokenResponse.model_validate(body)
        expires_in = token.expires_in or self.DEFAULT_EXPIRES_IN_SECONDS

        self._credential.access_token = token.access_token
        self._credential.expires_at = started_at + expires_in - self._safety_margin
        await self._persist()

        self.logger.debug(
            "Destination access token refreshed, valid until "
            f"{utc_from_timestamp(self._credential.expires_at).isoformat()}"
        )
        return token.access_token

    def _classify_failure(self, status_code: int, body: Any) -> LeadbridgeException:
        error = OAuth2ErrorResponse.from_body(body)
        code = (error.error or "").lower()
        description = (error.error_description or "").lower()

        if status_code == 429 or (code == "access denied" and "too many requests" in description):
            self._blocked_until = self._clock() + self._throttle_cooldown
            return RateLimitBlockedError(
                f"Token endpoint throttled the refresh: {error.text}",
                retry_after=self._throttle_cooldown,
                details=body,
            )

        if code in self.INVALID_REFRESH_ERRORS:
            return AuthExpiredError(f"Refresh token rejected: {error.text}", details=body)

        return TransientAuthError(
            f"Token refresh failed (HTTP {status_code}): {error.text}", details=body
        )

    async def _persist(self) -> None:
        try:
            # Stores may do blocking file I/O
            await asyncio.to_thread(self._write_credential)
        except Exception as e:
            # The token is still usable for this process; only the restart reuse is lost
            self.logger.error(f"Failed to persist refreshed access token: {e}")

    def _write_credential(self) -> None:
        self._store.set(self.ACCESS_TOKEN_KEY, self._credential.access_token)
        self._store.set(self.EXPIRES_AT_KEY, str(int(self._credential.expires_at)))


def _decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


def _parse_epoch(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
