"""Bigin (Zoho) record API destination.

Bigin has no native upsert, so this client only exposes the primitives (list, search, create,
update); reconciliation lives in `leadbridge.platform.sync.upsert`.
"""

import re
from typing import Any, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from leadbridge.core.exceptions import (
    RateLimitBlockedError,
    RecordValidationError,
    UnauthorizedError,
    UpstreamError,
)
from leadbridge.platform.auth.token_manager import TokenManager
from leadbridge.platform.destinations._base import BaseDestination
from leadbridge.schemas.record import RecordPage

CONTACTS = "Contacts"
ACCOUNTS = "Accounts"


class BiginDestination(BaseDestination):
    """Bigin REST client authenticated by the shared token manager.

    Every call is wrapped in a bounded auth retry: a 401 triggers exactly one forced token
    refresh followed by one more attempt of the same request. Any other error propagates
    untouched, with the response body attached.
    """

    # First attempt plus one retry after a forced refresh
    AUTH_ATTEMPTS = 2

    # Zoho error codes that mean the record itself was rejected
    VALIDATION_CODES = frozenset(
        {"INVALID_DATA", "MANDATORY_NOT_FOUND", "DUPLICATE_DATA", "REQUIRED_PARAM_MISSING"}
    )

    def __init__(
        self,
        token_manager: TokenManager,
        http_client: httpx.AsyncClient,
        base_url: str = "https://www.zohoapis.com/bigin/v1",
    ):
        """Initialize the Bigin destination.

        Args:
            token_manager: Source of valid access tokens.
            http_client: Shared async HTTP client.
            base_url: Bigin API root, data-center specific.
        """
        super().__init__()
        self.token_manager = token_manager
        self._http = http_client
        self._base_url = base_url.rstrip("/")

    async def list_records(self, module: str, *, page: int = 1, per_page: int = 200) -> RecordPage:
        """List one page of a module using index-based pagination."""
        params = {"from_index": (page - 1) * per_page, "per_page": per_page}
        body = await self._request("GET", module, params=params)
        return self._to_page(body, page=page, per_page=per_page)

    async def count_records(self, module: str) -> int:
        """Total number of records in a module."""
        body = await self._request("GET", f"{module}/count")
        return int(body.get("count") or 0)

    async def search_records(
        self, module: str, field: str, value: str, *, operator: str = "equals"
    ) -> list[dict[str, Any]]:
        """Search by `(field:operator:value)`. Bigin answers 204 when nothing matches."""
        criteria = f"({field}:{operator}:{escape_criteria_value(value)})"
        body = await self._request("GET", f"{module}/search", params={"criteria": criteria})
        return body.get("data") or []

    async def search_text(
        self, module: str, word: str, *, page: int = 1, per_page: int = 25
    ) -> RecordPage:
        """Free-text search across the searchable fields of a module."""
        params = {"word": word, "from_index": (page - 1) * per_page, "per_page": per_page}
        body = await self._request("GET", f"{module}/search", params=params)
        return self._to_page(body, page=page, per_page=per_page)

    async def create_record(self, module: str, record: dict[str, Any]) -> dict[str, Any]:
        """Create a single record and return its `details` (contains `id`)."""
        body = await self._request("POST", module, json={"data": [record]})
        return self._single_result(body, action=f"create {module}")

    async def update_record(
        self, module: str, record_id: str, record: dict[str, Any]
    ) -> dict[str, Any]:
        """Update a single record by id and return its `details`."""
        body = await self._request("PUT", f"{module}/{record_id}", json={"data": [record]})
        return self._single_result(body, action=f"update {module}/{record_id}")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        url = f"{self._base_url}/{path}"
        token: Optional[str] = None

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.AUTH_ATTEMPTS),
            retry=retry_if_exception_type(UnauthorizedError),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number == 1:
                    token = await self.token_manager.get_valid_token()
                else:
                    token = await self.token_manager.refresh_on_unauthorized(token)

                try:
                    response = await self._http.request(
                        method,
                        url,
                        params=params,
                        json=json,
                        headers={"Authorization": f"Bearer {token}"},
                    )
                except httpx.HTTPError as e:
                    raise UpstreamError(f"Bigin request {method} {path} failed: {e}") from e

                body = self._handle_response(response, method=method, path=path)

        return body

    def _handle_response(self, response: httpx.Response, *, method: str, path: str) -> dict:
        if response.status_code == 204:
            return {}

        body = _decode_body(response)
        if response.is_success:
            return body if isinstance(body, dict) else {}

        status = response.status_code
        code = _error_code(body)
        self.logger.warning(f"Bigin {method} {path} returned HTTP {status} ({code or 'no code'})")

        if status == 401:
            raise UnauthorizedError(f"Bigin rejected the access token ({code})", details=body)
        if status == 429:
            raise RateLimitBlockedError("Bigin API rate limit exceeded", details=body)
        if code in self.VALIDATION_CODES:
            raise RecordValidationError(
                f"Bigin rejected the record: {_error_message(body) or code}", details=body
            )
        reason = _error_message(body) or code or response.reason_phrase
        raise UpstreamError(
            f"Bigin API error (HTTP {status}): {reason}",
            status_code=status,
            details=body,
        )

    def _single_result(self, body: dict[str, Any], *, action: str) -> dict[str, Any]:
        data = body.get("data") or []
        if not data:
            raise UpstreamError(f"Bigin returned no result for {action}", details=body)

        result = data[0]
        if result.get("status") == "error":
            raise RecordValidationError(
                f"Bigin rejected {action}: {result.get('message') or result.get('code')}",
                details=result,
            )
        return result.get("details") or {}

    @staticmethod
    def _to_page(body: dict[str, Any], *, page: int, per_page: int) -> RecordPage:
        info = body.get("info") or {}
        return RecordPage(
            records=body.get("data") or [],
            page=page,
            per_page=per_page,
            more_records=info.get("more_records") is True,
            count=info.get("count"),
        )


def escape_criteria_value(value: str) -> str:
    """Backslash-escape the characters that delimit Zoho search criteria."""
    return re.sub(r"([(),\\])", r"\\\1", str(value))


def _decode_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


def _error_code(body: Any) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    if body.get("code"):
        return body["code"]
    data = body.get("data")
    if isinstance(data, list) and data and isinstance(data[0], dict):
        return data[0].get("code")
    return None


def _error_message(body: Any) -> Optional[str]:
    if not isinstance(body, dict):
        return str(body) if body else None
    if body.get("message"):
        return body["message"]
    data = body.get("data")
    if isinstance(data, list) and data and isinstance(data[0], dict):
        return data[0].get("message")
    return None
