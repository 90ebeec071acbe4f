"""Apollo.io source implementation."""

from typing import Any, AsyncGenerator, Dict, List, Optional

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential

from leadbridge.core.exceptions import ConfigurationError, UpstreamError
from leadbridge.platform.sources._base import BaseSource
from leadbridge.schemas.apollo import ApolloPeopleQuery


def _is_retryable(error: BaseException) -> bool:
    """Transport failures, throttling and server errors are worth another attempt."""
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, UpstreamError) and error.status_code is not None:
        return error.status_code == 429 or error.status_code >= 500
    return False


class ApolloSource(BaseSource):
    """Apollo.io people and organization search.

    Records are returned exactly as Apollo sends them; mapping to the CRM schema happens in
    `leadbridge.platform.transformers.field_mapping`.
    """

    def __init__(
        self,
        api_key: Optional[str],
        http_client: httpx.AsyncClient,
        base_url: str = "https://api.apollo.io/v1",
    ):
        """Initialize the Apollo source.

        Args:
            api_key: Apollo API key; sent in the `X-Api-Key` header.
            http_client: Shared async HTTP client.
            base_url: Apollo API root.
        """
        super().__init__()
        self._api_key = api_key
        self._http = http_client
        self._base_url = base_url.rstrip("/")

    async def search_people(self, query: ApolloPeopleQuery) -> List[Dict[str, Any]]:
        """Search people matching the query. Returns one page of person records."""
        data = await self._post("mixed_people/search", query.to_payload())
        people = data.get("people") or []
        self.logger.info(f"Retrieved {len(people)} contacts from Apollo (page {query.page})")
        return people

    async def search_organizations(
        self, params: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """Search organizations. `params` is passed through as the request body."""
        data = await self._post("organizations/search", dict(params or {}))
        return data.get("organizations") or []

    async def get_person(self, person_id: str) -> Optional[Dict[str, Any]]:
        """Look up a single person by Apollo id. Returns None when the id is unknown."""
        data = await self._post("people/search", {"q_ids": [person_id], "page": 1, "per_page": 1})
        people = data.get("people") or []
        return people[0] if people else None

    async def enrich_person(
        self,
        *,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email: Optional[str] = None,
        organization_name: Optional[str] = None,
        reveal_email: bool = False,
        reveal_phone: bool = False,
        webhook_url: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Look up the full Apollo record of a single person.

        Revealing contact details spends Apollo credits. Phone numbers are not part of the
        response; Apollo delivers them later to `webhook_url`.

        Args:
            first_name: First name to match on.
            last_name: Last name to match on.
            email: Email to match on.
            organization_name: Employer to match on.
            reveal_email: Ask Apollo to reveal personal emails.
            reveal_phone: Ask Apollo to reveal phone numbers.
            webhook_url: Where Apollo posts revealed phone numbers; required with `reveal_phone`.

        Returns:
            The matched person, or None when Apollo has no match.

        Raises:
            ConfigurationError: If a phone reveal is requested without a webhook URL
        """
        if reveal_phone and not webhook_url:
            raise ConfigurationError(
                "Phone reveals need a webhook URL. Set APOLLO_PHONE_WEBHOOK_URL."
            )

        payload: Dict[str, Any] = {
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "organization_name": organization_name,
        }
        if reveal_email:
            payload["reveal_personal_emails"] = True
        if reveal_phone:
            payload["reveal_phone_number"] = True
            payload["webhook_url"] = webhook_url

        data = await self._post(
            "people/match", {key: value for key, value in payload.items() if value}
        )
        return data.get("person")

    async def generate_people(
        self, query: ApolloPeopleQuery, max_pages: Optional[int] = None
    ) -> AsyncGenerator[Dict[str, Any], None]:
        """Yield people page by page until a short page (or `max_pages`) is reached."""
        page = query.page
        pages_fetched = 0

        while max_pages is None or pages_fetched < max_pages:
            people = await self.search_people(query.for_page(page))
            pages_fetched += 1

            for person in people:
                yield person

            if len(people) < query.per_page:
                break
            page += 1

    @retry(
        retry=retry_if_exception(_is_retryable),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Make an authenticated POST request to the Apollo API.

        Args:
            path: Endpoint path relative to the API root
            payload: JSON request body

        Returns:
            Decoded JSON response

        Raises:
            ConfigurationError: If no API key is configured
            UpstreamError: If Apollo answers with a non-2xx status
        """
        if not self._api_key:
            raise ConfigurationError("Apollo API key not found. Set APOLLO_API_KEY.")

        headers = {
            "X-Api-Key": self._api_key,
            "Content-Type": "application/json",
            "Cache-Control": "no-cache",
        }
        response = await self._http.post(f"{self._base_url}/{path}", json=payload, headers=headers)

        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = response.text or None
            self.logger.warning(f"Apollo {path} returned HTTP {response.status_code}")
            raise UpstreamError(
                f"Apollo API error (HTTP {response.status_code}) on {path}",
                status_code=response.status_code,
                details=body,
            )

        return response.json()
