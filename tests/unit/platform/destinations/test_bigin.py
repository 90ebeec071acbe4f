"""Unit tests for the Bigin destination."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from leadbridge.core.exceptions import (
    RateLimitBlockedError,
    RecordValidationError,
    UnauthorizedError,
    UpstreamError,
)
from leadbridge.platform.destinations.bigin import (
    ACCOUNTS,
    CONTACTS,
    BiginDestination,
    escape_criteria_value,
)
from tests.fixtures.common import RecordingTransport, json_response

BASE_URL = "https://www.zohoapis.com/bigin/v1"


@pytest.fixture
def mock_token_manager():
    """Create a token manager that hands out "old" and refreshes to "new"."""
    token_manager = MagicMock()
    token_manager.get_valid_token = AsyncMock(return_value="old")
    token_manager.refresh_on_unauthorized = AsyncMock(return_value="new")
    return token_manager


def build_destination(token_manager, responses) -> tuple[BiginDestination, RecordingTransport]:
    transport = RecordingTransport(responses)
    destination = BiginDestination(
        token_manager, httpx.AsyncClient(transport=transport), base_url=BASE_URL
    )
    return destination, transport


def created(record_id: str = "5001") -> httpx.Response:
    return json_response(
        201,
        {"data": [{"code": "SUCCESS", "status": "success", "details": {"id": record_id}}]},
    )


class TestBoundedAuthRetry:
    """Tests for the single refresh-and-retry on 401."""

    @pytest.mark.asyncio
    async def test_401_refreshes_and_retries_once(self, mock_token_manager):
        """A 401 forces a refresh and the request is sent again with the new token."""
        destination, transport = build_destination(
            mock_token_manager,
            [json_response(401, {"code": "INVALID_TOKEN"}), created("42")],
        )

        details = await destination.create_record(CONTACTS, {"Last_Name": "Doe"})

        assert details == {"id": "42"}
        assert len(transport.requests) == 2
        assert transport.requests[0].headers["Authorization"] == "Bearer old"
        assert transport.requests[1].headers["Authorization"] == "Bearer new"
        assert transport.requests[0].content == transport.requests[1].content
        mock_token_manager.refresh_on_unauthorized.assert_awaited_once_with("old")

    @pytest.mark.asyncio
    async def test_second_401_propagates(self, mock_token_manager):
        """A persistent auth failure is not retried again."""
        destination, transport = build_destination(
            mock_token_manager,
            [json_response(401, {"code": "INVALID_TOKEN"}), json_response(401, {})],
        )

        with pytest.raises(UnauthorizedError):
            await destination.search_records(CONTACTS, "Email", "john@acme.com")

        assert len(transport.requests) == 2
        mock_token_manager.refresh_on_unauthorized.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refresh_failure_propagates(self, mock_token_manager):
        """A blocked refresh during the retry surfaces unchanged."""
        mock_token_manager.refresh_on_unauthorized.side_effect = RateLimitBlockedError()
        destination, transport = build_destination(mock_token_manager, [json_response(401, {})])

        with pytest.raises(RateLimitBlockedError):
            await destination.list_records(CONTACTS)

        assert len(transport.requests) == 1

    @pytest.mark.asyncio
    async def test_server_error_is_not_retried(self, mock_token_manager):
        """Non-auth errors propagate without retry, with the body attached."""
        body = {"code": "INTERNAL_ERROR", "message": "Internal Server Error"}
        destination, transport = build_destination(mock_token_manager, [json_response(500, body)])

        with pytest.raises(UpstreamError) as exc_info:
            await destination.update_record(CONTACTS, "1", {"Last_Name": "Doe"})

        assert exc_info.value.status_code == 500
        assert exc_info.value.details == body
        assert len(transport.requests) == 1
        mock_token_manager.refresh_on_unauthorized.assert_not_awaited()


class TestStatusMapping:
    """Tests for response classification."""

    @pytest.mark.asyncio
    async def test_invalid_data_is_a_validation_error(self, mock_token_manager):
        """Zoho field rejections map to RecordValidationError."""
        body = {
            "data": [
                {
                    "code": "INVALID_DATA",
                    "details": {"api_name": "Email"},
                    "message": "invalid data",
                    "status": "error",
                }
            ]
        }
        destination, _ = build_destination(mock_token_manager, [json_response(400, body)])

        with pytest.raises(RecordValidationError) as exc_info:
            await destination.create_record(CONTACTS, {"Last_Name": "Doe", "Email": "nope"})

        assert exc_info.value.details == body

    @pytest.mark.asyncio
    async def test_mandatory_field_missing(self, mock_token_manager):
        """A top-level error code is recognized as well."""
        body = {"code": "MANDATORY_NOT_FOUND", "message": "required field not found"}
        destination, _ = build_destination(mock_token_manager, [json_response(400, body)])

        with pytest.raises(RecordValidationError):
            await destination.create_record(CONTACTS, {})

    @pytest.mark.asyncio
    async def test_429_is_rate_limited(self, mock_token_manager):
        """API throttling maps to RateLimitBlockedError."""
        destination, _ = build_destination(mock_token_manager, [json_response(429, {})])

        with pytest.raises(RateLimitBlockedError) as exc_info:
            await destination.list_records(CONTACTS)

        assert exc_info.value.is_rate_limit

    @pytest.mark.asyncio
    async def test_transport_error(self, mock_token_manager):
        """Transport failures become UpstreamError."""
        request = httpx.Request("GET", f"{BASE_URL}/Contacts")
        destination, _ = build_destination(
            mock_token_manager, [httpx.ReadTimeout("timed out", request=request)]
        )

        with pytest.raises(UpstreamError):
            await destination.list_records(CONTACTS)

    @pytest.mark.asyncio
    async def test_per_record_error_status(self, mock_token_manager):
        """A per-record error inside a 2xx envelope is a validation error."""
        body = {"data": [{"code": "DUPLICATE_DATA", "status": "error", "message": "duplicate"}]}
        destination, _ = build_destination(mock_token_manager, [json_response(202, body)])

        with pytest.raises(RecordValidationError):
            await destination.create_record(ACCOUNTS, {"Account_Name": "Acme"})


class TestOperations:
    """Tests for the request shapes of each operation."""

    @pytest.mark.asyncio
    async def test_search_without_match_returns_empty_list(self, mock_token_manager):
        """Bigin answers 204 No Content when nothing matches."""
        destination, transport = build_destination(mock_token_manager, [json_response(204)])

        assert await destination.search_records(CONTACTS, "Email", "john@acme.com") == []

        request = transport.requests[0]
        assert request.url.path == "/bigin/v1/Contacts/search"
        assert request.url.params["criteria"] == "(Email:equals:john@acme.com)"

    @pytest.mark.asyncio
    async def test_search_escapes_criteria(self, mock_token_manager):
        """Parentheses and commas in values are escaped."""
        body = {"data": [{"id": "7", "Account_Name": "Acme (EU), Ltd"}]}
        destination, transport = build_destination(mock_token_manager, [json_response(200, body)])

        matches = await destination.search_records(ACCOUNTS, "Account_Name", "Acme (EU), Ltd")

        assert matches == body["data"]
        criteria = transport.requests[0].url.params["criteria"]
        assert criteria == r"(Account_Name:equals:Acme \(EU\)\, Ltd)"

    @pytest.mark.asyncio
    async def test_create_sends_data_envelope(self, mock_token_manager):
        """Records are wrapped in `{"data": [record]}`."""
        destination, transport = build_destination(mock_token_manager, [created("9")])

        await destination.create_record(ACCOUNTS, {"Account_Name": "Acme"})

        request = transport.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/bigin/v1/Accounts"
        assert json.loads(request.content) == {"data": [{"Account_Name": "Acme"}]}

    @pytest.mark.asyncio
    async def test_update_targets_record_id(self, mock_token_manager):
        """Updates are sent with PUT to the record URL."""
        body = {"data": [{"code": "SUCCESS", "status": "success", "details": {"id": "3"}}]}
        destination, transport = build_destination(mock_token_manager, [json_response(200, body)])

        assert await destination.update_record(CONTACTS, "3", {"Title": "CTO"}) == {"id": "3"}
        assert transport.requests[0].method == "PUT"
        assert transport.requests[0].url.path == "/bigin/v1/Contacts/3"

    @pytest.mark.asyncio
    async def test_list_records_pagination(self, mock_token_manager):
        """Pages are addressed by index; the info envelope is exposed."""
        body = {"data": [{"id": "1"}], "info": {"more_records": True, "count": 401}}
        destination, transport = build_destination(mock_token_manager, [json_response(200, body)])

        page = await destination.list_records(CONTACTS, page=3, per_page=200)

        assert page.records == [{"id": "1"}]
        assert page.more_records is True
        assert page.count == 401
        params = transport.requests[0].url.params
        assert params["from_index"] == "400"
        assert params["per_page"] == "200"

    @pytest.mark.asyncio
    async def test_count_records(self, mock_token_manager):
        """The count endpoint returns the module total."""
        destination, transport = build_destination(
            mock_token_manager, [json_response(200, {"count": 57})]
        )

        assert await destination.count_records(CONTACTS) == 57
        assert transport.requests[0].url.path == "/bigin/v1/Contacts/count"

    @pytest.mark.asyncio
    async def test_search_text(self, mock_token_manager):
        """Free-text search uses the `word` parameter."""
        body = {"data": [{"id": "1", "Last_Name": "Doe"}], "info": {"more_records": False}}
        destination, transport = build_destination(mock_token_manager, [json_response(200, body)])

        page = await destination.search_text(CONTACTS, "doe")

        assert page.records == body["data"]
        assert transport.requests[0].url.params["word"] == "doe"


def test_escape_criteria_value():
    """Backslashes are escaped too."""
    assert escape_criteria_value("a\\b") == "a\\\\b"
    assert escape_criteria_value("plain@example.com") == "plain@example.com"
