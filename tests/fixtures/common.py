"""Common test fixtures."""

import itertools
from typing import Any, Callable, Optional, Union

import httpx
import pytest

from leadbridge.platform.auth.credential_store import InMemoryCredentialStore
from leadbridge.platform.destinations._base import BaseDestination
from leadbridge.schemas.record import RecordPage

START_TIME = 1_700_000_000.0


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, now: float = START_TIME):
        """Start the clock at `now`."""
        self.now = now

    def __call__(self) -> float:
        """Return the current fake time."""
        return self.now

    def advance(self, seconds: float) -> None:
        """Move the clock forward."""
        self.now += seconds


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served.

    `responses` is either a handler or a list of responses (or exceptions) returned in order.
    """

    def __init__(
        self,
        responses: Union[Callable[[httpx.Request], httpx.Response], list[Any]],
    ):
        """Initialize with a handler or a response script."""
        self.requests: list[httpx.Request] = []
        self._script = None if callable(responses) else list(responses)
        self._handler = responses if callable(responses) else None
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self._handler is not None:
            return self._handler(request)

        if not self._script:
            raise AssertionError(f"Unexpected request {request.method} {request.url}")
        outcome = self._script.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeDestination(BaseDestination):
    """In-memory destination that records every call.

    Exact-match search only; `fail_on` maps `(operation, module)` to the exception to raise.
    """

    def __init__(self):
        """Initialize an empty destination."""
        super().__init__()
        self.records: dict[str, list[dict[str, Any]]] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_on: dict[tuple[str, str], Exception] = {}
        self._ids = itertools.count(1)

    def seed(self, module: str, record: dict[str, Any]) -> str:
        """Add a record directly, returning its id."""
        record_id = record.get("id") or str(next(self._ids))
        self.records.setdefault(module, []).append({**record, "id": record_id})
        return record_id

    def calls_for(self, module: str, operation: Optional[str] = None) -> list[tuple[str, str]]:
        """Calls against `module`, optionally filtered by operation."""
        return [
            call
            for call in self.calls
            if call[1] == module and (operation is None or call[0] == operation)
        ]

    def _record_call(self, operation: str, module: str) -> None:
        self.calls.append((operation, module))
        error = self.fail_on.get((operation, module))
        if error is not None:
            raise error

    async def list_records(self, module: str, *, page: int = 1, per_page: int = 200) -> RecordPage:
        """List a page of the module."""
        self._record_call("list", module)
        records = self.records.get(module, [])
        start = (page - 1) * per_page
        return RecordPage(
            records=[dict(record) for record in records[start : start + per_page]],
            page=page,
            per_page=per_page,
            more_records=start + per_page < len(records),
            count=len(records),
        )

    async def search_records(
        self, module: str, field: str, value: str, *, operator: str = "equals"
    ) -> list[dict[str, Any]]:
        """Exact-match search."""
        self._record_call("search", module)
        matches = self.records.get(module, [])
        return [dict(record) for record in matches if record.get(field) == value]

    async def create_record(self, module: str, record: dict[str, Any]) -> dict[str, Any]:
        """Store a copy of the record under a new id."""
        self._record_call("create", module)
        record_id = str(next(self._ids))
        self.records.setdefault(module, []).append({**record, "id": record_id})
        return {"id": record_id, "Created_Time": "2024-01-01T00:00:00+00:00"}

    async def update_record(
        self, module: str, record_id: str, record: dict[str, Any]
    ) -> dict[str, Any]:
        """Merge the fields into the stored record."""
        self._record_call("update", module)
        for stored in self.records.get(module, []):
            if stored["id"] == record_id:
                stored.update(record)
                return {"id": record_id, "Modified_Time": "2024-01-01T00:00:00+00:00"}
        raise AssertionError(f"update of unknown {module} record {record_id}")


def json_response(status_code: int, body: Any = None) -> httpx.Response:
    """Build a JSON response; a None body yields an empty response."""
    if body is None:
        return httpx.Response(status_code)
    return httpx.Response(status_code, json=body)


@pytest.fixture
def fake_clock():
    """Create a fake clock for tests."""
    return FakeClock()


@pytest.fixture
def fake_destination():
    """Create an empty in-memory destination for tests."""
    return FakeDestination()


@pytest.fixture
def credential_store():
    """Create an empty in-memory credential store for tests."""
    return InMemoryCredentialStore()


@pytest.fixture
def apollo_person():
    """Create a realistic Apollo person record for tests."""
    return {
        "id": "apollo-person-1",
        "first_name": "John",
        "last_name": "Doe",
        "email": "john@acme.com",
        "title": "VP Engineering",
        "seniority": "vp",
        "phone_number": "+1 415 555 0100",
        "linkedin_url": "https://linkedin.com/in/johndoe",
        "city": "San Francisco",
        "state": "California",
        "country": "United States",
        "organization": {
            "name": "Acme",
            "industry": "Computer Software",
            "website_url": "https://acme.com",
        },
    }
