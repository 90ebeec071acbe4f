"""Unit tests for the sync factory."""

import httpx
import pytest

from leadbridge.core.config import Settings
from leadbridge.platform.auth.credential_store import InMemoryCredentialStore
from leadbridge.platform.auth.token_manager import TokenState
from leadbridge.platform.sync.factory import SyncFactory
from tests.fixtures.common import START_TIME, RecordingTransport


@pytest.fixture
def settings():
    """Create settings that do not read the local .env file."""
    return Settings(
        _env_file=None,
        APOLLO_API_KEY="apollo-key",
        BIGIN_REFRESH_TOKEN="refresh-token",
        BIGIN_CLIENT_ID="client-id",
        BIGIN_CLIENT_SECRET="client-secret",
        SYNC_BATCH_SIZE=3,
    )


@pytest.mark.asyncio
async def test_create_wires_shared_components(settings, fake_clock):
    """All components share the injected client, and a persisted token is reused."""
    store = InMemoryCredentialStore(
        {
            "BIGIN_ACCESS_TOKEN": "persisted",
            "BIGIN_ACCESS_TOKEN_EXPIRES_AT": str(int(START_TIME + 900)),
        }
    )
    http_client = httpx.AsyncClient(transport=RecordingTransport([]))

    context = SyncFactory.create(
        settings, credential_store=store, http_client=http_client, clock=fake_clock
    )

    assert context.destination.token_manager is context.token_manager
    assert context.token_manager.state == TokenState.VALID
    assert await context.token_manager.get_valid_token() == "persisted"
    assert context.batch_coordinator._batch_size == 3
    assert context.contact_revealer.phone_store is context.phone_store

    await context.aclose()
    assert not http_client.is_closed
    await http_client.aclose()


@pytest.mark.asyncio
async def test_context_closes_its_own_client(settings, fake_clock):
    """A client created by the factory is closed with the context."""
    context = SyncFactory.create(
        settings, credential_store=InMemoryCredentialStore(), clock=fake_clock
    )

    await context.aclose()

    assert context.http_client.is_closed
    assert context.token_manager.state == TokenState.UNINITIALIZED
