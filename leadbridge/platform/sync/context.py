"""Module for sync context."""

from typing import Optional

import httpx

from leadbridge.core.logging import ContextualLogger
from leadbridge.platform.auth.token_manager import TokenManager
from leadbridge.platform.destinations.bigin import BiginDestination
from leadbridge.platform.sources.apollo import ApolloSource
from leadbridge.platform.sync.batch import BatchCoordinator
from leadbridge.platform.sync.contact_cache import ContactCache
from leadbridge.platform.sync.reveal import ContactRevealer, PhoneStore
from leadbridge.platform.sync.upsert import UpsertEngine


class SyncContext:
    """Context container for the sync service.

    Contains all the components built once per process and shared by every request:
    - http client - the shared async HTTP client
    - token manager - owner of the destination access token
    - source - the Apollo source
    - destination - the Bigin destination
    - contact cache - cached destination contact listing
    - upsert engine - create-or-update reconciliation
    - batch coordinator - throttled bulk sync
    - phone store - phone numbers delivered by the Apollo webhook
    - contact revealer - email and phone reveals
    - logger - contextual logger
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token_manager: TokenManager,
        source: ApolloSource,
        destination: BiginDestination,
        contact_cache: ContactCache,
        upsert_engine: UpsertEngine,
        batch_coordinator: BatchCoordinator,
        phone_store: PhoneStore,
        contact_revealer: ContactRevealer,
        logger: ContextualLogger,
        owns_http_client: bool = False,
    ):
        """Initialize the sync context."""
        self.http_client = http_client
        self.token_manager = token_manager
        self.source = source
        self.destination = destination
        self.contact_cache = contact_cache
        self.upsert_engine = upsert_engine
        self.batch_coordinator = batch_coordinator
        self.phone_store = phone_store
        self.contact_revealer = contact_revealer
        self.logger = logger
        self._owns_http_client = owns_http_client
        self._closed = False

    async def aclose(self) -> None:
        """Release the HTTP client if this context created it."""
        if self._closed:
            return
        self._closed = True
        if self._owns_http_client:
            await self.http_client.aclose()
            self.logger.debug("Closed shared HTTP client")

    async def __aenter__(self) -> "SyncContext":
        """Enter the context."""
        return self

    async def __aexit__(self, exc_type, exc, tb) -> Optional[bool]:
        """Close the context on exit."""
        await self.aclose()
        return None
