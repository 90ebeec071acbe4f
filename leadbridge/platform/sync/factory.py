"""Module for sync factory that builds the shared sync context."""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional

import httpx

from leadbridge.core.config import Settings
from leadbridge.core.logging import LoggerConfigurator
from leadbridge.platform.auth.credential_store import CredentialStore, DotEnvCredentialStore
from leadbridge.platform.auth.token_manager import TokenManager
from leadbridge.platform.destinations.bigin import BiginDestination
from leadbridge.platform.sources.apollo import ApolloSource
from leadbridge.platform.sync.batch import BatchCoordinator
from leadbridge.platform.sync.contact_cache import ContactCache
from leadbridge.platform.sync.context import SyncContext
from leadbridge.platform.sync.reveal import ContactRevealer, PhoneStore
from leadbridge.platform.sync.upsert import UpsertEngine


class SyncFactory:
    """Factory for the sync context."""

    @classmethod
    def create(
        cls,
        settings: Settings,
        credential_store: Optional[CredentialStore] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> SyncContext:
        """Wire all sync components around one HTTP client and one clock.

        Args:
            settings: Application settings.
            credential_store: Where refreshed tokens are persisted; defaults to the env file
                named by `CREDENTIALS_ENV_FILE`.
            http_client: Shared client; created (and later closed by the context) if omitted.
            clock: Returns the current time in epoch seconds.
            sleep: Coroutine used by the batch coordinator between groups.

        Returns:
            The ready-to-use sync context
        """
        logger = LoggerConfigurator.configure_logger(
            "leadbridge.sync", dimensions={"service": settings.PROJECT_NAME}
        )

        owns_http_client = http_client is None
        if http_client is None:
            http_client = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)

        if credential_store is None:
            credential_store = DotEnvCredentialStore(settings.CREDENTIALS_ENV_FILE)

        token_manager = TokenManager.from_settings(
            settings,
            http_client=http_client,
            credential_store=credential_store,
            clock=clock,
            logger_instance=logger.with_prefix("[TokenManager] "),
        )

        source = ApolloSource(
            settings.APOLLO_API_KEY, http_client, base_url=settings.APOLLO_BASE_URL
        )
        source.set_logger(logger.with_context(platform="apollo"))

        destination = BiginDestination(
            token_manager, http_client, base_url=settings.BIGIN_BASE_URL
        )
        destination.set_logger(logger.with_context(platform="bigin"))

        contact_cache = ContactCache(
            destination,
            clock=clock,
            ttl_seconds=settings.CONTACT_CACHE_TTL_SECONDS,
            fetch_cooldown_seconds=settings.CONTACT_FETCH_COOLDOWN_SECONDS,
            page_size=settings.CONTACT_CACHE_PAGE_SIZE,
            logger_instance=logger.with_prefix("[ContactCache] "),
        )

        upsert_engine = UpsertEngine(destination, logger_instance=logger.with_prefix("[Upsert] "))

        batch_coordinator = BatchCoordinator(
            upsert_engine.sync_contact,
            batch_size=settings.SYNC_BATCH_SIZE,
            inter_batch_delay=settings.SYNC_BATCH_DELAY_SECONDS,
            sleep=sleep,
            logger_instance=logger.with_prefix("[Batch] "),
        )

        phone_store = PhoneStore(clock=clock)
        contact_revealer = ContactRevealer(
            source,
            phone_store,
            webhook_url=settings.APOLLO_PHONE_WEBHOOK_URL,
            logger_instance=logger.with_prefix("[Reveal] "),
        )

        logger.info(f"Sync context ready (token state: {token_manager.state.value})")

        return SyncContext(
            http_client=http_client,
            token_manager=token_manager,
            source=source,
            destination=destination,
            contact_cache=contact_cache,
            upsert_engine=upsert_engine,
            batch_coordinator=batch_coordinator,
            phone_store=phone_store,
            contact_revealer=contact_revealer,
            logger=logger,
            owns_http_client=owns_http_client,
        )
