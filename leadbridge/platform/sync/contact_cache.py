"""Short-lived cache of the destination contact listing."""

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from leadbridge.core.logging import logger
from leadbridge.platform.destinations._base import BaseDestination
from leadbridge.platform.destinations.bigin import CONTACTS


@dataclass(frozen=True)
class CacheEntry:
    """One complete listing. Replaced as a whole, never patched."""

    records: tuple[dict[str, Any], ...]
    fetched_at: float


class ContactCache:
    """Caches destination contacts to keep listing calls under the API quota.

    Two independent clocks guard the live fetch:
    - the TTL decides when cached records are considered fresh
    - the fetch cooldown limits live fetches to one per window, even when forced or expired
    """

    def __init__(
        self,
        destination: BaseDestination,
        *,
        clock: Callable[[], float] = time.time,
        ttl_seconds: float = 300.0,
        fetch_cooldown_seconds: float = 60.0,
        page_size: int = 200,
        max_pages: int = 1,
        module: str = CONTACTS,
        logger_instance=None,
    ):
        """Initialize the contact cache.

        Args:
            destination: Record API the listing is fetched from.
            clock: Returns the current time in epoch seconds.
            ttl_seconds: How long a fetched listing is served without a live fetch.
            fetch_cooldown_seconds: Minimum time between two live fetch attempts.
            page_size: Records requested per page.
            max_pages: Upper bound on pages fetched per live fetch.
            module: Destination module that is listed.
            logger_instance: Optional logger instance for contextual logging.
        """
        self._destination = destination
        self._clock = clock
        self._ttl = ttl_seconds
        self._fetch_cooldown = fetch_cooldown_seconds
        self._page_size = page_size
        self._max_pages = max_pages
        self._module = module
        self.logger = logger_instance or logger

        self._entry: Optional[CacheEntry] = None
        self._last_fetch_attempt: Optional[float] = None

    @property
    def entry(self) -> Optional[CacheEntry]:
        """The current cache entry, if any listing was ever fetched."""
        return self._entry

    def is_fresh(self, now: Optional[float] = None) -> bool:
        """Whether the cached listing is within its TTL."""
        if self._entry is None:
            return False
        now = self._clock() if now is None else now
        return now - self._entry.fetched_at < self._ttl

    def invalidate(self) -> None:
        """Drop the cached listing. The fetch cooldown is left untouched."""
        self._entry = None

    async def get_contacts(self, force_refresh: bool = False) -> list[dict[str, Any]]:
        """Return the contact listing, from cache when possible.

        Args:
            force_refresh: Skip the TTL check. The fetch cooldown still applies.

        Returns:
            The contact records. During the fetch cooldown this is the stale listing or an
            empty list when nothing was ever cached.

        Raises:
            LeadbridgeException: If the live fetch fails and there is no cached listing
        """
        now = self._clock()

        if not force_refresh and self.is_fresh(now):
            self.logger.debug("Using cached destination contacts")
            return self._cached_records()

        if self._last_fetch_attempt is not None:
            elapsed = now - self._last_fetch_attempt
            if elapsed < self._fetch_cooldown:
                self.logger.info(
                    "Rate limit protection: serving cached contacts instead of a live fetch "
                    f"({self._fetch_cooldown - elapsed:.0f}s left)"
                )
                return self._cached_records()

        self._last_fetch_attempt = now

        try:
            records = await self._fetch_all()
        except Exception as e:
            if self._entry is None:
                raise
            self.logger.warning(f"Error fetching destination contacts, using cached data: {e}")
            return self._cached_records()

        self._entry = CacheEntry(records=tuple(records), fetched_at=self._clock())
        return self._cached_records()

    async def _fetch_all(self) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        for page in range(1, self._max_pages + 1):
            result = await self._destination.list_records(
                self._module, page=page, per_page=self._page_size
            )
            records.extend(result.records)
            if not result.more_records:
                break
        self.logger.info(f"Fetched {len(records)} {self._module} records from the destination")
        return records

    def _cached_records(self) -> list[dict[str, Any]]:
        if self._entry is None:
            return []
        return list(self._entry.records)
