"""Unit tests for the contact cache."""

import pytest

from leadbridge.core.exceptions import UpstreamError
from leadbridge.platform.destinations.bigin import CONTACTS
from leadbridge.platform.sync.contact_cache import ContactCache


@pytest.fixture
def cache(fake_destination, fake_clock):
    """Create a contact cache with a 300s TTL and a 60s fetch cooldown."""
    return ContactCache(
        fake_destination, clock=fake_clock, ttl_seconds=300, fetch_cooldown_seconds=60
    )


def seed_contacts(destination, count: int) -> None:
    for i in range(count):
        destination.seed(CONTACTS, {"Last_Name": f"Person {i}"})


class TestGetContacts:
    """Tests for cached listing reads."""

    @pytest.mark.asyncio
    async def test_fresh_cache_is_served_without_fetch(self, cache, fake_destination, fake_clock):
        """Within the TTL only the first call hits the destination."""
        seed_contacts(fake_destination, 2)

        first = await cache.get_contacts()
        fake_clock.advance(200)
        second = await cache.get_contacts()

        assert len(first) == 2
        assert second == first
        assert len(fake_destination.calls_for(CONTACTS, "list")) == 1

    @pytest.mark.asyncio
    async def test_expired_cache_is_refetched(self, cache, fake_destination, fake_clock):
        """After the TTL a live fetch replaces the listing."""
        seed_contacts(fake_destination, 1)
        await cache.get_contacts()

        seed_contacts(fake_destination, 1)
        fake_clock.advance(301)

        assert len(await cache.get_contacts()) == 2
        assert len(fake_destination.calls_for(CONTACTS, "list")) == 2

    @pytest.mark.asyncio
    async def test_forced_refresh_within_cooldown_serves_cache(
        self, cache, fake_destination, fake_clock
    ):
        """The fetch cooldown applies to forced refreshes as well."""
        seed_contacts(fake_destination, 1)
        await cache.get_contacts()

        fake_clock.advance(30)
        assert len(await cache.get_contacts(force_refresh=True)) == 1
        assert len(fake_destination.calls_for(CONTACTS, "list")) == 1

        fake_clock.advance(31)
        await cache.get_contacts(force_refresh=True)
        assert len(fake_destination.calls_for(CONTACTS, "list")) == 2

    @pytest.mark.asyncio
    async def test_failed_fetch_falls_back_to_stale_cache(
        self, cache, fake_destination, fake_clock
    ):
        """With a cached listing a failed fetch never raises."""
        seed_contacts(fake_destination, 3)
        await cache.get_contacts()

        fake_destination.fail_on[("list", CONTACTS)] = UpstreamError("boom", status_code=503)
        fake_clock.advance(301)

        assert len(await cache.get_contacts()) == 3

    @pytest.mark.asyncio
    async def test_failed_fetch_without_cache_raises(self, cache, fake_destination):
        """Without anything cached the error propagates."""
        fake_destination.fail_on[("list", CONTACTS)] = UpstreamError("boom", status_code=503)

        with pytest.raises(UpstreamError):
            await cache.get_contacts()

    @pytest.mark.asyncio
    async def test_cooldown_without_cache_returns_empty_list(
        self, cache, fake_destination, fake_clock
    ):
        """Right after a failed first fetch the cooldown yields an empty listing."""
        fake_destination.fail_on[("list", CONTACTS)] = UpstreamError("boom", status_code=503)
        with pytest.raises(UpstreamError):
            await cache.get_contacts()

        fake_clock.advance(10)

        assert await cache.get_contacts() == []
        assert len(fake_destination.calls_for(CONTACTS, "list")) == 1

    @pytest.mark.asyncio
    async def test_returned_list_is_a_copy(self, cache, fake_destination):
        """Callers cannot change the cached listing."""
        seed_contacts(fake_destination, 1)

        contacts = await cache.get_contacts()
        contacts.clear()

        assert len(await cache.get_contacts()) == 1

    @pytest.mark.asyncio
    async def test_invalidate(self, cache, fake_destination, fake_clock):
        """An invalidated cache is refetched once the cooldown allows it."""
        seed_contacts(fake_destination, 1)
        await cache.get_contacts()

        cache.invalidate()
        assert cache.entry is None
        fake_clock.advance(61)

        await cache.get_contacts()
        assert len(fake_destination.calls_for(CONTACTS, "list")) == 2


@pytest.mark.asyncio
async def test_pages_are_followed_up_to_max_pages(fake_destination, fake_clock):
    """A live fetch follows `more_records` up to the page limit."""
    seed_contacts(fake_destination, 5)
    cache = ContactCache(fake_destination, clock=fake_clock, page_size=2, max_pages=2)

    assert len(await cache.get_contacts()) == 4
    assert len(fake_destination.calls_for(CONTACTS, "list")) == 2
