"""Unit tests for the upsert engine."""

import pytest

from leadbridge.core.exceptions import RecordValidationError, UpstreamError
from leadbridge.platform.destinations.bigin import ACCOUNTS, CONTACTS
from leadbridge.platform.sync.upsert import UpsertEngine


@pytest.fixture
def engine(fake_destination):
    """Create an upsert engine on the in-memory destination."""
    return UpsertEngine(fake_destination)


class TestUpsertContact:
    """Tests for contact upserts."""

    @pytest.mark.asyncio
    async def test_end_to_end_into_empty_destination(self, engine, fake_destination):
        """A new contact creates its account first and then references it by id."""
        source = {
            "first_name": "John",
            "last_name": "Doe",
            "email": "john@acme.com",
            "organization_name": "Acme",
        }

        result = await engine.sync_contact(source)

        assert result.was_update is False
        [account] = fake_destination.records[ACCOUNTS]
        [contact] = fake_destination.records[CONTACTS]
        assert account["Account_Name"] == "Acme"
        assert contact["id"] == result.id
        assert contact["Last_Name"] == "Doe"
        assert contact["First_Name"] == "John"
        assert contact["Email"] == "john@acme.com"
        assert contact["Account_Name"] == {"id": account["id"]}
        assert fake_destination.calls == [
            ("search", ACCOUNTS),
            ("create", ACCOUNTS),
            ("search", CONTACTS),
            ("create", CONTACTS),
        ]

    @pytest.mark.asyncio
    async def test_upsert_is_idempotent(self, engine):
        """The second upsert of the same email updates the contact created by the first."""
        mapped = {"Last_Name": "Doe", "Email": "john@acme.com"}

        first = await engine.upsert_contact(mapped)
        second = await engine.upsert_contact(mapped)

        assert first.was_update is False
        assert second.was_update is True
        assert first.id == second.id

    @pytest.mark.asyncio
    async def test_existing_account_is_reused(self, engine, fake_destination):
        """An account with the exact name is referenced instead of created."""
        account_id = fake_destination.seed(ACCOUNTS, {"Account_Name": "Acme"})

        await engine.upsert_contact({"Last_Name": "Doe", "Account_Name": {"name": "Acme"}})

        assert fake_destination.calls_for(ACCOUNTS, "create") == []
        [contact] = fake_destination.records[CONTACTS]
        assert contact["Account_Name"] == {"id": account_id}

    @pytest.mark.asyncio
    async def test_account_reference_by_id_is_kept(self, engine, fake_destination):
        """A reference that already has an id skips account resolution."""
        await engine.upsert_contact({"Last_Name": "Doe", "Account_Name": {"id": "99"}})

        assert fake_destination.calls_for(ACCOUNTS) == []

    @pytest.mark.asyncio
    async def test_failed_account_creation_aborts_contact(self, engine, fake_destination):
        """If the account cannot be created, no contact call is made."""
        fake_destination.fail_on[("create", ACCOUNTS)] = RecordValidationError("bad account")

        with pytest.raises(RecordValidationError):
            await engine.upsert_contact(
                {"Last_Name": "Doe", "Email": "john@acme.com", "Account_Name": {"name": "Acme"}}
            )

        assert fake_destination.calls_for(CONTACTS) == []

    @pytest.mark.asyncio
    async def test_duplicate_emails_update_the_first_match(self, engine, fake_destination):
        """With several matches the first one is updated and the others are left alone."""
        first_id = fake_destination.seed(CONTACTS, {"Last_Name": "Doe", "Email": "j@acme.com"})
        second_id = fake_destination.seed(CONTACTS, {"Last_Name": "Doe", "Email": "j@acme.com"})

        result = await engine.upsert_contact(
            {"Last_Name": "Doe", "Email": "j@acme.com", "Title": "CTO"}
        )

        assert result.id == first_id
        assert result.was_update is True
        stored = {record["id"]: record for record in fake_destination.records[CONTACTS]}
        assert stored[first_id]["Title"] == "CTO"
        assert "Title" not in stored[second_id]

    @pytest.mark.asyncio
    async def test_contact_without_email_is_always_created(self, engine, fake_destination):
        """Without an email there is no natural key to search by."""
        await engine.upsert_contact({"Last_Name": "Doe"})
        await engine.upsert_contact({"Last_Name": "Doe"})

        assert fake_destination.calls_for(CONTACTS, "search") == []
        assert len(fake_destination.records[CONTACTS]) == 2

    @pytest.mark.asyncio
    async def test_input_is_not_mutated(self, engine):
        """The caller's mapped record keeps its name reference."""
        mapped = {"Last_Name": "Doe", "Account_Name": {"name": "Acme"}}

        await engine.upsert_contact(mapped)

        assert mapped == {"Last_Name": "Doe", "Account_Name": {"name": "Acme"}}

    @pytest.mark.asyncio
    async def test_search_failure_propagates(self, engine, fake_destination):
        """Non-auth destination errors propagate and nothing is written."""
        fake_destination.fail_on[("search", CONTACTS)] = UpstreamError("boom", status_code=500)

        with pytest.raises(UpstreamError):
            await engine.upsert_contact({"Last_Name": "Doe", "Email": "john@acme.com"})

        assert fake_destination.calls_for(CONTACTS, "create") == []

    @pytest.mark.asyncio
    async def test_missing_id_in_create_response(self, engine, fake_destination, monkeypatch):
        """A create response without an id is an upstream error."""

        async def create_without_id(module, record):
            return {}

        monkeypatch.setattr(fake_destination, "create_record", create_without_id)

        with pytest.raises(UpstreamError):
            await engine.upsert_contact({"Last_Name": "Doe"})


class TestUpsertAccount:
    """Tests for organization upserts."""

    @pytest.mark.asyncio
    async def test_sync_organization_creates_then_updates(self, engine, fake_destination):
        """Organizations are keyed by their exact name."""
        organization = {"name": "Acme", "website_url": "https://acme.com", "industry": "SaaS"}

        first = await engine.sync_organization(organization)
        second = await engine.sync_organization({**organization, "phone": "+1 555 0100"})

        assert first.was_update is False
        assert second.was_update is True
        assert first.id == second.id
        [account] = fake_destination.records[ACCOUNTS]
        assert account["Industry"] == "Software"
        assert account["Phone"] == "+1 555 0100"

    @pytest.mark.asyncio
    async def test_resolve_account(self, engine, fake_destination):
        """Resolving twice creates the account only once."""
        first = await engine.resolve_account("Acme")
        second = await engine.resolve_account("Acme")

        assert first == second
        assert len(fake_destination.calls_for(ACCOUNTS, "create")) == 1
