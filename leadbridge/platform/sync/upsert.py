"""Create-or-update reconciliation against a destination without a native upsert."""

from typing import Any, Mapping, Optional

from leadbridge.core.exceptions import UpstreamError
from leadbridge.core.logging import logger
from leadbridge.platform.destinations._base import BaseDestination
from leadbridge.platform.destinations.bigin import ACCOUNTS, CONTACTS
from leadbridge.platform.transformers.field_mapping import map_contact, map_organization
from leadbridge.schemas.sync import UpsertResult


class UpsertEngine:
    """Upserts mapped contacts and accounts, keyed by email and account name.

    For a contact the order is strict: the referenced account is resolved (found or created)
    first, then the contact is searched by email and updated or created. A failure at any step
    aborts the rest, so a contact is never written with an unresolved account.

    Auth failures are retried once by the destination client; everything else propagates.
    """

    def __init__(self, destination: BaseDestination, logger_instance=None):
        """Initialize the upsert engine.

        Args:
            destination: Record API to reconcile against.
            logger_instance: Optional logger instance for contextual logging.
        """
        self._destination = destination
        self.logger = logger_instance or logger

    async def sync_contact(self, source_contact: Mapping[str, Any]) -> UpsertResult:
        """Map a source person and upsert it as a destination contact."""
        return await self.upsert_contact(map_contact(source_contact))

    async def sync_organization(self, source_organization: Mapping[str, Any]) -> UpsertResult:
        """Map a source organization and upsert it as a destination account."""
        return await self.upsert_account(map_organization(source_organization))

    async def upsert_contact(self, mapped_contact: Mapping[str, Any]) -> UpsertResult:
        """Create or update a contact.

        Args:
            mapped_contact: Destination contact fields. `Account_Name` may reference the
                account by name (`{"name": ...}`) or already by id (`{"id": ...}`).

        Returns:
            The destination id and whether an existing contact was updated
        """
        contact = dict(mapped_contact)

        account_ref = contact.get("Account_Name")
        if isinstance(account_ref, Mapping) and not account_ref.get("id"):
            account_name = account_ref.get("name")
            if account_name:
                contact["Account_Name"] = {"id": await self.resolve_account(account_name)}

        email = contact.get("Email")
        if email:
            existing_id = await self._find_first(CONTACTS, "Email", email)
            if existing_id:
                await self._destination.update_record(CONTACTS, existing_id, contact)
                self.logger.info(f"Updated existing contact {existing_id}")
                return UpsertResult(id=existing_id, was_update=True)

        details = await self._destination.create_record(CONTACTS, contact)
        new_id = _require_id(details, f"contact {email or contact.get('Last_Name')}")
        self.logger.info(f"Created contact {new_id}")
        return UpsertResult(id=new_id, was_update=False)

    async def upsert_account(self, mapped_account: Mapping[str, Any]) -> UpsertResult:
        """Create or update an account, keyed by its exact name."""
        account = dict(mapped_account)
        name = account.get("Account_Name")

        if name:
            existing_id = await self._find_first(ACCOUNTS, "Account_Name", name)
            if existing_id:
                await self._destination.update_record(ACCOUNTS, existing_id, account)
                self.logger.info(f"Updated existing account {existing_id}")
                return UpsertResult(id=existing_id, was_update=True)

        details = await self._destination.create_record(ACCOUNTS, account)
        new_id = _require_id(details, f"account {name}")
        self.logger.info(f"Created account {new_id}")
        return UpsertResult(id=new_id, was_update=False)

    async def resolve_account(self, name: str) -> str:
        """Return the id of the account called `name`, creating a bare account if needed."""
        existing_id = await self._find_first(ACCOUNTS, "Account_Name", name)
        if existing_id:
            return existing_id

        details = await self._destination.create_record(ACCOUNTS, {"Account_Name": name})
        new_id = _require_id(details, f"account {name}")
        self.logger.info(f"Created account {new_id} for contact reference")
        return new_id

    async def _find_first(self, module: str, field: str, value: str) -> Optional[str]:
        matches = await self._destination.search_records(module, field, value)
        if not matches:
            return None
        if len(matches) > 1:
            # Known limitation: duplicates are left as they are
            self.logger.warning(
                f"{len(matches)} {module} records match {field}; using the first one"
            )
        return matches[0].get("id")


def _require_id(details: Mapping[str, Any], what: str) -> str:
    record_id = details.get("id") if details else None
    if not record_id:
        raise UpstreamError(f"Destination did not return an id for {what}", details=details)
    return str(record_id)
