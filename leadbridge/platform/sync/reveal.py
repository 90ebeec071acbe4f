"""Revealing Apollo contact details, and the phone numbers Apollo delivers by webhook."""

import asyncio
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import httpx

from leadbridge.core.exceptions import (
    ConfigurationError,
    InvalidRequestError,
    LeadbridgeException,
)
from leadbridge.core.logging import logger
from leadbridge.platform.sources.apollo import ApolloSource
from leadbridge.schemas.apollo import PhoneWebhookOutcome, RevealedContact, StoredPhone

REVEAL_TYPES = ("email", "phone")


class PhoneStore:
    """Process-local phone numbers keyed by Apollo person id.

    Webhook deliveries are not persisted; a restart loses them.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        """Initialize the store.

        Args:
            clock: Returns the current time in epoch seconds.
        """
        self._clock = clock
        self._phones: Dict[str, StoredPhone] = {}

    def add(self, contact_id: str, phone: str) -> None:
        """Add or replace the phone number of a person."""
        self._phones[contact_id] = StoredPhone(
            id=contact_id, phone=phone, last_updated=self._clock()
        )

    def get(self, contact_id: str) -> Optional[str]:
        """Return the phone number of a person, or None."""
        stored = self._phones.get(contact_id)
        return stored.phone if stored else None

    def has(self, contact_id: str) -> bool:
        """Whether a phone number was delivered for the person."""
        return contact_id in self._phones

    def lookup(self, contact_ids: Iterable[str]) -> Dict[str, str]:
        """Return the known phone numbers of the given people, skipping unknown ids."""
        return {
            contact_id: self._phones[contact_id].phone
            for contact_id in contact_ids
            if contact_id in self._phones
        }

    def all(self) -> List[StoredPhone]:
        """Return every stored phone number in delivery order."""
        return list(self._phones.values())


class ContactRevealer:
    """Reveals emails and phone numbers of Apollo people.

    Emails come back in the match response. Phone numbers are only partly available there; the
    full set arrives later on the phone webhook and lands in the phone store.
    """

    PHONE_MESSAGE = "Additional phone numbers will be delivered via webhook"

    def __init__(
        self,
        source: ApolloSource,
        phone_store: PhoneStore,
        webhook_url: Optional[str] = None,
        logger_instance=None,
    ):
        """Initialize the contact revealer.

        Args:
            source: Apollo source used for the lookups.
            phone_store: Store receiving webhook phone numbers.
            webhook_url: Public URL of the phone webhook; required for phone reveals.
            logger_instance: Optional logger instance for contextual logging.
        """
        self._source = source
        self._phone_store = phone_store
        self._webhook_url = webhook_url
        self.logger = logger_instance or logger

    @property
    def phone_store(self) -> PhoneStore:
        """The store webhook phone numbers are written to."""
        return self._phone_store

    async def reveal(self, contact_ids: Sequence[str], reveal_type: str) -> List[RevealedContact]:
        """Reveal the email or phone number of each person.

        Args:
            contact_ids: Apollo person ids.
            reveal_type: "email" or "phone".

        Returns:
            One entry per person that could be looked up, in input order

        Raises:
            InvalidRequestError: If no ids are given, the type is unknown, or none of the ids
                belongs to a known person
            ConfigurationError: If phones are requested but no webhook URL is configured
        """
        if not contact_ids:
            raise InvalidRequestError("Contact IDs are required")
        if reveal_type not in REVEAL_TYPES:
            raise InvalidRequestError("Valid type (email or phone) is required")
        if reveal_type == "phone" and not self._webhook_url:
            raise ConfigurationError(
                "Phone reveals need a webhook URL. Set APOLLO_PHONE_WEBHOOK_URL."
            )

        self.logger.info(f"Attempting to reveal {reveal_type} for {len(contact_ids)} contacts")

        people = await asyncio.gather(*(self._lookup(contact_id) for contact_id in contact_ids))
        people = [person for person in people if person is not None]
        if not people:
            raise InvalidRequestError("No valid contacts found to reveal information")

        revealed = await asyncio.gather(
            *(self._reveal_one(person, reveal_type) for person in people)
        )
        # One search and one match per person
        self.logger.info(
            f"Used {len(revealed) * 2} Apollo credits revealing {reveal_type} "
            f"for {len(revealed)} contacts"
        )
        return list(revealed)

    def record_phone_webhook(self, payload: Any) -> List[PhoneWebhookOutcome]:
        """Store the best phone number of every person in an Apollo webhook delivery.

        The first entry of `phone_numbers` is taken as the best one; Apollo orders them by
        confidence.

        Raises:
            InvalidRequestError: If the payload has no `people` list
        """
        people = payload.get("people") if isinstance(payload, dict) else None
        if not isinstance(people, list):
            raise InvalidRequestError("Invalid payload format")

        outcomes = [self._record_person(person) for person in people]
        stored = sum(1 for outcome in outcomes if outcome.status == "success")
        self.logger.info(f"Phone webhook: stored {stored} of {len(outcomes)} phone numbers")
        return outcomes

    async def _lookup(self, contact_id: str) -> Optional[Dict[str, Any]]:
        try:
            person = await self._source.get_person(contact_id)
        except (LeadbridgeException, httpx.HTTPError) as e:
            self.logger.warning(f"Error getting contact details for {contact_id}: {e}")
            return None

        if person is None:
            self.logger.warning(f"No contact found with ID: {contact_id}")
        return person

    async def _reveal_one(self, person: Dict[str, Any], reveal_type: str) -> RevealedContact:
        contact_id = str(person.get("id"))
        organization = person.get("organization") or {}
        try:
            match = await self._source.enrich_person(
                first_name=person.get("first_name"),
                last_name=person.get("last_name"),
                organization_name=organization.get("name"),
                reveal_email=reveal_type == "email",
                reveal_phone=reveal_type == "phone",
                webhook_url=self._webhook_url,
            )
        except (LeadbridgeException, httpx.HTTPError) as e:
            self.logger.warning(f"Error revealing {reveal_type} for {contact_id}: {e}")
            return RevealedContact(id=contact_id, error=str(e))

        match = match or {}
        if reveal_type == "email":
            personal_emails = match.get("personal_emails") or []
            email = match.get("email") or (personal_emails[0] if personal_emails else None)
            return RevealedContact(id=contact_id, email=email)

        # The webhook delivers the person's own numbers; until then use what the match has
        phone = (
            match.get("phone_number")
            or (match.get("organization") or {}).get("phone")
            or match.get("mobile_phone")
        )
        return RevealedContact(id=contact_id, mobile_phone=phone, phone_message=self.PHONE_MESSAGE)

    def _record_person(self, person: Any) -> PhoneWebhookOutcome:
        if not isinstance(person, dict) or not person.get("id"):
            return PhoneWebhookOutcome(status="invalid_person")

        contact_id = str(person["id"])
        phone_numbers = person.get("phone_numbers") or []
        best = phone_numbers[0] if phone_numbers and isinstance(phone_numbers[0], dict) else {}
        raw_number = best.get("raw_number")
        if not raw_number:
            return PhoneWebhookOutcome(id=contact_id, status="no_phone_numbers")

        self._phone_store.add(contact_id, raw_number)
        return PhoneWebhookOutcome(
            id=contact_id,
            status="success",
            phone=raw_number,
            sanitized_phone=best.get("sanitized_number"),
            confidence=best.get("confidence_cd"),
        )
