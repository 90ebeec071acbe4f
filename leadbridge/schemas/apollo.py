"""Schemas for the Apollo.io people search and contact reveals."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class ApolloPeopleQuery(BaseModel):
    """Query object for `POST /mixed_people/search`.

    Only fields that are set end up in the request payload.
    """

    q_keywords: Optional[str] = None
    person_titles: Optional[list[str]] = None
    person_locations: Optional[list[str]] = None
    q_industry_tag_ids: Optional[list[str]] = None
    page: int = Field(default=1, ge=1)
    per_page: int = Field(default=25, ge=1, le=100)

    @classmethod
    def from_filters(
        cls,
        *,
        job_title: str = "",
        region: str = "",
        industry: str = "",
        keywords: str = "",
        page: int = 1,
        per_page: int = 25,
    ) -> "ApolloPeopleQuery":
        """Build a query from the flat filter parameters used by the UI.

        Region can be a country code, a country name or a city/state; Apollo matches all of
        them against the person's location.
        """
        return cls(
            q_keywords=keywords or None,
            person_titles=[job_title] if job_title else None,
            person_locations=[region] if region else None,
            q_industry_tag_ids=[industry] if industry else None,
            page=page,
            per_page=per_page,
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the JSON body Apollo expects."""
        return self.model_dump(exclude_none=True)

    def for_page(self, page: int) -> "ApolloPeopleQuery":
        """Copy of this query pointing at another page."""
        return self.model_copy(update={"page": page})


class RevealRequest(BaseModel):
    """Body of `POST /apollo/reveal`.

    Both fields are checked by the revealer so that a bad request answers 400 with a message
    the UI can show, rather than a field-level validation error.
    """

    contact_ids: list[str] = Field(default_factory=list)
    type: str = ""


class RevealedContact(BaseModel):
    """Contact detail revealed for one Apollo person.

    `email` or `mobile_phone` stays None when Apollo had nothing to reveal. `error` is set when
    the reveal call itself failed for this person.
    """

    id: str
    email: Optional[str] = None
    mobile_phone: Optional[str] = None
    phone_message: Optional[str] = None
    error: Optional[str] = None


class StoredPhone(BaseModel):
    """Phone number delivered by the Apollo webhook."""

    id: str
    phone: str
    last_updated: float = Field(..., description="Epoch seconds of the last webhook delivery")


class PhoneWebhookOutcome(BaseModel):
    """How one person of a webhook delivery was processed."""

    id: Optional[str] = None
    status: str
    phone: Optional[str] = None
    sanitized_phone: Optional[str] = None
    confidence: Optional[Any] = None
