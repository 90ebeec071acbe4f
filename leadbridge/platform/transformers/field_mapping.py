"""Field mapping from Apollo.io people/organizations to Bigin contacts/accounts.

All functions are pure: the source record is never mutated and no I/O happens. Absent optional
fields are left out of the mapped record instead of being sent as empty strings, except for the
address trio, which Bigin expects to be complete whenever any part of it is known.
"""

import re
from datetime import datetime
from typing import Any, Mapping, Optional

from leadbridge.core.datetime_utils import utc_now

LEAD_SOURCE = "Apollo.io"
UNKNOWN_LAST_NAME = "Unknown"

# Apollo industry labels -> Bigin industry dropdown values
INDUSTRY_MAPPING: dict[str, str] = {
    # Direct matches
    "Software": "Software",
    "Technology": "Technology",
    "Healthcare": "Healthcare",
    "Financial Services": "Financial Services",
    "Retail": "Retail",
    "Manufacturing": "Manufacturing",
    "Education": "Education",
    "Telecommunications": "Telecommunications",
    "Media": "Media",
    "Real Estate": "Real Estate",
    "Transportation": "Transportation",
    "Agriculture": "Agriculture",
    # Labels that need normalization
    "Information Technology": "Technology",
    "IT Services": "Technology",
    "Computer Software": "Software",
    "SaaS": "Software",
    "Internet": "Technology",
    "Finance": "Financial Services",
    "Banking": "Financial Services",
    "Insurance": "Financial Services",
    "Hospital & Health Care": "Healthcare",
    "Pharmaceuticals": "Healthcare",
    "Medical Devices": "Healthcare",
    "E-Commerce": "Retail",
    "Wholesale": "Retail",
    "Construction": "Construction",
    "Marketing & Advertising": "Advertising",
    "Public Relations": "Advertising",
    "Entertainment": "Media",
    "Publishing": "Media",
    "Hospitality": "Hospitality",
    "Food & Beverages": "Hospitality",
    "Automotive": "Automotive",
    "Consumer Goods": "Consumer Goods",
    "Non-Profit": "Non-Profit",
    "Government": "Government",
    "Legal Services": "Legal",
    "Professional Services": "Professional Services",
    "Consulting": "Consulting",
    "Energy": "Energy & Utilities",
    "Utilities": "Energy & Utilities",
    "D2C": "Consumer Goods",
}


def map_industry(label: Optional[str]) -> str:
    """Normalize an Apollo industry label to a Bigin dropdown value.

    Exact match first, then a case-insensitive substring match in either direction against
    the table keys (first key in table order wins), otherwise the label is passed through.
    Never raises.
    """
    if not label:
        return ""

    if label in INDUSTRY_MAPPING:
        return INDUSTRY_MAPPING[label]

    lowered = label.lower()
    for key, value in INDUSTRY_MAPPING.items():
        key_lowered = key.lower()
        if key_lowered in lowered or lowered in key_lowered:
            return value

    return label


def resolve_last_name(source: Mapping[str, Any]) -> str:
    """Bigin rejects contacts without a last name, so always produce one.

    last_name, then first_name, then the local part of the email, then "Unknown".
    """
    email = source.get("email")
    email_local_part = email.split("@")[0] if isinstance(email, str) else None

    for candidate in (source.get("last_name"), source.get("first_name"), email_local_part):
        if _is_present(candidate):
            return str(candidate)
    return UNKNOWN_LAST_NAME


def map_contact(
    source: Mapping[str, Any], *, generated_at: Optional[datetime] = None
) -> dict[str, Any]:
    """Map an Apollo person to the Bigin contact field set.

    Args:
        source: Apollo person record (flat or with a nested `organization`).
        generated_at: Timestamp for the description header; defaults to now (UTC).

    Returns:
        The Bigin contact fields. `Account_Name` is `{"name": ...}` and still has to be
        resolved to an account id before the contact is written.
    """
    contact: dict[str, Any] = {"Last_Name": resolve_last_name(source)}

    _set_if_present(contact, "First_Name", source.get("first_name"))
    _set_if_present(contact, "Email", source.get("email"))
    _set_if_present(
        contact,
        "Phone",
        _first_present(
            source.get("phone_number"),
            source.get("corporate_phone"),
            source.get("work_direct_phone"),
            source.get("sanitized_phone"),
        ),
    )
    _set_if_present(contact, "Title", source.get("title"))
    _set_if_present(contact, "Industry_Drop", map_industry(_organization_value(source, "industry")))
    contact["Lead_Source"] = LEAD_SOURCE
    contact["Description"] = describe_contact(source, generated_at=generated_at)

    organization_name = _organization_value(source, "name")
    if organization_name:
        contact["Account_Name"] = {"name": organization_name}

    _set_location(contact, source, prefix="Mailing")

    _set_if_present(contact, "LinkedIn", source.get("linkedin_url"))
    _set_if_present(contact, "Twitter", source.get("twitter_url"))

    return contact


def map_organization(
    source: Mapping[str, Any], *, generated_at: Optional[datetime] = None
) -> dict[str, Any]:
    """Map an Apollo organization to the Bigin account field set."""
    account: dict[str, Any] = {"Account_Name": source.get("name") or ""}

    website = _first_present(source.get("website_url"), source.get("website"))
    phone = _first_present(source.get("phone"), source.get("sanitized_phone"))

    _set_if_present(account, "Website", website)
    _set_if_present(account, "Industry", map_industry(source.get("industry")))
    _set_if_present(account, "Phone", phone)
    account["Description"] = describe_organization(source, generated_at=generated_at)

    _set_location(account, source, prefix="Billing")

    employees = source.get("estimated_num_employees")
    if _is_present(employees):
        account["Employees"] = employees

    revenue = parse_revenue(source.get("annual_revenue"))
    if revenue is not None:
        account["Annual_Revenue"] = revenue

    return account


def parse_revenue(value: Any) -> Optional[int]:
    """Parse a revenue figure by dropping every non-digit character.

    Numbers are truncated to int. Returns None when nothing numeric is left.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)

    digits = re.sub(r"[^0-9]", "", str(value))
    if not digits:
        return None
    return int(digits)


def describe_contact(source: Mapping[str, Any], *, generated_at: Optional[datetime] = None) -> str:
    """Human-readable summary stored in the contact's Description field."""
    lines = [
        ("Company", _organization_value(source, "name")),
        ("Title", source.get("title")),
        ("Seniority", source.get("seniority")),
        ("LinkedIn", source.get("linkedin_url")),
    ]
    return _describe("Contact", lines, generated_at)


def describe_organization(
    source: Mapping[str, Any], *, generated_at: Optional[datetime] = None
) -> str:
    """Human-readable summary stored in the account's Description field."""
    lines = [
        ("Website", source.get("website_url")),
        ("Industry", source.get("industry")),
        ("Estimated Employees", source.get("estimated_num_employees")),
        ("LinkedIn", source.get("linkedin_url")),
    ]
    return _describe("Organization", lines, generated_at)


def _describe(
    kind: str, lines: list[tuple[str, Any]], generated_at: Optional[datetime]
) -> str:
    day = (generated_at or utc_now()).date().isoformat()
    description = f"{kind} imported from {LEAD_SOURCE} on {day}.\n\n"
    for label, value in lines:
        if _is_present(value):
            description += f"{label}: {value}\n"
    return description


def _organization_value(source: Mapping[str, Any], key: str) -> Optional[Any]:
    """Look up an organization attribute on a flat or nested Apollo person record."""
    candidates = [source.get(f"organization_{key}")]
    if key == "industry":
        candidates.insert(0, source.get("industry"))

    organization = source.get("organization")
    if isinstance(organization, Mapping):
        candidates.append(organization.get(key))

    return _first_present(*candidates)


def _set_location(record: dict[str, Any], source: Mapping[str, Any], *, prefix: str) -> None:
    city, state, country = source.get("city"), source.get("state"), source.get("country")
    if not any(_is_present(part) for part in (city, state, country)):
        return
    record[f"{prefix}_City"] = city or ""
    record[f"{prefix}_State"] = state or ""
    record[f"{prefix}_Country"] = country or ""


def _set_if_present(record: dict[str, Any], field: str, value: Any) -> None:
    if _is_present(value):
        record[field] = value


def _first_present(*values: Any) -> Optional[Any]:
    for value in values:
        if _is_present(value):
            return value
    return None


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True
