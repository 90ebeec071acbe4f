"""API endpoints for the Apollo.io source."""

from typing import Any, Optional

from fastapi import Body, Depends, Query

from leadbridge.api.deps import get_sync_context
from leadbridge.api.router import TrailingSlashRouter
from leadbridge.core.exceptions import InvalidRequestError
from leadbridge.platform.sync.context import SyncContext
from leadbridge.schemas.apollo import ApolloPeopleQuery, RevealRequest
from leadbridge.schemas.result import ApiResult

router = TrailingSlashRouter()


@router.get("/contacts", response_model=ApiResult)
async def search_contacts(
    page: int = Query(1, ge=1),
    per_page: int = Query(25, ge=1, le=100),
    job_title: str = "",
    region: str = "",
    industry: str = "",
    keywords: str = "",
    sync_context: SyncContext = Depends(get_sync_context),
) -> ApiResult:
    """Search people in Apollo.io.

    Args:
    -----
        page: Page number, starting at 1
        per_page: People per page
        job_title: Filter on job title
        region: Country code, country name or city/state
        industry: Apollo industry tag id
        keywords: Free-text keywords
        sync_context: The shared sync components

    Returns:
    --------
        ApiResult: The people of the requested page
    """
    query = ApolloPeopleQuery.from_filters(
        job_title=job_title,
        region=region,
        industry=industry,
        keywords=keywords,
        page=page,
        per_page=per_page,
    )
    people = await sync_context.source.search_people(query)
    return ApiResult.ok({"contacts": people, "page": page, "per_page": per_page})


@router.get("/organizations", response_model=ApiResult)
async def search_organizations(
    page: int = Query(1, ge=1),
    per_page: int = Query(25, ge=1, le=100),
    name: str = "",
    domains: str = "",
    location: str = "",
    sync_context: SyncContext = Depends(get_sync_context),
) -> ApiResult:
    """Search organizations in Apollo.io.

    Args:
    -----
        page: Page number, starting at 1
        per_page: Organizations per page
        name: Filter on organization name
        domains: Comma-separated company domains
        location: Headquarters location
        sync_context: The shared sync components

    Returns:
    --------
        ApiResult: The organizations of the requested page
    """
    params: dict[str, Any] = {"page": page, "per_page": per_page}
    if name:
        params["q_organization_name"] = name
    if domains:
        params["q_organization_domains"] = "\n".join(
            domain.strip() for domain in domains.split(",") if domain.strip()
        )
    if location:
        params["organization_locations"] = [location]

    organizations = await sync_context.source.search_organizations(params)
    return ApiResult.ok({"organizations": organizations, "page": page, "per_page": per_page})


@router.post("/reveal", response_model=ApiResult)
async def reveal_contacts(
    request: RevealRequest,
    sync_context: SyncContext = Depends(get_sync_context),
) -> ApiResult:
    """Reveal the email or phone number of Apollo people. Spends Apollo credits.

    Args:
    -----
        request: The person ids and what to reveal
        sync_context: The shared sync components

    Returns:
    --------
        ApiResult: One revealed entry per person that could be looked up
    """
    contacts = await sync_context.contact_revealer.reveal(request.contact_ids, request.type)

    message = f"Successfully revealed {request.type} for {len(contacts)} contact(s)"
    if request.type == "phone":
        message += ". Additional phone data will be delivered via webhook."
    return ApiResult.ok(
        {"contacts": [contact.model_dump() for contact in contacts], "message": message}
    )


@router.post("/phone-webhook", response_model=ApiResult)
async def phone_webhook(
    payload: Any = Body(None),
    sync_context: SyncContext = Depends(get_sync_context),
) -> ApiResult:
    """Receive the phone numbers Apollo reveals asynchronously.

    Always answers 200 so Apollo does not redeliver; problems are reported in the envelope.
    """
    try:
        outcomes = sync_context.contact_revealer.record_phone_webhook(payload)
    except InvalidRequestError as e:
        sync_context.logger.warning(f"Ignoring Apollo phone webhook: {e.message}")
        return ApiResult.fail(e.message)

    return ApiResult.ok(
        {
            "message": "Phone data received successfully",
            "processed": len(outcomes),
            "results": [outcome.model_dump() for outcome in outcomes],
        }
    )


@router.get("/stored-phones", response_model=ApiResult)
async def stored_phones(
    contact_ids: Optional[str] = Query(None, description="Comma-separated Apollo person ids"),
    sync_context: SyncContext = Depends(get_sync_context),
) -> ApiResult:
    """Read back phone numbers delivered by the webhook.

    With `contact_ids` the known numbers of those people are returned as an id to phone map;
    without it every stored number is listed.
    """
    phone_store = sync_context.phone_store
    if contact_ids:
        ids = [contact_id.strip() for contact_id in contact_ids.split(",") if contact_id.strip()]
        return ApiResult.ok({"phones": phone_store.lookup(ids)})

    phones = phone_store.all()
    return ApiResult.ok({"count": len(phones), "phones": [phone.model_dump() for phone in phones]})
