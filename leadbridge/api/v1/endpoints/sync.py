"""API endpoints for syncing Apollo.io records into Bigin."""

from fastapi import Depends

from leadbridge.api.deps import get_sync_context
from leadbridge.api.router import TrailingSlashRouter
from leadbridge.platform.sync.context import SyncContext
from leadbridge.schemas.apollo import ApolloPeopleQuery
from leadbridge.schemas.result import ApiResult
from leadbridge.schemas.sync import (
    BulkSyncRequest,
    SearchSyncRequest,
    SyncContactRequest,
    SyncOrganizationRequest,
)

router = TrailingSlashRouter()


@router.post("/contact", response_model=ApiResult)
async def sync_contact(
    request: SyncContactRequest,
    sync_context: SyncContext = Depends(get_sync_context),
) -> ApiResult:
    """Create or update a single Apollo person as a Bigin contact.

    Args:
    -----
        request: The Apollo person to sync
        sync_context: The shared sync components

    Returns:
    --------
        ApiResult: The Bigin contact id and whether it was an update
    """
    result = await sync_context.upsert_engine.sync_contact(request.apollo_contact)
    return ApiResult.ok(result.model_dump())


@router.post("/contacts/bulk", response_model=ApiResult)
async def sync_contacts_bulk(
    request: BulkSyncRequest,
    sync_context: SyncContext = Depends(get_sync_context),
) -> ApiResult:
    """Sync many Apollo people in throttled batches.

    Individual failures are reported per record; the request itself still succeeds.
    """
    report = await sync_context.batch_coordinator.run_batch(
        request.contacts,
        batch_size=request.batch_size,
        inter_batch_delay=request.inter_batch_delay,
    )
    return ApiResult.ok(report.model_dump())


@router.post("/contacts/search", response_model=ApiResult)
async def sync_contacts_from_search(
    request: SearchSyncRequest,
    sync_context: SyncContext = Depends(get_sync_context),
) -> ApiResult:
    """Search Apollo people and sync every hit in throttled batches.

    Args:
    -----
        request: Search filters, how many pages to walk and the batch settings
        sync_context: The shared sync components

    Returns:
    --------
        ApiResult: The batch report plus how many people the search found
    """
    query = ApolloPeopleQuery.from_filters(
        job_title=request.job_title,
        region=request.region,
        industry=request.industry,
        keywords=request.keywords,
        per_page=request.per_page,
    )
    people = [
        person
        async for person in sync_context.source.generate_people(
            query, max_pages=request.max_pages
        )
    ]

    report = await sync_context.batch_coordinator.run_batch(
        people,
        batch_size=request.batch_size,
        inter_batch_delay=request.inter_batch_delay,
    )
    return ApiResult.ok({"found": len(people), **report.model_dump()})


@router.post("/organization", response_model=ApiResult)
async def sync_organization(
    request: SyncOrganizationRequest,
    sync_context: SyncContext = Depends(get_sync_context),
) -> ApiResult:
    """Create or update a single Apollo organization as a Bigin account."""
    result = await sync_context.upsert_engine.sync_organization(request.apollo_organization)
    return ApiResult.ok(result.model_dump())
