"""API endpoints for the Bigin destination."""

from fastapi import Depends, Query

from leadbridge.api.deps import get_sync_context
from leadbridge.api.router import TrailingSlashRouter
from leadbridge.core.exceptions import LeadbridgeException
from leadbridge.platform.destinations.bigin import CONTACTS
from leadbridge.platform.sync.context import SyncContext
from leadbridge.schemas.result import ApiResult

router = TrailingSlashRouter()


@router.get("/contacts", response_model=ApiResult)
async def list_contacts(
    page: int = Query(1, ge=1),
    per_page: int = Query(200, ge=1, le=200),
    cached: bool = False,
    sync_context: SyncContext = Depends(get_sync_context),
) -> ApiResult:
    """List Bigin contacts.

    With `cached=true` the rate-limit friendly cached listing is returned instead of the
    requested page.
    """
    if cached:
        contacts = await sync_context.contact_cache.get_contacts()
        return ApiResult.ok({"contacts": contacts, "count": len(contacts), "cached": True})

    result = await sync_context.destination.list_records(CONTACTS, page=page, per_page=per_page)
    count = result.count
    if count is None:
        count = await sync_context.destination.count_records(CONTACTS)

    return ApiResult.ok(
        {
            "contacts": result.records,
            "page": result.page,
            "per_page": result.per_page,
            "more_records": result.more_records,
            "count": count,
            "cached": False,
        }
    )


@router.get("/contacts/search", response_model=ApiResult)
async def search_contacts(
    query: str = Query(..., min_length=1),
    page: int = Query(1, ge=1),
    per_page: int = Query(25, ge=1, le=200),
    sync_context: SyncContext = Depends(get_sync_context),
) -> ApiResult:
    """Free-text search over Bigin contacts."""
    result = await sync_context.destination.search_text(
        CONTACTS, query, page=page, per_page=per_page
    )
    return ApiResult.ok(
        {"contacts": result.records, "page": result.page, "more_records": result.more_records}
    )


@router.get("/status", response_model=ApiResult)
async def connection_status(
    sync_context: SyncContext = Depends(get_sync_context),
) -> ApiResult:
    """Report whether Bigin is reachable, preferring cached data over new API calls.

    Always answers 200; a failed check is reported as `connected: false`.
    """
    token_manager = sync_context.token_manager
    try:
        contacts = await sync_context.contact_cache.get_contacts()
        if contacts:
            return ApiResult.ok(
                {
                    "connected": True,
                    "using_cache": True,
                    "contact_count": len(contacts),
                    "token_state": token_manager.state.value,
                }
            )

        await token_manager.get_valid_token()
        return ApiResult.ok({"connected": True, "token_state": token_manager.state.value})
    except LeadbridgeException as e:
        sync_context.logger.warning(f"Bigin connection check failed: {e.message}")
        return ApiResult(
            success=False,
            data={"connected": False, "token_state": token_manager.state.value},
            error=e.message,
            is_rate_limit=e.is_rate_limit,
            details=e.details,
        )
