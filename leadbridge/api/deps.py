"""Dependencies that are used in the API endpoints."""

from fastapi import Request

from leadbridge.core.exceptions import ConfigurationError
from leadbridge.platform.sync.context import SyncContext


async def get_sync_context(request: Request) -> SyncContext:
    """Return the process-wide sync context built at application startup.

    Args:
    ----
        request (Request): The incoming request.

    Returns:
    -------
        SyncContext: The shared sync components.

    """
    sync_context = getattr(request.app.state, "sync_context", None)
    if sync_context is None:
        raise ConfigurationError("Sync context is not initialized")
    return sync_context
