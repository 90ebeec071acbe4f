"""Main module of the FastAPI application.

This module sets up the FastAPI application, the shared sync context and the middleware to
log incoming requests and unhandled exceptions.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError

from leadbridge.api.middleware import (
    exception_logging_middleware,
    leadbridge_exception_handler,
    log_requests,
    validation_exception_handler,
)
from leadbridge.api.router import TrailingSlashRouter
from leadbridge.api.v1.api import api_router
from leadbridge.core.config import settings
from leadbridge.core.exceptions import LeadbridgeException
from leadbridge.core.logging import logger
from leadbridge.platform.sync.factory import SyncFactory


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events.

    Builds the sync context once per process and closes its HTTP client on shutdown.
    """
    if not settings.has_bigin_refresh_credentials:
        logger.warning("Bigin refresh credentials are incomplete; token refresh will fail")

    app.state.sync_context = SyncFactory.create(settings)
    try:
        yield
    finally:
        await app.state.sync_context.aclose()


# Create FastAPI app with our custom router and disable FastAPI's built-in redirects
app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url="/openapi.json",
    lifespan=lifespan,
    router=TrailingSlashRouter(),
    redirect_slashes=False,
)

app.include_router(api_router)

# Register middleware directly
app.middleware("http")(log_requests)
app.middleware("http")(exception_logging_middleware)

# Register exception handlers
app.exception_handler(RequestValidationError)(validation_exception_handler)
app.exception_handler(LeadbridgeException)(leadbridge_exception_handler)
