"""API routes for the FastAPI application."""

from leadbridge.api.router import TrailingSlashRouter
from leadbridge.api.v1.endpoints import apollo, bigin, health, sync

# Use our custom router that handles trailing slashes
api_router = TrailingSlashRouter()
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(apollo.router, prefix="/apollo", tags=["apollo"])
api_router.include_router(bigin.router, prefix="/bigin", tags=["bigin"])
api_router.include_router(sync.router, prefix="/sync", tags=["sync"])
