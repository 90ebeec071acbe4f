"""Run the API server: `python -m leadbridge`."""

import uvicorn

from leadbridge.core.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "leadbridge.main:app",
        host="0.0.0.0",
        port=8001,
        reload=settings.LOCAL_DEVELOPMENT,
        log_level=settings.LOG_LEVEL.lower(),
    )
