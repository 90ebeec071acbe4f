"""Middleware for the FastAPI application.

This module contains middleware that process requests and responses, and the exception
handlers that turn errors into the `{success: false, error}` envelope.
"""

import time
import traceback

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from leadbridge.core.config import settings
from leadbridge.core.exceptions import (
    AuthExpiredError,
    InvalidRequestError,
    LeadbridgeException,
    NotFoundException,
    RecordValidationError,
    UnauthorizedError,
    UpstreamError,
)
from leadbridge.core.logging import logger
from leadbridge.schemas.result import ApiResult


async def log_requests(request: Request, call_next: callable) -> Response:
    """Middleware to log incoming requests.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time
    logger.info(
        f"Handled request {request.method} {request.url.path} in {duration:.2f} seconds. "
        f"Response code: {response.status_code}"
    )
    return response


async def exception_logging_middleware(request: Request, call_next: callable) -> Response:
    """Middleware to log unhandled exceptions.

    Args:
    ----
        request (Request): The incoming request.
        call_next (callable): The next middleware in the chain.

    Returns:
    -------
        Response: The response to the incoming request.

    """
    try:
        return await call_next(request)
    except Exception as exc:
        logger.error(f"Unhandled exception: {exc}\n{traceback.format_exc()}")

        details = traceback.format_exc() if settings.LOCAL_DEVELOPMENT else None
        content = ApiResult.fail(
            f"Internal Server Error: {exc.__class__.__name__}: {exc}", details=details
        )
        return JSONResponse(status_code=500, content=content.model_dump(mode="json"))


def status_code_for(exc: LeadbridgeException) -> int:
    """Map an exception to the HTTP status of its error response."""
    if exc.is_rate_limit:
        return 429

    # Looked up along the MRO, so the most specific class wins
    status_code_map = {
        AuthExpiredError: 401,
        UnauthorizedError: 401,
        InvalidRequestError: 400,
        RecordValidationError: 422,
        NotFoundException: 404,
        UpstreamError: 502,
    }
    for exc_type in type(exc).__mro__:
        if exc_type in status_code_map:
            return status_code_map[exc_type]
    return 500


async def leadbridge_exception_handler(
    request: Request, exc: LeadbridgeException
) -> JSONResponse:
    """Generic exception handler for all LeadbridgeException types.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (LeadbridgeException): The exception object that was raised.

    Returns:
    -------
        JSONResponse: Error envelope with the mapped status code. Rate-limit errors carry
            `is_rate_limit: true` and, when known, a `Retry-After` header.

    """
    status_code = status_code_for(exc)
    logger.warning(
        f"{request.method} {request.url.path} failed with {exc.__class__.__name__}: {exc.message}"
    )

    content = ApiResult.fail(exc.message, is_rate_limit=exc.is_rate_limit, details=exc.details)

    headers = None
    retry_after = getattr(exc, "retry_after", None)
    if retry_after is not None:
        headers = {"Retry-After": str(max(int(retry_after), 1))}

    return JSONResponse(
        status_code=status_code, content=content.model_dump(mode="json"), headers=headers
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request body and query validation errors.

    Args:
    ----
        request (Request): The incoming request that triggered the exception.
        exc (RequestValidationError): The exception object that was raised.

    Returns:
    -------
        JSONResponse: A 422 error envelope listing the offending fields.

    """
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()))
        messages.append(f"{location}: {error.get('msg')}")

    content = ApiResult.fail("Invalid request: " + "; ".join(messages))
    return JSONResponse(status_code=422, content=content.model_dump(mode="json"))
