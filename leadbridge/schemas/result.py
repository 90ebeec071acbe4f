"""Uniform result envelope returned by the HTTP boundary."""

from typing import Any, Optional

from pydantic import BaseModel


class ApiResult(BaseModel):
    """`{success, data | error}` envelope.

    `is_rate_limit` lets callers tell throttling (retry later, HTTP 429) apart from other
    failures without parsing the message.
    """

    success: bool
    data: Optional[Any] = None
    error: Optional[str] = None
    is_rate_limit: bool = False
    details: Optional[Any] = None

    @classmethod
    def ok(cls, data: Any) -> "ApiResult":
        """Build a success envelope."""
        return cls(success=True, data=data)

    @classmethod
    def fail(
        cls, error: str, *, is_rate_limit: bool = False, details: Optional[Any] = None
    ) -> "ApiResult":
        """Build a failure envelope."""
        return cls(success=False, error=error, is_rate_limit=is_rate_limit, details=details)
