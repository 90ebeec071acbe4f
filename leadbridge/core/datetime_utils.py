"""Datetime utilities for consistent timezone handling across the application."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Get current UTC time - standardized across the application."""
    return datetime.now(timezone.utc)


def utc_from_timestamp(timestamp: float) -> datetime:
    """Convert epoch seconds (as produced by the injectable clocks) to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)
