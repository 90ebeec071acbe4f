"""Schemas for destination record listings."""

from typing import Any, Optional

from pydantic import BaseModel


class RecordPage(BaseModel):
    """One page of a destination module listing (`data` plus the `info` envelope)."""

    records: list[dict[str, Any]]
    page: int
    per_page: int
    more_records: bool = False
    count: Optional[int] = None
