"""Sync schemas."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class UpsertResult(BaseModel):
    """Outcome of a single create-or-update against the destination."""

    id: str
    was_update: bool


class SyncRecordResult(BaseModel):
    """Per-record outcome inside a batch. Failures keep their source id and error message."""

    source_id: Optional[str] = None
    success: bool
    destination_id: Optional[str] = None
    was_update: Optional[bool] = None
    error_message: Optional[str] = None


class BatchSummary(BaseModel):
    """Aggregate counts of a batch run."""

    total: int
    succeeded: int
    failed: int


class BatchReport(BaseModel):
    """Results in input order plus the summary."""

    results: list[SyncRecordResult]
    summary: BatchSummary

    @classmethod
    def from_results(cls, results: list[SyncRecordResult]) -> "BatchReport":
        """Build a report, counting successes and failures."""
        succeeded = sum(1 for result in results if result.success)
        return cls(
            results=results,
            summary=BatchSummary(
                total=len(results), succeeded=succeeded, failed=len(results) - succeeded
            ),
        )


class SyncContactRequest(BaseModel):
    """Body of `POST /sync/contact`."""

    apollo_contact: dict[str, Any]


class BulkSyncRequest(BaseModel):
    """Body of `POST /sync/contacts/bulk`."""

    contacts: list[dict[str, Any]] = Field(..., min_length=1)
    batch_size: Optional[int] = Field(default=None, gt=0)
    inter_batch_delay: Optional[float] = Field(default=None, ge=0)


class SyncOrganizationRequest(BaseModel):
    """Body of `POST /sync/organization`."""

    apollo_organization: dict[str, Any]


class SearchSyncRequest(BaseModel):
    """Body of `POST /sync/contacts/search`: an Apollo people search whose hits are synced."""

    job_title: str = ""
    region: str = ""
    industry: str = ""
    keywords: str = ""
    per_page: int = Field(default=25, ge=1, le=100)
    max_pages: int = Field(default=1, ge=1, le=10)
    batch_size: Optional[int] = Field(default=None, gt=0)
    inter_batch_delay: Optional[float] = Field(default=None, ge=0)
