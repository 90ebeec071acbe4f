"""Batch coordinator: drives upserts in fixed-size, throttled groups."""

import asyncio
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

from leadbridge.core.logging import logger
from leadbridge.schemas.sync import BatchReport, SyncRecordResult, UpsertResult

RecordOperation = Callable[[Mapping[str, Any]], Awaitable[UpsertResult]]


class BatchCoordinator:
    """Runs an upsert operation over many records without exceeding the destination quota.

    Records are split into groups that preserve input order. A group runs concurrently and is
    awaited as a whole; a fixed delay separates consecutive groups. One failing record never
    affects the others.
    """

    def __init__(
        self,
        operation: RecordOperation,
        *,
        batch_size: int = 5,
        inter_batch_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        logger_instance=None,
    ):
        """Initialize the batch coordinator.

        Args:
            operation: Per-record coroutine, usually `UpsertEngine.sync_contact`.
            batch_size: Default number of records per group.
            inter_batch_delay: Default seconds to wait between groups.
            sleep: Coroutine used for the inter-group wait.
            logger_instance: Optional logger instance for contextual logging.
        """
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if inter_batch_delay < 0:
            raise ValueError("inter_batch_delay must not be negative")

        self._operation = operation
        self._batch_size = batch_size
        self._inter_batch_delay = inter_batch_delay
        self._sleep = sleep
        self.logger = logger_instance or logger

    async def run_batch(
        self,
        records: Sequence[Mapping[str, Any]],
        batch_size: Optional[int] = None,
        inter_batch_delay: Optional[float] = None,
    ) -> BatchReport:
        """Process all records and report per-record outcomes in input order.

        Args:
            records: Source records to sync.
            batch_size: Records per group; defaults to the configured size.
            inter_batch_delay: Seconds between groups; defaults to the configured delay.

        Returns:
            BatchReport with one result per input record and the summary counts
        """
        size = self._batch_size if batch_size is None else batch_size
        delay = self._inter_batch_delay if inter_batch_delay is None else inter_batch_delay
        if size <= 0:
            raise ValueError("batch_size must be positive")
        if delay < 0:
            raise ValueError("inter_batch_delay must not be negative")

        groups = [records[start : start + size] for start in range(0, len(records), size)]
        results: list[SyncRecordResult] = []

        for index, group in enumerate(groups):
            self.logger.info(
                f"Processing batch {index + 1}/{len(groups)} ({len(group)} records)"
            )
            results.extend(await asyncio.gather(*(self._run_one(record) for record in group)))

            if index < len(groups) - 1:
                await self._sleep(delay)

        report = BatchReport.from_results(results)
        self.logger.info(
            f"Batch finished: {report.summary.succeeded}/{report.summary.total} succeeded, "
            f"{report.summary.failed} failed"
        )
        return report

    async def _run_one(self, record: Mapping[str, Any]) -> SyncRecordResult:
        source_id = _source_id(record)
        try:
            outcome = await self._operation(record)
        except Exception as e:
            self.logger.warning(f"Failed to sync record {source_id}: {e}")
            return SyncRecordResult(source_id=source_id, success=False, error_message=str(e))

        return SyncRecordResult(
            source_id=source_id,
            success=True,
            destination_id=outcome.id,
            was_update=outcome.was_update,
        )


def _source_id(record: Mapping[str, Any]) -> Optional[str]:
    value = record.get("id") if isinstance(record, Mapping) else None
    return None if value is None else str(value)
