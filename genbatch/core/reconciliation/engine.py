"""Reconciliation engine for genbatch.

Merges one job completion signal into its batch record. Webhooks and the
stuck-job scanner both feed signals through ``merge_completion``, so the same
job may arrive more than once and from either channel.
"""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple

from genbatch.core.batch.models import (
    BatchRecord,
    BatchStatus,
    JobState,
    JobStatus,
    utcnow,
)
from genbatch.core.errors import JobFailure
from genbatch.core.logging import logger
from genbatch.core.reconciliation.locks import RecordLocks

if TYPE_CHECKING:
    from genbatch.infrastructure.database.repositories.base import BaseRepository


class FailurePolicy(str, Enum):
    """What a single failed job does to its batch.

    - FAIL_BATCH: the whole batch fails immediately
    - TOLERATE: the batch finishes once every job is accounted for and ends
      completed_with_errors (or failed when nothing succeeded)
    """

    FAIL_BATCH = "fail_batch"
    TOLERATE = "tolerate"


class MergeDecision(str, Enum):
    """Outcome of one merge attempt."""

    APPLIED = "applied"
    DUPLICATE = "duplicate"
    TERMINAL = "terminal"
    NOT_READY = "not_ready"
    UNKNOWN_JOB = "unknown_job"


def plan_merge(
    record: BatchRecord,
    job_id: str,
    outcome: JobStatus,
    now: datetime,
    policy: FailurePolicy = FailurePolicy.FAIL_BATCH,
) -> Tuple[MergeDecision, Dict[str, Any]]:
    """Decide how a job outcome changes a record, without touching the store.

    Args:
        record: Current state of the batch record
        job_id: Provider job identifier the signal is about
        outcome: Completed or failed job status
        now: Timestamp to stamp on the update
        policy: Failure policy to apply

    Returns:
        Tuple of (decision, fields to patch). Fields are empty unless the
        decision is APPLIED.

    Raises:
        ValueError: If the outcome is still pending
    """
    if not outcome.is_terminal:
        raise ValueError("Only completed or failed outcomes can be merged")

    if job_id in record.seen_ids or job_id in record.failed_job_ids:
        return MergeDecision.DUPLICATE, {}
    if record.is_terminal:
        return MergeDecision.TERMINAL, {}
    if record.status is BatchStatus.PENDING:
        return MergeDecision.NOT_READY, {}
    if job_id not in record.request_ids:
        return MergeDecision.UNKNOWN_JOB, {}

    fields: Dict[str, Any] = {"last_update": now}
    total = len(record.request_ids)

    if outcome.state is JobState.FAILED:
        failure = JobFailure(job_id, outcome.error or "no reason given")
        failed_ids = record.failed_job_ids + [job_id]
        fields["failed_job_ids"] = failed_ids
        fields["note"] = _append_note(record.note, str(failure))

        if policy is FailurePolicy.FAIL_BATCH:
            fields["status"] = BatchStatus.FAILED
        else:
            settled = _settled_status(record.request_ids, record.seen_ids, failed_ids)
            if settled is not None:
                fields["status"] = settled
                fields["completed_at"] = now
        return MergeDecision.APPLIED, fields

    seen_ids = record.seen_ids + [job_id]
    fields["seen_ids"] = seen_ids
    fields["outputs"] = record.outputs + [{"url": outcome.output_url, "job_id": job_id}]
    fields["output_urls"] = _merge_urls(record.output_urls, outcome.output_url)

    provider = record.provider.value
    if set(seen_ids) >= set(record.request_ids):
        fields["status"] = BatchStatus.COMPLETED
        fields["completed_at"] = now
        fields["note"] = f"{provider} batch complete. Received {len(seen_ids)} images."
        return MergeDecision.APPLIED, fields

    settled = None
    if policy is FailurePolicy.TOLERATE:
        settled = _settled_status(record.request_ids, seen_ids, record.failed_job_ids)

    if settled is not None:
        fields["status"] = settled
        fields["completed_at"] = now
        fields["note"] = _append_note(
            record.note,
            f"{provider} batch finished: {len(seen_ids)} of {total} succeeded.",
        )
    else:
        fields["status"] = BatchStatus.PROCESSING
        fields["note"] = f"{provider} received {len(seen_ids)} of {total}"
    return MergeDecision.APPLIED, fields


def _settled_status(
    request_ids: List[str], seen_ids: List[str], failed_ids: List[str]
) -> Optional[BatchStatus]:
    """Terminal status once every job is accounted for, else None."""
    if not request_ids or not set(seen_ids) | set(failed_ids) >= set(request_ids):
        return None
    if not seen_ids:
        return BatchStatus.FAILED
    return BatchStatus.COMPLETED_WITH_ERRORS if failed_ids else BatchStatus.COMPLETED


def _append_note(note: str, line: str) -> str:
    return f"{note}; {line}" if note else line


def _merge_urls(existing: str, url: Optional[str]) -> str:
    urls = [part.strip() for part in (existing or "").split(",") if part.strip()]
    if url and url not in urls:
        urls.append(url)
    return ", ".join(urls)


class ReconciliationEngine:
    """Idempotent merge of job outcomes into batch records.

    Every read-merge-write runs under the record's lock, so concurrent signals
    for the same record never lose an update. Different records proceed in
    parallel.
    """

    def __init__(
        self,
        repository: "BaseRepository",
        locks: Optional[RecordLocks] = None,
        policy: FailurePolicy = FailurePolicy.FAIL_BATCH,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize the engine.

        Args:
            repository: Record store holding batch records
            locks: Lock registry shared with the batch coordinator
            policy: What a failed job does to its batch
            clock: Source of "now" for timestamps
        """
        self.repository = repository
        self.locks = locks or RecordLocks()
        self.policy = policy
        self.clock = clock

    async def merge_completion(
        self, record_id: str, job_id: str, outcome: JobStatus
    ) -> MergeDecision:
        """Merge one job outcome into a batch record.

        Args:
            record_id: Batch record identifier
            job_id: Provider job identifier
            outcome: Completed or failed job status

        Returns:
            MergeDecision describing what happened

        Raises:
            StoreError: If the record cannot be read or written
            ValueError: If the outcome is still pending
        """
        async with self.locks.hold(record_id):
            record = await self.repository.get(record_id)
            decision, fields = plan_merge(record, job_id, outcome, self.clock(), self.policy)

            if decision is not MergeDecision.APPLIED:
                logger.info(
                    "merge_skipped",
                    record_id=record_id,
                    job_id=job_id,
                    decision=decision.value,
                    status=record.status.value,
                )
                return decision

            await self.repository.patch(record_id, fields)

        status = fields.get("status", record.status)
        logger.info(
            "merge_applied",
            record_id=record_id,
            job_id=job_id,
            outcome=outcome.state.value,
            status=BatchStatus(status).value,
            received=len(fields.get("seen_ids", record.seen_ids)),
            expected=len(record.request_ids),
        )
        return decision
