"""Stuck-job scanner for genbatch.

Periodically finds batches that stayed in processing without an update for
too long (usually a missed webhook) and pulls job status from the provider,
feeding terminal outcomes into the reconciliation engine.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, List, Optional

from genbatch.core.batch.models import BatchRecord, JobStatus, ProviderName, utcnow
from genbatch.core.errors import ProviderCommunicationError, ProviderTimeoutError, StoreError
from genbatch.core.logging import logger
from genbatch.core.reconciliation.engine import MergeDecision, ReconciliationEngine

if TYPE_CHECKING:
    from genbatch.infrastructure.database.repositories.base import BaseRepository
    from genbatch.integrations.providers.base import ProviderGateway


@dataclass
class ScanReport:
    """Summary of one scanner cycle."""

    records_scanned: int = 0
    jobs_checked: int = 0
    merges_applied: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "records_scanned": self.records_scanned,
            "jobs_checked": self.jobs_checked,
            "merges_applied": self.merges_applied,
            "errors": self.errors,
        }


class StuckJobScanner:
    """Scheduled sweep over stale processing batches.

    Interval, staleness threshold, clock and sleep are injectable so the loop
    can be driven deterministically. ``start`` returns the background task and
    ``stop`` cancels it.
    """

    def __init__(
        self,
        repository: "BaseRepository",
        engine: ReconciliationEngine,
        gateways: Dict[ProviderName, "ProviderGateway"],
        interval: float = 60.0,
        stale_after: timedelta = timedelta(minutes=3),
        check_timeout: float = 30.0,
        max_concurrent_records: int = 5,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize scanner.

        Args:
            repository: Record store holding batch records
            engine: Reconciliation engine receiving pulled outcomes
            gateways: Provider → gateway mapping
            interval: Seconds between cycles
            stale_after: Age of last update after which a batch is scanned
            check_timeout: Seconds before a status check counts as pending
            max_concurrent_records: Records scanned at the same time
            clock: Source of "now"
            sleep: Coroutine used to wait between cycles
        """
        self.repository = repository
        self.engine = engine
        self.gateways = gateways
        self.interval = interval
        self.stale_after = stale_after
        self.check_timeout = check_timeout
        self.max_concurrent_records = max_concurrent_records
        self.clock = clock
        self.sleep = sleep
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Start the periodic sweep in the background (idempotent)."""
        if not self.running:
            self._task = asyncio.create_task(self._run(), name="stuck-job-scanner")
            logger.info(
                "scanner_started",
                interval=self.interval,
                stale_after_seconds=self.stale_after.total_seconds(),
            )
        return self._task

    async def stop(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("scanner_stopped")

    async def _run(self) -> None:
        while True:
            await self.sleep(self.interval)
            try:
                await self.run_cycle()
            except Exception as e:
                logger.error("scan_cycle_crashed", error=str(e), exc_info=True)

    async def run_cycle(self) -> ScanReport:
        """Scan every stale processing batch once.

        Returns:
            ScanReport for this cycle
        """
        report = ScanReport()
        cutoff = self.clock() - self.stale_after

        try:
            records = await self.repository.query_stale(cutoff)
        except StoreError as e:
            logger.error("scan_query_failed", error=str(e))
            report.errors.append(f"query: {e}")
            return report

        logger.info("scan_cycle_started", stale_records=len(records), cutoff=cutoff.isoformat())

        semaphore = asyncio.Semaphore(self.max_concurrent_records)

        async def scan_isolated(record: BatchRecord) -> None:
            async with semaphore:
                try:
                    await self._scan_record(record, report)
                except Exception as e:
                    logger.error(
                        "scan_record_failed",
                        record_id=record.record_id,
                        error=str(e),
                    )
                    report.errors.append(f"{record.record_id}: {e}")

        await asyncio.gather(*[scan_isolated(record) for record in records])

        logger.info("scan_cycle_completed", **report.to_dict())
        return report

    async def _scan_record(self, record: BatchRecord, report: ScanReport) -> None:
        report.records_scanned += 1
        pending = record.pending_job_ids()
        if not pending:
            return

        gateway = self.gateways.get(record.provider)
        if gateway is None:
            logger.warning(
                "scan_provider_unavailable",
                record_id=record.record_id,
                provider=record.provider.value,
            )
            return

        statuses = await asyncio.gather(*[self._check(gateway, job_id) for job_id in pending])
        report.jobs_checked += len(pending)

        for job_id, status in zip(pending, statuses):
            if status is None or not status.is_terminal:
                continue
            decision = await self.engine.merge_completion(record.record_id, job_id, status)
            if decision is MergeDecision.APPLIED:
                report.merges_applied += 1

    async def _check(self, gateway: "ProviderGateway", job_id: str) -> Optional[JobStatus]:
        """Pull one job status; timeouts count as pending, API errors as unknown."""
        try:
            return await asyncio.wait_for(gateway.check_status(job_id), timeout=self.check_timeout)
        except (asyncio.TimeoutError, ProviderTimeoutError):
            logger.info("status_check_timed_out", provider=gateway.name.value, job_id=job_id)
            return JobStatus.pending()
        except ProviderCommunicationError as e:
            logger.warning(
                "status_check_failed",
                provider=gateway.name.value,
                job_id=job_id,
                error=str(e),
            )
            return None
