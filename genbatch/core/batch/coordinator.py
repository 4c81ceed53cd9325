"""Batch coordinator for genbatch.

Creates the batch record, fans out job submissions and writes back which of
them the provider accepted.
"""

import asyncio
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple

from genbatch.core.batch.models import (
    BatchStatus,
    JobAssets,
    JobSpec,
    ProviderName,
    SubmissionSummary,
    utcnow,
)
from genbatch.core.errors import StoreError
from genbatch.core.logging import logger
from genbatch.core.reconciliation.locks import RecordLocks

if TYPE_CHECKING:
    from genbatch.infrastructure.database.repositories.base import BaseRepository
    from genbatch.integrations.providers.base import ProviderGateway


class BatchCoordinator:
    """Submits a batch of jobs to one provider.

    Submissions settle independently: one rejected job never aborts the
    others, and the batch proceeds if at least one job was accepted.
    """

    def __init__(
        self,
        repository: "BaseRepository",
        gateways: Dict[ProviderName, "ProviderGateway"],
        locks: Optional[RecordLocks] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """Initialize coordinator.

        Args:
            repository: Record store holding batch records
            gateways: Provider → gateway mapping
            locks: Lock registry shared with the reconciliation engine
            clock: Source of "now" for timestamps
        """
        self.repository = repository
        self.gateways = gateways
        self.locks = locks or RecordLocks()
        self.clock = clock

    async def submit_batch(
        self,
        prompt: str,
        provider: str,
        assets: Optional[JobAssets] = None,
        width: int = 1024,
        height: int = 1024,
        count: int = 1,
    ) -> SubmissionSummary:
        """Create a batch record and submit ``count`` jobs.

        Args:
            prompt: Generation prompt shared by every job
            provider: Provider name or slug
            assets: Subject and reference images
            width: Output width in pixels
            height: Output height in pixels
            count: Number of jobs to submit (>= 1)

        Returns:
            SubmissionSummary with accepted and rejected counts

        Raises:
            InvalidProvider: If the provider is unknown
            ValueError: If count < 1
            StoreError: If the record cannot be created or written back
        """
        provider_name = ProviderName.parse(provider)
        if count < 1:
            raise ValueError(f"count must be at least 1, got {count}")

        gateway = self.gateways[provider_name]
        assets = assets or JobAssets()
        run_id = str(uuid.uuid4())
        now = self.clock()

        record_id = await self.repository.create(
            {
                "provider": provider_name,
                "prompt": prompt,
                "status": BatchStatus.PENDING,
                "run_id": run_id,
                "request_ids": [],
                "seen_ids": [],
                "outputs": [],
                "failed_submissions": [],
                "failed_job_ids": [],
                "subject_url": assets.subject_url,
                "reference_urls": assets.reference_urls,
                "width": width,
                "height": height,
                "created_at": now,
                "last_update": now,
            }
        )

        logger.info(
            "batch_submission_started",
            record_id=record_id,
            run_id=run_id,
            provider=provider_name.value,
            count=count,
        )

        try:
            request_ids, failures = await self._fan_out(
                gateway, record_id, run_id, prompt, assets, width, height, count
            )

            status = BatchStatus.PROCESSING if request_ids else BatchStatus.FAILED
            async with self.locks.hold(record_id):
                await self.repository.patch(
                    record_id,
                    {
                        "request_ids": request_ids,
                        "failed_submissions": failures,
                        "status": status,
                        "model": gateway.model,
                        "last_update": self.clock(),
                        "note": f"Batch started: {len(request_ids)} ok, {len(failures)} failed.",
                    },
                )
        except Exception as e:
            await self._abandon(record_id, e)
            raise

        logger.info(
            "batch_submission_completed",
            record_id=record_id,
            submitted=len(request_ids),
            failed=len(failures),
            status=status.value,
        )

        return SubmissionSummary(
            record_id=record_id,
            run_id=run_id,
            submitted=len(request_ids),
            failed=len(failures),
            status=status,
            failures=failures,
        )

    async def _fan_out(
        self,
        gateway: "ProviderGateway",
        record_id: str,
        run_id: str,
        prompt: str,
        assets: JobAssets,
        width: int,
        height: int,
        count: int,
    ) -> Tuple[List[str], List[str]]:
        """Submit ``count`` jobs concurrently; returns (accepted ids, failure messages)."""
        job = JobSpec(
            prompt=prompt,
            width=width,
            height=height,
            record_id=record_id,
            run_id=run_id,
            assets=assets,
            prepared=await gateway.prepare_assets(assets),
        )

        results = await asyncio.gather(
            *[gateway.submit(job) for _ in range(count)], return_exceptions=True
        )

        request_ids: List[str] = []
        failures: List[str] = []
        for result in results:
            if isinstance(result, Exception):
                logger.warning(
                    "job_submission_failed",
                    record_id=record_id,
                    provider=gateway.name.value,
                    error=str(result),
                )
                failures.append(str(result))
            elif isinstance(result, BaseException):
                raise result
            else:
                request_ids.append(result)

        return request_ids, failures

    async def _abandon(self, record_id: str, error: Exception) -> None:
        """Mark a batch failed when submission broke off after the record was created."""
        logger.error("batch_submission_aborted", record_id=record_id, error=str(error))
        try:
            async with self.locks.hold(record_id):
                await self.repository.patch(
                    record_id,
                    {
                        "status": BatchStatus.FAILED,
                        "last_update": self.clock(),
                        "note": f"Batch aborted before submission completed: {error}",
                    },
                )
        except StoreError as e:
            logger.error("batch_abandon_failed", record_id=record_id, error=str(e))
