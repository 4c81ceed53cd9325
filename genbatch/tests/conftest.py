"""Shared fixtures for genbatch tests."""

from datetime import datetime
from typing import List, Optional

import pytest

from genbatch.core.batch.models import BatchStatus, ProviderName
from genbatch.core.reconciliation.engine import ReconciliationEngine
from genbatch.core.reconciliation.locks import RecordLocks
from genbatch.infrastructure.database.repositories import InMemoryBatchRecordRepository
from genbatch.tests.fakes import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def repository():
    return InMemoryBatchRecordRepository()


@pytest.fixture
def locks():
    return RecordLocks()


@pytest.fixture
def engine(repository, locks, clock):
    return ReconciliationEngine(repository, locks=locks, clock=clock)


@pytest.fixture
def make_record(repository, clock):
    """Factory seeding a batch record straight into the store."""

    async def _make(
        request_ids: List[str],
        status: BatchStatus = BatchStatus.PROCESSING,
        provider: ProviderName = ProviderName.WAVESPEED,
        last_update: Optional[datetime] = None,
        **fields,
    ) -> str:
        return await repository.create(
            {
                "provider": provider,
                "prompt": "a red fox in the snow",
                "status": status,
                "run_id": "run-1",
                "request_ids": request_ids,
                "seen_ids": [],
                "outputs": [],
                "failed_submissions": [],
                "failed_job_ids": [],
                "created_at": clock(),
                "last_update": last_update or clock(),
                **fields,
            }
        )

    return _make
