"""Service wiring for genbatch API.

Builds the record store, gateways, coordinator, engine and scanner once per
app, sharing a single lock registry between coordinator and engine.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

import httpx

from genbatch.config import config
from genbatch.core.batch.coordinator import BatchCoordinator
from genbatch.core.batch.models import ProviderName, utcnow
from genbatch.core.logging import logger
from genbatch.core.reconciliation.engine import FailurePolicy, ReconciliationEngine
from genbatch.core.reconciliation.locks import RecordLocks
from genbatch.core.reconciliation.scanner import StuckJobScanner
from genbatch.infrastructure.database.client import SupabaseClient
from genbatch.infrastructure.database.repositories import (
    BaseRepository,
    BatchRecordRepository,
    InMemoryBatchRecordRepository,
)
from genbatch.integrations.providers import ProviderGateway, build_gateways


@dataclass
class Services:
    """Everything route handlers need, stored on ``app.state.services``."""

    repository: BaseRepository
    gateways: Dict[ProviderName, ProviderGateway]
    locks: RecordLocks
    engine: ReconciliationEngine
    coordinator: BatchCoordinator
    scanner: StuckJobScanner
    store_kind: str
    http_client: Optional[httpx.AsyncClient] = None

    async def aclose(self) -> None:
        await self.scanner.stop()
        if self.http_client is not None:
            await self.http_client.aclose()


def default_repository() -> BaseRepository:
    """Supabase repository when configured, in-process store otherwise."""
    if SupabaseClient().is_configured():
        return BatchRecordRepository()

    logger.warning("record_store_fallback", reason="Supabase not configured", store="memory")
    return InMemoryBatchRecordRepository()


def build_services(
    repository: Optional[BaseRepository] = None,
    gateways: Optional[Dict[ProviderName, ProviderGateway]] = None,
    clock: Callable[[], datetime] = utcnow,
) -> Services:
    """Wire services from configuration, with optional overrides for tests."""
    http_client = None
    if gateways is None:
        http_client = httpx.AsyncClient(timeout=config.provider_timeout_seconds())
        gateways = build_gateways(http_client)

    repository = repository or default_repository()
    store_kind = "supabase" if isinstance(repository, BatchRecordRepository) else "memory"

    try:
        policy = FailurePolicy(config.failure_policy())
    except ValueError:
        logger.warning("failure_policy_invalid", value=config.failure_policy())
        policy = FailurePolicy.FAIL_BATCH

    locks = RecordLocks()
    engine = ReconciliationEngine(repository, locks=locks, policy=policy, clock=clock)
    coordinator = BatchCoordinator(repository, gateways, locks=locks, clock=clock)
    scanner = StuckJobScanner(
        repository,
        engine,
        gateways,
        interval=config.poll_interval_seconds(),
        stale_after=timedelta(minutes=config.stale_after_minutes()),
        check_timeout=config.provider_timeout_seconds(),
        max_concurrent_records=config.scanner_max_concurrent_records(),
        clock=clock,
    )

    return Services(
        repository=repository,
        gateways=gateways,
        locks=locks,
        engine=engine,
        coordinator=coordinator,
        scanner=scanner,
        store_kind=store_kind,
        http_client=http_client,
    )
