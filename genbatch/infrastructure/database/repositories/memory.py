"""In-process batch record store for genbatch.

Used for local development when Supabase is not configured, and in tests.
Rows are kept serialized and copied on every access so callers never share
state with the store, just like with a remote table.
"""

import asyncio
import copy
import uuid
from datetime import datetime
from typing import Any, Dict, List

from genbatch.core.batch.models import BatchRecord, BatchStatus, parse_timestamp, serialize_fields
from genbatch.core.errors import RecordNotFoundError
from genbatch.infrastructure.database.repositories.base import BaseRepository


class InMemoryBatchRecordRepository(BaseRepository):
    """Dict-backed record store with the same semantics as the Supabase table."""

    def __init__(self, latency: float = 0.0):
        """Initialize an empty store.

        Args:
            latency: Seconds every call sleeps, simulating a network round trip
        """
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.latency = latency

    def table_name(self) -> str:
        return "batch_records"

    async def create(self, fields: Dict[str, Any]) -> str:
        await asyncio.sleep(self.latency)
        record_id = f"rec_{uuid.uuid4().hex[:12]}"
        self.rows[record_id] = serialize_fields(copy.deepcopy(fields))
        return record_id

    async def get(self, record_id: str) -> BatchRecord:
        await asyncio.sleep(self.latency)
        if record_id not in self.rows:
            raise RecordNotFoundError(record_id)
        return BatchRecord.from_row(record_id, copy.deepcopy(self.rows[record_id]))

    async def patch(self, record_id: str, fields: Dict[str, Any]) -> None:
        await asyncio.sleep(self.latency)
        if record_id not in self.rows:
            raise RecordNotFoundError(record_id)
        self.rows[record_id].update(serialize_fields(copy.deepcopy(fields)))

    async def query_stale(self, cutoff: datetime) -> List[BatchRecord]:
        await asyncio.sleep(self.latency)
        stale = []
        for record_id, row in self.rows.items():
            if row.get("status") != BatchStatus.PROCESSING.value:
                continue
            last_update = parse_timestamp(row.get("last_update"))
            if last_update is None or last_update < cutoff:
                stale.append(BatchRecord.from_row(record_id, copy.deepcopy(row)))
        return stale
