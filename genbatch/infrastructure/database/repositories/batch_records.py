"""Batch records repository for genbatch.

Stores batch records in a Supabase table. The supabase client is synchronous,
so every call runs in a worker thread under a bounded timeout.
"""

import asyncio
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from genbatch.config import config
from genbatch.core.batch.models import BatchRecord, BatchStatus, serialize_fields
from genbatch.core.errors import RecordNotFoundError, StoreError
from genbatch.core.logging import logger
from genbatch.infrastructure.database.client import SupabaseClient
from genbatch.infrastructure.database.repositories.base import BaseRepository


class BatchRecordRepository(BaseRepository):
    """Repository for the batch_records table."""

    def __init__(self, table: Optional[str] = None, timeout: Optional[float] = None):
        """Initialize repository with Supabase client.

        Args:
            table: Table name override (defaults to BATCH_TABLE)
            timeout: Seconds before a store call is abandoned
        """
        self._client: SupabaseClient = SupabaseClient()
        self._table = table or config.batch_table()
        self._timeout = timeout if timeout is not None else config.store_timeout_seconds()

    def table_name(self) -> str:
        """Return table name."""
        return self._table

    async def _run(self, operation: str, call: Callable[[], Any], **context) -> Any:
        """Run a blocking store call with a timeout, mapping failures to StoreError."""
        try:
            return await asyncio.wait_for(asyncio.to_thread(call), timeout=self._timeout)
        except asyncio.TimeoutError as e:
            logger.error("store_timeout", operation=operation, timeout=self._timeout, **context)
            raise StoreError(f"{operation} timed out after {self._timeout}s") from e
        except Exception as e:
            logger.error("store_call_failed", operation=operation, error=str(e), **context)
            raise StoreError(f"{operation} failed: {e}") from e

    async def create(self, fields: Dict[str, Any]) -> str:
        """Create a new batch record.

        Args:
            fields: Record fields (enums and datetimes are serialized)

        Returns:
            Id of the created row
        """
        data = serialize_fields(fields)
        result = await self._run(
            "create",
            lambda: self._client.table(self.table_name()).insert(data).execute(),
        )

        if not result.data:
            logger.error("batch_record_create_empty", table=self.table_name())
            raise StoreError("create returned no row")

        record_id = str(result.data[0]["id"])
        logger.info("batch_record_created", record_id=record_id)
        return record_id

    async def get(self, record_id: str) -> BatchRecord:
        """Get a batch record by id.

        Raises:
            RecordNotFoundError: If no row has this id
        """
        result = await self._run(
            "get",
            lambda: (
                self._client.table(self.table_name()).select("*").eq("id", record_id).execute()
            ),
            record_id=record_id,
        )

        if not result.data:
            raise RecordNotFoundError(record_id)

        return BatchRecord.from_row(record_id, result.data[0])

    async def patch(self, record_id: str, fields: Dict[str, Any]) -> None:
        """Overwrite the supplied fields of a batch record."""
        data = serialize_fields(fields)
        await self._run(
            "patch",
            lambda: (
                self._client.table(self.table_name()).update(data).eq("id", record_id).execute()
            ),
            record_id=record_id,
        )
        logger.debug("batch_record_patched", record_id=record_id, fields=sorted(data))

    async def query_stale(self, cutoff: datetime) -> List[BatchRecord]:
        """Get processing records not updated since cutoff."""
        result = await self._run(
            "query_stale",
            lambda: (
                self._client.table(self.table_name())
                .select("*")
                .eq("status", BatchStatus.PROCESSING.value)
                .lt("last_update", cutoff.isoformat())
                .order("last_update")
                .execute()
            ),
        )

        return [BatchRecord.from_row(row["id"], row) for row in result.data or []]
