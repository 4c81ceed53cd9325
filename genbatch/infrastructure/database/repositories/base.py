"""Base repository interface for genbatch.

Implements Repository pattern with Dependency Inversion principle.
The reconciliation core depends on this interface, never on a concrete store.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List

from genbatch.core.batch.models import BatchRecord


class BaseRepository(ABC):
    """Abstract record store for batch records.

    The store offers no compare-and-swap: ``patch`` overwrites only the fields
    it is given. Every method may raise StoreError.
    """

    @abstractmethod
    def table_name(self) -> str:
        """Return the table name this repository manages."""

    @abstractmethod
    async def create(self, fields: Dict[str, Any]) -> str:
        """Insert a new record and return its id."""

    @abstractmethod
    async def get(self, record_id: str) -> BatchRecord:
        """Fetch one record. Raises RecordNotFoundError if absent."""

    @abstractmethod
    async def patch(self, record_id: str, fields: Dict[str, Any]) -> None:
        """Overwrite the given fields of one record."""

    @abstractmethod
    async def query_stale(self, cutoff: datetime) -> List[BatchRecord]:
        """Records still processing whose last update is older than cutoff."""
