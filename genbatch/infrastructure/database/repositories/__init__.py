"""Repository implementations for genbatch.

Implements Repository pattern with Dependency Inversion principle.
"""

from genbatch.infrastructure.database.repositories.base import BaseRepository
from genbatch.infrastructure.database.repositories.batch_records import BatchRecordRepository
from genbatch.infrastructure.database.repositories.memory import InMemoryBatchRecordRepository

__all__ = [
    "BaseRepository",
    "BatchRecordRepository",
    "InMemoryBatchRecordRepository",
]
