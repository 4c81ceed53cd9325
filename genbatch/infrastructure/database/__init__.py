"""Database module for genbatch.

Provides the Supabase client singleton and the record store repositories.
"""

from genbatch.infrastructure.database.client import SupabaseClient
from genbatch.infrastructure.database.repositories import (
    BaseRepository,
    BatchRecordRepository,
    InMemoryBatchRecordRepository,
)

__all__ = [
    "SupabaseClient",
    "BaseRepository",
    "BatchRecordRepository",
    "InMemoryBatchRecordRepository",
]
