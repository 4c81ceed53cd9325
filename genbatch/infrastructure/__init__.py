"""Infrastructure modules for genbatch.

Production-grade infrastructure components:
- Database: Supabase client singleton and record store repositories
- Health: Dependency health checks
"""

# Database
from genbatch.infrastructure.database import (
    BaseRepository,
    BatchRecordRepository,
    InMemoryBatchRecordRepository,
    SupabaseClient,
)

# Health
from genbatch.infrastructure.health import (
    check_provider_credentials,
    get_health_status,
    test_supabase_connection,
)

__all__ = [
    # Database
    "SupabaseClient",
    "BaseRepository",
    "BatchRecordRepository",
    "InMemoryBatchRecordRepository",
    # Health
    "check_provider_credentials",
    "test_supabase_connection",
    "get_health_status",
]
