"""Health monitoring module for genbatch.

Provides health check endpoints and dependency testing.
"""

from genbatch.infrastructure.health.checks import (
    check_provider_credentials,
    test_supabase_connection,
)
from genbatch.infrastructure.health.endpoints import get_health_status

__all__ = [
    "check_provider_credentials",
    "test_supabase_connection",
    "get_health_status",
]
