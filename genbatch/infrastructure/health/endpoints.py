"""Health check endpoint handler for genbatch.

Provides /health endpoint with dependency testing.
"""

from datetime import datetime, timezone
from typing import Any, Dict

from genbatch.infrastructure.health.checks import (
    check_provider_credentials,
    test_supabase_connection,
)


async def get_health_status(
    store: str, scanner_running: bool, service_name: str = "genbatch"
) -> Dict[str, Any]:
    """Get comprehensive health status.

    Args:
        store: Kind of record store in use ("supabase" or "memory")
        scanner_running: Whether the stuck-job scanner task is alive
        service_name: Service name for response

    Returns:
        Dict with overall status and dependency health
    """
    if store == "supabase":
        store_health = await test_supabase_connection()
    else:
        store_health = {"status": "healthy", "database": "in-process"}

    providers_health = check_provider_credentials()

    all_healthy = (
        store_health.get("status") == "healthy"
        and providers_health.get("status") == "healthy"
        and scanner_running
    )

    return {
        "status": "healthy" if all_healthy else "degraded",
        "service": service_name,
        "version": "1.0.0",
        "store": store,
        "scanner_running": scanner_running,
        "dependencies": {"store": store_health, "providers": providers_health},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
