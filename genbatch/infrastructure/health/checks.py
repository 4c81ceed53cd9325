"""Health check functions for genbatch.

Tests connectivity to external dependencies (Supabase, providers).
"""

import asyncio
from typing import Any, Dict

from genbatch.config import config
from genbatch.infrastructure.database import SupabaseClient


async def test_supabase_connection() -> Dict[str, Any]:
    """Test Supabase connectivity with minimal query.

    Returns:
        Dict with status ("healthy", "unconfigured", "timeout", "unavailable")
        and optional error message
    """
    try:
        if not config.supabase_url() or not config.supabase_service_role_key():
            return {"status": "unconfigured", "error": "Supabase credentials not set"}

        await asyncio.wait_for(
            asyncio.to_thread(
                lambda: SupabaseClient().table(config.batch_table()).select("id").limit(1).execute()
            ),
            timeout=2.0,
        )

        return {"status": "healthy", "database": "connected", "table": config.batch_table()}

    except asyncio.TimeoutError:
        return {"status": "timeout", "error": "Request timed out after 2s"}

    except Exception as e:
        return {"status": "unavailable", "error": str(e)[:100]}


def check_provider_credentials() -> Dict[str, Any]:
    """Report which providers have credentials and a callback URL configured."""
    callback = config.public_base_url()
    providers = {
        "wavespeed": bool(config.wavespeed_api_key()),
        "fal": bool(config.fal_api_token()),
    }
    ready = callback is not None and all(providers.values())
    return {
        "status": "healthy" if ready else "unconfigured",
        "public_base_url": callback,
        "credentials": providers,
    }
