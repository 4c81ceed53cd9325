"""Supabase client for genbatch.

One process-wide client, created on first use from SUPABASE_URL and
SUPABASE_SERVICE_ROLE_KEY. The service role key bypasses row level security,
which the batch table relies on.
"""

from typing import Optional

from supabase import Client, create_client

from genbatch.config import config
from genbatch.core.errors import StoreError
from genbatch.core.logging import logger


class SupabaseClient:
    """Singleton holder of the Supabase client."""

    _instance: Optional["SupabaseClient"] = None
    _client: Optional[Client] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def client(self) -> Client:
        """Get the Supabase client, creating it on first access.

        Raises:
            StoreError: If Supabase credentials are not set
        """
        if self._client is None:
            missing = [
                name
                for name, value in (
                    ("SUPABASE_URL", config.supabase_url()),
                    ("SUPABASE_SERVICE_ROLE_KEY", config.supabase_service_role_key()),
                )
                if not value
            ]
            if missing:
                raise StoreError(f"Supabase not configured, missing: {', '.join(missing)}")

            self._client = create_client(config.supabase_url(), config.supabase_service_role_key())
            logger.info("supabase_client_initialized", table=config.batch_table())

        return self._client

    def table(self, name: str):
        """Query builder for one table."""
        return self.client.table(name)

    def is_configured(self) -> bool:
        return bool(config.supabase_url() and config.supabase_service_role_key())
