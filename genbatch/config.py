"""Configuration management for genbatch.

Centralizes all environment variable access for better testability and maintainability.
"""

import os
from typing import Optional


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    """Read an environment variable, trimming whitespace and surrounding quotes."""
    value = os.environ.get(name)
    if value is None:
        return default

    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1]

    return value or default


class Config:
    """Application configuration loaded from environment variables."""

    # Server
    @staticmethod
    def port() -> int:
        return int(_env("PORT", "4000"))

    # Public callback address
    @staticmethod
    def public_base_url() -> Optional[str]:
        """Get the public base URL providers use to reach our webhooks."""
        url = _env("PUBLIC_BASE_URL")
        return url.rstrip("/") if url else None

    # Provider credentials
    @staticmethod
    def wavespeed_api_key() -> Optional[str]:
        """Get WaveSpeed API key from environment."""
        return _env("WAVESPEED_API_KEY")

    @staticmethod
    def fal_api_token() -> Optional[str]:
        """Get Fal API token from environment."""
        return _env("FAL_API_TOKEN")

    @staticmethod
    def wavespeed_model() -> str:
        return _env("WAVESPEED_MODEL", "bytedance/seedream-v4")

    @staticmethod
    def fal_model() -> str:
        return _env("FAL_MODEL", "fal-ai/stable-diffusion-xl")

    # Supabase configuration
    @staticmethod
    def supabase_url() -> Optional[str]:
        """Get Supabase project URL from environment."""
        return _env("SUPABASE_URL")

    @staticmethod
    def supabase_service_role_key() -> Optional[str]:
        """Get Supabase service role key from environment."""
        return _env("SUPABASE_SERVICE_ROLE_KEY")

    @staticmethod
    def batch_table() -> str:
        """Get the table holding batch records."""
        return _env("BATCH_TABLE", "batch_records")

    # Reconciliation tuning
    @staticmethod
    def poll_interval_seconds() -> float:
        """Seconds between two stuck-job scanner cycles."""
        return float(_env("POLL_INTERVAL_SECONDS", "60"))

    @staticmethod
    def stale_after_minutes() -> float:
        """Minutes without an update before a processing batch counts as stuck."""
        return float(_env("STALE_AFTER_MINUTES", "3"))

    @staticmethod
    def provider_timeout_seconds() -> float:
        return float(_env("PROVIDER_TIMEOUT_SECONDS", "30"))

    @staticmethod
    def store_timeout_seconds() -> float:
        return float(_env("STORE_TIMEOUT_SECONDS", "10"))

    @staticmethod
    def scanner_max_concurrent_records() -> int:
        return int(_env("SCANNER_MAX_CONCURRENT_RECORDS", "5"))

    @staticmethod
    def scanner_enabled() -> bool:
        """Whether the app starts the stuck-job scanner on startup."""
        return _env("SCANNER_ENABLED", "true").lower() in ("1", "true", "yes", "on")

    @staticmethod
    def failure_policy() -> str:
        """Get the job failure policy name ('fail_batch' or 'tolerate')."""
        return _env("FAILURE_POLICY", "fail_batch").lower()

    # Helper methods
    @staticmethod
    def is_configured() -> bool:
        """Check if all required configuration is present."""
        return not Config.get_missing_config()

    @staticmethod
    def get_missing_config() -> list[str]:
        """Get list of missing required configuration keys."""
        missing = []
        if not Config.public_base_url():
            missing.append("PUBLIC_BASE_URL")
        if not Config.wavespeed_api_key():
            missing.append("WAVESPEED_API_KEY")
        if not Config.fal_api_token():
            missing.append("FAL_API_TOKEN")
        if not Config.supabase_url():
            missing.append("SUPABASE_URL")
        if not Config.supabase_service_role_key():
            missing.append("SUPABASE_SERVICE_ROLE_KEY")
        return missing


# Singleton instance for easy access
config = Config()
