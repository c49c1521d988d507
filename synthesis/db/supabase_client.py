"""Supabase client initialization."""

from functools import lru_cache

from supabase import Client, create_client

from synthesis.core.config import get_settings
from synthesis.core.logging import get_logger

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_supabase() -> Client | None:
    """
    Get Supabase client instance (cached singleton).

    Returns:
        Supabase client configured with service role key, or None when the
        store is not configured (local-only mode)
    """
    settings = get_settings()
    if not settings.store_configured:
        logger.warning("Supabase not configured; running in local-only mode")
        return None

    try:
        return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
    except Exception as e:
        logger.error(f"Failed to initialize Supabase client, falling back to local-only mode: {e}")
        return None
