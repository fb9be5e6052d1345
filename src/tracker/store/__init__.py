import logging

from tracker.settings import PRIMARY_KEYS, TrackerSettings

from .base import RecordStore
from .diskcache_store import DiskCacheStore
from .supabase import SupabaseStore

logger = logging.getLogger(__name__)


def create_store(settings: TrackerSettings) -> RecordStore:
    """Create the record store selected by ``settings.store_backend``."""
    if settings.store_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY are required for the supabase store")
        logger.info(f"Using Supabase store at {settings.supabase_url}")
        return SupabaseStore(
            settings.supabase_url,
            settings.supabase_service_key,
            primary_keys=PRIMARY_KEYS,
        )

    logger.info(f"Using local diskcache store at {settings.store_dir}")
    return DiskCacheStore(settings.store_dir, primary_keys=PRIMARY_KEYS)


__all__ = ["RecordStore", "DiskCacheStore", "SupabaseStore", "create_store"]
