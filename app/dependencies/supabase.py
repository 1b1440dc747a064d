import logging
from functools import lru_cache

from supabase import Client, create_client

from app.config import get_settings

logger = logging.getLogger(__name__)


@lru_cache
def get_supabase_client() -> Client:
    """Shared client for profiles, scenarios and game snapshots.

    Game rows are written by the server on behalf of every player, so this
    client uses the service key rather than a user's JWT.
    """
    settings = get_settings()
    logger.info("Creating Supabase client")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_API_KEY)
