import logging
from uuid import uuid4

from upstash_redis.asyncio import Redis

from app.config import get_settings

logger = logging.getLogger(__name__)

_redis_client: Redis | None = None

# Delete KEYS[1] only while it still holds ARGV[1]
RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


def get_redis_client() -> Redis:
    """Get the shared async Upstash client, creating it on first use."""
    global _redis_client
    if _redis_client is None:
        settings = get_settings()
        logger.info("Connecting to Upstash Redis")
        _redis_client = Redis(
            url=settings.UPSTASH_REDIS_REST_URL,
            token=settings.UPSTASH_REDIS_REST_TOKEN,
        )
    return _redis_client


async def close_redis_client() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.close()
        _redis_client = None
        logger.info("Upstash Redis client closed")


async def acquire_lock(client: Redis, key: str, ttl: int) -> str | None:
    """Take a short-lived lock with SET NX.

    Returns the owner token on success, None if someone else holds the lock.
    The TTL frees the lock if its holder dies mid-resolution.
    """
    token = str(uuid4())
    acquired = await client.set(key, token, nx=True, ex=ttl)
    if not acquired:
        logger.debug("Lock busy: %s", key)
        return None
    return token


async def release_lock(client: Redis, key: str, token: str) -> None:
    """Release a lock only if it still belongs to token.

    The check and the delete run as one script so a lock that expired and was
    taken by another request is never removed.
    """
    released = await client.eval(RELEASE_LOCK_SCRIPT, keys=[key], args=[token])
    if not released:
        logger.warning("Lock %s expired before release", key)
