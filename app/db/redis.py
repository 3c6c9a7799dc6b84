# app/db/redis.py
import logging
import redis.asyncio as redis

logger = logging.getLogger(__name__)


async def connect(url: str | None) -> redis.Redis | None:
    """
    Connect Redis if a URL is configured.
    Unset or unreachable Redis only disables the invoice cache; the app still starts.
    """
    if not url:
        logger.warning("No REDIS_URL configured, invoice cache disabled.")
        return None

    try:
        client = redis.from_url(url, decode_responses=True)
        await client.ping()
        logger.info("Redis connected")
        return client
    except Exception as e:
        logger.warning("Failed to connect to Redis, invoice cache disabled: %s", e)
        return None


async def disconnect(client: redis.Redis | None) -> None:
    if client is not None:
        await client.aclose()
        logger.info("Redis disconnected")
