import redis.asyncio as redis
from functools import lru_cache
from luckycoins.infra.config.settings import settings
from luckycoins.core.logger.logger import logger

@lru_cache()
def get_redis_pool() -> redis.ConnectionPool:
    """Connection pool backing the durable admin session store (cached)"""
    return redis.ConnectionPool.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        max_connections=settings.REDIS_MAX_CONNECTIONS,
        health_check_interval=30
    )

async def get_redis() -> redis.Redis:
    """Pinged client on the shared pool; raises if the server is unreachable"""
    client = redis.Redis(connection_pool=get_redis_pool())
    try:
        await client.ping()
    except Exception as e:
        logger.error("Session storage unreachable", extra={"backend": "redis", "error": str(e)})
        raise
    logger.info("Session storage connected", extra={"backend": "redis"})
    return client

async def close_redis_pool() -> None:
    """Disconnect pooled connections on shutdown"""
    pool = get_redis_pool()
    await pool.disconnect()
    get_redis_pool.cache_clear()
