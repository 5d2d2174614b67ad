from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from redis.asyncio import Redis

from luckycoins.core.logger.logger import get_logger
from luckycoins.infra.config.settings import get_settings

logger = get_logger(__name__)
settings = get_settings()

StoredPair = Tuple[Optional[str], Optional[str]]


class AdminSessionStore(ABC):
    """Durable storage for the admin session token and its expiry.

    The two keys are always written and cleared together. Readers get the raw
    pair back and must treat a pair with a missing half as absent.
    """

    def __init__(
        self,
        token_key: Optional[str] = None,
        expiry_key: Optional[str] = None
    ):
        self.token_key = token_key or settings.ADMIN_SESSION_KEY
        self.expiry_key = expiry_key or settings.ADMIN_SESSION_EXPIRY_KEY

    @abstractmethod
    async def read_pair(self) -> StoredPair:
        """Return (token, expiry) as stored, either of which may be None"""

    @abstractmethod
    async def write_pair(self, token: str, expires_at_ms: int, ttl_ms: Optional[int] = None) -> None:
        """Persist token and expiry atomically"""

    @abstractmethod
    async def clear_pair(self) -> None:
        """Delete both keys atomically"""

    async def ping(self) -> bool:
        return True


class RedisAdminSessionStore(AdminSessionStore):
    """Redis-backed admin session storage"""

    def __init__(self, redis_client: Redis, **kwargs):
        super().__init__(**kwargs)
        self.redis = redis_client

    async def read_pair(self) -> StoredPair:
        try:
            token, expiry = await self.redis.mget(self.token_key, self.expiry_key)
            return token, expiry
        except Exception as e:
            logger.error(
                "Failed to read admin session",
                extra={"token_key": self.token_key, "error": str(e)}
            )
            raise

    async def write_pair(self, token: str, expires_at_ms: int, ttl_ms: Optional[int] = None) -> None:
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.set(self.token_key, token, px=ttl_ms)
                pipe.set(self.expiry_key, str(expires_at_ms), px=ttl_ms)
                await pipe.execute()

            logger.info(
                "Admin session stored",
                extra={"expires_at": expires_at_ms}
            )

        except Exception as e:
            logger.error(
                "Failed to store admin session",
                extra={"token_key": self.token_key, "error": str(e)}
            )
            raise

    async def clear_pair(self) -> None:
        try:
            # DEL with several keys is a single atomic command
            await self.redis.delete(self.token_key, self.expiry_key)
            logger.info("Admin session cleared", extra={"token_key": self.token_key})
        except Exception as e:
            logger.error(
                "Failed to clear admin session",
                extra={"token_key": self.token_key, "error": str(e)}
            )
            raise

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except Exception as e:
            logger.warning(f"Admin session store ping failed: {e}")
            return False


class MemoryAdminSessionStore(AdminSessionStore):
    """Process-local storage for development and tests; lost on restart"""

    def __init__(self, initial: Optional[Dict[str, str]] = None, **kwargs):
        super().__init__(**kwargs)
        self.data: Dict[str, str] = dict(initial or {})

    async def read_pair(self) -> StoredPair:
        return self.data.get(self.token_key), self.data.get(self.expiry_key)

    async def write_pair(self, token: str, expires_at_ms: int, ttl_ms: Optional[int] = None) -> None:
        self.data.update({self.token_key: token, self.expiry_key: str(expires_at_ms)})

    async def clear_pair(self) -> None:
        self.data.pop(self.token_key, None)
        self.data.pop(self.expiry_key, None)
