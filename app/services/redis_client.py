# app/services/redis_client.py
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class FastRedisClient:
    """Pooled async Redis client whose helpers log and absorb command failures."""

    def __init__(self, url: str, max_connections: int = 20):
        self.url = url
        self.max_connections = max_connections
        self.pool = None
        self.client = None
        self._initialized = False

    async def initialize(self):
        """Initialize connection pool on startup"""
        if self._initialized:
            return

        try:
            logger.info("Attempting Redis connection", url_preview=self.url[:30] + "...")

            self.pool = ConnectionPool.from_url(
                self.url,
                max_connections=self.max_connections,
                retry_on_timeout=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30,
                decode_responses=True,
            )

            self.client = redis.Redis(connection_pool=self.pool)

            result = await self.client.ping()
            logger.info("Redis ping successful", result=result)

            self._initialized = True
            logger.info("Redis client initialized", max_connections=self.max_connections)

        except Exception as e:
            logger.error("Failed to initialize Redis client", error=str(e))
            self._initialized = False
            raise RuntimeError("Redis initialization failed") from e

    async def close(self):
        """Clean shutdown"""
        try:
            if self.client:
                await self.client.aclose()
            if self.pool:
                await self.pool.disconnect()
            self._initialized = False
            logger.info("Redis client closed")
        except Exception as e:
            logger.error("Error closing Redis client", error=str(e))

    async def _ensure_initialized(self):
        if not self._initialized:
            logger.warning("Redis not initialized, attempting to initialize")
            await self.initialize()

    async def ping(self) -> bool:
        """Test Redis connection"""
        try:
            await self._ensure_initialized()
            return bool(await self.client.ping())
        except Exception as e:
            logger.error("Redis ping failed", error=str(e))
            return False

    async def get(self, key: str) -> str | None:
        try:
            await self._ensure_initialized()
            result = await self.client.get(key)
            return result if result else None
        except Exception as e:
            logger.error("Redis GET failed", key=key[:40], error=str(e))
            return None

    async def incr_with_ttl(self, key: str, ttl_s: int | None = None) -> int | None:
        """Increment a key and optionally refresh TTL atomically."""
        try:
            await self._ensure_initialized()
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.incr(key)
                if ttl_s:
                    pipe.expire(key, ttl_s)
                results = await pipe.execute()
            return int(results[0]) if results else None
        except Exception as e:
            logger.error("Redis INCR failed", key=key[:40], error=str(e))
            return None
