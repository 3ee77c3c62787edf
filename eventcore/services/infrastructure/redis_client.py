# eventcore/services/infrastructure/redis_client.py
import redis.asyncio as redis
from redis.asyncio.client import PubSub
from redis.asyncio.connection import ConnectionPool

from eventcore.config import settings
from eventcore.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class FastRedisClient:
    """Pooled Redis client for the ledger live stream and reservation caches."""

    def __init__(self, url: str | None = None):
        self.url = url or settings.REDIS_URL
        self.pool = None
        self.client = None
        self._initialized = False

    async def initialize(self):
        """Initialize connection pool on startup"""
        if self._initialized:
            return

        try:
            self.pool = ConnectionPool.from_url(
                self.url,
                max_connections=20,
                retry_on_timeout=True,
                socket_connect_timeout=10,
                socket_timeout=None,  # pub/sub listeners block between messages
                health_check_interval=30,
                decode_responses=True,
            )
            self.client = redis.Redis(connection_pool=self.pool)

            result = await self.client.ping()
            logger.info("Redis ping successful", result=result)

            self._initialized = True

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
        try:
            await self._ensure_initialized()
            return bool(await self.client.ping())
        except Exception as e:
            logger.error("Redis ping failed", error=str(e))
            return False

    async def get_members(self, key: str) -> set[str] | None:
        """Return the set stored at key, or None when the key was never written."""
        await self._ensure_initialized()
        async with self.client.pipeline(transaction=False) as pipe:
            pipe.exists(key)
            pipe.smembers(key)
            exists, members = await pipe.execute()
        return set(members) - {""} if exists else None

    async def replace_members(self, key: str, members: set[str]) -> None:
        """Atomically replace the set at key. An empty set is stored as a sentinel."""
        await self._ensure_initialized()
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.delete(key)
            pipe.sadd(key, *(members or {""}))
            await pipe.execute()

    async def publish(self, channel: str, message: str) -> int:
        await self._ensure_initialized()
        return await self.client.publish(channel, message)

    async def pubsub(self) -> PubSub:
        await self._ensure_initialized()
        return self.client.pubsub(ignore_subscribe_messages=True)


fast_redis = FastRedisClient()
