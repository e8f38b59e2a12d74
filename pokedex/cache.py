# pokedex/cache.py

import redis.asyncio as redis
import json
import logging
from typing import Optional, Any

from .config import settings

logger = logging.getLogger(__name__)

def create_redis_client(redis_url: str = settings.redis_url) -> redis.Redis:
    """Creates an asynchronous Redis client backed by its own connection pool."""
    try:
        logger.info(f"Attempting to connect to Redis at: {redis_url}")
        pool = redis.ConnectionPool.from_url(
            redis_url,
            decode_responses=True,
            max_connections=20,
        )
        client = redis.Redis(connection_pool=pool)
        logger.info("Redis connection pool created successfully.")
        return client
    except Exception as e:
        logger.error(f"Failed to create Redis connection pool: {e}", exc_info=True)
        raise

async def close_redis_client(client: Optional[redis.Redis]):
    """Closes the Redis client and disconnects its pool."""
    if client is None:
        return
    try:
        await client.aclose()
        await client.connection_pool.disconnect(inuse_connections=True)
        logger.info("Redis connection pool disconnected.")
    except Exception as e:
        logger.error(f"Error closing Redis pool: {e}", exc_info=True)

async def ping_redis(client: Optional[redis.Redis]) -> bool:
    if client is None:
        return False
    try:
        return bool(await client.ping())
    except redis.RedisError as e:
        logger.warning(f"Redis PING failed: {e}")
        return False


class ResponseCache:
    """
    Short-lived cache for raw PokeAPI JSON responses.

    Purely advisory: every Redis failure is logged and treated as a miss so a
    broken cache never fails a provider call.
    """

    def __init__(self, client: redis.Redis, ttl: int = settings.pokeapi_response_ttl_seconds,
                 prefix: str = f"{settings.redis_key_prefix}:pokeapi"):
        self._redis = client
        self.ttl = ttl
        self.prefix = prefix

    @property
    def enabled(self) -> bool:
        return self.ttl > 0

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def get(self, key: str) -> Optional[Any]:
        """Retrieves a cached response."""
        if not self.enabled:
            return None
        try:
            cached_data = await self._redis.get(self._key(key))
        except redis.RedisError as e:
            logger.error(f"Redis GET error for key '{key}': {e}", exc_info=True)
            return None

        if cached_data is None:
            logger.debug(f"Cache MISS for key: {key}")
            return None
        logger.debug(f"Cache HIT for key: {key}")
        try:
            return json.loads(cached_data)
        except json.JSONDecodeError:
            logger.warning(f"Failed to decode JSON from cache for key: {key}. Ignoring entry.")
            return None

    async def set(self, key: str, value: Any) -> bool:
        """Stores a response with the configured TTL."""
        if not self.enabled:
            return False
        if value is None:
            logger.warning(f"Attempted to cache None value for key: {key}. Skipping.")
            return False

        try:
            json_value = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error(f"Failed to serialize data to JSON for key '{key}': {e}", exc_info=True)
            return False

        try:
            await self._redis.setex(self._key(key), self.ttl, json_value)
            logger.debug(f"Cache SET for key: {key} with TTL: {self.ttl}s")
            return True
        except redis.RedisError as e:
            logger.error(f"Redis SET error for key '{key}': {e}", exc_info=True)
            return False
