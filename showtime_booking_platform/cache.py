"""
Redis read-through cache for catalogue listings and seat maps.

Seat state always comes from the database. Each seat transition drops the
seat map of its show, and a Redis failure on any call is logged and treated
as a miss, so the platform keeps serving when Redis is down.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from redis.asyncio import Redis
from redis.exceptions import RedisError

from .config import get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CacheKeyBuilder:
    """Key layout: ``<entity>:<view>[:<id>]``."""

    @staticmethod
    def seat_map(show_id: str) -> str:
        return f"seats:map:{show_id}"

    @staticmethod
    def movie_list() -> str:
        return "movies:list"

    @staticmethod
    def upcoming_shows(movie_id: str) -> str:
        return f"shows:upcoming:{movie_id}"


class CacheTTL:
    """Lifetimes in seconds. Seat maps use ``settings.seat_map_cache_ttl_seconds``."""

    MOVIE_LIST = 300
    UPCOMING_SHOWS = 60


class RedisCache:
    """JSON values in Redis; every failure degrades to a miss."""

    def __init__(self):
        self.client: Optional[Redis] = None

    async def initialize(self) -> None:
        """
        Connect to ``settings.redis_url`` and check the server answers.

        Raises:
            RedisError: If the server cannot be reached
        """
        settings = get_settings()
        client = Redis.from_url(
            settings.redis_url,
            max_connections=settings.redis_max_connections,
            retry_on_timeout=True,
            health_check_interval=30,
        )
        try:
            await client.ping()
        except RedisError:
            await client.aclose()
            raise

        self.client = client
        logger.info("Connected to Redis cache")

    async def close(self) -> None:
        if self.client is None:
            return
        await self.client.aclose()
        self.client = None
        logger.info("Redis cache disconnected")

    async def _call(self, operation: str, key: str, fallback: T, command: Callable[[Redis], Awaitable[T]]) -> T:
        if self.client is None:
            return fallback
        try:
            return await command(self.client)
        except RedisError as e:
            logger.warning("Cache %s failed for %s: %s", operation, key, e)
            return fallback

    async def get(self, key: str) -> Optional[Any]:
        """Return the decoded value, or None on a miss."""
        raw = await self._call("get", key, None, lambda client: client.get(key))
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding undecodable cache entry %s", key)
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Store ``value`` as JSON.

        Args:
            key: Cache key
            value: Anything ``json.dumps`` accepts; datetimes and UUIDs become strings
            ttl: Expiry in seconds, or None to keep it until invalidated

        Returns:
            Whether the value was written
        """
        payload = json.dumps(value, default=str)

        async def _write(client: Redis) -> bool:
            await client.set(key, payload, ex=ttl)
            return True

        return await self._call("set", key, False, _write)

    async def delete(self, key: str) -> bool:
        async def _delete(client: Redis) -> bool:
            await client.delete(key)
            return True

        return await self._call("delete", key, False, _delete)

    async def ping(self) -> bool:
        async def _ping(client: Redis) -> bool:
            return bool(await client.ping())

        return await self._call("ping", "-", False, _ping)


cache = RedisCache()


async def init_cache() -> None:
    await cache.initialize()


async def close_cache() -> None:
    await cache.close()


def get_cache() -> RedisCache:
    return cache


class CacheInvalidator:
    """Drops the cached views a write makes stale."""

    @staticmethod
    async def invalidate_seat_caches(show_id: str) -> None:
        await cache.delete(CacheKeyBuilder.seat_map(show_id))
        logger.debug("Seat map cache dropped for show %s", show_id)

    @staticmethod
    async def invalidate_show_caches(movie_id: str) -> None:
        await cache.delete(CacheKeyBuilder.upcoming_shows(movie_id))

    @staticmethod
    async def invalidate_movie_caches() -> None:
        await cache.delete(CacheKeyBuilder.movie_list())
