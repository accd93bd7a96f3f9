"""Redis client configuration and the booked-slot cache."""

import json
from datetime import date
from typing import cast

import redis
import structlog
from redis.exceptions import WatchError

from service_scheduler.config import settings

logger = structlog.get_logger()

# Global Redis client instance
_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """
    Get or create Redis client instance.

    Returns:
        Redis client instance
    """
    global _redis_client

    if _redis_client is None:
        _redis_client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            username=settings.redis_username,
            password=settings.redis_password,
            decode_responses=settings.redis_decode_responses,
            socket_connect_timeout=5,
            socket_keepalive=True,
            health_check_interval=30,
        )

    return _redis_client


async def check_redis_connection() -> bool:
    """
    Check if Redis connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        client = get_redis_client()
        client.ping()
        return True
    except Exception:
        return False


def close_redis_connection() -> None:
    """Close Redis connection."""
    global _redis_client

    if _redis_client is not None:
        _redis_client.close()
        _redis_client = None


class BookedSlotCache:
    """
    Per-date cache of booked slot values.

    Only the availability read path uses this cache. Reservations always go
    to the database, so a stale entry can at worst show a slot as free that
    a subsequent booking attempt then reports as taken. Every Redis failure
    degrades to a cache miss.

    Each date also has a version counter that every invalidation bumps.
    A fill is written only if the version it read before querying the
    database is still current, so a set computed from a read that raced a
    booking or deletion is discarded instead of cached.
    """

    KEY_PREFIX = "slots:booked:"
    VERSION_PREFIX = "slots:version:"
    VERSION_TTL = 86400

    def __init__(self, redis_client: redis.Redis, ttl: int | None = None):
        """Initialize cache with Redis client and entry lifetime in seconds."""
        self.redis = redis_client
        self.ttl = ttl if ttl is not None else settings.availability_cache_ttl

    @classmethod
    def key_for(cls, day: date) -> str:
        """Cache key for a calendar date."""
        return f"{cls.KEY_PREFIX}{day.isoformat()}"

    @classmethod
    def version_key_for(cls, day: date) -> str:
        """Version counter key for a calendar date."""
        return f"{cls.VERSION_PREFIX}{day.isoformat()}"

    def get(self, day: date) -> set[str] | None:
        """
        Get the cached booked slots for a date.

        Returns:
            Set of ``HH:MM`` values, or None on miss or error
        """
        try:
            value = cast(str | None, self.redis.get(self.key_for(day)))
            if value is None:
                return None
            return set(json.loads(value))
        except Exception as e:
            logger.warning("booked_slot_cache_read_failed", date=day.isoformat(), error=str(e))
            return None

    def version(self, day: date) -> str | None:
        """
        Current version of a date's entry; read it before querying the database.

        Returns:
            Version token, or None if Redis is unavailable
        """
        try:
            return str(self.redis.get(self.version_key_for(day)) or "0")
        except Exception as e:
            logger.warning("booked_slot_cache_read_failed", date=day.isoformat(), error=str(e))
            return None

    def set(self, day: date, slots: set[str], version: str | None) -> bool:
        """
        Store the booked slots for a date if ``version`` is still current.

        Returns:
            True if the entry was written
        """
        if version is None:
            return False

        version_key = self.version_key_for(day)
        try:
            with self.redis.pipeline() as pipe:
                pipe.watch(version_key)
                if str(pipe.get(version_key) or "0") != version:
                    logger.debug("booked_slot_cache_fill_skipped", date=day.isoformat())
                    return False
                pipe.multi()
                pipe.setex(self.key_for(day), self.ttl, json.dumps(sorted(slots)))
                pipe.execute()
            return True
        except WatchError:
            logger.debug("booked_slot_cache_fill_skipped", date=day.isoformat())
            return False
        except Exception as e:
            logger.warning("booked_slot_cache_write_failed", date=day.isoformat(), error=str(e))
            return False

    def invalidate(self, *days: date) -> int:
        """
        Drop cached entries for the given dates and bump their versions.

        Returns:
            Number of keys deleted
        """
        unique_days = sorted(set(days))
        if not unique_days:
            return 0
        try:
            with self.redis.pipeline() as pipe:
                pipe.delete(*(self.key_for(day) for day in unique_days))
                for day in unique_days:
                    pipe.incr(self.version_key_for(day))
                    pipe.expire(self.version_key_for(day), self.VERSION_TTL)
                results = pipe.execute()
            return cast(int, results[0])
        except Exception as e:
            logger.warning("booked_slot_cache_invalidate_failed", error=str(e))
            return 0


def get_booked_slot_cache() -> BookedSlotCache | None:
    """Dependency returning the booked-slot cache, or None when caching is off."""
    if not settings.cache_enabled:
        return None
    return BookedSlotCache(get_redis_client())
