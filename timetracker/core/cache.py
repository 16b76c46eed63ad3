"""
Redis client wrapper.

Used for dashboard statistics caching and for reminder run tokens. Every
helper degrades to a no-op when Redis is unreachable so that callers keep
working without a cache.
"""

import json
from typing import Any, Optional

import redis

from timetracker.core.config import settings
from timetracker.core.logging import get_logger

logger = get_logger(__name__)


class RedisClient:
    _client: Optional[redis.Redis] = None
    enabled: bool = settings.CACHE_ENABLED

    @classmethod
    def get_client(cls) -> redis.Redis:
        if cls._client is None:
            cls._client = redis.Redis.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=2,
                socket_timeout=2,
            )
        return cls._client

    @classmethod
    def ping(cls) -> bool:
        try:
            return bool(cls.get_client().ping())
        except redis.RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    @classmethod
    def close(cls) -> None:
        if cls._client is not None:
            cls._client.close()
            cls._client = None

    @classmethod
    def get_json(cls, key: str) -> Optional[Any]:
        if not cls.enabled:
            return None
        try:
            raw = cls.get_client().get(key)
        except redis.RedisError as e:
            logger.warning(f"Cache read failed for {key}: {e}")
            return None
        if raw is None:
            return None
        return json.loads(raw)

    @classmethod
    def set_json(cls, key: str, value: Any, ttl: int | None = None) -> None:
        if not cls.enabled:
            return
        try:
            cls.get_client().set(
                key, json.dumps(value), ex=ttl or settings.CACHE_TTL_SECONDS
            )
        except redis.RedisError as e:
            logger.warning(f"Cache write failed for {key}: {e}")

    @classmethod
    def set_if_absent(cls, key: str, value: str, ttl: int) -> Optional[bool]:
        """
        Atomically claim a key.

        Returns True if the key was set, False if it already existed and
        None when Redis is disabled or could not be reached.
        """
        if not cls.enabled:
            return None
        try:
            return bool(cls.get_client().set(key, value, nx=True, ex=ttl))
        except redis.RedisError as e:
            logger.warning(f"Could not claim key {key}: {e}")
            return None

    @classmethod
    def delete(cls, key: str) -> None:
        if not cls.enabled:
            return
        try:
            cls.get_client().delete(key)
        except redis.RedisError as e:
            logger.warning(f"Could not delete key {key}: {e}")


class RedisRunGuard:
    """
    One reminder run per (trigger, date).

    The first invocation claims the slot with SET NX; re-fired triggers for
    the same slot are skipped. A run that fails releases its slot. If Redis
    is unreachable the run proceeds.
    """

    def __init__(self, ttl: int | None = None):
        self._ttl = ttl or settings.REMINDER_DEDUP_TTL_SECONDS

    async def claim(self, trigger: str, date: str) -> bool:
        claimed = RedisClient.set_if_absent(run_token_key(trigger, date), "1", self._ttl)
        if claimed is None:
            logger.warning(f"Run guard unavailable, allowing {trigger} for {date}")
            return True
        return claimed

    async def release(self, trigger: str, date: str) -> None:
        RedisClient.delete(run_token_key(trigger, date))
        logger.info(f"Released run slot {trigger} for {date}")


def stats_cache_key(date: str) -> str:
    return f"timetracker:stats:{date}"


def run_token_key(trigger: str, date: str) -> str:
    return f"timetracker:run:{trigger}:{date}"
