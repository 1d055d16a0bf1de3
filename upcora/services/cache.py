"""
Redis cache with an in-process fallback
"""
import json
import time
from typing import Any, Optional

import redis
import structlog

from upcora.config import REDIS_URL

logger = structlog.get_logger()


class CacheService:
    def __init__(self, redis_url: str = REDIS_URL):
        self._memory_cache = {}
        try:
            self.redis_client = redis.from_url(redis_url, decode_responses=True, socket_connect_timeout=1)
            self.redis_client.ping()
            logger.info("redis_cache_connected", url=redis_url)
        except Exception as e:
            logger.warning("redis_unavailable_using_memory_cache", error=str(e))
            self.redis_client = None

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, (_, expires_at) in self._memory_cache.items() if expires_at < now]
        for key in expired:
            del self._memory_cache[key]

    def get(self, key: str) -> Optional[Any]:
        try:
            if self.redis_client:
                value = self.redis_client.get(key)
                return json.loads(value) if value else None
            entry = self._memory_cache.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if expires_at < time.monotonic():
                self._memory_cache.pop(key, None)
                return None
            return value
        except Exception as e:
            logger.error("cache_get_failed", key=key, error=str(e))
            return None

    def set(self, key: str, value: Any, expire: int = 3600) -> bool:
        try:
            if self.redis_client:
                return bool(self.redis_client.setex(key, expire, json.dumps(value, default=str)))
            now = time.monotonic()
            self._evict_expired(now)
            self._memory_cache[key] = (value, now + expire)
            return True
        except Exception as e:
            logger.error("cache_set_failed", key=key, error=str(e))
            return False

    def delete(self, key: str) -> bool:
        try:
            if self.redis_client:
                return bool(self.redis_client.delete(key))
            return self._memory_cache.pop(key, None) is not None
        except Exception as e:
            logger.error("cache_delete_failed", key=key, error=str(e))
            return False

    def clear_pattern(self, pattern: str) -> int:
        """Clear all keys matching a trailing-wildcard pattern like ``admin:*``"""
        try:
            if self.redis_client:
                keys = self.redis_client.keys(pattern)
                return self.redis_client.delete(*keys) if keys else 0
            prefix = pattern.rstrip("*")
            doomed = [k for k in self._memory_cache if k.startswith(prefix)]
            for key in doomed:
                del self._memory_cache[key]
            return len(doomed)
        except Exception as e:
            logger.error("cache_clear_failed", pattern=pattern, error=str(e))
            return 0


cache = CacheService()
