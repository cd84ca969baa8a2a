# phoneverify/services/rate_limit/flood_service.py
import logging
import threading
import time
import uuid
from typing import Callable, Dict, List, Optional, Tuple

import redis

from phoneverify.core.config import settings

logger = logging.getLogger(__name__)


class FloodService:
    """
    Flood control: counts named events per identifier inside a sliding window.

    Events live in process memory, or in Redis sorted sets when a Redis URL is
    configured so that limits hold across workers.
    """

    KEY_PREFIX = "flood"

    def __init__(self, redis_url: Optional[str] = None, clock: Callable[[], float] = time.time):
        self._now = clock
        self._lock = threading.Lock()
        # key -> [(timestamp, expiration)]
        self._events: Dict[str, List[Tuple[float, float]]] = {}
        self.redis_client = None

        url = redis_url if redis_url is not None else settings.REDIS_URL
        if url:
            try:
                self.redis_client = redis.Redis.from_url(url)
                self.redis_client.ping()
                logger.info("Flood control using Redis")
            except redis.RedisError as e:
                logger.error(f"Redis unavailable for flood control, using memory: {e}")
                self.redis_client = None

    def _key(self, name: str, identifier: Optional[str]) -> str:
        return f"{self.KEY_PREFIX}:{name}:{identifier or 'anonymous'}"

    def register(self, name: str, window: int = 3600, identifier: Optional[str] = None) -> None:
        """Record one event for (name, identifier) that expires after ``window`` seconds"""
        key = self._key(name, identifier)
        if self.redis_client is not None:
            self._redis_register(key, window)
        else:
            self._memory_register(key, window)

    def is_allowed(self, name: str, threshold: int, window: int = 3600, identifier: Optional[str] = None) -> bool:
        """
        True when fewer than ``threshold`` events happened in the last ``window`` seconds.

        A negative threshold means no limit.
        """
        if threshold < 0:
            return True
        key = self._key(name, identifier)
        if self.redis_client is not None:
            count = self._redis_count(key, window)
        else:
            count = self._memory_count(key, window)
        return count < threshold

    def clear(self, name: str, identifier: Optional[str] = None) -> None:
        key = self._key(name, identifier)
        if self.redis_client is not None:
            self.redis_client.delete(key)
        else:
            with self._lock:
                self._events.pop(key, None)

    def garbage_collection(self) -> int:
        """Drop expired events; returns how many were removed (memory backend only)"""
        if self.redis_client is not None:
            # Redis keys carry their own TTL
            return 0
        now = self._now()
        removed = 0
        with self._lock:
            for key in list(self._events):
                kept = [e for e in self._events[key] if e[1] > now]
                removed += len(self._events[key]) - len(kept)
                if kept:
                    self._events[key] = kept
                else:
                    del self._events[key]
        return removed

    def _memory_register(self, key: str, window: int) -> None:
        now = self._now()
        with self._lock:
            events = [e for e in self._events.get(key, []) if e[1] > now]
            events.append((now, now + window))
            self._events[key] = events

    def _memory_count(self, key: str, window: int) -> int:
        since = self._now() - window
        with self._lock:
            return sum(1 for timestamp, _ in self._events.get(key, []) if timestamp > since)

    def _redis_register(self, key: str, window: int) -> None:
        now = self._now()
        pipe = self.redis_client.pipeline()
        pipe.zadd(key, {f"{now}:{uuid.uuid4().hex}": now})
        pipe.zremrangebyscore(key, "-inf", now - window)
        pipe.expire(key, max(int(window), 1))
        pipe.execute()

    def _redis_count(self, key: str, window: int) -> int:
        since = self._now() - window
        return int(self.redis_client.zcount(key, f"({since}", "+inf"))
