"""Sliding-window rate limiting for login attempts and OCR submissions."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections import deque
from typing import Any, Mapping

import redis

LOGGER = logging.getLogger(__name__)

WINDOW_SECONDS = 60


class RateLimiter:
    """Allows ``limit`` hits per ``(scope, client)`` in any one-minute window.

    Windows live in process memory unless a Redis client is given, in which
    case all workers share one sorted set per window. In memory, a client's
    window is dropped as soon as it holds no recent hits, so the table only
    ever holds clients seen during the last minute.
    """

    def __init__(self, limit: int, window_seconds: int = WINDOW_SECONDS, redis_client: redis.Redis | None = None):
        self.limit = limit
        self.window_seconds = window_seconds
        self._redis_client = redis_client
        self._windows: dict[str, deque[float]] = {}
        self._lock = threading.Lock()
        self._next_sweep = 0.0

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "RateLimiter":
        limit = int(config.get("RATE_LIMIT_PER_MINUTE", 30))
        redis_url = config.get("REDIS_URL", "")
        if not redis_url:
            return cls(limit)

        try:
            client = redis.from_url(redis_url, decode_responses=True)
            client.ping()
        except redis.RedisError:
            LOGGER.exception("Redis unavailable; rate limiting in process memory")
            return cls(limit)
        LOGGER.info("Rate limiter using Redis at %s", redis_url)
        return cls(limit, redis_client=client)

    @property
    def tracked_clients(self) -> int:
        return len(self._windows)

    def hit(self, scope: str, client_id: str) -> bool:
        """Record one attempt; return ``False`` when the window is already full."""
        if self.limit <= 0:
            return True
        key = f"rate:{scope}:{client_id}"
        if self._redis_client is not None:
            return self._hit_redis(key)
        return self._hit_memory(key)

    def _hit_memory(self, key: str) -> bool:
        now = time.monotonic()
        with self._lock:
            if now >= self._next_sweep:
                self._sweep(now)

            window = self._windows.get(key)
            if window is None:
                window = self._windows[key] = deque()
            self._prune(window, now)

            if len(window) >= self.limit:
                return False
            window.append(now)
            return True

    def _prune(self, window: deque[float], now: float) -> None:
        while window and now - window[0] > self.window_seconds:
            window.popleft()

    def _sweep(self, now: float) -> None:
        for key in list(self._windows):
            window = self._windows[key]
            self._prune(window, now)
            if not window:
                del self._windows[key]
        self._next_sweep = now + self.window_seconds

    def _hit_redis(self, key: str) -> bool:
        assert self._redis_client is not None
        now = time.time()
        member = f"{now}:{uuid.uuid4().hex}"

        pipeline = self._redis_client.pipeline()
        pipeline.zremrangebyscore(key, 0, now - self.window_seconds)
        pipeline.zadd(key, {member: now})
        pipeline.zcard(key)
        pipeline.expire(key, self.window_seconds + 5)
        _, _, count, _ = pipeline.execute()

        if int(count) > self.limit:
            # Rejected attempts do not count against the window.
            self._redis_client.zrem(key, member)
            return False
        return True
