"""
Per-user write throttling on top of the ``limits`` package.

``MemoryRateLimiter`` keeps its counters in the current process only, so it is
correct for a single API instance and resets on restart. Deployments running
several instances should set ``RATE_LIMIT_BACKEND=redis`` so every instance
shares the same window.
"""
import math
import time
from functools import lru_cache

import structlog
from limits import RateLimitItemPerSecond
from limits.storage import MemoryStorage, RedisStorage, Storage
from limits.strategies import FixedWindowRateLimiter

from vidcat.core.config import settings
from vidcat.core.errors import APIError
from vidcat.db.models.user import User

logger = structlog.get_logger()


class RateLimiter:
    """Allows one hit per key within ``window_ms`` (rounded up to whole seconds)"""

    def __init__(self, window_ms: int, storage: Storage):
        self.window_ms = window_ms
        self.storage = storage
        self.item = RateLimitItemPerSecond(1, max(1, math.ceil(window_ms / 1000)))
        self.strategy = FixedWindowRateLimiter(storage)

    @property
    def enabled(self) -> bool:
        return self.window_ms > 0

    def hit(self, key: str) -> bool:
        """Record a hit; False when the key is still inside its window"""
        if not self.enabled:
            return True
        return self.strategy.hit(self.item, key)

    def retry_after(self, key: str) -> float:
        reset_time, _ = self.strategy.get_window_stats(self.item, key)
        return max(reset_time - time.time(), 0.0)

    def reset(self) -> None:
        self.storage.reset()


class MemoryRateLimiter(RateLimiter):

    def __init__(self, window_ms: int):
        super().__init__(window_ms, MemoryStorage())


class RedisRateLimiter(RateLimiter):

    def __init__(self, window_ms: int, redis_url: str):
        super().__init__(window_ms, RedisStorage(redis_url))


@lru_cache()
def get_rate_limiter() -> RateLimiter:
    if settings.rate_limit_backend == "redis":
        logger.info("Using redis rate limiter", window_ms=settings.rate_limit_window_ms)
        return RedisRateLimiter(settings.rate_limit_window_ms, settings.redis_url)
    return MemoryRateLimiter(settings.rate_limit_window_ms)


def enforce_user_rate_limit(limiter: RateLimiter, user: User) -> None:
    """Count a write against ``user``; 429 with ``retryAfter`` once over the limit"""
    key = f"user:{user.id}"
    if limiter.hit(key):
        return

    wait = max(1, math.ceil(limiter.retry_after(key)))
    logger.warning("Rate limit hit", user_id=user.id, wait=wait)
    raise APIError(
        status_code=429,
        message="Too many requests",
        details={"retryAfter": wait},
    )
