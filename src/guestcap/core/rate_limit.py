"""Sliding window rate limiting backed by Redis or process memory."""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, Optional
from uuid import uuid4

import redis.asyncio as redis
from fastapi import HTTPException

from guestcap.core.config import settings

logger = logging.getLogger(__name__)

# Trim, count and record in one server-side step so concurrent hits cannot
# both pass the check. Returns {allowed, remaining, reset}; reset is a string
# because Redis truncates Lua numbers to integers.
SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])
local cost = tonumber(ARGV[4])

redis.call('ZREMRANGEBYSCORE', key, 0, now - window)
local count = redis.call('ZCARD', key)
local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
local reset = now + window
if oldest[2] then
    reset = tonumber(oldest[2]) + window
end

if count + cost > limit then
    return {0, math.max(0, limit - count), tostring(reset)}
end

for i = 1, cost do
    redis.call('ZADD', key, now, ARGV[5] .. ':' .. i)
end
redis.call('EXPIRE', key, window)
return {1, limit - count - cost, tostring(reset)}
"""


@dataclass
class RateLimitResult:
    """Outcome of a rate limit check."""

    success: bool
    remaining: int
    reset: float  # Unix timestamp at which the oldest counted hit expires


class SlidingWindowRateLimiter:
    """Sliding window log limiter with Redis or in-memory storage per identifier.

    Every admitted unit of work is recorded with its timestamp; a request is
    admitted when the units recorded in the trailing window plus its own
    cost stay within ``limit``.
    """

    def __init__(
        self,
        limit: int,
        window_seconds: int,
        prefix: str,
        redis_url: Optional[str] = None,
    ) -> None:
        self.limit = max(limit, 1)
        self.window_seconds = window_seconds
        self.prefix = prefix

        self._redis: Optional[redis.Redis] = redis.from_url(redis_url) if redis_url else None
        self._script = self._redis.register_script(SLIDING_WINDOW_SCRIPT) if self._redis is not None else None
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    @property
    def backend(self) -> str:
        return "redis" if self._redis is not None else "memory"

    async def hit(self, identifier: str, cost: int = 1) -> RateLimitResult:
        """Register ``cost`` units for ``identifier``.

        Raises:
            redis.RedisError: If the Redis backend is unreachable
        """
        key = f"{self.prefix}:{identifier}"
        now = time.time()
        if self._redis is not None:
            return await self._hit_redis(key, cost, now)
        return self._hit_memory(key, cost, now)

    async def _hit_redis(self, key: str, cost: int, now: float) -> RateLimitResult:
        allowed, remaining, reset = await self._script(
            keys=[key], args=[now, self.window_seconds, self.limit, cost, uuid4().hex]
        )
        return RateLimitResult(success=bool(allowed), remaining=int(remaining), reset=float(reset))

    def _hit_memory(self, key: str, cost: int, now: float) -> RateLimitResult:
        with self._lock:
            hits = self._hits.setdefault(key, deque())
            while hits and hits[0] <= now - self.window_seconds:
                hits.popleft()

            reset = (hits[0] if hits else now) + self.window_seconds
            if len(hits) + cost > self.limit:
                return RateLimitResult(
                    success=False, remaining=max(0, self.limit - len(hits)), reset=reset
                )

            hits.extend([now] * cost)
            return RateLimitResult(success=True, remaining=self.limit - len(hits), reset=reset)

    def reset_all(self) -> None:
        """Forget all in-memory hits."""
        with self._lock:
            self._hits.clear()


async def check_rate_limit(
    limiter: SlidingWindowRateLimiter, identifier: str, cost: int = 1
) -> RateLimitResult:
    """Check a rate limit, allowing the request if the limiter itself fails."""
    try:
        return await limiter.hit(identifier, cost=cost)
    except Exception as e:
        logger.error(
            "Rate limit check failed, allowing request",
            extra={"identifier": identifier, "limiter": limiter.prefix, "error": str(e)},
        )
        return RateLimitResult(success=True, remaining=0, reset=0)


def rate_limit_exceeded_exception(reset: float) -> HTTPException:
    """Build the 429 raised when a limiter denies a request."""
    retry_after = max(1, math.ceil(reset - time.time()))
    return HTTPException(
        status_code=429,
        detail={"error": "Rate limit exceeded", "retryAfter": retry_after},
        headers={"Retry-After": str(retry_after)},
    )


# Uploads: files per hour per guest
upload_rate_limiter = SlidingWindowRateLimiter(
    limit=settings.UPLOAD_RATE_LIMIT,
    window_seconds=settings.UPLOAD_RATE_WINDOW_SECONDS,
    prefix=f"{settings.RATE_LIMIT_PREFIX}/upload",
    redis_url=settings.REDIS_URL or None,
)

# ZIP downloads per hour per event
download_rate_limiter = SlidingWindowRateLimiter(
    limit=settings.DOWNLOAD_RATE_LIMIT,
    window_seconds=settings.DOWNLOAD_RATE_WINDOW_SECONDS,
    prefix=f"{settings.RATE_LIMIT_PREFIX}/download",
    redis_url=settings.REDIS_URL or None,
)

# General API calls per minute per client
api_rate_limiter = SlidingWindowRateLimiter(
    limit=settings.API_RATE_LIMIT,
    window_seconds=settings.API_RATE_WINDOW_SECONDS,
    prefix=f"{settings.RATE_LIMIT_PREFIX}/api",
    redis_url=settings.REDIS_URL or None,
)
