"""
Application-level rate limiting (no external dependencies)

Token bucket limiter keyed by client IP:
- Works in-memory (no Redis required)
- Supports configurable rates and burst capacity
- Automatically cleans up stale entries
"""
import asyncio
import time
from typing import Dict, Tuple, Optional
from dataclasses import dataclass


class RateLimitExceeded(Exception):
    """Raised when rate limit is exceeded"""
    def __init__(
        self,
        retry_after: int,
        message: str = "Too many requests from this IP, please try again later.",
        headers: Optional[Dict[str, int]] = None,
    ):
        self.retry_after = retry_after
        self.message = message
        self.headers = headers or {}
        super().__init__(message)


@dataclass
class RateLimitConfig:
    """Configuration for a rate limit"""
    requests: int  # Number of requests allowed per window
    window_seconds: int  # Time window in seconds
    burst: Optional[int] = None  # Allow burst up to this amount (defaults to requests)

    def __post_init__(self):
        if self.burst is None:
            self.burst = self.requests


@dataclass
class RateLimitState:
    """State for a single rate limit bucket"""
    tokens: float
    last_update: float


class TokenBucketRateLimiter:
    """
    Token bucket rate limiter.

    Tokens are added at a constant rate and consumed by requests.
    """

    def __init__(self, config: RateLimitConfig):
        self.config = config
        self._buckets: Dict[str, RateLimitState] = {}
        self._lock = asyncio.Lock()
        self._cleanup_interval = 300  # 5 minutes
        self._last_cleanup = time.time()

    async def check(self, key: str, cost: int = 1) -> Tuple[bool, Dict[str, int]]:
        """
        Check if request is allowed and consume tokens if so.

        Returns:
            Tuple of (allowed, headers) where headers are the rate limit
            headers to include in the response
        """
        config = self.config
        async with self._lock:
            now = time.time()

            if now - self._last_cleanup > self._cleanup_interval:
                self._cleanup(now)

            max_tokens = config.burst or config.requests
            if key not in self._buckets:
                self._buckets[key] = RateLimitState(tokens=max_tokens, last_update=now)

            bucket = self._buckets[key]

            # Refill tokens based on time elapsed
            refill_rate = config.requests / config.window_seconds
            elapsed = now - bucket.last_update
            bucket.tokens = min(max_tokens, bucket.tokens + elapsed * refill_rate)
            bucket.last_update = now

            allowed = bucket.tokens >= cost
            if allowed:
                bucket.tokens -= cost

            headers = {
                "X-RateLimit-Limit": config.requests,
                "X-RateLimit-Remaining": max(0, int(bucket.tokens)),
                "X-RateLimit-Reset": int(now + config.window_seconds),
            }

            if not allowed:
                headers["Retry-After"] = int((cost - bucket.tokens) / refill_rate) + 1

            return allowed, headers

    def _cleanup(self, now: float):
        """Remove buckets that have been idle longer than one window"""
        stale_threshold = max(3600, self.config.window_seconds)
        stale_keys = [
            key for key, state in self._buckets.items()
            if now - state.last_update > stale_threshold
        ]
        for key in stale_keys:
            del self._buckets[key]
        self._last_cleanup = now

    async def reset(self, key: Optional[str] = None):
        """Reset one bucket, or all of them"""
        async with self._lock:
            if key is None:
                self._buckets.clear()
            else:
                self._buckets.pop(key, None)

    async def check_ip(self, ip_address: str, cost: int = 1) -> Dict[str, int]:
        """
        Check the limit for a client IP.

        Returns:
            Rate limit headers for the response

        Raises:
            RateLimitExceeded: If rate limit is exceeded
        """
        allowed, headers = await self.check(f"ip:{ip_address}", cost)
        if not allowed:
            raise RateLimitExceeded(headers.get("Retry-After", 60), headers=headers)
        return headers
