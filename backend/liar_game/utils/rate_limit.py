"""
Rate limiting utility with Redis backend.

Fixed-window counters keyed by (endpoint identifier, client identifier).
Configuration is passed explicitly to a ``RateLimit`` dependency:

    @router.post("", dependencies=[Depends(RateLimit("create_room", RateLimitConfig(60, 10)))])

Falls back to in-memory storage when Redis is disabled or unreachable.
"""
import time
from dataclasses import dataclass
from typing import Optional
from fastapi import Request
from redis.asyncio import Redis
from liar_game.config import settings
from liar_game.exceptions import RateLimitExceededException
from liar_game.utils.logging_config import ratelimit_logger


@dataclass(frozen=True)
class RateLimitConfig:
    window_seconds: int
    max_requests: int


@dataclass(frozen=True)
class RateLimitInfo:
    limit: int
    remaining: int
    reset: int


class RateLimiter:
    """
    Redis-based fixed-window rate limiter.
    Falls back to in-memory storage if Redis is not available.
    """

    def __init__(self, redis_url: str | None = None, use_redis: bool | None = None):
        self.redis_url = redis_url or settings.REDIS_URL
        self._redis: Optional[Redis] = None
        self._fallback_store: dict[str, dict[str, float]] = {}
        if use_redis is None:
            use_redis = settings.RATE_LIMIT_USE_REDIS
        self._use_fallback = not use_redis

    @property
    def backend(self) -> str:
        return "memory" if self._use_fallback else "redis"

    async def get_redis(self) -> Optional[Redis]:
        """Get or create Redis connection."""
        if self._redis is None and not self._use_fallback:
            try:
                self._redis = Redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_connect_timeout=5,
                    socket_timeout=5,
                    retry_on_timeout=False
                )
                await self._redis.ping()
            except Exception as e:
                ratelimit_logger.warning(f"Redis unavailable for rate limiting, using in-memory fallback: {e}")
                self._use_fallback = True
                self._redis = None
        return self._redis

    async def health_check(self) -> dict[str, object]:
        redis = await self.get_redis()
        return {"backend": self.backend, "redis_connected": redis is not None}

    async def close(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    def reset(self) -> None:
        """Clear in-memory counters."""
        self._fallback_store.clear()

    def _cleanup_fallback(self, now: float) -> None:
        """Remove expired entries from fallback storage."""
        expired_keys = [
            k for k, v in self._fallback_store.items()
            if v["reset_at"] <= now
        ]
        for k in expired_keys:
            del self._fallback_store[k]

    def _hit_fallback(self, key: str, config: RateLimitConfig, now: float) -> tuple[int, int]:
        self._cleanup_fallback(now)
        data = self._fallback_store.get(key)
        if data is None:
            data = {"count": 0, "reset_at": now + config.window_seconds}
            self._fallback_store[key] = data
        data["count"] += 1
        return int(data["count"]), int(data["reset_at"])

    async def hit(self, key: str, config: RateLimitConfig) -> tuple[bool, RateLimitInfo]:
        """
        Count one request against ``key``.

        Returns:
            Tuple of (is_allowed, info)
        """
        now = time.time()

        if not self._use_fallback:
            try:
                redis = await self.get_redis()
                if redis:
                    window_id = int(now // config.window_seconds)
                    window_key = f"{key}:{window_id}"
                    # Atomic increment + expiry in one round trip
                    pipe = redis.pipeline(transaction=True)
                    pipe.incr(window_key)
                    pipe.expire(window_key, config.window_seconds)
                    results = await pipe.execute()
                    count = int(results[0])
                    reset_at = (window_id + 1) * config.window_seconds
                    return count <= config.max_requests, RateLimitInfo(
                        limit=config.max_requests,
                        remaining=max(0, config.max_requests - count),
                        reset=reset_at,
                    )
            except Exception as e:
                ratelimit_logger.warning(f"Redis rate limit check failed, switching to in-memory: {e}")
                self._use_fallback = True
                self._redis = None

        count, reset_at = self._hit_fallback(key, config, now)
        return count <= config.max_requests, RateLimitInfo(
            limit=config.max_requests,
            remaining=max(0, config.max_requests - count),
            reset=reset_at,
        )


# Global rate limiter instance
limiter = RateLimiter()


async def close_rate_limiter():
    """Close the rate limiter connection (call on shutdown)."""
    await limiter.close()


def get_client_identifier(request: Request) -> str:
    """
    Get a unique identifier for the client.
    Uses the authenticated principal if available, otherwise IP address.
    """
    principal = getattr(request.state, "user", None)
    if principal is not None and not principal.is_guest:
        return f"user:{principal.id}"

    # Use forwarded IP if behind proxy
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        ip = forwarded.split(",")[0].strip()
    else:
        # Safely access client.host - client can be None
        ip = "unknown"
        if request.client is not None:
            ip = request.client.host

    return f"ip:{ip}"


class RateLimit:
    """
    FastAPI dependency enforcing one endpoint's rate limit.

    Raises:
        RateLimitExceededException: When rate limit is exceeded
    """

    def __init__(self, identifier: str, config: RateLimitConfig, rate_limiter: RateLimiter | None = None):
        self.identifier = identifier
        self.config = config
        self._limiter = rate_limiter

    async def __call__(self, request: Request) -> None:
        if not settings.RATE_LIMIT_ENABLED:
            return

        rate_limiter = self._limiter or limiter
        client_key = get_client_identifier(request)
        full_key = f"rate_limit:{self.identifier}:{client_key}"

        is_allowed, info = await rate_limiter.hit(full_key, self.config)
        request.state.rate_limit_info = info

        if not is_allowed:
            ratelimit_logger.warning(
                f"Rate limit exceeded: {self.identifier} by {client_key} "
                f"({self.config.max_requests}/{self.config.window_seconds}s)"
            )
            raise RateLimitExceededException(
                limit=info.limit,
                window_seconds=self.config.window_seconds,
                reset=info.reset,
            )
