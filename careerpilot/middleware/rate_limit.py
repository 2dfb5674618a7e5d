"""
Redis-backed sliding window rate limiter middleware, plus security headers.

Each client IP gets a sorted set (`ratelimit_<ip>`) of request timestamps;
entries older than the window are trimmed before counting. Only the
application paths in RATE_LIMITED_PREFIXES are limited. When Redis is not
configured or errors, requests pass (fail-open).

Security headers are added to every response, limited or not.
"""

import logging
import time
import uuid
from typing import Any, Dict, Optional, Tuple

from redis.asyncio import Redis
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from careerpilot.config import get_settings
from careerpilot.services.redis_client import get_redis
from careerpilot.utils.metrics import inc

_log = logging.getLogger(__name__)

RATE_LIMITED_PREFIXES = ("/api/", "/interview", "/feedback", "/profile", "/leaderboard")

SECURITY_HEADERS = {
    "X-DNS-Prefetch-Control": "on",
    "Strict-Transport-Security": "max-age=63072000; includeSubDomains; preload",
    "X-XSS-Protection": "1; mode=block",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Content-Type-Options": "nosniff",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
}


def is_rate_limited_path(path: str) -> bool:
    return any(path.startswith(prefix) for prefix in RATE_LIMITED_PREFIXES)


def client_ip(request: Request) -> str:
    """First X-Forwarded-For entry, else the peer address, else localhost."""
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "127.0.0.1"


def add_security_headers(response: Response) -> Response:
    for key, value in SECURITY_HEADERS.items():
        response.headers[key] = value
    return response


class SlidingWindowRateLimiter:
    """Sliding window over a Redis sorted set scored by timestamp."""

    def __init__(self, redis_client: Redis, max_requests: int, window_seconds: int):
        self.redis = redis_client
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    async def hit(self, key: str) -> Tuple[bool, Dict[str, Any]]:
        now = time.time()
        window_start = now - self.window_seconds
        member = f"{now}:{uuid.uuid4().hex[:8]}"

        pipe = self.redis.pipeline(transaction=True)
        pipe.zremrangebyscore(key, 0, window_start)
        pipe.zcard(key)
        pipe.zadd(key, {member: now})
        pipe.expire(key, self.window_seconds + 1)
        results = await pipe.execute()

        # Count before this request
        current = results[1]
        allowed = current < self.max_requests
        reset = int(now + self.window_seconds)
        retry_after = 0

        if not allowed:
            await self.redis.zrem(key, member)
            oldest = await self.redis.zrange(key, 0, 0, withscores=True)
            if oldest:
                oldest_ts = oldest[0][1]
                reset = int(oldest_ts + self.window_seconds)
                retry_after = max(1, int(oldest_ts + self.window_seconds - now) + 1)
            else:
                retry_after = self.window_seconds

        return allowed, {
            "limit": self.max_requests,
            "remaining": max(0, self.max_requests - current - 1) if allowed else 0,
            "reset": reset,
            "retry_after": retry_after,
        }


class RedisRateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, redis_getter=get_redis, max_requests: Optional[int] = None,
                 window_seconds: Optional[int] = None):
        super().__init__(app)
        settings = get_settings()
        self.redis_getter = redis_getter
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window_seconds = window_seconds or settings.rate_limit_window_seconds

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS" or not is_rate_limited_path(request.url.path):
            return add_security_headers(await call_next(request))

        r = self.redis_getter()
        if r is None:
            # No Redis configured: fall through
            return add_security_headers(await call_next(request))

        limiter = SlidingWindowRateLimiter(r, self.max_requests, self.window_seconds)
        try:
            allowed, meta = await limiter.hit(f"ratelimit_{client_ip(request)}")
        except Exception as exc:
            _log.error(f"Rate limiting error: {exc}")
            return add_security_headers(await call_next(request))

        headers = {
            "X-RateLimit-Limit": str(meta["limit"]),
            "X-RateLimit-Remaining": str(meta["remaining"]),
            "X-RateLimit-Reset": str(meta["reset"]),
        }

        if not allowed:
            inc("rate_limit.rejected")
            headers["Retry-After"] = str(meta["retry_after"])
            response = PlainTextResponse("Too Many Requests", status_code=429, headers=headers)
            return add_security_headers(response)

        response = await call_next(request)
        response.headers.update(headers)
        return add_security_headers(response)
