"""
Process-wide Redis client, shared by the rate limiter and the cache.

Redis is optional: with REDIS_URL unset or the server unreachable at
startup, get_redis() returns None and both features switch themselves off.
"""

import logging
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from careerpilot.config import get_settings

_log = logging.getLogger("careerpilot.redis")

CONNECT_OPTIONS = {
    "decode_responses": True,
    "socket_connect_timeout": 5,
    "socket_timeout": 5,
    "retry_on_timeout": True,
}

_client: Optional[aioredis.Redis] = None


async def init_redis() -> None:
    global _client
    url = get_settings().redis_url
    if not url:
        _log.info("[redis] disabled (no REDIS_URL); rate limiting and cache are off")
        return

    client = aioredis.from_url(url, **CONNECT_OPTIONS)
    try:
        await client.ping()
    except (RedisError, OSError) as exc:
        _log.warning(f"[redis] unreachable at startup ({exc}); continuing without it")
        return
    _client = client
    _log.info("[redis] ready")


async def close_redis() -> None:
    global _client
    client, _client = _client, None
    if client is None:
        return
    try:
        await client.aclose()
    except (RedisError, OSError) as exc:
        _log.debug(f"[redis] close failed: {exc}")


def get_redis() -> Optional[aioredis.Redis]:
    return _client


def set_redis(client: Optional[aioredis.Redis]) -> None:
    """Install a client directly (tests and scripts)."""
    global _client
    _client = client


async def is_redis_healthy() -> bool:
    if _client is None:
        return False
    try:
        return bool(await _client.ping())
    except (RedisError, OSError):
        return False
