"""
JSON cache over Redis for read-heavy queries: interview and challenge
lists, search facets, user profiles and the leaderboard.

Keys are namespaced under `careerpilot:`. Without Redis, or when a call
fails, reads miss and writes report False; callers fall through to the
database.
"""

import json
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from careerpilot.services.redis_client import get_redis
from careerpilot.utils.metrics import inc

_log = logging.getLogger("careerpilot.cache")

KEY_PREFIX = "careerpilot:"

T = TypeVar("T")


def _key(key: str) -> str:
    return f"{KEY_PREFIX}{key}"


async def _guarded(op: str, key: str, call: Callable[[Any], Awaitable[T]], fallback: T) -> T:
    client = get_redis()
    if client is None:
        return fallback
    try:
        return await call(client)
    except Exception as exc:
        inc("cache.error")
        _log.debug(f"[cache] {op} {key} failed: {exc}")
        return fallback


async def cache_get(key: str) -> Optional[Any]:
    async def read(client):
        raw = await client.get(_key(key))
        inc("cache.hit" if raw is not None else "cache.miss")
        return None if raw is None else json.loads(raw)

    return await _guarded("GET", key, read, None)


async def cache_set(key: str, value: Any, ttl: int = 300) -> bool:
    """Store `value` as JSON for `ttl` seconds."""
    async def write(client):
        await client.set(_key(key), json.dumps(value, default=str), ex=ttl)
        return True

    return await _guarded("SET", key, write, False)


async def cache_delete(key: str) -> bool:
    async def delete(client):
        await client.delete(_key(key))
        return True

    return await _guarded("DEL", key, delete, False)


async def cache_delete_prefix(prefix: str) -> int:
    """Drop every key under `prefix`, e.g. all cached pages of one user's interviews."""
    async def delete_matching(client):
        removed = 0
        async for full_key in client.scan_iter(match=f"{_key(prefix)}*"):
            removed += await client.delete(full_key)
        return removed

    return await _guarded("DEL", f"{prefix}*", delete_matching, 0)
