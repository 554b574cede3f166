"""Redis key-value store adapter (production backend).

Uses ``redis.asyncio`` with a single connection pool per process. All Redis
failures are re-raised as StoreError so callers never depend on redis-py
exception types.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from redis.asyncio import Redis
from redis.exceptions import RedisError

from imagegen_api.adapters.store.base import AbstractKeyValueStore, StoreError, WindowAdmission

logger = logging.getLogger(__name__)


# KEYS[1] = window key
# ARGV = now_ms, window_ms, limit, member
# Returns {admitted (0/1), count, oldest_ms or -1}
SLIDING_WINDOW_SCRIPT = """
local key = KEYS[1]
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
local limit = tonumber(ARGV[3])
local member = ARGV[4]

redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window)
local count = redis.call('ZCARD', key)
local admitted = 0
if count < limit then
  redis.call('ZADD', key, now, member)
  redis.call('PEXPIRE', key, window)
  count = count + 1
  admitted = 1
end

local oldest = -1
local first = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
if first[2] then
  oldest = tonumber(first[2])
end
return {admitted, count, oldest}
"""

# KEYS[1] = counter key
# ARGV = ttl_seconds
# Returns the incremented value
COUNTER_SCRIPT = """
local count = redis.call('INCR', KEYS[1])
if redis.call('TTL', KEYS[1]) < 0 then
  redis.call('EXPIRE', KEYS[1], tonumber(ARGV[1]))
end
return count
"""


class RedisKeyValueStore(AbstractKeyValueStore):
    """Store backed by a Redis server (or a Redis-compatible service)."""

    def __init__(self, client: Redis) -> None:
        self._redis = client
        self._window_script = client.register_script(SLIDING_WINDOW_SCRIPT)
        self._counter_script = client.register_script(COUNTER_SCRIPT)

    @classmethod
    def from_url(cls, url: str, *, socket_timeout: float = 5.0) -> "RedisKeyValueStore":
        """Build a store from a connection URL (``redis://`` or ``rediss://``)."""
        client = Redis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client)

    @staticmethod
    @contextmanager
    def _errors(operation: str) -> Iterator[None]:
        try:
            yield
        except RedisError as exc:
            raise StoreError(f"Redis {operation} failed: {exc}") from exc

    async def get(self, key: str) -> str | None:
        with self._errors("GET"):
            return await self._redis.get(key)

    async def set(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        with self._errors("SET"):
            await self._redis.set(key, value, ex=ttl_seconds)

    async def delete(self, *keys: str) -> int:
        if not keys:
            return 0
        with self._errors("DEL"):
            return int(await self._redis.delete(*keys))

    async def incr(self, key: str) -> int:
        with self._errors("INCR"):
            return int(await self._redis.incr(key))

    async def incr_with_ttl(self, key: str, ttl_seconds: int) -> int:
        with self._errors("EVALSHA"):
            return int(await self._counter_script(keys=[key], args=[ttl_seconds]))

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        with self._errors("EXPIRE"):
            return bool(await self._redis.expire(key, ttl_seconds))

    async def ttl(self, key: str) -> int | None:
        with self._errors("TTL"):
            remaining = int(await self._redis.ttl(key))
        # -2: key missing, -1: key without expiry
        if remaining < 0:
            return None
        return remaining

    async def scan(self, cursor: int, *, match: str, count: int = 100) -> tuple[int, list[str]]:
        with self._errors("SCAN"):
            next_cursor, keys = await self._redis.scan(cursor=cursor, match=match, count=count)
        return int(next_cursor), list(keys)

    async def flush_all(self) -> None:
        with self._errors("FLUSHDB"):
            await self._redis.flushdb()

    async def ping(self) -> bool:
        with self._errors("PING"):
            return bool(await self._redis.ping())

    async def window_admit(
        self,
        key: str,
        *,
        now_ms: int,
        window_ms: int,
        limit: int,
        member: str,
    ) -> WindowAdmission:
        with self._errors("EVALSHA"):
            admitted, count, oldest = await self._window_script(
                keys=[key],
                args=[now_ms, window_ms, limit, member],
            )
        oldest = int(oldest)
        return WindowAdmission(
            admitted=bool(int(admitted)),
            count=int(count),
            oldest_ms=oldest if oldest >= 0 else None,
        )

    async def close(self) -> None:
        try:
            await self._redis.aclose()
        except RedisError as exc:
            logger.warning("store.close_failed", extra={"error_msg": str(exc)})
        else:
            logger.debug("store.closed")
