"""In-memory key-value store (development and tests).

Notes:
- Per-process only: running multiple workers gives each worker its own
  counters, so limits are multiplied. Use the Redis backend for deployments.
- Thread-safe: uses a lock around shared state so each operation is atomic.
"""

from __future__ import annotations

import fnmatch
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from imagegen_api.adapters.store.base import AbstractKeyValueStore, StoreError, WindowAdmission


@dataclass
class _Entry:
    value: str | None = None
    # Sorted (timestamp_ms, member) pairs for sliding-window keys
    hits: list[tuple[int, str]] = field(default_factory=list)
    expires_at: float | None = None


class InMemoryKeyValueStore(AbstractKeyValueStore):
    """Store mimicking the subset of Redis semantics the API relies on."""

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the store.

        Args:
            clock: Time source returning UNIX time in seconds; drives key expiry.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: dict[str, _Entry] = {}

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryKeyValueStore(size={len(self._entries)})"

    def _is_expired(self, entry: _Entry) -> bool:
        return entry.expires_at is not None and self._clock() >= entry.expires_at

    def _live_entry_locked(self, key: str) -> _Entry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry):
            self._entries.pop(key, None)
            return None
        return entry

    def _evict_expired_locked(self) -> None:
        expired_keys = [k for k, entry in self._entries.items() if self._is_expired(entry)]
        for key in expired_keys:
            self._entries.pop(key, None)

    async def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                return None
            if entry.value is None:
                raise StoreError(f"WRONGTYPE key {key!r} does not hold a string")
            return entry.value

    async def set(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        with self._lock:
            expires_at = self._clock() + ttl_seconds if ttl_seconds else None
            self._entries[key] = _Entry(value=str(value), expires_at=expires_at)

    async def delete(self, *keys: str) -> int:
        deleted = 0
        with self._lock:
            for key in keys:
                if self._live_entry_locked(key) is not None:
                    self._entries.pop(key, None)
                    deleted += 1
        return deleted

    async def incr(self, key: str) -> int:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                entry = _Entry(value="0")
                self._entries[key] = entry
            try:
                current = int(entry.value) if entry.value is not None else None
            except ValueError:
                current = None
            if current is None:
                raise StoreError(f"value at {key!r} is not an integer")
            entry.value = str(current + 1)
            return current + 1

    async def incr_with_ttl(self, key: str, ttl_seconds: int) -> int:
        with self._lock:
            count = await self.incr(key)
            entry = self._entries[key]
            if entry.expires_at is None:
                entry.expires_at = self._clock() + ttl_seconds
            return count

    async def expire(self, key: str, ttl_seconds: int) -> bool:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                return False
            entry.expires_at = self._clock() + ttl_seconds
            return True

    async def ttl(self, key: str) -> int | None:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None or entry.expires_at is None:
                return None
            return max(0, int(math.ceil(entry.expires_at - self._clock())))

    async def scan(self, cursor: int, *, match: str, count: int = 100) -> tuple[int, list[str]]:
        with self._lock:
            self._evict_expired_locked()
            all_keys = sorted(self._entries)
        page = all_keys[cursor:cursor + count]
        next_cursor = cursor + count
        if next_cursor >= len(all_keys):
            next_cursor = 0
        return next_cursor, [k for k in page if fnmatch.fnmatchcase(k, match)]

    async def flush_all(self) -> None:
        with self._lock:
            self._entries.clear()

    async def ping(self) -> bool:
        return True

    async def window_admit(
        self,
        key: str,
        *,
        now_ms: int,
        window_ms: int,
        limit: int,
        member: str,
    ) -> WindowAdmission:
        with self._lock:
            entry = self._live_entry_locked(key)
            if entry is None:
                entry = _Entry()
                self._entries[key] = entry
            elif entry.value is not None:
                raise StoreError(f"WRONGTYPE key {key!r} does not hold a window")

            cutoff = now_ms - window_ms
            entry.hits = [hit for hit in entry.hits if hit[0] > cutoff]

            admitted = len(entry.hits) < limit
            if admitted:
                entry.hits.append((now_ms, member))
                entry.hits.sort()
                entry.expires_at = self._clock() + window_ms / 1000

            return WindowAdmission(
                admitted=admitted,
                count=len(entry.hits),
                oldest_ms=entry.hits[0][0] if entry.hits else None,
            )
