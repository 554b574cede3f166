"""Key-value store interfaces.

Rate limiting and usage metering depend on this abstraction (not on a concrete
client) so the production Redis backend and the in-memory development backend
are interchangeable.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


class StoreError(Exception):
    """Raised when the store cannot be reached or rejects an operation."""


@dataclass(frozen=True)
class WindowAdmission:
    """Outcome of an atomic sliding-window admission.

    Attributes:
        admitted: Whether the hit was recorded inside the window.
        count: Hits inside the window after this call (including it when admitted).
        oldest_ms: Timestamp (ms) of the oldest hit still inside the window,
            or None when the window is empty.
    """

    admitted: bool
    count: int
    oldest_ms: int | None


class AbstractKeyValueStore(ABC):
    """Minimal async contract over a remote key-value store.

    Every method may raise StoreError; network failures are independent of
    application logic.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the string value stored at key, or None when absent."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: str, *, ttl_seconds: int | None = None) -> None:
        """Store value at key, optionally expiring after ttl_seconds."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, *keys: str) -> int:
        """Delete keys and return how many existed."""
        raise NotImplementedError

    @abstractmethod
    async def incr(self, key: str) -> int:
        """Atomically increment the integer at key (absent = 0) and return it."""
        raise NotImplementedError

    @abstractmethod
    async def incr_with_ttl(self, key: str, ttl_seconds: int) -> int:
        """Atomically increment key and give it a TTL if it has none.

        A new counter expires ``ttl_seconds`` after this call. An existing
        TTL is left alone, so the expiry stays anchored to the first increment.
        """
        raise NotImplementedError

    @abstractmethod
    async def expire(self, key: str, ttl_seconds: int) -> bool:
        """Set a time-to-live on key. Returns False when the key is absent."""
        raise NotImplementedError

    @abstractmethod
    async def ttl(self, key: str) -> int | None:
        """Remaining time-to-live in seconds.

        Returns:
            Seconds until expiry, or None when the key is absent or has no expiry.
        """
        raise NotImplementedError

    @abstractmethod
    async def scan(self, cursor: int, *, match: str, count: int = 100) -> tuple[int, list[str]]:
        """Return one page of keys matching a glob pattern.

        Scanning is complete only once the returned cursor is 0 again; a page
        may be empty while the cursor is still non-zero.
        """
        raise NotImplementedError

    @abstractmethod
    async def flush_all(self) -> None:
        """Remove every key from the store database."""
        raise NotImplementedError

    @abstractmethod
    async def ping(self) -> bool:
        """Check connectivity."""
        raise NotImplementedError

    @abstractmethod
    async def window_admit(
        self,
        key: str,
        *,
        now_ms: int,
        window_ms: int,
        limit: int,
        member: str,
    ) -> WindowAdmission:
        """Atomically evaluate and record a sliding-window hit.

        Drops hits older than or exactly ``window_ms`` before ``now_ms``, counts
        the rest, and records ``member`` at ``now_ms`` only when the count is
        below ``limit``. The key expires ``window_ms`` after the last recorded hit.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release connections held by the store."""
        return None
