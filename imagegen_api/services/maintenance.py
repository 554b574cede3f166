"""Operator maintenance over the limiter keyspace.

These operations are for out-of-band use through the admin CLI and are never
reachable from a request path. ``flush_all`` wipes the whole store database.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from imagegen_api.adapters.store.base import AbstractKeyValueStore

logger = logging.getLogger(__name__)

SCAN_PAGE_SIZE = 100
PING_KEY = "ping:timestamp"


@dataclass(frozen=True)
class ClearResult:
    """Outcome of a prefix clear.

    Attributes:
        pattern: Exact key or glob pattern that was cleared.
        deleted: Number of keys the store reported as deleted.
        keys: Keys that were targeted.
    """

    pattern: str
    deleted: int
    keys: list[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.deleted > 0


async def scan_keys(store: AbstractKeyValueStore, pattern: str, *, page_size: int = SCAN_PAGE_SIZE) -> list[str]:
    """Collect every key matching pattern.

    Loops until the cursor comes back to 0; an empty page does not mean the
    scan is over.
    """
    cursor = 0
    keys: list[str] = []
    seen: set[str] = set()

    while True:
        cursor, page = await store.scan(cursor, match=pattern, count=page_size)
        for key in page:
            # SCAN may return a key more than once
            if key not in seen:
                seen.add(key)
                keys.append(key)
        if cursor == 0:
            break

    return keys


async def clear_by_prefix(
    store: AbstractKeyValueStore,
    prefix: str,
    identifier: str | None = None,
) -> ClearResult:
    """Delete limiter records under a key prefix.

    Args:
        store: Store to clean.
        prefix: Key namespace (e.g. the rate limit or usage prefix).
        identifier: When given, only ``{prefix}:{identifier}`` is deleted.

    Returns:
        ClearResult; ``deleted == 0`` means nothing matched.
    """
    if not prefix:
        raise ValueError("prefix must be a non-empty string")

    if identifier:
        key = f"{prefix}:{identifier}"
        deleted = await store.delete(key)
        logger.info("maintenance.key_cleared", extra={"key_prefix": prefix, "deleted": deleted})
        return ClearResult(pattern=key, deleted=deleted, keys=[key])

    pattern = f"{prefix}:*"
    keys = await scan_keys(store, pattern)
    deleted = await store.delete(*keys) if keys else 0

    logger.info(
        "maintenance.prefix_cleared",
        extra={"key_prefix": prefix, "matched": len(keys), "deleted": deleted},
    )
    return ClearResult(pattern=pattern, deleted=deleted, keys=keys)


async def flush_all(store: AbstractKeyValueStore) -> None:
    """Remove every key from the store database."""
    logger.warning("maintenance.flush_all")
    await store.flush_all()


async def ping(store: AbstractKeyValueStore) -> str:
    """Write a keepalive timestamp so idle hosted stores are not suspended.

    Returns:
        The ISO-8601 timestamp written.
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    await store.set(PING_KEY, timestamp)
    logger.info("maintenance.ping", extra={"timestamp": timestamp})
    return timestamp
