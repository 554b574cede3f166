"""Factory pattern for creating key-value store instances."""

from imagegen_api.adapters.store.base import AbstractKeyValueStore
from imagegen_api.adapters.store.in_memory import InMemoryKeyValueStore
from imagegen_api.adapters.store.redis_store import RedisKeyValueStore
from imagegen_api.core.config import StoreSettings, settings
from imagegen_api.core.errors import ValidationAppError


def create_store(store_settings: StoreSettings | None = None) -> AbstractKeyValueStore:
    """Instantiate the configured store backend.

    Args:
        store_settings: Optional settings; defaults to the global settings.

    Returns:
        AbstractKeyValueStore: Redis-backed store, or the in-memory store when
            ``STORE_BACKEND=memory``.

    Raises:
        ValidationAppError: If the backend name is unknown.
    """
    cfg = store_settings or settings.store
    backend = cfg.backend.lower()

    if backend == "redis":
        return RedisKeyValueStore.from_url(cfg.url, socket_timeout=cfg.socket_timeout_seconds)

    if backend == "memory":
        return InMemoryKeyValueStore()

    raise ValidationAppError(
        code="store_unknown_backend",
        message=f"Unknown store backend: '{backend}'. Supported backends: redis, memory",
    )
