"""Unit tests for the in-memory key-value store."""

import asyncio

import pytest

from imagegen_api.adapters.store.base import StoreError


def test_get_set_and_delete(store) -> None:
    asyncio.run(store.set("k", "v"))

    assert asyncio.run(store.get("k")) == "v"
    assert asyncio.run(store.delete("k", "missing")) == 1
    assert asyncio.run(store.get("k")) is None


def test_set_with_ttl_expires(store, clock) -> None:
    asyncio.run(store.set("k", "v", ttl_seconds=10))

    clock.return_value += 9
    assert asyncio.run(store.get("k")) == "v"

    clock.return_value += 1
    assert asyncio.run(store.get("k")) is None
    assert asyncio.run(store.ttl("k")) is None


def test_incr_creates_counter_without_expiry(store) -> None:
    assert asyncio.run(store.incr("n")) == 1
    assert asyncio.run(store.incr("n")) == 2
    assert asyncio.run(store.ttl("n")) is None


def test_incr_keeps_existing_expiry(store, clock) -> None:
    asyncio.run(store.incr("n"))
    asyncio.run(store.expire("n", 100))

    clock.return_value += 40
    asyncio.run(store.incr("n"))

    assert asyncio.run(store.ttl("n")) == 60


def test_incr_with_ttl_anchors_expiry_to_first_increment(store, clock) -> None:
    assert asyncio.run(store.incr_with_ttl("n", 100)) == 1

    clock.return_value += 40
    assert asyncio.run(store.incr_with_ttl("n", 100)) == 2

    assert asyncio.run(store.ttl("n")) == 60


def test_incr_with_ttl_restores_missing_expiry(store) -> None:
    asyncio.run(store.set("n", "3"))

    assert asyncio.run(store.incr_with_ttl("n", 100)) == 4
    assert asyncio.run(store.ttl("n")) == 100


def test_incr_rejects_non_integer(store) -> None:
    asyncio.run(store.set("k", "not-a-number"))

    with pytest.raises(StoreError):
        asyncio.run(store.incr("k"))


def test_expire_missing_key_returns_false(store) -> None:
    assert asyncio.run(store.expire("missing", 10)) is False


def test_scan_pages_until_cursor_returns_to_zero(store) -> None:
    for i in range(5):
        asyncio.run(store.set(f"usage:{i}", "1"))
    asyncio.run(store.set("other:1", "1"))

    cursor, keys = asyncio.run(store.scan(0, match="usage:*", count=2))
    collected = list(keys)
    while cursor != 0:
        cursor, keys = asyncio.run(store.scan(cursor, match="usage:*", count=2))
        collected.extend(keys)

    assert sorted(collected) == [f"usage:{i}" for i in range(5)]


def test_flush_all_removes_everything(store) -> None:
    asyncio.run(store.set("a", "1"))
    asyncio.run(store.incr("b"))

    asyncio.run(store.flush_all())

    assert asyncio.run(store.scan(0, match="*")) == (0, [])


def test_window_admit_prunes_and_counts(store) -> None:
    first = asyncio.run(store.window_admit("w", now_ms=1_000, window_ms=500, limit=2, member="a"))
    second = asyncio.run(store.window_admit("w", now_ms=1_200, window_ms=500, limit=2, member="b"))
    third = asyncio.run(store.window_admit("w", now_ms=1_300, window_ms=500, limit=2, member="c"))

    assert (first.admitted, first.count, first.oldest_ms) == (True, 1, 1_000)
    assert (second.admitted, second.count, second.oldest_ms) == (True, 2, 1_000)
    assert (third.admitted, third.count, third.oldest_ms) == (False, 2, 1_000)

    # Hit at exactly now - window is outside the window
    fourth = asyncio.run(store.window_admit("w", now_ms=1_500, window_ms=500, limit=2, member="d"))
    assert (fourth.admitted, fourth.count, fourth.oldest_ms) == (True, 2, 1_200)


def test_window_key_rejects_string_operations(store) -> None:
    asyncio.run(store.window_admit("w", now_ms=1, window_ms=10_000, limit=1, member="a"))

    with pytest.raises(StoreError):
        asyncio.run(store.get("w"))
