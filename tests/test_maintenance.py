"""Tests for operator maintenance operations."""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from imagegen_api.adapters.store.in_memory import InMemoryKeyValueStore
from imagegen_api.services.maintenance import PING_KEY, clear_by_prefix, flush_all, ping, scan_keys


def _seed(store: InMemoryKeyValueStore, *keys: str) -> None:
    for key in keys:
        asyncio.run(store.set(key, "1"))


class TestClearByPrefix:
    def test_single_identifier_deletes_exactly_one_key(self, store) -> None:
        _seed(store, "rate:abc", "rate:abcd", "usage:abc")

        result = asyncio.run(clear_by_prefix(store, "rate", "abc"))

        assert result.deleted == 1
        assert result.found is True
        assert result.pattern == "rate:abc"
        assert asyncio.run(store.get("rate:abc")) is None
        assert asyncio.run(store.get("rate:abcd")) == "1"
        assert asyncio.run(store.get("usage:abc")) == "1"

    def test_single_identifier_absent_reports_zero(self, store) -> None:
        result = asyncio.run(clear_by_prefix(store, "rate", "abc"))

        assert result.deleted == 0
        assert result.found is False

    def test_prefix_clear_deletes_all_matching_keys(self, store) -> None:
        _seed(store, "usage:a", "usage:b", "rate:a")

        result = asyncio.run(clear_by_prefix(store, "usage"))

        assert result.pattern == "usage:*"
        assert result.deleted == 2
        assert sorted(result.keys) == ["usage:a", "usage:b"]
        assert asyncio.run(store.get("rate:a")) == "1"

    def test_prefix_clear_with_nothing_found(self, store) -> None:
        result = asyncio.run(clear_by_prefix(store, "usage"))

        assert result.deleted == 0
        assert result.keys == []

    def test_prefix_clear_follows_cursor_across_pages(self) -> None:
        store = Mock(spec=InMemoryKeyValueStore)
        store.scan = AsyncMock(
            side_effect=[
                (42, ["usage:a", "usage:b"]),
                (7, []),
                (0, ["usage:c", "usage:a"]),
            ]
        )
        store.delete = AsyncMock(return_value=3)

        result = asyncio.run(clear_by_prefix(store, "usage"))

        assert store.scan.await_count == 3
        assert [c.args[0] for c in store.scan.await_args_list] == [0, 42, 7]
        assert all(c.kwargs == {"match": "usage:*", "count": 100} for c in store.scan.await_args_list)
        store.delete.assert_awaited_once_with("usage:a", "usage:b", "usage:c")
        assert result.deleted == 3

    def test_prefix_clear_skips_delete_when_no_keys(self) -> None:
        store = Mock(spec=InMemoryKeyValueStore)
        store.scan = AsyncMock(return_value=(0, []))
        store.delete = AsyncMock()

        result = asyncio.run(clear_by_prefix(store, "usage"))

        assert result.deleted == 0
        store.delete.assert_not_awaited()

    def test_empty_prefix_rejected(self, store) -> None:
        with pytest.raises(ValueError):
            asyncio.run(clear_by_prefix(store, ""))


def test_scan_keys_with_many_pages(store) -> None:
    _seed(store, *[f"rate:{i:03d}" for i in range(250)])

    keys = asyncio.run(scan_keys(store, "rate:*", page_size=100))

    assert len(keys) == 250


def test_flush_all_clears_store(store) -> None:
    _seed(store, "usage:a", "rate:b", "images:all")

    asyncio.run(flush_all(store))

    assert asyncio.run(scan_keys(store, "*")) == []


def test_ping_writes_timestamp(store) -> None:
    timestamp = asyncio.run(ping(store))

    assert asyncio.run(store.get(PING_KEY)) == timestamp
