"""Redis store tests that execute the Lua scripts (fakeredis with Lua support).

Each test builds its own client inside one ``asyncio.run`` so connections never
outlive the event loop that created them.
"""

import asyncio
from unittest.mock import AsyncMock, patch

from fakeredis import FakeAsyncRedis, FakeServer
from redis.exceptions import ConnectionError as RedisConnectionError

from imagegen_api.adapters.rate_limit.sliding_window import SlidingWindowRateLimiter
from imagegen_api.adapters.rate_limit.usage_quota import UsageQuotaTracker
from imagegen_api.adapters.store.redis_store import RedisKeyValueStore
from imagegen_api.services.maintenance import clear_by_prefix

WINDOW_MS = 60_000
START_MS = 1_700_000_000_000
FIFTEEN_HOURS = 15 * 60 * 60


def _run(scenario):
    async def main():
        client = FakeAsyncRedis(server=FakeServer(), decode_responses=True)
        try:
            return await scenario(RedisKeyValueStore(client), client)
        finally:
            await client.aclose()

    return asyncio.run(main())


async def _admit(store, now_ms: int, member: str, limit: int = 10):
    return await store.window_admit("rl:abc", now_ms=now_ms, window_ms=WINDOW_MS, limit=limit, member=member)


class TestSlidingWindowScript:
    def test_eleventh_hit_in_window_is_denied(self) -> None:
        async def scenario(store, client):
            return [(await _admit(store, START_MS + i, f"m{i}")).admitted for i in range(11)]

        assert _run(scenario) == [True] * 10 + [False]

    def test_window_boundary(self) -> None:
        async def scenario(store, client):
            for i in range(10):
                await _admit(store, START_MS, f"m{i}")
            just_inside = await _admit(store, START_MS + WINDOW_MS - 1, "late")
            at_boundary = await _admit(store, START_MS + WINDOW_MS, "next")
            return just_inside, at_boundary

        just_inside, at_boundary = _run(scenario)

        assert just_inside.admitted is False
        assert just_inside.oldest_ms == START_MS
        assert at_boundary.admitted is True
        assert at_boundary.count == 1

    def test_denied_hits_are_not_recorded(self) -> None:
        async def scenario(store, client):
            await _admit(store, START_MS, "first", limit=1)
            await _admit(store, START_MS + 1_000, "denied", limit=1)
            return await client.zcard("rl:abc")

        assert _run(scenario) == 1

    def test_concurrent_hits_never_exceed_limit(self) -> None:
        async def scenario(store, client):
            results = await asyncio.gather(*(_admit(store, START_MS, f"m{i}", limit=3) for i in range(20)))
            return sum(result.admitted for result in results)

        assert _run(scenario) == 3

    def test_admission_refreshes_key_expiry_to_window(self) -> None:
        async def scenario(store, client):
            await _admit(store, START_MS, "m1")
            await client.pexpire("rl:abc", 5_000)
            await _admit(store, START_MS + 1_000, "m2")
            return await client.pttl("rl:abc")

        assert 59_000 < _run(scenario) <= WINDOW_MS

    def test_limiter_against_redis(self) -> None:
        clock = iter([1_700_000_000.0] * 10 + [1_700_000_030.0, 1_700_000_060.0])

        async def scenario(store, client):
            limiter = SlidingWindowRateLimiter(store, limit=10, window_seconds=60, clock=lambda: next(clock))
            return [await limiter.consume("abc") for _ in range(12)]

        results = _run(scenario)

        assert all(result.allowed for result in results[:10])
        assert results[10].allowed is False
        assert results[10].retry_after_seconds == 30
        assert results[11].allowed is True


class TestCounterScript:
    def test_first_increment_sets_ttl_and_later_ones_keep_it(self) -> None:
        async def scenario(store, client):
            first = await store.incr_with_ttl("usage:abc", FIFTEEN_HOURS)
            await client.expire("usage:abc", 100)
            second = await store.incr_with_ttl("usage:abc", FIFTEEN_HOURS)
            return first, second, await client.ttl("usage:abc")

        assert _run(scenario) == (1, 2, 100)

    def test_counter_without_ttl_is_repaired(self) -> None:
        async def scenario(store, client):
            await client.set("usage:abc", "1")
            count = await store.incr_with_ttl("usage:abc", FIFTEEN_HOURS)
            return count, await client.ttl("usage:abc")

        count, ttl = _run(scenario)

        assert count == 2
        assert 0 < ttl <= FIFTEEN_HOURS

    def test_tracker_counter_always_expires(self) -> None:
        async def scenario(store, client):
            tracker = UsageQuotaTracker(store, ttl_seconds=FIFTEEN_HOURS, prefix="usage")
            failing_expire = AsyncMock(side_effect=RedisConnectionError("connection reset"))
            with patch.object(client, "expire", failing_expire):
                await tracker.increment("abc")
                await tracker.increment("abc")
            status = await tracker.check_status("abc")
            return status, await client.ttl("usage:abc")

        status, raw_ttl = _run(scenario)

        assert status.at_limit is True
        assert status.seconds_to_reset is not None
        assert 0 < raw_ttl <= FIFTEEN_HOURS


def test_clear_by_prefix_walks_every_scan_page() -> None:
    async def scenario(store, client):
        for i in range(250):
            await client.set(f"usage:{i}", "1")
        await client.set("other:1", "1")
        result = await clear_by_prefix(store, "usage")
        return result, await client.dbsize()

    result, remaining = _run(scenario)

    assert result.deleted == 250
    assert remaining == 1
