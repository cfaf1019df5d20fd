"""Tests for the rate limiter and its counter stores"""

from datetime import datetime, timedelta

import pytest
from mongomock_motor import AsyncMongoMockClient

from campushire.core.rate_limiter import MemoryRateLimitStore, MongoRateLimitStore, RateLimiter


class TestMemoryStore:

    async def test_limit_is_enforced_within_window(self):
        limiter = RateLimiter(MemoryRateLimitStore())

        results = [await limiter.is_allowed("1.2.3.4", max_requests=3, window_seconds=60) for _ in range(5)]

        assert results == [True, True, True, False, False]
        assert await limiter.get_remaining_requests("1.2.3.4", max_requests=3, window_seconds=60) == 0

    async def test_rejected_hits_do_not_consume_budget(self):
        store = MemoryRateLimitStore()
        now = datetime.utcnow()

        for _ in range(3):
            await store.hit("client", 60, now)
        await store.undo("client")

        count, _ = await store.count("client", 60, now)
        assert count == 2

    async def test_window_slides(self):
        store = MemoryRateLimitStore()
        start = datetime.utcnow()
        await store.hit("client", 60, start)

        count, reset_at = await store.count("client", 60, start + timedelta(seconds=61))

        assert count == 0
        assert reset_at is None

    async def test_block_duration(self):
        limiter = RateLimiter(MemoryRateLimitStore())

        await limiter.is_allowed("client", max_requests=1, window_seconds=60, block_duration_seconds=300)
        assert await limiter.is_allowed("client", max_requests=1, window_seconds=60, block_duration_seconds=300) is False

        assert limiter.is_blocked("client") is True
        await limiter.clear_client("client")
        assert limiter.is_blocked("client") is False

    async def test_idle_clients_are_evicted(self):
        store = MemoryRateLimitStore()
        start = datetime.utcnow()

        await store.hit("10.0.0.1", 60, start)
        assert "10.0.0.1" in store._requests

        count, reset_at = await store.count("10.0.0.1", 60, start + timedelta(seconds=61))
        assert (count, reset_at) == (0, None)
        assert "10.0.0.1" not in store._requests

    async def test_reading_unknown_client_tracks_nothing(self):
        store = MemoryRateLimitStore()

        assert await store.count("10.0.0.2", 60, datetime.utcnow()) == (0, None)
        assert store._requests == {}


class TestMongoStore:

    @pytest.fixture
    def store(self):
        database = AsyncMongoMockClient()["test_rate_limits"]
        return MongoRateLimitStore(database=database)

    async def test_counters_are_shared_between_limiters(self, store):
        first, second = RateLimiter(store), RateLimiter(store)

        assert await first.is_allowed("10.0.0.1", max_requests=2, window_seconds=60)
        assert await second.is_allowed("10.0.0.1", max_requests=2, window_seconds=60)
        assert await first.is_allowed("10.0.0.1", max_requests=2, window_seconds=60) is False

    async def test_reset_time_is_window_end(self, store):
        now = datetime.utcnow()
        _, window_end = MongoRateLimitStore._window(60, now)

        count, reset_at = await store.hit("client", 60, now)

        assert count == 1
        assert reset_at == window_end
        assert now < reset_at <= now + timedelta(seconds=60)

    def test_window_boundaries(self):
        window_start, reset_at = MongoRateLimitStore._window(60, datetime(2024, 1, 1, 12, 0, 30, 500))

        assert window_start % 60 == 0
        assert reset_at == datetime(2024, 1, 1, 12, 1, 0)

    async def test_clear(self, store):
        now = datetime.utcnow()
        await store.hit("a", 60, now)
        await store.hit("b", 60, now)

        await store.clear("a")

        assert (await store.count("a", 60, now))[0] == 0
        assert (await store.count("b", 60, now))[0] == 1
