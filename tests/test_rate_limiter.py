"""
Tests for the fixed-window rate limiter and its backends.
"""

import unittest
from unittest.mock import AsyncMock

from starlette.requests import Request

from app.exceptions import RateLimitError
from app.middleware.rate_limiter import (
    InMemoryBackend,
    RateLimiter,
    RedisBackend,
    get_request_ip,
)

WINDOW_MS = 60_000


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class BrokenBackend(InMemoryBackend):
    async def increment(self, key, now_ms, window_ms):
        raise ConnectionError("redis unavailable")


def make_request(headers=None, client=("10.0.0.9", 1234)):
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestRateLimiter(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.clock = FakeClock()
        self.limiter = RateLimiter(InMemoryBackend(), clock=self.clock)

    async def test_allows_up_to_limit_then_refuses(self):
        first = await self.limiter.check_rate_limit("k", 2, WINDOW_MS)
        second = await self.limiter.check_rate_limit("k", 2, WINDOW_MS)
        third = await self.limiter.check_rate_limit("k", 2, WINDOW_MS)

        self.assertTrue(first.allowed)
        self.assertTrue(second.allowed)
        self.assertFalse(third.allowed)
        self.assertEqual(third.retry_after_seconds, 60)
        self.assertEqual(third.count, 3)

    async def test_retry_after_counts_down_and_is_at_least_one(self):
        await self.limiter.check_rate_limit("k", 1, WINDOW_MS)

        self.clock.advance(WINDOW_MS - 100)
        refused = await self.limiter.check_rate_limit("k", 1, WINDOW_MS)

        self.assertFalse(refused.allowed)
        self.assertEqual(refused.retry_after_seconds, 1)

    async def test_window_resets(self):
        for _ in range(3):
            await self.limiter.check_rate_limit("k", 2, WINDOW_MS)

        self.clock.advance(WINDOW_MS)
        result = await self.limiter.check_rate_limit("k", 2, WINDOW_MS)

        self.assertTrue(result.allowed)
        self.assertEqual(result.count, 1)

    async def test_keys_are_independent(self):
        await self.limiter.check_rate_limit("share:post:c1:1.1.1.1", 1, WINDOW_MS)
        other = await self.limiter.check_rate_limit("share:post:c1:2.2.2.2", 1, WINDOW_MS)
        self.assertTrue(other.allowed)

    async def test_disabled_allows_everything(self):
        limiter = RateLimiter(clock=self.clock, enabled=False)
        results = [await limiter.check_rate_limit("k", 1, WINDOW_MS) for _ in range(5)]
        self.assertTrue(all(r.allowed for r in results))

    async def test_backend_error_uses_in_memory_window(self):
        limiter = RateLimiter(BrokenBackend(), clock=self.clock)

        first = await limiter.check_rate_limit("k", 1, WINDOW_MS)
        second = await limiter.check_rate_limit("k", 1, WINDOW_MS)

        self.assertTrue(first.allowed)
        self.assertFalse(second.allowed)

    async def test_enforce_raises_with_retry_after(self):
        await self.limiter.enforce("k", 1, WINDOW_MS)

        with self.assertRaises(RateLimitError) as ctx:
            await self.limiter.enforce("k", 1, WINDOW_MS)

        self.assertEqual(ctx.exception.status_code, 429)
        self.assertEqual(ctx.exception.retry_after, 60)
        self.assertEqual(ctx.exception.message, "Too many requests. Please try again shortly.")


class TestInMemoryBackend(unittest.IsolatedAsyncioTestCase):

    async def test_expired_windows_are_swept(self):
        backend = InMemoryBackend(sweep_interval_ms=1000)
        await backend.increment("a", 0, 500)
        await backend.increment("b", 0, 500)
        self.assertEqual(len(backend), 2)

        await backend.increment("c", 2000, 500)

        self.assertEqual(len(backend), 1)

    async def test_sweep_is_throttled(self):
        backend = InMemoryBackend(sweep_interval_ms=10_000)
        await backend.increment("a", 0, 500)
        await backend.increment("b", 1000, 500)
        self.assertEqual(len(backend), 2)

    async def test_key_cap_drops_windows_closest_to_expiry(self):
        backend = InMemoryBackend(max_tracked_keys=2)
        await backend.increment("old", 0, 1000)
        await backend.increment("mid", 10, 1000)
        await backend.increment("new", 20, 1000)

        self.assertEqual(backend.get_stats(), {"tracked_keys": 2, "max_tracked_keys": 2})
        count, _ = await backend.increment("old", 30, 1000)
        self.assertEqual(count, 1)


class TestRedisBackend(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.client = AsyncMock()
        self.backend = RedisBackend(self.client, key_prefix="test:")

    async def test_first_request_sets_expiry(self):
        self.client.incr.return_value = 1

        count, reset_at = await self.backend.increment("k", 1000, WINDOW_MS)

        self.assertEqual((count, reset_at), (1, 1000 + WINDOW_MS))
        self.client.incr.assert_awaited_once_with("test:k")
        self.client.pexpire.assert_awaited_once_with("test:k", WINDOW_MS)
        self.client.pttl.assert_not_awaited()

    async def test_later_requests_read_remaining_ttl(self):
        self.client.incr.return_value = 4
        self.client.pttl.return_value = 2500

        count, reset_at = await self.backend.increment("k", 1000, WINDOW_MS)

        self.assertEqual((count, reset_at), (4, 3500))
        self.client.pexpire.assert_not_awaited()

    async def test_lost_expiry_restarts_window(self):
        self.client.incr.return_value = 2
        self.client.pttl.return_value = -1

        _, reset_at = await self.backend.increment("k", 0, WINDOW_MS)

        self.assertEqual(reset_at, WINDOW_MS)
        self.client.pexpire.assert_awaited_once_with("test:k", WINDOW_MS)

    async def test_limiter_closes_shared_backend(self):
        limiter = RateLimiter(self.backend)
        await limiter.close()
        self.client.aclose.assert_awaited_once()


class TestRequestIp(unittest.TestCase):

    def test_first_forwarded_hop(self):
        request = make_request({"X-Forwarded-For": "203.0.113.5, 10.0.0.1"})
        self.assertEqual(get_request_ip(request), "203.0.113.5")

    def test_real_ip(self):
        request = make_request({"X-Real-IP": " 198.51.100.7 "})
        self.assertEqual(get_request_ip(request), "198.51.100.7")

    def test_peer_address(self):
        self.assertEqual(get_request_ip(make_request()), "10.0.0.9")

    def test_unknown(self):
        self.assertEqual(get_request_ip(make_request(client=None)), "unknown")


if __name__ == "__main__":
    unittest.main()
