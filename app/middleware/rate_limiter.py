"""
Fixed-window rate limiting for share-link endpoints.

Keys are caller supplied, typically `operation:content_id:ip`. Each key
gets a counter that resets once `window_ms` has passed since the first
request of its window.

Counters live in process memory by default. When REDIS_URL is set they are
kept in Redis so every instance sees the same counts; any Redis error falls
back to the in-memory window for that request.

Usage:
    limiter = RateLimiter()
    result = await limiter.check_rate_limit(f"share:post:{content_id}:{ip}", 60, 60_000)
    if not result.allowed:
        raise RateLimitError(retry_after=result.retry_after_seconds)
"""

import logging
import math
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request

from app.exceptions import RateLimitError

logger = logging.getLogger(__name__)

# Memory bounds for the in-process table
DEFAULT_MAX_TRACKED_KEYS = 100_000
DEFAULT_SWEEP_INTERVAL_MS = 60_000


@dataclass
class RateLimitResult:
    """Outcome of one counted request."""

    allowed: bool
    retry_after_seconds: int = 0
    count: int = 0
    limit: int = 0


def _now_ms() -> float:
    return time.time() * 1000


def get_request_ip(request: Request) -> str:
    """Client IP: first X-Forwarded-For hop, then X-Real-IP, then the peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = request.headers.get("X-Real-IP")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return "unknown"


# =============================================================================
# Backend Implementations
# =============================================================================


class RateLimitBackend(ABC):
    """Storage for fixed-window counters."""

    @abstractmethod
    async def increment(self, key: str, now_ms: float, window_ms: int) -> Tuple[int, float]:
        """
        Count one request against `key`.

        Returns:
            Tuple of (count in the current window including this request,
            time in ms at which the window resets).
        """

    async def close(self) -> None:
        return None


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryBackend(RateLimitBackend):
    """
    Thread-safe in-process counters.

    Expired windows are swept at most once per `sweep_interval_ms`. When more
    than `max_tracked_keys` keys are live, the windows closest to expiry are
    dropped first.
    """

    def __init__(
        self,
        max_tracked_keys: int = DEFAULT_MAX_TRACKED_KEYS,
        sweep_interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS,
    ):
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.RLock()
        self.max_tracked_keys = max_tracked_keys
        self.sweep_interval_ms = sweep_interval_ms
        self._last_sweep: Optional[float] = None

    def _sweep(self, now_ms: float) -> None:
        if self._last_sweep is not None and now_ms - self._last_sweep < self.sweep_interval_ms:
            return
        self._last_sweep = now_ms

        expired = [key for key, window in self._windows.items() if window.reset_at <= now_ms]
        for key in expired:
            del self._windows[key]

        if expired:
            logger.debug(
                f"Rate limiter sweep: removed {len(expired)} expired windows, "
                f"{len(self._windows)} active"
            )

    def _enforce_key_limit(self) -> None:
        excess = len(self._windows) - self.max_tracked_keys
        if excess <= 0:
            return

        oldest = sorted(self._windows, key=lambda k: self._windows[k].reset_at)[:excess]
        for key in oldest:
            del self._windows[key]

        logger.warning(
            f"Rate limiter key limit enforced: removed {excess} windows, "
            f"limit is {self.max_tracked_keys}"
        )

    async def increment(self, key: str, now_ms: float, window_ms: int) -> Tuple[int, float]:
        with self._lock:
            self._sweep(now_ms)

            window = self._windows.get(key)
            if window is None or now_ms >= window.reset_at:
                window = _Window(count=0, reset_at=now_ms + window_ms)
                self._windows[key] = window

            window.count += 1
            count, reset_at = window.count, window.reset_at

            self._enforce_key_limit()
            return count, reset_at

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "tracked_keys": len(self._windows),
                "max_tracked_keys": self.max_tracked_keys,
            }


class RedisBackend(RateLimitBackend):
    """
    Counters shared through Redis.

    INCR creates the key at 1; the first request of a window sets its
    expiry with PEXPIRE, so the key disappears when the window ends.
    """

    def __init__(self, client, key_prefix: str = "collabpost:ratelimit:"):
        self._client = client
        self._key_prefix = key_prefix

    @classmethod
    def from_url(cls, redis_url: str) -> "RedisBackend":
        import redis.asyncio as redis

        client = redis.from_url(redis_url, encoding="utf-8", decode_responses=True)
        logger.info("Redis rate limit backend initialized")
        return cls(client)

    async def increment(self, key: str, now_ms: float, window_ms: int) -> Tuple[int, float]:
        redis_key = f"{self._key_prefix}{key}"

        count = int(await self._client.incr(redis_key))
        if count == 1:
            await self._client.pexpire(redis_key, window_ms)
            return count, now_ms + window_ms

        ttl_ms = await self._client.pttl(redis_key)
        if ttl_ms is None or ttl_ms < 0:
            # Expiry lost between INCR and PEXPIRE; start the window over
            await self._client.pexpire(redis_key, window_ms)
            ttl_ms = window_ms
        return count, now_ms + ttl_ms

    async def close(self) -> None:
        await self._client.aclose()


# =============================================================================
# Rate Limiter
# =============================================================================


class RateLimiter:
    """
    Fixed-window limiter with an optional shared backend.

    Args:
        backend: Primary counter storage. Defaults to in-memory.
        clock: Returns the current time in milliseconds.
        enabled: When False every request is allowed.
    """

    def __init__(
        self,
        backend: Optional[RateLimitBackend] = None,
        clock: Optional[Callable[[], float]] = None,
        enabled: bool = True,
    ):
        self._fallback_backend = InMemoryBackend()
        self._backend = backend or self._fallback_backend
        self._clock = clock or _now_ms
        self.enabled = enabled

    @classmethod
    def from_settings(cls, settings) -> "RateLimiter":
        """Build from RateLimitSettings, using Redis when a URL is configured."""
        backend: Optional[RateLimitBackend] = None
        if settings.redis_url:
            try:
                backend = RedisBackend.from_url(settings.redis_url)
                logger.info("Rate limiter using Redis backend")
            except Exception as e:
                logger.warning(f"Failed to init Redis backend: {e}, using in-memory")
        else:
            logger.info("Rate limiter using in-memory backend")
        return cls(backend=backend, enabled=settings.rate_limit_enabled)

    @property
    def backend(self) -> RateLimitBackend:
        return self._backend

    async def check_rate_limit(self, key: str, max_requests: int, window_ms: int) -> RateLimitResult:
        """
        Count a request against `key` and decide whether it may proceed.

        The request that would exceed `max_requests` within the window is
        refused, along with every later one until the window resets.
        """
        if not self.enabled:
            return RateLimitResult(allowed=True, limit=max_requests)

        now = self._clock()
        try:
            count, reset_at = await self._backend.increment(key, now, window_ms)
        except Exception as e:
            logger.warning(f"Rate limit backend error, using fallback: {e}")
            count, reset_at = await self._fallback_backend.increment(key, now, window_ms)

        if count > max_requests:
            retry_after = max(1, math.ceil((reset_at - now) / 1000))
            return RateLimitResult(
                allowed=False,
                retry_after_seconds=retry_after,
                count=count,
                limit=max_requests,
            )

        return RateLimitResult(allowed=True, count=count, limit=max_requests)

    async def enforce(self, key: str, max_requests: int, window_ms: int) -> RateLimitResult:
        """
        Raises:
            RateLimitError: The key is over its limit (429 with Retry-After).
        """
        result = await self.check_rate_limit(key, max_requests, window_ms)
        if not result.allowed:
            logger.warning(f"Rate limit exceeded for {key}: {max_requests}/{window_ms}ms")
            raise RateLimitError(retry_after=result.retry_after_seconds)
        return result

    async def close(self) -> None:
        if self._backend is not self._fallback_backend:
            await self._backend.close()
