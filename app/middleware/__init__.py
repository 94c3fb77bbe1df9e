"""Middleware components for the CollabPost API."""

from .logging import RequestLoggingMiddleware
from .rate_limiter import (
    InMemoryBackend,
    RateLimitBackend,
    RateLimiter,
    RateLimitResult,
    RedisBackend,
    get_request_ip,
)

__all__ = [
    # Logging
    "RequestLoggingMiddleware",
    # Rate limiting
    "RateLimitResult",
    "RateLimitBackend",
    "InMemoryBackend",
    "RedisBackend",
    "RateLimiter",
    "get_request_ip",
]
