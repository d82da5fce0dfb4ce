"""
Rate Limiting Configuration

Shared slowapi Limiter, keyed on the client IP. Counters live in Redis
unless RATELIMIT_STORAGE_URI points elsewhere (e.g. "memory://").
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from aisle.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATELIMIT_STORAGE_URI or settings.REDIS_URL,
    strategy="fixed-window",
    enabled=settings.RATELIMIT_ENABLED,
)
