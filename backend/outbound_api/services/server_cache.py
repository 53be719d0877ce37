"""
Outbound Ops API — In-Process TTL Cache
=========================================

What:  A small key/value cache with per-entry expiry for lookup results.
Why:   Lookup endpoints are hit on every page load; their data changes rarely.
How:   A dict of (value, expires_at). Expired entries are dropped on read.
       When the cache grows past SERVER_CACHE_MAX_ENTRIES it is cleared
       wholesale, which bounds memory without tracking recency.

Scope:
    Per process, like the IP rate limiter. Multiple workers each keep their
    own copy; entries live at most one TTL, so divergence is short-lived.
"""

import time
from typing import Any, Awaitable, Callable, Dict, Hashable, Optional, Tuple, TypeVar

from outbound_api.config import settings

T = TypeVar("T")

_cache: Dict[Hashable, Tuple[Any, float]] = {}


def _now_ms() -> float:
    return time.time() * 1000


def _prune() -> None:
    max_entries = settings.server_cache_max_entries
    if max_entries <= 0:
        return
    if len(_cache) > max_entries:
        _cache.clear()


def get_cache(key: Hashable) -> Optional[Any]:
    entry = _cache.get(key)
    if entry is None:
        return None
    value, expires_at = entry
    if expires_at <= _now_ms():
        del _cache[key]
        return None
    return value


def set_cache(key: Hashable, value: Any, ttl_ms: float) -> None:
    """Stores a value for ttl_ms milliseconds; non-positive TTLs are not stored."""
    if ttl_ms <= 0:
        return
    _cache[key] = (value, _now_ms() + ttl_ms)
    _prune()


async def with_cache(key: Hashable, ttl_ms: float, factory: Callable[[], Awaitable[T]]) -> T:
    """Returns the cached value for key, computing and storing it on a miss."""
    cached = get_cache(key)
    if cached is not None:
        return cached
    value = await factory()
    set_cache(key, value, ttl_ms)
    return value


def invalidate_cache(prefix: str) -> None:
    """Drops every entry whose key (or first key element) starts with prefix."""
    if not prefix:
        return
    for key in list(_cache):
        name = key[0] if isinstance(key, tuple) and key else key
        if isinstance(name, str) and name.startswith(prefix):
            del _cache[key]


def clear_cache() -> None:
    _cache.clear()
