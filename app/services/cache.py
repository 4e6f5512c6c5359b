"""Bounded, time-limited cache for catalog provider responses."""

from __future__ import annotations

import time
from typing import Any, Callable, Mapping

from cachetools import TTLCache


def build_cache_key(endpoint: str, params: Mapping[str, Any] | None = None) -> str:
    """Combine the endpoint with every query parameter in a stable order."""

    if not params:
        return endpoint
    encoded = "&".join(f"{key}={params[key]}" for key in sorted(params))
    return f"{endpoint}?{encoded}"


def create_response_cache(
    ttl: float,
    maxsize: int,
    *,
    timer: Callable[[], float] = time.monotonic,
) -> TTLCache | None:
    """Return a TTL cache, or ``None`` when caching is disabled."""

    if ttl <= 0 or maxsize <= 0:
        return None
    return TTLCache(maxsize=maxsize, ttl=ttl, timer=timer)
