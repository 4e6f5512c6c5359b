"""In-memory fixed-window rate limiting."""

from __future__ import annotations

import asyncio
import logging
import math
import time
from contextlib import suppress
from dataclasses import dataclass
from typing import Callable

from ..config import Settings
from ..errors import RateLimitedError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RateWindow:
    """Request count for a key together with the window expiry timestamp."""

    count: int
    reset_at: float


class RateLimiter:
    """Fixed-window counters keyed by an arbitrary string.

    State only lives for the lifetime of the process. ``start`` launches a
    periodic sweep that evicts expired windows; ``stop`` cancels it and drops
    every window.
    """

    def __init__(
        self,
        *,
        sweep_interval: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._windows: dict[str, RateWindow] = {}
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._sweep_task: asyncio.Task[None] | None = None

    async def start(self) -> None:
        """Launch the background sweep loop."""

        if self._sweep_task is None:
            self._sweep_task = asyncio.create_task(self._sweep_loop())

    async def stop(self) -> None:
        """Stop the sweep loop and forget all windows."""

        if self._sweep_task is not None:
            self._sweep_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._sweep_task
            self._sweep_task = None
        self._windows.clear()

    def check(self, key: str, max_requests: int, window_seconds: float) -> bool:
        """Count a request against ``key`` and return whether it is allowed."""

        now = self._clock()
        window = self._windows.get(key)
        if window is None or now > window.reset_at:
            self._windows[key] = RateWindow(count=1, reset_at=now + window_seconds)
            return True
        if window.count >= max_requests:
            return False
        window.count += 1
        return True

    def remaining(self, key: str, max_requests: int) -> int:
        window = self._live_window(key)
        if window is None:
            return max_requests
        return max(0, max_requests - window.count)

    def reset_seconds(self, key: str) -> int:
        """Seconds until the window for ``key`` closes (0 when none is open)."""

        window = self._live_window(key)
        if window is None:
            return 0
        return math.ceil(window.reset_at - self._clock())

    def reset(self, key: str) -> None:
        self._windows.pop(key, None)

    def clear(self) -> None:
        self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)

    def sweep(self) -> int:
        """Evict expired windows and return how many were dropped."""

        now = self._clock()
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            self._windows.pop(key, None)
        if expired:
            logger.info("Rate limiter cleaned up %s expired entries", len(expired))
        return len(expired)

    def _live_window(self, key: str) -> RateWindow | None:
        window = self._windows.get(key)
        if window is None or self._clock() > window.reset_at:
            return None
        return window

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                self.sweep()
            except Exception as exc:  # pragma: no cover - background safety net
                logger.exception("Rate limiter sweep failed: %s", exc)


@dataclass(frozen=True, slots=True)
class RateLimitRule:
    max_requests: int
    window_seconds: float


class RateLimitPolicy:
    """Applies the per-IP and per-identity scopes conjunctively for one endpoint."""

    def __init__(
        self,
        limiter: RateLimiter,
        *,
        endpoint: str,
        ip_rule: RateLimitRule,
        identity_rule: RateLimitRule | None = None,
    ) -> None:
        self._limiter = limiter
        self._endpoint = endpoint
        self._ip_rule = ip_rule
        self._identity_rule = identity_rule

    @classmethod
    def for_search(cls, limiter: RateLimiter, settings: Settings) -> "RateLimitPolicy":
        window = float(settings.rate_limit_window_seconds)
        return cls(
            limiter,
            endpoint="search",
            ip_rule=RateLimitRule(settings.search_ip_limit, window),
            identity_rule=RateLimitRule(settings.search_user_limit, window),
        )

    def enforce(self, *, client_ip: str, identity: str | None = None) -> None:
        """Raise ``RateLimitedError`` when either scope rejects the request."""

        self._enforce_scope("ip", client_ip, self._ip_rule)
        if identity and self._identity_rule is not None:
            self._enforce_scope("user", identity, self._identity_rule)

    def _enforce_scope(self, scope: str, value: str, rule: RateLimitRule) -> None:
        key = f"{scope}:{self._endpoint}:{value}"
        if self._limiter.check(key, rule.max_requests, rule.window_seconds):
            return
        retry_after = self._limiter.reset_seconds(key)
        logger.warning("Rate limit hit for %s scope on %s", scope, self._endpoint)
        raise RateLimitedError(
            limit=rule.max_requests, retry_after=retry_after, scope=scope
        )
