"""Rate-limiting dependency for the RPC gateway."""

from __future__ import annotations

from collections import defaultdict, deque
from threading import Lock
from time import time

from fastapi import Request

from .config import get_settings
from .errors import ApiError


class InMemoryRateLimiter:
    """Simple fixed-window rate limiter with per-key counters."""

    def __init__(self, *, limit: int, window_seconds: int) -> None:
        self._lock = Lock()
        self._limit = limit
        self._window_seconds = window_seconds
        self._hits: dict[str, deque[float]] = defaultdict(deque)
        self._last_sweep = time()

    def set_limits(self, *, limit: int, window_seconds: int) -> None:
        with self._lock:
            self._limit = limit
            self._window_seconds = window_seconds
            self._hits.clear()

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)

    def allow(self, key: str) -> bool:
        now = time()
        with self._lock:
            cutoff = now - self._window_seconds
            if now - self._last_sweep >= self._window_seconds:
                self._sweep(cutoff)
                self._last_sweep = now
            bucket = self._hits[key]
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()
            if len(bucket) >= self._limit:
                return False
            bucket.append(now)
            return True

    def _sweep(self, cutoff: float) -> None:
        # Drop callers with no hit inside the window.
        stale = [key for key, bucket in self._hits.items() if not bucket or bucket[-1] <= cutoff]
        for key in stale:
            del self._hits[key]


_settings = get_settings()
_rate_limiter = InMemoryRateLimiter(
    limit=max(_settings.rate_limit_requests, 1),
    window_seconds=max(_settings.rate_limit_window_seconds, 1),
)


def get_rate_limiter() -> InMemoryRateLimiter:
    """Expose limiter singleton for tests and route dependencies."""

    return _rate_limiter


def client_key(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for", "")
    first_hop = forwarded.split(",", 1)[0].strip()
    if first_hop:
        return f"ip:{first_hop}"
    if request.client and request.client.host:
        return f"ip:{request.client.host}"
    return "anon"


def enforce_rate_limit(request: Request) -> None:
    """Enforce per-caller request rate limit."""

    if not _settings.rate_limit_enabled:
        return

    if not _rate_limiter.allow(client_key(request)):
        raise ApiError(
            status_code=429,
            code="RATE_LIMITED",
            message="Rate limit exceeded.",
            trace_id=request.headers.get("x-trace-id"),
        )
