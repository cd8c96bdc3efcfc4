"""Rate limiting middleware — in-memory with sliding window.

Protects against:
- Brute-force credential guessing (tight limit on /moderator/login)
- API abuse (general per-IP limit on everything else)

Uses in-memory storage (works for single-instance). For multi-instance,
swap _store for a shared backend.
"""
from __future__ import annotations

import time
import logging
from collections import defaultdict
from dataclasses import dataclass, field

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from config.settings import settings

logger = logging.getLogger(__name__)


@dataclass
class _RateWindow:
    """Sliding window counter for a single client."""
    timestamps: list[float] = field(default_factory=list)

    def count_in_window(self, window_seconds: float) -> int:
        cutoff = time.monotonic() - window_seconds
        self.timestamps = [t for t in self.timestamps if t > cutoff]
        return len(self.timestamps)

    def record(self) -> None:
        self.timestamps.append(time.monotonic())


class RateLimitStore:
    """In-memory rate limit storage with periodic cleanup."""

    def __init__(self):
        self._windows: dict[str, _RateWindow] = defaultdict(_RateWindow)
        self._last_cleanup = time.monotonic()
        self._cleanup_interval = 300  # 5 minutes

    def check_and_record(self, key: str, limit: int, window_seconds: float) -> tuple[bool, int]:
        """Check if request is allowed, record it if so.

        Returns (allowed, current_count).
        """
        self._maybe_cleanup()
        window = self._windows[key]
        count = window.count_in_window(window_seconds)
        if count >= limit:
            return False, count
        window.record()
        return True, count + 1

    def _maybe_cleanup(self):
        now = time.monotonic()
        if now - self._last_cleanup < self._cleanup_interval:
            return
        self._last_cleanup = now
        stale = [k for k, w in self._windows.items() if not w.timestamps]
        for k in stale:
            del self._windows[k]


# Global store
_store = RateLimitStore()


def reset_store():
    """Reset rate limit state — used in tests."""
    _store._windows.clear()


LOGIN_PATH = "/moderator/login"
DEFAULT_LIMIT = (300, 60)

# Paths exempt from rate limiting
_EXEMPT = {"/health", "/docs", "/openapi.json"}


def _get_client_ip(request: Request) -> str:
    """Extract client IP, respecting X-Forwarded-For behind proxy."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _find_limit(path: str) -> tuple[int, int] | None:
    """(requests, window_seconds) for a path, or None when exempt."""
    if path in _EXEMPT:
        return None
    if path == LOGIN_PATH:
        return settings.LOGIN_RATE_LIMIT, 60
    return DEFAULT_LIMIT


class RateLimitMiddleware(BaseHTTPMiddleware):
    """FastAPI middleware for IP-based rate limiting."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        rate = _find_limit(path)
        if rate is None:
            return await call_next(request)

        limit, window = rate
        client_ip = _get_client_ip(request)
        if path == LOGIN_PATH:
            key = f"{client_ip}:login"
        else:
            key = f"{client_ip}:{path.split('/')[1]}"  # Group by IP + first path segment

        allowed, count = _store.check_and_record(key, limit, window)

        if not allowed:
            logger.warning("Rate limited: %s on %s (%s/%s in %ss)", client_ip, path, count, limit, window)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limited",
                    "message": "Too many requests. Please try again later.",
                    "retry_after": window,
                },
                headers={"Retry-After": str(window)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(max(0, limit - count))
        return response
