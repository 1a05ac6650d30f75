"""Shared guardrail helpers: API error envelope and lightweight rate limiting."""

from __future__ import annotations

import asyncio
import time
from collections import defaultdict, deque

from fastapi import HTTPException


def api_error(*, status_code: int, code: str, message: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"error": message, "code": code})


class FixedWindowRateLimiter:
    """In-memory, per-key fixed-window rate limiter with per-key locking."""

    _MAX_LOCKS = 10_000

    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._events: dict[str, deque[float]] = defaultdict(deque)
        self._locks: dict[str, asyncio.Lock] = {}
        self._meta_lock = asyncio.Lock()

    async def _get_lock(self, key: str) -> asyncio.Lock:
        """Get or create a per-key lock, evicting stale locks if over limit."""
        if key in self._locks:
            return self._locks[key]
        async with self._meta_lock:
            if key not in self._locks:
                if len(self._locks) > self._MAX_LOCKS:
                    stale = [k for k in self._locks if k not in self._events]
                    for k in stale:
                        self._locks.pop(k, None)
                self._locks[key] = asyncio.Lock()
            return self._locks[key]

    async def check(self, key: str, *, code: str, message: str) -> None:
        now = time.monotonic()
        cutoff = now - self.window_seconds
        lock = await self._get_lock(key)
        async with lock:
            events = self._events[key]
            while events and events[0] <= cutoff:
                events.popleft()
            if len(events) >= self.max_requests:
                raise api_error(status_code=429, code=code, message=message)
            events.append(now)

    def reset(self) -> None:
        self._events.clear()
        self._locks.clear()
