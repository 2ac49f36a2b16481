"""Sliding-window attempt limiter for the authentication entry points.

Each key (client address) gets a window that opens on its first attempt and
lasts ``window``; at most ``max_attempts`` calls are allowed inside it.
Expired entries are pruned lazily on every check, there is no sweeper.

State sits behind a RateLimitStore whose ``update`` is an atomic
read-modify-write, so the same limiter logic can run against a shared
cache when several processes serve requests.
"""

import logging
import math
import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional, Protocol

from quizdrill.config import settings

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    count: int
    window_reset_at: float  # epoch seconds


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after_seconds: int = 0

    def to_dict(self) -> dict:
        if self.allowed:
            return {"allowed": True}
        return {"allowed": False, "retry_after_seconds": self.retry_after_seconds}


ALLOWED = RateLimitResult(allowed=True)


class RateLimitStore(Protocol):
    def update(
        self,
        key: str,
        fn: Callable[[Optional[RateLimitEntry]], tuple[Optional[RateLimitEntry], RateLimitResult]],
    ) -> RateLimitResult:
        """Apply fn to the key's entry atomically and store what it returns."""

    def prune(self, now: float) -> int:
        """Drop entries whose window has expired. Returns how many were dropped."""

    def clear(self) -> None: ...


class InMemoryRateLimitStore:
    """Process-local store guarded by a single lock."""

    def __init__(self) -> None:
        self._entries: dict[str, RateLimitEntry] = {}
        self._lock = threading.Lock()

    def update(self, key, fn):
        with self._lock:
            entry, result = fn(self._entries.get(key))
            if entry is None:
                self._entries.pop(key, None)
            else:
                self._entries[key] = entry
            return result

    def prune(self, now: float) -> int:
        with self._lock:
            stale = [k for k, e in self._entries.items() if now >= e.window_reset_at]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries


class SlidingWindowLimiter:
    def __init__(
        self,
        max_attempts: int,
        window: timedelta,
        store: Optional[RateLimitStore] = None,
        clock: Callable[[], float] = time.time,
        name: str = "limiter",
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.window_seconds = window.total_seconds()
        self.store = store if store is not None else InMemoryRateLimitStore()
        self.clock = clock
        self.name = name

    def check(self, key: str) -> RateLimitResult:
        """Record one attempt for key and say whether it may proceed."""
        now = self.clock()
        self.store.prune(now)

        def _step(entry: Optional[RateLimitEntry]):
            if entry is None or now >= entry.window_reset_at:
                return RateLimitEntry(count=1, window_reset_at=now + self.window_seconds), ALLOWED
            if entry.count >= self.max_attempts:
                retry_after = math.ceil(entry.window_reset_at - now)
                return entry, RateLimitResult(allowed=False, retry_after_seconds=retry_after)
            entry.count += 1
            return entry, ALLOWED

        result = self.store.update(key, _step)
        if not result.allowed:
            logger.warning(
                "%s blocked %s, retry after %ds", self.name, key, result.retry_after_seconds
            )
        return result

    def reset(self) -> None:
        self.store.clear()


def _window() -> timedelta:
    return timedelta(minutes=settings.rate_limit_window_minutes)


sign_in_limiter = SlidingWindowLimiter(
    max_attempts=settings.sign_in_max_attempts, window=_window(), name="sign-in"
)
register_limiter = SlidingWindowLimiter(
    max_attempts=settings.register_max_attempts, window=_window(), name="register"
)
