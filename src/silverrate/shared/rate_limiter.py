# src/silverrate/shared/rate_limiter.py
"""
Rate Limiter - Per-user Command Throttling

Sliding-window limiter for bot commands. A user who exceeds the window is
blocked for ``block_seconds``. Commands that only read the refresh loop's
cached value are cheap; commands that hit upstream APIs (/week, /health)
get tighter limits.

Files that USE this module:
- silverrate.adapters.telegram.handlers (every command)
- tests.test_rate_limiter (unit tests)

Files that this module USES:
- None (pure utility implementation)
"""
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int
    window_seconds: int
    block_seconds: int = 120


class RateLimiter:
    """In-memory limiter keyed by an arbitrary identifier (e.g. 'price:user:42')."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._blocked_until: Dict[str, float] = {}

    def _prune(self, key: str, now: float, window: int) -> Deque[float]:
        hits = self._hits[key]
        cutoff = now - window
        while hits and hits[0] <= cutoff:
            hits.popleft()
        return hits

    def is_allowed(self, key: str, config: RateLimitConfig) -> bool:
        now = self._clock()
        until = self._blocked_until.get(key)
        if until is not None:
            if now < until:
                return False
            del self._blocked_until[key]

        hits = self._prune(key, now, config.window_seconds)
        if len(hits) >= config.max_requests:
            self._blocked_until[key] = now + config.block_seconds
            return False
        hits.append(now)
        return True

    def remaining(self, key: str, config: RateLimitConfig) -> int:
        hits = self._prune(key, self._clock(), config.window_seconds)
        return max(0, config.max_requests - len(hits))

    def reset(self) -> None:
        self._hits.clear()
        self._blocked_until.clear()


rate_limiter = RateLimiter()

RATE_LIMITS = {
    "cached": RateLimitConfig(max_requests=20, window_seconds=60),
    "upstream": RateLimitConfig(max_requests=5, window_seconds=60),
    "admin": RateLimitConfig(max_requests=10, window_seconds=60, block_seconds=30),
}
