"""In-process fixed-window rate limiter."""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single rate limit check."""

    allowed: bool
    remaining: int
    reset_at: int  # epoch milliseconds


@dataclass
class _WindowBucket:
    remaining: int
    reset_at: int


class FixedWindowRateLimiter:
    """
    Fixed-window request throttle.

    A window of ``window_ms`` opens on the first call for a key (or on the
    first call after the previous window expired) and grants ``limit``
    permits. Expired buckets are replaced lazily on the next access; there
    is no background sweep.

    State lives in this instance only, so limits are per process.
    """

    def __init__(self, clock: Callable[[], int] = _now_ms):
        """Initialize limiter with an optional millisecond clock."""
        self._clock = clock
        self._buckets: dict[str, _WindowBucket] = {}
        self._lock = threading.Lock()

    def check(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        """
        Consume one permit for ``key`` if any is left.

        Args:
            key: Bucket key (e.g. client IP + route)
            limit: Permits per window
            window_ms: Window length in milliseconds

        Returns:
            Whether the call is allowed, permits left, and window reset time
        """
        with self._lock:
            now = self._clock()
            bucket = self._buckets.get(key)

            if bucket is None or bucket.reset_at <= now:
                bucket = _WindowBucket(remaining=max(limit - 1, 0), reset_at=now + window_ms)
                self._buckets[key] = bucket
                return RateLimitResult(limit > 0, bucket.remaining, bucket.reset_at)

            if bucket.remaining <= 0:
                return RateLimitResult(False, 0, bucket.reset_at)

            bucket.remaining -= 1
            return RateLimitResult(True, bucket.remaining, bucket.reset_at)

    def reset(self) -> None:
        """Drop every bucket."""
        with self._lock:
            self._buckets.clear()

    def __len__(self) -> int:
        return len(self._buckets)
