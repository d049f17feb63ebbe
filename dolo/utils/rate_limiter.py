"""
In-memory fixed-window rate limiter for webhook endpoints.

Each identifier gets a bucket {count, reset_time}. The first call in a window
opens the bucket with count=1; later calls increment until max_attempts, after
which they are rejected until reset_time passes. Bursts right after a window
boundary are allowed (fixed window, not sliding).

Buckets are never evicted, so memory grows with the number of distinct
identifiers seen since process start.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 100
DEFAULT_WINDOW_MS = 60000


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class RateLimitBucket:
    count: int
    reset_time: int  # epoch millis


class WebhookRateLimiter:
    """
    Fixed-window counter keyed by caller identifier.
    One instance per application; check-and-increment runs under a lock.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        self._clock = clock or _now_ms
        self._buckets: dict[str, RateLimitBucket] = {}
        self._lock = threading.Lock()

    def allow(
        self,
        identifier: str,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        window_ms: int = DEFAULT_WINDOW_MS,
    ) -> bool:
        """Record an attempt for identifier. Returns False once the window's quota is spent."""
        with self._lock:
            now = self._clock()
            bucket = self._buckets.get(identifier)

            if bucket is None or now > bucket.reset_time:
                self._buckets[identifier] = RateLimitBucket(count=1, reset_time=now + window_ms)
                return True

            if bucket.count >= max_attempts:
                logger.warning(
                    "Webhook rate limit exceeded: count=%d limit=%d",
                    bucket.count, max_attempts,
                    extra={"identifier": identifier},
                )
                return False

            bucket.count += 1
            return True

    def retry_after_seconds(self, identifier: str) -> int:
        """Seconds until identifier's current window resets (minimum 1)."""
        with self._lock:
            bucket = self._buckets.get(identifier)
            if bucket is None:
                return 1
            remaining_ms = bucket.reset_time - self._clock()
        return max(-(-remaining_ms // 1000), 1)

    def bucket(self, identifier: str) -> Optional[RateLimitBucket]:
        with self._lock:
            bucket = self._buckets.get(identifier)
            if bucket is None:
                return None
            return RateLimitBucket(count=bucket.count, reset_time=bucket.reset_time)

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)
