"""
Tests for dolo/utils/rate_limiter.py - fixed-window webhook limiter.
"""
import threading

from dolo.utils.rate_limiter import RateLimitBucket, WebhookRateLimiter


class FakeClock:
    def __init__(self, now: int = 1_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now


class TestAllow:
    def test_first_call_opens_bucket(self):
        clock = FakeClock()
        limiter = WebhookRateLimiter(clock=clock)
        assert limiter.allow("stripe:1.2.3.4", max_attempts=3, window_ms=1000) is True
        assert limiter.bucket("stripe:1.2.3.4") == RateLimitBucket(count=1, reset_time=clock.now + 1000)

    def test_rejects_after_max_then_resets(self):
        clock = FakeClock()
        limiter = WebhookRateLimiter(clock=clock)

        results = [limiter.allow("ip", max_attempts=3, window_ms=1000) for _ in range(4)]
        assert results == [True, True, True, False]

        clock.now += 1001
        assert limiter.allow("ip", max_attempts=3, window_ms=1000) is True
        assert limiter.bucket("ip").count == 1

    def test_rejected_calls_do_not_increment(self):
        clock = FakeClock()
        limiter = WebhookRateLimiter(clock=clock)
        for _ in range(10):
            limiter.allow("ip", max_attempts=2, window_ms=1000)
        assert limiter.bucket("ip").count == 2

    def test_window_boundary_is_inclusive(self):
        clock = FakeClock()
        limiter = WebhookRateLimiter(clock=clock)
        limiter.allow("ip", max_attempts=1, window_ms=1000)

        clock.now += 1000
        assert limiter.allow("ip", max_attempts=1, window_ms=1000) is False

        clock.now += 1
        assert limiter.allow("ip", max_attempts=1, window_ms=1000) is True

    def test_identifiers_are_independent(self):
        limiter = WebhookRateLimiter(clock=FakeClock())
        assert limiter.allow("a", max_attempts=1) is True
        assert limiter.allow("a", max_attempts=1) is False
        assert limiter.allow("b", max_attempts=1) is True

    def test_defaults_allow_one_hundred(self):
        limiter = WebhookRateLimiter(clock=FakeClock())
        assert all(limiter.allow("ip") for _ in range(100))
        assert limiter.allow("ip") is False

    def test_concurrent_calls_never_exceed_limit(self):
        limiter = WebhookRateLimiter()
        allowed = []
        lock = threading.Lock()

        def worker():
            for _ in range(50):
                if limiter.allow("shared", max_attempts=100, window_ms=60000):
                    with lock:
                        allowed.append(1)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(allowed) == 100


class TestHelpers:
    def test_retry_after_rounds_up(self):
        clock = FakeClock()
        limiter = WebhookRateLimiter(clock=clock)
        limiter.allow("ip", max_attempts=1, window_ms=60000)
        clock.now += 500
        assert limiter.retry_after_seconds("ip") == 60

    def test_retry_after_minimum_one(self):
        clock = FakeClock()
        limiter = WebhookRateLimiter(clock=clock)
        assert limiter.retry_after_seconds("unknown") == 1
        limiter.allow("ip", max_attempts=1, window_ms=1000)
        clock.now += 5000
        assert limiter.retry_after_seconds("ip") == 1

    def test_bucket_returns_copy(self):
        limiter = WebhookRateLimiter(clock=FakeClock())
        limiter.allow("ip")
        snapshot = limiter.bucket("ip")
        snapshot.count = 99
        assert limiter.bucket("ip").count == 1

    def test_unknown_bucket_is_none(self):
        assert WebhookRateLimiter().bucket("nobody") is None

    def test_reset_and_len(self):
        limiter = WebhookRateLimiter(clock=FakeClock())
        limiter.allow("a")
        limiter.allow("b")
        assert len(limiter) == 2
        limiter.reset()
        assert len(limiter) == 0
